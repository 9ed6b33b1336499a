"""
Pattern service

Single owner of the shared rendering state:
- the raster surface (reused between renders, reallocated on resize)
- the embedded-font cache used by SVG export
- the health status reported to the UI/API

Layout itself is pure; every render or export recomputes it from the config.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional

from controller.health import HealthCode, HealthLevel, HealthSource, HealthStatus
from imaging.font_registry import DEFAULT_FONTS_ROOT
from imaging.fonts import FontLoader, LoadedFont, PillowMetricsSource
from imaging.raster_renderer import RasterRenderer, RasterSurface
from imaging.vector_renderer import FontResourceCache, VectorRenderer, read_font_file
from tiling.compositor import Segment
from tiling.engine import layout
from tiling.errors import FontResourceError, MeasurementUnavailableError, RenderContextError
from tiling.layout_config import LayoutConfig
from tiling.metrics import MetricsProvider, MetricsSource
from tiling.text import export_filename


class PatternService:
    def __init__(
            self,
            fonts_root: Path = DEFAULT_FONTS_ROOT,
            metrics_source: Optional[MetricsSource] = None,
            font_cache: Optional[FontResourceCache] = None,
    ):
        self.fonts_root = fonts_root
        self.font_loader = FontLoader(fonts_root)
        self.metrics_source = metrics_source or PillowMetricsSource(self.font_loader)

        self.surface = RasterSurface()
        self._raster = RasterRenderer(self.font_loader, self.surface)
        self._render_lock = threading.Lock()

        self.font_cache = font_cache or FontResourceCache(read_font_file(fonts_root))
        self._vector = VectorRenderer(self.font_cache)

        self._health_lock = threading.Lock()
        self._health_status = HealthStatus.ok()
        self._health_source: Optional[HealthSource] = None

    # ---------- Public API ----------

    def metrics_for(self, config: LayoutConfig) -> MetricsProvider:
        return MetricsProvider(self.metrics_source, config.font_family, config.font_size)

    def layout(self, config: LayoutConfig) -> List[Segment]:
        return list(layout(config, self.metrics_for(config)))

    def ensure_font_loaded(self, font_family: str, font_size: float = 32) -> LoadedFont:
        """
        Best-effort font readiness; a fallback font is reported, not raised.

        RenderContextError means no font could be created at all.
        """
        loaded = self.font_loader.load(font_family, font_size)
        if loaded.degraded:
            print(f"Font fallback: {loaded.message}")
            self._set_health(
                HealthStatus.degraded(code=HealthCode.FONT_FALLBACK, message=loaded.message),
                source=HealthSource.FONT_LOADING,
            )
        else:
            self._clear_health(HealthSource.FONT_LOADING)
        return loaded

    def render_png(self, config: LayoutConfig) -> bytes:
        with self._render_lock:
            try:
                self.ensure_font_loaded(config.font_family, config.font_size)
                metrics = self.metrics_for(config)
                try:
                    surface = self._raster.render(layout(config, metrics), config, metrics)
                except MeasurementUnavailableError as e:
                    raise RenderContextError(str(e)) from e
                png = surface.to_png()
            except RenderContextError as e:
                print(f"Render error: {e}")
                self._set_health(
                    HealthStatus.error(
                        code=HealthCode.RENDER_CONTEXT_UNAVAILABLE,
                        message=str(e),
                        instructions=["Reduce the canvas size", "Reload the page"],
                    ),
                    source=HealthSource.RASTER,
                )
                raise
        self._clear_health(HealthSource.RASTER)
        return png

    def export_svg(self, config: LayoutConfig) -> str:
        try:
            metrics = self.metrics_for(config)
            document = self._vector.build_document(layout(config, metrics), config, metrics)
        except FontResourceError as e:
            print(f"SVG export failed: {e}")
            self._set_health(
                HealthStatus.error(
                    code=HealthCode.FONT_RESOURCE_UNAVAILABLE,
                    message=str(e),
                    instructions=["Check that the font files are installed", "Try the PNG download instead"],
                ),
                source=HealthSource.VECTOR_EXPORT,
            )
            raise
        except MeasurementUnavailableError as e:
            print(f"SVG export failed: {e}")
            self._set_health(
                HealthStatus.error(
                    code=HealthCode.MEASUREMENT_UNAVAILABLE,
                    message=str(e),
                    instructions=["Try the PNG download instead"],
                ),
                source=HealthSource.VECTOR_EXPORT,
            )
            raise
        self._clear_health(HealthSource.VECTOR_EXPORT)
        return document

    def png_filename(self, config: LayoutConfig) -> str:
        return export_filename(config.font_family, config.message, "png")

    def svg_filename(self, config: LayoutConfig) -> str:
        return export_filename(config.font_family, config.message, "svg")

    def get_health(self) -> HealthStatus:
        with self._health_lock:
            return self._health_status

    # ---------- Health helpers ----------

    def _set_health(self, status: HealthStatus, *, source: HealthSource) -> None:
        with self._health_lock:
            # A warning never hides an existing error
            if self._health_status.level == HealthLevel.ERROR and status.level != HealthLevel.ERROR:
                return
            self._health_source = source
            self._health_status = status

    def _clear_health(self, source: HealthSource) -> None:
        with self._health_lock:
            if self._health_source == source:
                self._health_source = None
                self._health_status = HealthStatus.ok()
