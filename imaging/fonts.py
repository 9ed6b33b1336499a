"""
Pillow font loading and measurement.

Font loading is best-effort: a registry font that cannot be opened degrades to
DejaVuSans and then to Pillow's built-in font. The result says which one was
used so callers can report a degraded status instead of failing the render.
Only when not even the built-in font can be created does loading raise.
"""
from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from PIL import ImageFont

from imaging.font_registry import DEFAULT_FONTS_ROOT, font_path, resolve_font_source
from tiling.errors import MeasurementUnavailableError, RenderContextError
from tiling.metrics import MetricsSource

FALLBACK_FONT_FILE = "DejaVuSans.ttf"

MAX_CACHED_FONTS = 32

PillowFont = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(frozen=True)
class LoadedFont:
    font: PillowFont
    family: str
    degraded: bool = False
    message: Optional[str] = None


def _load_font(path: Path, size: float) -> Tuple[PillowFont, Optional[str]]:
    try:
        return ImageFont.truetype(str(path), size), None
    except Exception:
        pass

    try:
        return ImageFont.truetype(FALLBACK_FONT_FILE, size), f"{path.name} unavailable, using {FALLBACK_FONT_FILE}"
    except Exception:
        return ImageFont.load_default(size), f"{path.name} unavailable, using built-in font"


class FontLoader:
    """
    Loads Pillow fonts per (family, size).

    Sizes come straight from requests, so only the most recently used
    MAX_CACHED_FONTS entries are kept.
    """

    def __init__(self, fonts_root: Path = DEFAULT_FONTS_ROOT, max_cached: int = MAX_CACHED_FONTS):
        self.fonts_root = fonts_root
        self.max_cached = max(1, max_cached)
        self._lock = threading.Lock()
        self._fonts: "OrderedDict[Tuple[str, float], LoadedFont]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._fonts)

    def load(self, font_family: str, font_size: float) -> LoadedFont:
        family = resolve_font_source(font_family).family
        key = (family, font_size)
        with self._lock:
            loaded = self._fonts.get(key)
            if loaded is not None:
                self._fonts.move_to_end(key)
                return loaded

            try:
                font, message = _load_font(font_path(family, self.fonts_root), font_size)
            except (OSError, ValueError) as e:
                raise RenderContextError(f"No usable font for {family} at {font_size}px") from e
            loaded = LoadedFont(font=font, family=family, degraded=message is not None, message=message)
            self._fonts[key] = loaded
            while len(self._fonts) > self.max_cached:
                self._fonts.popitem(last=False)
            return loaded


def supports_anchor(font: PillowFont) -> bool:
    # Baseline anchors only exist for FreeType fonts
    return isinstance(font, ImageFont.FreeTypeFont)


class PillowMetricsSource(MetricsSource):
    """Measures with the same Pillow fonts the raster backend draws with."""

    def __init__(self, loader: FontLoader):
        self.loader = loader

    def _font(self, font_family, font_size) -> PillowFont:
        try:
            return self.loader.load(font_family, font_size).font
        except RenderContextError as e:
            raise MeasurementUnavailableError(f"Unable to measure text: {e}") from e

    def font_extents(self, font_family, font_size, sample):
        font = self._font(font_family, font_size)
        if not supports_anchor(font):
            return None, None
        _left, top, _right, bottom = font.getbbox(sample, anchor="ls")
        return -top, bottom

    def char_width(self, font_family, font_size, ch):
        return self._font(font_family, font_size).getlength(ch)
