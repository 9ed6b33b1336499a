"""
SVG export of a tiled pattern.

The document embeds its font as a base64 data URL so it renders the same
outside of this application.
"""
from __future__ import annotations

import base64
import math
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional
from xml.sax.saxutils import escape

from imaging.colors import parse_color
from imaging.font_registry import DEFAULT_FONTS_ROOT, FALLBACK_FAMILY, FontSource, resolve_font_source
from tiling.compositor import Segment, TransformStep
from tiling.errors import FontResourceError, MeasurementUnavailableError
from tiling.layout_config import DEFAULT_BG_COLOR, DEFAULT_FG_COLOR, LayoutConfig
from tiling.metrics import MetricsProvider

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


@dataclass(frozen=True)
class EmbeddedFont:
    family: str
    data_url: str
    format: str


def escape_xml(text) -> str:
    """Escape the five reserved XML characters."""
    return escape("" if text is None else str(text), _XML_ENTITIES)


def format_number(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_transform(steps: Iterable[TransformStep]) -> str:
    return " ".join(
        f"{step.op}({' '.join(format_number(arg) for arg in step.args)})" for step in steps
    )


def read_font_file(fonts_root: Path) -> Callable[[FontSource], bytes]:
    def fetch(source: FontSource) -> bytes:
        path = fonts_root / source.path
        try:
            return path.read_bytes()
        except OSError as e:
            raise FontResourceError(f"Failed to fetch font for SVG: {source.path}") from e

    return fetch


class FontResourceCache:
    """
    Embedded font data, fetched at most once per family.

    Lives for the whole process; the check-then-fetch sequence is serialised
    so concurrent exports never fetch the same family twice.
    """

    def __init__(self, fetcher: Optional[Callable[[FontSource], bytes]] = None):
        self._fetcher = fetcher or read_font_file(DEFAULT_FONTS_ROOT)
        self._lock = threading.Lock()
        self._fonts: Dict[str, EmbeddedFont] = {}

    def __contains__(self, font_family: str) -> bool:
        return resolve_font_source(font_family).family in self._fonts

    def get(self, font_family: str) -> EmbeddedFont:
        source = resolve_font_source(font_family)
        with self._lock:
            embedded = self._fonts.get(source.family)
            if embedded is None:
                data = self._fetcher(source)
                b64 = base64.b64encode(data).decode("ascii")
                embedded = EmbeddedFont(
                    family=source.family,
                    data_url=f"data:{source.mime};base64,{b64}",
                    format=source.format,
                )
                self._fonts[source.family] = embedded
            return embedded


class VectorRenderer:
    def __init__(self, font_cache: FontResourceCache):
        self.font_cache = font_cache

    def build_document(
            self,
            segments: Iterable[Segment],
            config: LayoutConfig,
            metrics: Optional[MetricsProvider],
    ) -> str:
        """
        Build the complete SVG document for `segments`.

        Runs synchronously on the calling thread: the only I/O is the first
        read of a font file, and FontResourceCache serialises that per family.
        Concurrent exports from request threads share the cache safely.
        """
        if metrics is None:
            raise MeasurementUnavailableError("No measurement context available for SVG export")

        # Fetch first: a missing font aborts the export before anything is built
        embedded = self.font_cache.get(config.font_family)

        width = int(math.floor(config.width))
        height = int(math.floor(config.height))
        background = parse_color(config.bg_color, DEFAULT_BG_COLOR)
        parts = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<svg xmlns="{SVG_NAMESPACE}" width="{width}" height="{height}" viewBox="0 0 {width} {height}">',
            f'<rect x="0" y="0" width="100%" height="100%" fill="{escape_xml(background)}" />',
            self._style_block(embedded, config),
        ]

        for segment in segments:
            parts.append(self._text_node(segment))

        parts.append("</svg>")
        return "\n".join(parts)

    @staticmethod
    def _style_block(embedded: EmbeddedFont, config: LayoutConfig) -> str:
        # Only parseable colours reach the CDATA section
        fill = parse_color(config.fg_color, DEFAULT_FG_COLOR)
        return (
            "<style><![CDATA[\n"
            "@font-face {\n"
            f"  font-family: '{embedded.family}';\n"
            f"  src: url('{embedded.data_url}') format('{embedded.format}');\n"
            "}\n"
            f"text {{ font-family: '{embedded.family}', {FALLBACK_FAMILY}; "
            f"font-size: {format_number(config.font_size)}px; fill: {fill}; }}\n"
            f".t {{ letter-spacing: {format_number(config.letter_spacing)}px; }}\n"
            "]]></style>"
        )

    @staticmethod
    def _text_node(segment: Segment) -> str:
        x, y = segment.origin
        node = (
            f'<text class="t" x="{format_number(x)}" y="{format_number(y)}">'
            f"{escape_xml(segment.text)}</text>"
        )
        steps = segment.transform_steps
        if not steps:
            return node
        return f'<g transform="{format_transform(steps)}">{node}</g>'
