from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

# CSS fallback stack used whenever the chosen family is not available
FALLBACK_FAMILY = "ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial"

DEFAULT_FONTS_ROOT = Path(__file__).resolve().parents[1] / "web" / "static" / "fonts"


@dataclass(frozen=True)
class FontSource:
    family: str
    path: str  # relative to the fonts root
    format: str  # @font-face format() tag
    mime: str


FONT_SOURCES: Dict[str, FontSource] = {
    "Poochtooth": FontSource("Poochtooth", "poochtooth.ttf", "truetype", "font/ttf"),
    "Herring": FontSource("Herring", "herring.otf", "opentype", "font/otf"),
}


def resolve_font_source(font_family: str | None) -> FontSource:
    """Registry entry for `font_family`; unknown names fall back to the first entry."""
    if font_family in FONT_SOURCES:
        return FONT_SOURCES[font_family]
    return next(iter(FONT_SOURCES.values()))


def font_path(font_family: str | None, fonts_root: Path) -> Path:
    return fonts_root / resolve_font_source(font_family).path


def list_fonts() -> Tuple[FontSource, ...]:
    return tuple(FONT_SOURCES.values())
