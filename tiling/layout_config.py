from __future__ import annotations

import math
from dataclasses import dataclass

MIN_SURFACE_SIZE = 64
MAX_SURFACE_SIZE = 16000

LETTER_SPACING_RANGE = (-100.0, 500.0)
LINE_SPACING_RANGE = (-200.0, 500.0)
REPEAT_GAP_RANGE = (-500.0, 2000.0)

MIN_FONT_SIZE = 1.0

DEFAULT_MESSAGE = "MEET AT 7"
DEFAULT_FONT_FAMILY = "Poochtooth"
DEFAULT_FONT_SIZE = 32.0
DEFAULT_WIDTH = 1200
DEFAULT_HEIGHT = 800
DEFAULT_FG_COLOR = "#000000"
DEFAULT_BG_COLOR = "#ffffff"


def clamp(value: float, low: float, high: float, default: float | None = None) -> float:
    """Clamp `value` into [low, high]; NaN becomes `default` (or `low`)."""
    if math.isnan(value):
        return low if default is None else default
    return max(low, min(high, value))


def clamp_dimension(value: float) -> int:
    value = clamp(float(value), MIN_SURFACE_SIZE, MAX_SURFACE_SIZE)
    return int(math.floor(value))


@dataclass(frozen=True)
class LayoutConfig:
    """
    One render request.

    Numeric fields are clamped on construction, so a LayoutConfig is always
    within the ranges the layout engine relies on. Build a new one per render.
    """

    message: str = DEFAULT_MESSAGE
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    font_size: float = DEFAULT_FONT_SIZE
    font_family: str = DEFAULT_FONT_FAMILY
    fg_color: str = DEFAULT_FG_COLOR
    bg_color: str = DEFAULT_BG_COLOR

    letter_spacing: float = 0.0
    line_spacing: float = 0.0
    repeat_to_fill: bool = True
    repeat_gap: float = 0.0
    alternate_flip: bool = False
    alternate_mirror: bool = False

    def __post_init__(self):
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "width", clamp_dimension(self.width))
        object.__setattr__(self, "height", clamp_dimension(self.height))

        font_size = float(self.font_size)
        if not math.isfinite(font_size):
            font_size = DEFAULT_FONT_SIZE
        object.__setattr__(self, "font_size", max(MIN_FONT_SIZE, font_size))

        object.__setattr__(
            self, "letter_spacing", clamp(float(self.letter_spacing), *LETTER_SPACING_RANGE, default=0.0)
        )
        object.__setattr__(
            self, "line_spacing", clamp(float(self.line_spacing), *LINE_SPACING_RANGE, default=0.0)
        )
        object.__setattr__(
            self, "repeat_gap", clamp(float(self.repeat_gap), *REPEAT_GAP_RANGE, default=0.0)
        )
        object.__setattr__(self, "font_family", self.font_family or DEFAULT_FONT_FAMILY)
        object.__setattr__(self, "message", "" if self.message is None else str(self.message))

        object.__setattr__(self, "repeat_to_fill", bool(self.repeat_to_fill))
        object.__setattr__(self, "alternate_flip", bool(self.alternate_flip))
        object.__setattr__(self, "alternate_mirror", bool(self.alternate_mirror))

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height
