from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

ASCENT_FALLBACK_RATIO = 0.8
DESCENT_FALLBACK_RATIO = 0.2
CHAR_WIDTH_FALLBACK_RATIO = 0.6

# Representative glyph used for line ascent/descent
SAMPLE_GLYPH = "M"


@dataclass(frozen=True)
class LineMetrics:
    ascent: float
    descent: float

    @property
    def height(self) -> float:
        return self.ascent + self.descent


class MetricsSource(ABC):
    """
    Text measurement facility of a rendering backend.

    Implementations report raw values; 0 or None means "not available" and is
    replaced by a deterministic fallback in MetricsProvider.
    """

    @abstractmethod
    def font_extents(
            self, font_family: str, font_size: float, sample: str
    ) -> Tuple[Optional[float], Optional[float]]:
        """Return (ascent, descent) of `sample` above/below the alphabetic baseline."""
        pass

    @abstractmethod
    def char_width(self, font_family: str, font_size: float, ch: str) -> Optional[float]:
        """Return the advance width of a single character."""
        pass


class MetricsProvider:
    """Fallback-aware measurements for one (font family, font size) pair."""

    def __init__(self, source: MetricsSource, font_family: str, font_size: float):
        self.source = source
        self.font_family = font_family
        self.font_size = font_size
        self._line_metrics: Optional[LineMetrics] = None

    def measure_font(self) -> LineMetrics:
        if self._line_metrics is None:
            ascent, descent = self.source.font_extents(self.font_family, self.font_size, SAMPLE_GLYPH)
            self._line_metrics = LineMetrics(
                ascent=ascent or self.font_size * ASCENT_FALLBACK_RATIO,
                descent=descent or self.font_size * DESCENT_FALLBACK_RATIO,
            )
        return self._line_metrics

    def measure_char(self, ch: str) -> float:
        width = self.source.char_width(self.font_family, self.font_size, ch)
        return width or self.font_size * CHAR_WIDTH_FALLBACK_RATIO

    def measure_char_spaced(self, ch: str, letter_spacing: float) -> float:
        return self.measure_char(ch) + letter_spacing

    def estimate_segment_width(self, text: str, letter_spacing: float) -> float:
        width = 0.0
        for ch in text:
            width += self.measure_char_spaced(ch, letter_spacing)
        return max(1.0, width)

    def char_offsets(self, text: str, letter_spacing: float) -> list[float]:
        """x offset of each character relative to the segment origin."""
        offsets = []
        x = 0.0
        for ch in text:
            offsets.append(x)
            x += self.measure_char_spaced(ch, letter_spacing)
        return offsets
