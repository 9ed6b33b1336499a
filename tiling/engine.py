"""
Tiling layout engine.

Turns a LayoutConfig into the ordered sequence of Segment placements that the
raster and vector backends both consume. Pure: the same config and metrics
always produce the same segments.
"""
from __future__ import annotations

from typing import Iterator, List

from tiling.compositor import AlternationFlags, Segment, place_segment
from tiling.layout_config import LayoutConfig
from tiling.metrics import MetricsProvider
from tiling.text import normalize

# Stand-in for empty lines so every row still measures and advances
EMPTY_LINE_TEXT = " "


def line_height_for(config: LayoutConfig, metrics: MetricsProvider) -> float:
    line = metrics.measure_font()
    return max(1.0, line.ascent + line.descent + config.line_spacing)


def layout(config: LayoutConfig, metrics: MetricsProvider) -> Iterator[Segment]:
    lines = normalize(config.message)
    flags = AlternationFlags(flip=config.alternate_flip, mirror=config.alternate_mirror)
    if config.repeat_to_fill:
        return _fill_rows(config, metrics, lines, flags)
    return _single_pass_rows(config, metrics, lines, flags)


def _fill_rows(
        config: LayoutConfig,
        metrics: MetricsProvider,
        lines: List[str],
        flags: AlternationFlags,
) -> Iterator[Segment]:
    ascent = metrics.measure_font().ascent
    line_height = line_height_for(config, metrics)

    row = 0
    y = 0.0
    while y <= config.height - 1:
        text = lines[row % len(lines)] or EMPTY_LINE_TEXT
        segment_width = metrics.estimate_segment_width(text, config.letter_spacing)
        step = max(1.0, segment_width + config.repeat_gap)

        column = 0
        x = 0.0
        while x < config.width:
            yield place_segment(
                row=row,
                column=column,
                text=text,
                x=x,
                top=y,
                width=segment_width,
                line_height=line_height,
                ascent=ascent,
                flags=flags,
            )
            x += step
            column += 1

        y += line_height
        row += 1


def _single_pass_rows(
        config: LayoutConfig,
        metrics: MetricsProvider,
        lines: List[str],
        flags: AlternationFlags,
) -> Iterator[Segment]:
    ascent = metrics.measure_font().ascent
    line_height = line_height_for(config, metrics)

    for row, line in enumerate(lines):
        y = row * line_height
        if y > config.height:
            break
        text = line or EMPTY_LINE_TEXT
        yield place_segment(
            row=row,
            column=0,
            text=text,
            x=0.0,
            top=y,
            width=metrics.estimate_segment_width(text, config.letter_spacing),
            line_height=line_height,
            ascent=ascent,
            flags=flags,
        )
