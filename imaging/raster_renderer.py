from __future__ import annotations

import io
import math
from typing import Iterable, Optional, Tuple

from PIL import Image, ImageDraw

from imaging.colors import parse_color
from imaging.fonts import FontLoader, PillowFont, supports_anchor
from tiling.compositor import (
    Segment,
    TransformKind,
    apply_affine,
    compose_affine,
    invert_affine,
    transform_steps,
)
from tiling.errors import RenderContextError
from tiling.layout_config import DEFAULT_BG_COLOR, DEFAULT_FG_COLOR, LayoutConfig
from tiling.metrics import MetricsProvider

SURFACE_MODE = "RGB"

# Room for anti-aliased edges around the ink box
TILE_PADDING = 2


class RasterSurface:
    """
    Pixel surface reused across renders.

    The underlying image is only reallocated when the requested size changes;
    every render repaints the whole background, so no stale pixels survive.
    """

    def __init__(self):
        self.image: Optional[Image.Image] = None

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        return self.image.size if self.image is not None else None

    def ensure_size(self, size: Tuple[int, int]) -> Image.Image:
        if self.image is None or self.image.size != size:
            try:
                self.image = Image.new(SURFACE_MODE, size)
            except (MemoryError, ValueError) as e:
                raise RenderContextError(f"Unable to allocate a {size[0]}x{size[1]} surface") from e
        return self.image

    def context(self) -> ImageDraw.ImageDraw:
        if self.image is None:
            raise RenderContextError("Surface has not been allocated")
        try:
            return ImageDraw.Draw(self.image)
        except ValueError as e:
            raise RenderContextError("No 2D drawing context available") from e

    def to_png(self) -> bytes:
        if self.image is None:
            raise RenderContextError("Nothing has been rendered yet")
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()


def _draw_glyphs(
        draw: ImageDraw.ImageDraw,
        text: str,
        origin: Tuple[float, float],
        offsets: list[float],
        font: PillowFont,
        fill,
        top_offset: float,
) -> None:
    x0, baseline = origin
    if supports_anchor(font):
        for ch, dx in zip(text, offsets):
            draw.text((x0 + dx, baseline), ch, fill=fill, font=font, anchor="ls")
    else:
        # Bitmap fonts draw from their top-left corner
        for ch, dx in zip(text, offsets):
            draw.text((x0 + dx, baseline - top_offset), ch, fill=fill, font=font)


def _ink_box(
        text: str,
        origin: Tuple[float, float],
        offsets: list[float],
        font: PillowFont,
        top_offset: float,
) -> Optional[Tuple[float, float, float, float]]:
    """Bounding box of the glyphs as _draw_glyphs places them, or None for blank text."""
    x0, baseline = origin
    anchored = supports_anchor(font)
    box = None
    for ch, dx in zip(text, offsets):
        if anchored:
            left, top, right, bottom = font.getbbox(ch, anchor="ls")
            y = baseline
        else:
            left, top, right, bottom = font.getbbox(ch)
            y = baseline - top_offset
        if right <= left or bottom <= top:
            continue
        glyph = (x0 + dx + left, y + top, x0 + dx + right, y + bottom)
        if box is None:
            box = glyph
        else:
            box = (min(box[0], glyph[0]), min(box[1], glyph[1]), max(box[2], glyph[2]), max(box[3], glyph[3]))
    return box


class RasterRenderer:
    def __init__(self, loader: FontLoader, surface: Optional[RasterSurface] = None):
        self.loader = loader
        self.surface = surface or RasterSurface()

    def render(
            self,
            segments: Iterable[Segment],
            config: LayoutConfig,
            metrics: MetricsProvider,
    ) -> RasterSurface:
        image = self.surface.ensure_size(config.size)
        draw = self.surface.context()
        draw.rectangle((0, 0, image.width, image.height), fill=parse_color(config.bg_color, DEFAULT_BG_COLOR))

        fill = parse_color(config.fg_color, DEFAULT_FG_COLOR)
        font = self.loader.load(config.font_family, config.font_size).font
        ascent = metrics.measure_font().ascent

        for segment in segments:
            offsets = metrics.char_offsets(segment.text, config.letter_spacing)
            if segment.transform is TransformKind.IDENTITY:
                _draw_glyphs(draw, segment.text, segment.origin, offsets, font, fill, ascent)
            else:
                self._draw_transformed(image, segment, offsets, font, fill, ascent)

        return self.surface

    @staticmethod
    def _draw_transformed(
            image: Image.Image,
            segment: Segment,
            offsets: list[float],
            font: PillowFont,
            fill,
            ascent: float,
    ) -> None:
        ink = _ink_box(segment.text, segment.origin, offsets, font, ascent)
        if ink is None:
            return

        # Tile covers the ink before and after the transform, not segment.width
        forward = compose_affine(segment.transform_steps)
        corners = [(ink[0], ink[1]), (ink[2], ink[1]), (ink[0], ink[3]), (ink[2], ink[3])]
        points = corners + [apply_affine(forward, corner) for corner in corners]
        left = int(math.floor(min(x for x, _ in points))) - TILE_PADDING
        top = int(math.floor(min(y for _, y in points))) - TILE_PADDING
        right = int(math.ceil(max(x for x, _ in points))) + TILE_PADDING
        bottom = int(math.ceil(max(y for _, y in points))) + TILE_PADDING

        # The segment is drawn into a local mask, so the transform never leaks
        # into neighbouring segments.
        mask = Image.new("L", (right - left, bottom - top), 0)
        local_origin = (segment.x - left, segment.baseline - top)
        _draw_glyphs(ImageDraw.Draw(mask), segment.text, local_origin, offsets, font, 255, ascent)

        cx, cy = segment.center
        local_forward = compose_affine(transform_steps(segment.transform, (cx - left, cy - top)))
        # Image.transform maps output pixels back to input pixels
        mask = mask.transform(
            mask.size,
            Image.Transform.AFFINE,
            invert_affine(local_forward),
            resample=Image.Resampling.BILINEAR,
        )
        image.paste(fill, (left, top), mask)
