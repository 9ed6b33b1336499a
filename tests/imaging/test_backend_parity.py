import xml.etree.ElementTree as ET

import pytest

from imaging import raster_renderer
from imaging.fonts import FontLoader
from imaging.raster_renderer import RasterRenderer
from imaging.vector_renderer import FontResourceCache, VectorRenderer, format_number
from tests.fakes.fake_metrics import FakeMetricsSource
from tiling.engine import layout
from tiling.layout_config import LayoutConfig
from tiling.metrics import MetricsProvider

MEET_AT_7 = LayoutConfig(
    message="MEET AT 7",
    width=800,
    height=400,
    font_size=32,
    repeat_to_fill=True,
    repeat_gap=0,
    letter_spacing=0,
    line_spacing=0,
    alternate_flip=False,
    alternate_mirror=False,
)


@pytest.mark.parametrize(
    "config",
    [
        MEET_AT_7,
        LayoutConfig(message="MEET AT 7", width=800, height=400, repeat_gap=12, letter_spacing=3),
        LayoutConfig(message="A\nBC", width=300, height=300, repeat_to_fill=False, line_spacing=5),
    ],
)
def test_raster_and_vector_place_segments_identically(config, tmp_path, monkeypatch):
    metrics = MetricsProvider(FakeMetricsSource(), config.font_family, config.font_size)
    expected = [segment.origin for segment in layout(config, metrics)]

    raster_origins = []
    original_draw = raster_renderer._draw_glyphs

    def spy(draw, text, origin, *args, **kwargs):
        raster_origins.append(origin)
        return original_draw(draw, text, origin, *args, **kwargs)

    monkeypatch.setattr(raster_renderer, "_draw_glyphs", spy)
    RasterRenderer(FontLoader(tmp_path)).render(layout(config, metrics), config, metrics)

    document = VectorRenderer(FontResourceCache(lambda source: b"font")).build_document(
        layout(config, metrics), config, metrics
    )
    root = ET.fromstring(document.encode("utf-8"))
    vector_origins = [
        (node.attrib["x"], node.attrib["y"]) for node in root.iter("{http://www.w3.org/2000/svg}text")
    ]

    assert raster_origins == expected
    assert vector_origins == [(format_number(x), format_number(y)) for x, y in expected]
