import base64
import re
import threading
import xml.etree.ElementTree as ET

import pytest

from imaging.vector_renderer import (
    FontResourceCache,
    VectorRenderer,
    escape_xml,
    format_number,
    format_transform,
    read_font_file,
)
from tests.fakes.fake_metrics import FakeMetricsSource
from tiling.engine import layout
from tiling.errors import FontResourceError, MeasurementUnavailableError
from tiling.layout_config import LayoutConfig
from tiling.metrics import MetricsProvider

SVG = "{http://www.w3.org/2000/svg}"
FONT_BYTES = b"\x00\x01fake-font-bytes"


class CountingFetcher:
    def __init__(self, data=FONT_BYTES):
        self.data = data
        self.calls = []

    def __call__(self, source):
        self.calls.append(source.family)
        return self.data


def _build(config, fetcher=None):
    renderer = VectorRenderer(FontResourceCache(fetcher or CountingFetcher()))
    metrics = MetricsProvider(FakeMetricsSource(), config.font_family, config.font_size)
    return renderer.build_document(layout(config, metrics), config, metrics)


def _text_nodes(document):
    root = ET.fromstring(document.encode("utf-8"))
    return list(root.iter(f"{SVG}text"))


def test_header_declares_floored_bounds():
    document = _build(LayoutConfig(width=640.7, height=480.2))
    assert document.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    root = ET.fromstring(document.encode("utf-8"))
    assert root.attrib["width"] == "640"
    assert root.attrib["height"] == "480"
    assert root.attrib["viewBox"] == "0 0 640 480"


def test_font_is_embedded_as_data_url():
    document = _build(LayoutConfig(font_family="Herring"))
    encoded = base64.b64encode(FONT_BYTES).decode("ascii")
    assert f"url('data:font/otf;base64,{encoded}') format('opentype')" in document
    assert "font-family: 'Herring'" in document


def test_unknown_family_embeds_first_registry_font():
    document = _build(LayoutConfig(font_family="Nope"))
    assert "data:font/ttf;base64," in document
    assert "format('truetype')" in document


def test_background_and_colors():
    document = _build(LayoutConfig(bg_color="#102030", fg_color="#abcdef"))
    assert '<rect x="0" y="0" width="100%" height="100%" fill="#102030" />' in document
    assert "fill: #abcdef;" in document


def test_unparseable_colors_never_reach_the_document():
    document = _build(LayoutConfig(bg_color="\"/><script/>", fg_color="red; } ]]><script/><![CDATA["))

    assert "<script" not in document
    assert document.count("]]>") == 1
    assert "fill: #000000;" in document
    assert 'fill="#ffffff"' in document
    ET.fromstring(document.encode("utf-8"))


def test_reserved_characters_are_escaped_in_text_nodes():
    config = LayoutConfig(message='a<b & "c" \'d\' >', repeat_to_fill=False)
    document = _build(config)

    raw_contents = re.findall(r"<text[^>]*>(.*?)</text>", document)
    assert raw_contents
    for content in raw_contents:
        assert "<" not in content
        assert '"' not in content
        assert "'" not in content
        assert re.search(r"&(?!amp;|lt;|gt;|quot;|apos;)", content) is None

    assert _text_nodes(document)[0].text == 'A<B & "C" \'D\' >'


def test_identity_segments_are_not_wrapped():
    document = _build(LayoutConfig(message="AB", width=100, height=64))
    assert "<g " not in document
    assert '<text class="t" x="0" y="24">AB</text>' in document


def test_alternate_segments_are_wrapped_in_transform_group():
    config = LayoutConfig(message="AB", width=100, height=64, alternate_flip=True, alternate_mirror=True)
    document = _build(config)

    # row 0, column 1: x = 20, width 20, line height 32 -> center (30, 16)
    expected = (
        '<g transform="translate(30 16) rotate(180) scale(-1 1) translate(-30 -16)">'
        '<text class="t" x="20" y="24">AB</text></g>'
    )
    assert expected in document


def test_single_pass_document_has_one_text_per_line():
    config = LayoutConfig(message="one\ntwo\nthree", repeat_to_fill=False)
    nodes = _text_nodes(_build(config))
    assert [node.text for node in nodes] == ["ONE", "TWO", "THREE"]
    assert [node.attrib["x"] for node in nodes] == ["0", "0", "0"]


def test_font_resource_is_fetched_once_per_family():
    fetcher = CountingFetcher()
    cache = FontResourceCache(fetcher)
    renderer = VectorRenderer(cache)
    config = LayoutConfig(message="A", width=64, height=64)
    metrics = MetricsProvider(FakeMetricsSource(), config.font_family, config.font_size)

    renderer.build_document(layout(config, metrics), config, metrics)
    renderer.build_document(layout(config, metrics), config, metrics)
    cache.get("Herring")

    assert fetcher.calls == ["Poochtooth", "Herring"]
    assert "Poochtooth" in cache
    assert "Herring" in cache


def test_missing_font_file_aborts_export(tmp_path):
    cache = FontResourceCache(read_font_file(tmp_path))
    config = LayoutConfig()
    metrics = MetricsProvider(FakeMetricsSource(), config.font_family, config.font_size)

    with pytest.raises(FontResourceError, match="poochtooth.ttf"):
        VectorRenderer(cache).build_document(layout(config, metrics), config, metrics)

    assert "Poochtooth" not in cache


def test_font_file_is_read_from_fonts_root(tmp_path):
    (tmp_path / "herring.otf").write_bytes(b"OTTO")
    embedded = FontResourceCache(read_font_file(tmp_path)).get("Herring")
    assert embedded.data_url == "data:font/otf;base64," + base64.b64encode(b"OTTO").decode("ascii")


def test_missing_measurement_context_aborts_export():
    renderer = VectorRenderer(FontResourceCache(CountingFetcher()))
    with pytest.raises(MeasurementUnavailableError):
        renderer.build_document([], LayoutConfig(), None)


@pytest.mark.parametrize(
    "value, expected",
    [(0.0, "0"), (-0.0, "0"), (12.5, "12.5"), (-30.0, "-30"), (1 / 3, "0.3333"), (1e-7, "0")],
)
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_escape_xml_handles_none():
    assert escape_xml(None) == ""
    assert escape_xml("&<>\"'") == "&amp;&lt;&gt;&quot;&apos;"


def test_format_transform_of_no_steps_is_empty():
    assert format_transform(()) == ""


def test_concurrent_builds_fetch_the_font_once():
    fetcher = CountingFetcher()
    renderer = VectorRenderer(FontResourceCache(fetcher))
    config = LayoutConfig(message="hi", width=200, height=100)
    documents = []

    def export():
        metrics = MetricsProvider(FakeMetricsSource(), config.font_family, config.font_size)
        documents.append(renderer.build_document(layout(config, metrics), config, metrics))

    threads = [threading.Thread(target=export) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert fetcher.calls == ["Poochtooth"]
    assert len(documents) == 8
    assert len(set(documents)) == 1
