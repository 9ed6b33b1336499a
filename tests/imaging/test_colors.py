from imaging.colors import parse_color


def test_known_color_formats_are_kept():
    assert parse_color("#abcdef", "#000000") == "#abcdef"
    assert parse_color("#abc", "#000000") == "#abc"
    assert parse_color("navy", "#000000") == "navy"
    assert parse_color("rgb(10, 20, 30)", "#000000") == "rgb(10, 20, 30)"


def test_whitespace_is_trimmed():
    assert parse_color("  white\n", "#000000") == "white"


def test_unparseable_values_fall_back():
    assert parse_color("rgb(0 0 0)", "#000000") == "#000000"
    assert parse_color("", "#ffffff") == "#ffffff"
    assert parse_color(None, "#ffffff") == "#ffffff"
    assert parse_color(42, "#ffffff") == "#ffffff"
    assert parse_color("red]]><x/>", "#ffffff") == "#ffffff"
