from __future__ import annotations

from PIL import ImageColor


def parse_color(value, default: str) -> str:
    """Return `value` when Pillow can parse it as a colour, else `default`."""
    if not isinstance(value, str):
        return default
    value = value.strip()
    try:
        ImageColor.getrgb(value)
    except ValueError:
        return default
    return value
