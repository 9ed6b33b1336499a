#!/usr/bin/env python
# declare our imports
import argparse
from pathlib import Path

from controller.pattern_service import PatternService
from imaging.colors import parse_color
from imaging.font_registry import DEFAULT_FONTS_ROOT, FONT_SOURCES
from tiling.errors import PatternError
from tiling.layout_config import (
    DEFAULT_BG_COLOR,
    DEFAULT_FG_COLOR,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_HEIGHT,
    DEFAULT_MESSAGE,
    DEFAULT_WIDTH,
    LayoutConfig,
)

# declare our global variables
outputDirectory = '.'


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Render a message as a tiled text pattern.")
    parser.add_argument("message", nargs="?", default=DEFAULT_MESSAGE, help="Message to tile.")

    surface = parser.add_argument_group("Surface")
    surface.add_argument("--width", type=float, default=DEFAULT_WIDTH)
    surface.add_argument("--height", type=float, default=DEFAULT_HEIGHT)
    surface.add_argument("--fg", dest="fg_color", default=DEFAULT_FG_COLOR)
    surface.add_argument("--bg", dest="bg_color", default=DEFAULT_BG_COLOR)

    text = parser.add_argument_group("Text")
    text.add_argument("--font", dest="font_family", default=DEFAULT_FONT_FAMILY, help=f"One of {', '.join(FONT_SOURCES)}.")
    text.add_argument("--font-size", type=float, default=DEFAULT_FONT_SIZE)
    text.add_argument("--letter-spacing", type=float, default=0)
    text.add_argument("--line-spacing", type=float, default=0)

    repeat = parser.add_argument_group("Tiling")
    repeat.add_argument("--no-repeat", dest="repeat_to_fill", action="store_false", help="Draw each line once.")
    repeat.add_argument("--repeat-gap", type=float, default=0)
    repeat.add_argument("--flip", dest="alternate_flip", action="store_true", help="Rotate every other segment.")
    repeat.add_argument("--mirror", dest="alternate_mirror", action="store_true", help="Mirror every other segment.")

    output = parser.add_argument_group("Output")
    output.add_argument("-o", "--output-dir", default=outputDirectory)
    output.add_argument("--fonts-root", default=str(DEFAULT_FONTS_ROOT))
    output.add_argument("--png", action="store_true", help="Write a PNG.")
    output.add_argument("--svg", action="store_true", help="Write an SVG.")

    args = parser.parse_args(argv)
    if not args.png and not args.svg:
        args.png = True
    return args


def build_config(args):
    return LayoutConfig(
        message=args.message.replace("\\n", "\n"),
        width=args.width,
        height=args.height,
        font_size=args.font_size,
        font_family=args.font_family,
        fg_color=parse_color(args.fg_color, DEFAULT_FG_COLOR),
        bg_color=parse_color(args.bg_color, DEFAULT_BG_COLOR),
        letter_spacing=args.letter_spacing,
        line_spacing=args.line_spacing,
        repeat_to_fill=args.repeat_to_fill,
        repeat_gap=args.repeat_gap,
        alternate_flip=args.alternate_flip,
        alternate_mirror=args.alternate_mirror,
    )


def run(args):
    config = build_config(args)
    service = PatternService(fonts_root=Path(args.fonts_root))
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    print(f"Canvas: {config.width}x{config.height}")
    try:
        loaded = service.ensure_font_loaded(config.font_family, config.font_size)
    except PatternError as e:
        print(f"Font error: {e}")
    else:
        print(f"Font: {loaded.message or loaded.family + ' ready'}")

    if args.png:
        try:
            png = service.render_png(config)
        except PatternError as e:
            print(f"Render error: {e}")
        else:
            path = output_dir / service.png_filename(config)
            path.write_bytes(png)
            print(f"PNG written: {path}")
            written.append(path)

    if args.svg:
        try:
            document = service.export_svg(config)
        except PatternError as e:
            print(f"SVG export failed: {e}")
        else:
            path = output_dir / service.svg_filename(config)
            path.write_text(document, encoding="utf-8")
            print(f"SVG written: {path}")
            written.append(path)

    return written


def main(argv=None):
    args = parse_args(argv)
    written = run(args)
    return 0 if len(written) == int(args.png) + int(args.svg) else 1


if __name__ == '__main__':
    raise SystemExit(main())
