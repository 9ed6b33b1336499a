"""
Flask application exposing pattern rendering and SVG export.
"""
import math
from pathlib import Path

from flask import Flask, Response, jsonify, request

from controller.pattern_service import PatternService
from imaging.colors import parse_color
from imaging.font_registry import DEFAULT_FONTS_ROOT, list_fonts
from tiling.errors import FontResourceError, MeasurementUnavailableError, RenderContextError
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


def _number(data: dict, key: str, default: float) -> float:
    # Mirrors browser Number(): anything unparsable becomes NaN and is clamped later
    value = data.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _flag(data: dict, key: str, default: bool) -> bool:
    value = data.get(key, default)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "on", "yes")
    return bool(value)


def config_from_payload(data: dict) -> LayoutConfig:
    return LayoutConfig(
        message=data.get("message", DEFAULT_MESSAGE),
        width=_number(data, "width", DEFAULT_WIDTH),
        height=_number(data, "height", DEFAULT_HEIGHT),
        font_size=_number(data, "font_size", DEFAULT_FONT_SIZE),
        font_family=data.get("font_family") or DEFAULT_FONT_FAMILY,
        fg_color=parse_color(data.get("fg_color"), DEFAULT_FG_COLOR),
        bg_color=parse_color(data.get("bg_color"), DEFAULT_BG_COLOR),
        letter_spacing=_number(data, "letter_spacing", 0),
        line_spacing=_number(data, "line_spacing", 0),
        repeat_to_fill=_flag(data, "repeat_to_fill", True),
        repeat_gap=_number(data, "repeat_gap", 0),
        alternate_flip=_flag(data, "alternate_flip", False),
        alternate_mirror=_flag(data, "alternate_mirror", False),
    )


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def create_app(service=None, fonts_root: Path | None = None):
    if fonts_root is None:
        fonts_root = DEFAULT_FONTS_ROOT

    app = Flask(__name__)
    app.config["FONTS_ROOT"] = fonts_root

    if service is None:
        service = PatternService(fonts_root=fonts_root)
    app.service = service

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify(app.service.get_health().to_dict())

    @app.route("/fonts", methods=["GET"])
    def fonts():
        return jsonify([
            {"family": source.family, "format": source.format, "mime": source.mime}
            for source in list_fonts()
        ])

    @app.route("/fonts/<family>/load", methods=["POST"])
    def load_font(family: str):
        try:
            loaded = app.service.ensure_font_loaded(family)
        except RenderContextError as e:
            return jsonify({"ok": False, "error": str(e)}), 500
        return jsonify({
            "family": loaded.family,
            "ready": not loaded.degraded,
            "message": loaded.message or f"{loaded.family} ready",
        })

    @app.route("/render.png", methods=["POST"])
    def render_png():
        config = config_from_payload(request.get_json(silent=True) or {})
        try:
            png = app.service.render_png(config)
        except RenderContextError as e:
            return jsonify({"ok": False, "error": str(e)}), 500

        return Response(png, mimetype="image/png", headers=_attachment(app.service.png_filename(config)))

    @app.route("/export.svg", methods=["POST"])
    def export_svg():
        config = config_from_payload(request.get_json(silent=True) or {})
        try:
            document = app.service.export_svg(config)
        except FontResourceError as e:
            return jsonify({"ok": False, "error": str(e)}), 502
        except MeasurementUnavailableError as e:
            return jsonify({"ok": False, "error": str(e)}), 500

        return Response(
            document.encode("utf-8"),
            content_type="image/svg+xml; charset=utf-8",
            headers=_attachment(app.service.svg_filename(config)),
        )

    return app
