import re
from typing import List

_HORIZONTAL_WHITESPACE = re.compile(r"[ \t]+")
_SLUG_SEPARATORS = re.compile(r"[^A-Z0-9]+")

SLUG_MAX_LENGTH = 32
DEFAULT_SLUG = "pattern"


def normalize_message(raw) -> str:
    """Canonical single-string form of a message (upper case, collapsed spacing)."""
    text = "" if raw is None else str(raw)
    text = text.upper()
    text = _HORIZONTAL_WHITESPACE.sub(" ", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.strip()


def normalize(raw) -> List[str]:
    """
    Split a raw message into layout-ready lines.

    Always returns at least one line; an empty message yields [""].
    """
    message = normalize_message(raw)
    if not message:
        return [""]
    return message.split("\n")


def slugify(raw) -> str:
    slug = _SLUG_SEPARATORS.sub("-", normalize_message(raw))[:SLUG_MAX_LENGTH]
    return slug or DEFAULT_SLUG


def export_filename(font_family: str, message, extension: str) -> str:
    return f"{font_family.lower()}-{slugify(message)}.{extension}"
