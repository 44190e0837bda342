from __future__ import annotations

import re

from openpyxl.styles.colors import Color

from ..errors import InvalidStateError

_HEX_COLOR_PATTERN = re.compile(r"^#?(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")
AUTO_COLOR = "auto"


def color_to_text(color: object) -> str:
    """Encode an openpyxl color as ``#RRGGBB``, ``theme:N[:tint]``, ``indexed:N`` or ``auto``."""
    if color is None:
        return AUTO_COLOR
    color_type = getattr(color, "type", None)
    if color_type == "rgb":
        rgb = getattr(color, "rgb", None)
        if isinstance(rgb, str) and len(rgb) in (6, 8):
            return f"#{rgb[-6:].upper()}"
        return AUTO_COLOR
    if color_type == "theme":
        theme = getattr(color, "theme", None)
        tint = getattr(color, "tint", 0.0) or 0.0
        if tint:
            return f"theme:{theme}:{tint}"
        return f"theme:{theme}"
    if color_type == "indexed":
        return f"indexed:{getattr(color, 'indexed', None)}"
    return AUTO_COLOR


def color_from_text(text: str | None) -> Color | None:
    """Decode color text produced by ``color_to_text`` into an openpyxl Color."""
    if text is None or text == AUTO_COLOR:
        return None
    if _HEX_COLOR_PATTERN.match(text):
        raw = text.lstrip("#").upper()
        return Color(rgb=raw if len(raw) == 8 else f"FF{raw}")
    kind, _, rest = text.partition(":")
    try:
        if kind == "theme":
            theme_text, _, tint_text = rest.partition(":")
            return Color(theme=int(theme_text), tint=float(tint_text) if tint_text else 0.0)
        if kind == "indexed":
            return Color(indexed=int(rest))
    except ValueError as exc:
        raise InvalidStateError.build(
            "invalid_state", f"Invalid color value: {text}"
        ) from exc
    raise InvalidStateError.build("invalid_state", f"Invalid color value: {text}")


__all__ = ["AUTO_COLOR", "color_from_text", "color_to_text"]
