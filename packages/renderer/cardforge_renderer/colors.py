"""Colour string parsing for the drawing context."""

from __future__ import annotations

import re
from functools import lru_cache

from PIL import ImageColor

from cardforge_core.logging_setup import get_logger

_log = get_logger("colors")

RGBA = tuple[int, int, int, int]
TRANSPARENT: RGBA = (0, 0, 0, 0)

_RGBA_RE = re.compile(
    r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)


def _clamp(value: float) -> int:
    return max(0, min(255, int(round(value))))


@lru_cache(maxsize=512)
def _parse(text: str) -> RGBA:
    match = _RGBA_RE.match(text.strip())
    if match:
        r, g, b, a = match.groups()
        alpha = 1.0 if a is None else float(a)
        return (_clamp(float(r)), _clamp(float(g)), _clamp(float(b)), _clamp(alpha * 255))
    rgb = ImageColor.getcolor(text.strip(), "RGBA")
    return tuple(rgb)  # type: ignore[return-value]


def parse_color(value) -> RGBA:
    """Parse CSS-like colours; unparseable values become transparent."""
    if value is None:
        return TRANSPARENT
    if isinstance(value, (tuple, list)):
        channels = [int(c) for c in value]
        if len(channels) == 3:
            channels.append(255)
        return tuple(channels[:4])  # type: ignore[return-value]
    try:
        return _parse(str(value))
    except ValueError:
        _log.debug(f"unparseable colour {value!r}", extra={"event": "color_unparseable"})
        return TRANSPARENT
