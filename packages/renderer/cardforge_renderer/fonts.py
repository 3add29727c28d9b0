"""Font family registry backed by Pillow truetype loading."""

from __future__ import annotations

from dataclasses import dataclass

from PIL import ImageFont

from cardforge_core.logging_setup import get_logger

from .cache import AssetCache

_log = get_logger("fonts")


@dataclass(frozen=True)
class TextMetrics:
    width: float
    height: float
    ascent: float
    descent: float


def primary_family(family: str | None) -> str:
    """First entry of a CSS-style family list, unquoted."""
    if not family:
        return ""
    return family.split(",")[0].strip().strip("\"'")


class FontRegistry:
    def __init__(self, assets: AssetCache | None = None) -> None:
        self.assets = assets
        self._paths: dict[str, str] = {}
        self._loaded: dict[tuple[str, int], ImageFont.ImageFont | ImageFont.FreeTypeFont] = {}

    def register(self, path: str, family: str) -> bool:
        """Register ``path`` under ``family``; returns False if the family was already known."""
        if family in self._paths:
            return False
        self._paths[family] = str(path)
        _log.debug(f"font registered family={family}", extra={"event": "font_registered"})
        return True

    def path_for(self, family: str) -> str | None:
        return self._paths.get(primary_family(family)) or self._paths.get(family)

    def load(self, family: str | None, size: float):
        px = max(1, int(round(size)))
        name = primary_family(family)
        key = (name, px)
        font = self._loaded.get(key)
        if font is not None:
            return font

        preferred = self._paths.get(name) or (f"{name}.ttf" if name else "")
        try:
            font = ImageFont.truetype(preferred, px)
        except OSError:
            try:
                font = ImageFont.truetype("DejaVuSans.ttf", px)
            except OSError:
                _log.debug(f"no truetype font for {name!r}, using default", extra={"event": "font_fallback"})
                font = ImageFont.load_default(px)
        self._loaded[key] = font
        return font

    def measure(self, text: str, family: str | None, size: float) -> TextMetrics:
        key = f"{primary_family(family)}|{size:g}|{text}"
        if self.assets is not None:
            cached = self.assets.get_font_metrics(key)
            if cached is not None:
                return cached

        font = self.load(family, size)
        left, top, right, bottom = font.getbbox(text)
        if hasattr(font, "getmetrics"):
            ascent, descent = font.getmetrics()
        else:
            ascent, descent = bottom, 0
        metrics = TextMetrics(width=float(right - left), height=float(bottom - top), ascent=float(ascent), descent=float(descent))

        if self.assets is not None:
            self.assets.set_font_metrics(key, metrics)
        return metrics
