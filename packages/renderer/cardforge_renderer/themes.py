"""Built-in card themes and the per-engine theme table."""

from __future__ import annotations

import copy
from typing import Any, Mapping

from cardforge_core.logging_setup import get_logger

from .errors import ThemeError

_log = get_logger("themes")

DEFAULT_THEME_NAME = "Neon Slate"

Theme = Mapping[str, Any]


def _theme(
    name: str,
    surface: tuple[str, str, str],
    accent: tuple[str, str, str],
    text: tuple[str, str, str],
    family: str = "Space Grotesk, sans-serif",
    radius: int = 18,
    glow_strength: int = 15,
    shadow_blur: int = 20,
) -> dict[str, Any]:
    return {
        "name": name,
        "colors": {
            "surface": {"primary": surface[0], "secondary": surface[1], "tertiary": surface[2]},
            "accent": {"primary": accent[0], "secondary": accent[1], "glow": accent[2]},
            "text": {"primary": text[0], "secondary": text[1], "muted": text[2]},
        },
        "fonts": {"family": family},
        "spacing": {"xs": 4, "sm": 8, "md": 12, "lg": 16, "xl": 24},
        "radius": {"card": radius, "inner": max(2, radius // 2)},
        "effects": {"glowStrength": glow_strength, "shadowBlur": shadow_blur},
    }


THEMES: dict[str, dict[str, Any]] = {
    "Neon Slate": _theme(
        "Neon Slate",
        surface=("#0A0F1D", "#1A253F", "#131B33"),
        accent=("#35D9FF", "#8CFFB5", "rgba(53, 217, 255, 0.4)"),
        text=("#F4F7FF", "#A9B5D1", "#6B7894"),
    ),
    "Solar Drift": _theme(
        "Solar Drift",
        surface=("#1A140E", "#473022", "#362315"),
        accent=("#FFB347", "#FFD166", "rgba(255, 179, 71, 0.35)"),
        text=("#FFF7E8", "#E3CFA8", "#9C8A6A"),
    ),
    "Arctic Pulse": _theme(
        "Arctic Pulse",
        surface=("#07171F", "#173F52", "#123240"),
        accent=("#59F3FF", "#86FFD0", "rgba(89, 243, 255, 0.35)"),
        text=("#EFFFFF", "#B9DFE8", "#6F9AA6"),
    ),
    "Minimal Developer": _theme(
        "Minimal Developer",
        surface=("#0D0D0D", "#1A1A1A", "#262626"),
        accent=("#22C55E", "#F97316", "rgba(34, 197, 94, 0.2)"),
        text=("#E5E5E5", "#A3A3A3", "#525252"),
        family="JetBrains Mono, monospace",
        radius=4,
        glow_strength=5,
        shadow_blur=10,
    ),
}


def _lookup(table: Mapping[str, dict[str, Any]], name: str | None, strict: bool) -> dict[str, Any]:
    if not name:
        return table[DEFAULT_THEME_NAME]
    if name not in table and strict:
        raise ThemeError(f"Unknown theme: {name}", {"name": name, "available": sorted(table)})
    return table.get(name, table[DEFAULT_THEME_NAME])


def list_themes() -> list[str]:
    return sorted(THEMES.keys())


def get_theme(name: str | None, strict: bool = False) -> dict[str, Any]:
    """Built-in theme by name; unknown names fall back to the default unless ``strict``."""
    return _lookup(THEMES, name, strict)


def merge_theme(base: Theme, override: Theme | None) -> dict[str, Any]:
    """Deep merge: nested mappings merge key by key, anything else replaces."""
    result = copy.deepcopy(dict(base))
    for key, value in (override or {}).items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = merge_theme(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class ThemeManager:
    """Per-engine theme table: the built-ins plus themes registered at runtime."""

    def __init__(self, active: str | None = None) -> None:
        self._themes: dict[str, dict[str, Any]] = copy.deepcopy(THEMES)
        self._active = DEFAULT_THEME_NAME
        if active:
            self.set_active(active)

    def register(self, name: str, theme: Theme, base: str | None = None) -> dict[str, Any]:
        """Store ``theme`` under ``name``, deep-merged over ``base`` when given."""
        if not name or not isinstance(name, str):
            raise ThemeError("Theme name must be a non-empty string", {"name": name})
        if not isinstance(theme, Mapping):
            raise ThemeError("Theme definition must be a mapping", {"name": name})
        if base is not None and base not in self._themes:
            raise ThemeError(f"Unknown base theme: {base}", {"name": name, "base": base, "available": self.list()})

        registered = merge_theme(self._themes[base], theme) if base else merge_theme({}, theme)
        registered["name"] = name
        self._themes[name] = registered
        _log.debug(f"theme registered name={name}", extra={"event": "theme_registered"})
        return registered

    def extend(self, base: str, name: str, overrides: Theme) -> dict[str, Any]:
        return self.register(name, overrides, base=base)

    def get(self, name: str | None = None, strict: bool = False) -> dict[str, Any]:
        return _lookup(self._themes, name or self._active, strict)

    def has(self, name: str) -> bool:
        return name in self._themes

    def list(self) -> list[str]:
        return sorted(self._themes)

    def set_active(self, name: str) -> bool:
        """Activate ``name``; unknown names activate the default and return False."""
        if name in self._themes:
            self._active = name
            return True
        _log.warning(f"unknown theme {name!r}, using {DEFAULT_THEME_NAME}", extra={"event": "theme_fallback"})
        self._active = DEFAULT_THEME_NAME
        return False

    def get_active(self) -> dict[str, Any]:
        return self._themes[self._active]

    @property
    def active_name(self) -> str:
        return self._active


def theme_to_tokens(theme: Theme | str | None) -> dict[str, Any]:
    """Default token set for a theme: its accent colours under their token names."""
    if theme is None or isinstance(theme, str):
        theme = get_theme(theme)
    accent = (theme.get("colors") or {}).get("accent") or {}
    tokens = {
        "accentColor": accent.get("primary"),
        "accentSecondary": accent.get("secondary"),
        "glowColor": accent.get("glow"),
    }
    return {k: v for k, v in tokens.items() if v is not None}
