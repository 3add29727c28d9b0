"""Compute the style document for a card from theme, tokens and node styles."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from typing import Any

from .models import (
    AccentStyle,
    BackgroundStyle,
    ComputedStyle,
    EffectsStyle,
    LayoutNode,
    ResolvedNode,
    SpacingStyle,
    TypographyStyle,
)
from .values import TokenRef, parse_value

# Fail-open policy: bucket -> field -> (theme path, default used when the theme omits it).
THEME_DEFAULTS: dict[str, dict[str, tuple[str | None, Any]]] = {
    "background": {
        "color": ("colors.surface.primary", "#0a0a0f"),
        "card": ("colors.surface.secondary", "#16161e"),
        "secondary": ("colors.surface.tertiary", "#1f1f2e"),
    },
    "typography": {
        "primary": ("colors.text.primary", "#ffffff"),
        "secondary": ("colors.text.secondary", "#9ca3af"),
        "muted": ("colors.text.muted", "#6b7280"),
        "font_family": ("fonts.family", "Inter, sans-serif"),
    },
    "spacing": {
        "unit": (None, 4),
        "xs": ("spacing.xs", 4),
        "sm": ("spacing.sm", 8),
        "md": ("spacing.md", 12),
        "lg": ("spacing.lg", 16),
        "xl": ("spacing.xl", 24),
    },
    "effects": {
        "border_radius": ("radius.card", 12),
        "glow_strength": ("effects.glowStrength", 15),
        "shadow_blur": ("effects.shadowBlur", 20),
    },
}

# Fail-open policy for the token-derived accent bucket: field -> (token name, default).
TOKEN_DEFAULTS: dict[str, tuple[str, Any]] = {
    "primary": ("accentColor", "#7c3aed"),
    "secondary": ("accentSecondary", "#8b5cf6"),
    "glow": ("glowColor", "rgba(139, 92, 246, 0.4)"),
}

_BUCKET_TYPES = {
    "background": BackgroundStyle,
    "typography": TypographyStyle,
    "spacing": SpacingStyle,
    "effects": EffectsStyle,
}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_case(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def get_path(obj: Any, path: str | tuple[str, ...]) -> Any:
    """Walk ``obj`` by ``a.b.c``; ``None`` as soon as a segment is missing.

    Dataclass fields also answer to their camelCase spelling, so
    ``{typography.fontFamily}`` reaches ``typography.font_family``.
    """
    segments = path.split(".") if isinstance(path, str) else path
    current = obj
    for key in segments:
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        elif is_dataclass(current) and not isinstance(current, type):
            names = {f.name for f in fields(current)}
            if key not in names:
                key = _snake_case(key)
            current = getattr(current, key) if key in names else None
        else:
            return None
    return current


def _theme_value(theme: Mapping[str, Any] | None, path: str | None, default: Any) -> Any:
    if theme is None or path is None:
        return default
    value = get_path(theme, path)
    return default if value is None else value


def _walk(node: LayoutNode | ResolvedNode | None):
    if node is None:
        return
    yield node
    for child in node.children or ():
        yield from _walk(child)


class StyleEngine:
    def compute(
        self,
        layout: LayoutNode | ResolvedNode | None,
        theme: Mapping[str, Any] | None,
        tokens: Mapping[str, Any] | None,
    ) -> ComputedStyle:
        tokens = dict(tokens or {})
        styles = ComputedStyle()

        for bucket, rows in THEME_DEFAULTS.items():
            values = {name: _theme_value(theme, path, default) for name, (path, default) in rows.items()}
            setattr(styles, bucket, _BUCKET_TYPES[bucket](**values))

        styles.accent = AccentStyle(
            **{
                name: default if tokens.get(token) is None else tokens[token]
                for name, (token, default) in TOKEN_DEFAULTS.items()
            }
        )
        styles.custom = tokens
        styles.components = self.component_styles(layout)
        return styles

    @staticmethod
    def component_styles(layout: LayoutNode | ResolvedNode | None) -> dict[str, dict[str, Any]]:
        components: dict[str, dict[str, Any]] = {}
        for node in _walk(layout):
            if node.type and node.style:
                components[node.type] = {**components.get(node.type, {}), **node.style}
        return components

    def resolve_value(self, value: Any, styles: Any) -> Any:
        if isinstance(value, str):
            parsed = parse_value(value)
            if not isinstance(parsed, TokenRef):
                return value
            value = parsed
        if isinstance(value, TokenRef):
            return get_path(styles, value.segments)
        return value

    def merge(self, *style_objects: Mapping[str, Any] | None) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for styles in style_objects:
            if not styles:
                continue
            for key, value in _items(styles):
                current = merged.get(key)
                if _is_mapping(value) and _is_mapping(current):
                    merged[key] = self.merge(current, value)
                elif _is_mapping(value):
                    merged[key] = self.merge(value)
                else:
                    merged[key] = value
        return merged


def _is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping) or (is_dataclass(value) and not isinstance(value, type))


def _items(value: Any):
    if isinstance(value, Mapping):
        return value.items()
    return ((f.name, getattr(value, f.name)) for f in fields(value))
