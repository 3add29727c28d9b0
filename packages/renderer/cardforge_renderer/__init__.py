"""Rendering engine for layout-driven card images."""

from .assets import AssetLoader
from .cache import AssetCache, CacheEntry, LRUCache
from .encoding import BufferManager
from .errors import AssetError, CardForgeError, ComponentError, RenderError, ThemeError, ValidationError
from .hooks import HOOK_EVENTS, HookContext, HookRegistry, Plugin, PluginManager
from .layout import LayoutResolver
from .models import (
    Bounds,
    CacheStats,
    CardImage,
    ComputedStyle,
    LayoutContext,
    LayoutNode,
    ResolvedNode,
    validate_layout,
)
from .pipeline import CardEngine, ComponentRegistry, RenderPipeline
from .styles import StyleEngine
from .surface import EFFECT_DEFAULTS, CanvasRenderer, Context2D, RenderContext, Surface
from .themes import DEFAULT_THEME_NAME, ThemeManager, get_theme, list_themes, merge_theme, theme_to_tokens
from .tokens import TokenEngine
from .values import Literal, Percentage, TokenRef, parse_length, parse_number, parse_value

__all__ = [
    "AssetCache",
    "AssetError",
    "AssetLoader",
    "Bounds",
    "BufferManager",
    "CacheEntry",
    "CacheStats",
    "CanvasRenderer",
    "CardEngine",
    "CardForgeError",
    "CardImage",
    "ComponentError",
    "ComponentRegistry",
    "ComputedStyle",
    "Context2D",
    "DEFAULT_THEME_NAME",
    "EFFECT_DEFAULTS",
    "HOOK_EVENTS",
    "HookContext",
    "HookRegistry",
    "LRUCache",
    "LayoutContext",
    "LayoutNode",
    "LayoutResolver",
    "Literal",
    "Percentage",
    "Plugin",
    "PluginManager",
    "RenderContext",
    "RenderError",
    "RenderPipeline",
    "ResolvedNode",
    "StyleEngine",
    "Surface",
    "ThemeError",
    "ThemeManager",
    "TokenEngine",
    "TokenRef",
    "ValidationError",
    "get_theme",
    "list_themes",
    "merge_theme",
    "parse_length",
    "parse_number",
    "parse_value",
    "theme_to_tokens",
    "validate_layout",
]
