"""Card render pipeline: layout, tokens, styles, paint, encode."""

from __future__ import annotations

import asyncio
import math
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Mapping

from cardforge_core.config import EngineConfig
from cardforge_core.logging_setup import get_logger

from .assets import AssetLoader
from .cache import AssetCache, LRUCache
from .components import BUILTIN_PAINTERS, Painter
from .encoding import BufferManager
from .errors import ComponentError, RenderError, ValidationError
from .hooks import HookCallback, HookContext, HookRegistry, Plugin, PluginManager
from .layout import LayoutResolver
from .models import Bounds, CardImage, LayoutNode, ResolvedNode
from .styles import StyleEngine
from .surface import CanvasRenderer
from .themes import Theme, ThemeManager, theme_to_tokens
from .tokens import TokenEngine

_log = get_logger("pipeline")


class ComponentRegistry:
    def __init__(self, painters: Mapping[str, Painter] | None = None) -> None:
        self._painters: dict[str, Painter] = dict(painters or {})

    def register(self, node_type: str, painter: Painter) -> None:
        self._painters[node_type] = painter

    def get(self, node_type: str) -> Painter | None:
        return self._painters.get(node_type)

    def has(self, node_type: str) -> bool:
        return node_type in self._painters

    def types(self) -> list[str]:
        return sorted(self._painters)


def default_registry() -> ComponentRegistry:
    return ComponentRegistry(BUILTIN_PAINTERS)


@dataclass(frozen=True)
class RenderOptions:
    width: float
    height: float
    dpi: float
    format: str
    quality: float
    theme: Mapping[str, Any]


class CardEngine:
    """Owns one instance of every rendering collaborator.

    Pools and caches are per engine, so parallel workers should each build
    their own engine rather than share one.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        cache: LRUCache | None = None,
        renderer: CanvasRenderer | None = None,
        registry: ComponentRegistry | None = None,
        token_engine: TokenEngine | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.cache = cache or LRUCache(max_size=self.config.cache.max_size, ttl=self.config.cache.ttl_seconds)
        self.assets = AssetCache(self.cache)
        self.asset_loader = AssetLoader(self.assets)
        self.buffer_manager = BufferManager()
        self.renderer = renderer or CanvasRenderer(
            dpi=self.config.renderer.dpi,
            max_pool_size=self.config.renderer.max_pool_size,
            assets=self.assets,
        )
        self.layout_resolver = LayoutResolver()
        self.token_engine = token_engine or TokenEngine()
        self.style_engine = StyleEngine()
        self.components = registry or default_registry()
        self.themes = ThemeManager(active=self.config.ui.theme)
        self.hooks = HookRegistry()
        self.plugins = PluginManager(self)

    def use(self, plugin: Plugin) -> CardEngine:
        self.plugins.register(plugin)
        return self

    def on_hook(self, event: str, callback: HookCallback) -> CardEngine:
        self.hooks.on(event, callback)
        return self

    def set_theme(self, name: str) -> bool:
        return self.themes.set_active(name)

    def register_theme(self, name: str, theme: Theme, base: str | None = None) -> CardEngine:
        self.themes.register(name, theme, base)
        return self

    def extend_theme(self, base: str, name: str, overrides: Theme) -> dict[str, Any]:
        return self.themes.extend(base, name, overrides)

    def options(self, **overrides: Any) -> RenderOptions:
        out = self.config.output
        theme = overrides.get("theme")
        if theme is None:
            theme = self.themes.get_active()
        elif isinstance(theme, str):
            theme = self.themes.get(theme)
        options = RenderOptions(
            width=overrides.get("width") or out.width,
            height=overrides.get("height") or out.height,
            dpi=overrides.get("dpi") or self.config.renderer.dpi,
            format=overrides.get("format") or out.format,
            quality=out.quality if overrides.get("quality") is None else overrides["quality"],
            theme=theme,
        )
        self._validate(options)
        return options

    def _validate(self, options: RenderOptions) -> None:
        for name in ("width", "height", "dpi"):
            value = getattr(options, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
                raise ValidationError(f"{name} must be a positive number", {name: value})
        if not self.buffer_manager.supports(options.format):
            raise ValidationError(
                f"Unsupported format: {options.format}. Supported formats: png, jpeg, webp",
                {"format": options.format},
            )
        if not 0 <= options.quality <= 1:
            raise ValidationError("quality must be between 0 and 1", {"quality": options.quality})

    async def render_async(
        self,
        layout: LayoutNode | Mapping[str, Any],
        data: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> CardImage:
        return await RenderPipeline.execute(self, layout, data, self.options(**options))

    def render(
        self,
        layout: LayoutNode | Mapping[str, Any],
        data: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> CardImage:
        return asyncio.run(self.render_async(layout, data, **options))


@contextmanager
def _phase(name: str):
    start = time.perf_counter()
    yield
    elapsed_ms = (time.perf_counter() - start) * 1000
    _log.debug(
        f"phase {name} took {elapsed_ms:.2f}ms",
        extra={"event": "render_phase", "phase": name, "duration_ms": round(elapsed_ms, 3)},
    )


class RenderPipeline:
    @staticmethod
    async def execute(
        engine: CardEngine,
        layout: LayoutNode | Mapping[str, Any],
        data: Mapping[str, Any] | None,
        options: RenderOptions,
    ) -> CardImage:
        root = layout if isinstance(layout, LayoutNode) else LayoutNode.from_dict(layout)
        if root is None:
            raise RenderError("layout is required")

        state = HookContext(engine=engine, options=options, data=data)
        await engine.hooks.emit("pre_layout", state)
        with _phase("layout"):
            resolved = engine.layout_resolver.resolve(root, {"width": options.width, "height": options.height})
        state.layout = resolved
        await engine.hooks.emit("post_layout", state)

        with _phase("tokens"):
            tokens = engine.token_engine.resolve(
                {
                    **theme_to_tokens(options.theme),
                    **(resolved.extra.get("tokens") or {}),
                    **(data or {}),
                }
            )

        with _phase("styles"):
            styles = engine.style_engine.compute(resolved, options.theme, tokens)

        with _phase("assets"):
            paths = engine.asset_loader.extract_image_paths(resolved)
            _, errors = engine.asset_loader.load_images(paths)
            for path, _err in errors:
                _log.warning(f"asset preload failed: {path}", extra={"event": "asset_preload_failed", "path": path})

        state.tokens = tokens
        state.styles = styles
        await engine.hooks.emit("before_render", state)

        render_context = engine.renderer.create_context(options.width, options.height, options.dpi)
        state.render_context = render_context
        try:
            with _phase("paint"):
                ctx = render_context.ctx
                ctx.fill_style = styles.background.color
                ctx.fill_rect(0, 0, options.width, options.height)
                await RenderPipeline.render_node(engine, resolved, state)

            await engine.hooks.emit("after_render", state)

            with _phase("encode"):
                payload = engine.buffer_manager.encode(render_context.crop(), options.format, options.quality)
        finally:
            engine.renderer.release_context(render_context)

        extension = engine.buffer_manager.get_extension(options.format)
        _log.info(
            f"card rendered {render_context.pixel_width}x{render_context.pixel_height}",
            extra={"event": "card_rendered", "format": extension},
        )
        return CardImage(
            width=render_context.pixel_width,
            height=render_context.pixel_height,
            format=extension,
            mime_type=engine.buffer_manager.get_mime_type(options.format),
            bytes=payload,
        )

    @staticmethod
    async def render_node(engine: CardEngine, node: ResolvedNode, state: HookContext) -> None:
        """Paint ``node`` then its children.

        A node whose bounds are not finite (say from ``"abc%"``) is not
        painted, but its children still are.
        """
        ctx = state.render_context.ctx
        if node.type:
            painter = engine.components.get(node.type)
            if painter is None:
                raise ComponentError(
                    f'Unknown component type: "{node.type}". Register it with engine.components.register()',
                    {"type": node.type},
                )
            if _finite(node.bounds):
                node_state = replace(state, node=node, bounds=node.bounds)
                await engine.hooks.emit("before_component", node_state)
                ctx.save()
                for effect in node.extra.get("effects") or ():
                    await engine.renderer.apply_effect(ctx, effect)
                painter(ctx, node, state.styles, state.tokens, engine)
                ctx.restore()
                await engine.hooks.emit("after_component", node_state)
            else:
                _log.debug(
                    f"skipping {node.type} with non-finite bounds {node.bounds.to_dict()}",
                    extra={"event": "node_skipped"},
                )

        for child in node.children:
            await RenderPipeline.render_node(engine, child, state)


def _finite(bounds: Bounds) -> bool:
    return all(math.isfinite(v) for v in (bounds.x, bounds.y, bounds.width, bounds.height))
