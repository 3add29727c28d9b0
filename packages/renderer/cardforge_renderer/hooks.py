"""Render hooks and plugins attached to a :class:`~cardforge_renderer.pipeline.CardEngine`."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping

from cardforge_core.logging_setup import get_logger

from .errors import ValidationError

if TYPE_CHECKING:
    from .models import Bounds, ComputedStyle, ResolvedNode
    from .pipeline import CardEngine, RenderOptions
    from .surface import RenderContext

_log = get_logger("hooks")

HOOK_EVENTS = (
    "pre_layout",
    "post_layout",
    "before_render",
    "before_component",
    "after_component",
    "after_render",
)


@dataclass
class HookContext:
    """What a hook callback sees. Fields fill in as the render progresses."""

    engine: CardEngine
    options: RenderOptions
    data: Mapping[str, Any] | None = None
    layout: ResolvedNode | None = None
    tokens: dict[str, Any] | None = None
    styles: ComputedStyle | None = None
    render_context: RenderContext | None = None
    node: ResolvedNode | None = None
    bounds: Bounds | None = None


HookCallback = Callable[[HookContext], Any]


class HookRegistry:
    def __init__(self) -> None:
        self._callbacks: dict[str, list[HookCallback]] = {event: [] for event in HOOK_EVENTS}

    def on(self, event: str, callback: HookCallback) -> None:
        if event not in self._callbacks:
            raise ValidationError(
                f"Invalid hook event: {event}. Valid events: {', '.join(HOOK_EVENTS)}",
                {"event": event},
            )
        if not callable(callback):
            raise ValidationError("Hook callback must be callable", {"event": event})
        self._callbacks[event].append(callback)

    def off(self, event: str, callback: HookCallback) -> bool:
        callbacks = self._callbacks.get(event) or []
        if callback not in callbacks:
            return False
        callbacks.remove(callback)
        return True

    def count(self, event: str) -> int:
        return len(self._callbacks.get(event) or ())

    async def emit(self, event: str, context: HookContext) -> None:
        """Run callbacks in registration order; coroutine results are awaited.

        Callback errors propagate and abort the render.
        """
        for callback in list(self._callbacks.get(event) or ()):
            result = callback(context)
            if inspect.isawaitable(result):
                await result


@dataclass
class Plugin:
    """Bundle of painters, themes and hooks installed together with ``engine.use``.

    Subclass and override :meth:`install`/:meth:`uninstall` for setup that
    needs the engine itself.
    """

    name: str
    components: dict[str, Callable[..., None]] = field(default_factory=dict)
    themes: dict[str, Mapping[str, Any]] = field(default_factory=dict)
    hooks: dict[str, HookCallback] = field(default_factory=dict)

    def install(self, engine: CardEngine) -> None:
        pass

    def uninstall(self, engine: CardEngine) -> None:
        pass


class PluginManager:
    def __init__(self, engine: CardEngine) -> None:
        self.engine = engine
        self._plugins: dict[str, Plugin] = {}

    def register(self, plugin: Plugin) -> None:
        name = getattr(plugin, "name", None)
        if not name or not isinstance(name, str):
            raise ValidationError("Plugin must have a string name")
        if name in self._plugins:
            raise ValidationError(f"Plugin '{name}' is already registered", {"name": name})

        plugin.install(self.engine)
        self._plugins[name] = plugin
        for node_type, painter in (getattr(plugin, "components", None) or {}).items():
            self.engine.components.register(node_type, painter)
        for theme_name, theme in (getattr(plugin, "themes", None) or {}).items():
            self.engine.themes.register(theme_name, theme)
        for event, callback in (getattr(plugin, "hooks", None) or {}).items():
            self.engine.hooks.on(event, callback)
        _log.info(f"plugin registered name={name}", extra={"event": "plugin_registered"})

    def unregister(self, name: str) -> bool:
        plugin = self._plugins.pop(name, None)
        if plugin is None:
            return False
        for event, callback in (getattr(plugin, "hooks", None) or {}).items():
            self.engine.hooks.off(event, callback)
        plugin.uninstall(self.engine)
        _log.info(f"plugin unregistered name={name}", extra={"event": "plugin_unregistered"})
        return True

    def get(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def has(self, name: str) -> bool:
        return name in self._plugins

    def list(self) -> list[str]:
        return list(self._plugins)
