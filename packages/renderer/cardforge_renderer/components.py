"""Built-in node painters used by the render pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from cardforge_core.logging_setup import get_logger

from .errors import AssetError
from .models import ComputedStyle, ResolvedNode
from .surface import Context2D

if TYPE_CHECKING:
    from .pipeline import CardEngine

_log = get_logger("components")

Painter = Callable[[Context2D, ResolvedNode, ComputedStyle, dict[str, Any], "CardEngine"], None]


def _prop(node: ResolvedNode, key: str, styles: ComputedStyle, engine: CardEngine, default: Any = None) -> Any:
    """Node prop, then node style, then the type's component style; token refs resolved."""
    for source in (node.props, node.style, styles.component(node.type)):
        if source and source.get(key) is not None:
            value = engine.style_engine.resolve_value(source[key], styles)
            if value is not None:
                return value
    return default


def paint_container(ctx: Context2D, node: ResolvedNode, styles: ComputedStyle, tokens: dict[str, Any], engine: CardEngine) -> None:
    color = _prop(node, "backgroundColor", styles, engine)
    if not color:
        return
    b = node.bounds
    radius = _prop(node, "cornerRadius", styles, engine, styles.effects.border_radius or 0)
    ctx.fill_style = color
    ctx.fill_rounded_rect(b.x, b.y, b.width, b.height, float(radius))


def paint_text(ctx: Context2D, node: ResolvedNode, styles: ComputedStyle, tokens: dict[str, Any], engine: CardEngine) -> None:
    text = _prop(node, "text", styles, engine) or _prop(node, "content", styles, engine, "")
    if not text:
        return
    b = node.bounds
    align = _prop(node, "align", styles, engine, "left")

    ctx.save()
    if _prop(node, "glow", styles, engine, False):
        ctx.shadow_color = _prop(node, "glowColor", styles, engine, styles.accent.glow)
        ctx.shadow_blur = 10
    ctx.font_family = _prop(node, "font", styles, engine, styles.typography.font_family)
    ctx.font_size = float(_prop(node, "size", styles, engine, 16))
    ctx.fill_style = _prop(node, "color", styles, engine, styles.typography.primary)
    ctx.text_align = align

    x = b.x
    if align == "center":
        x = b.x + b.width / 2
    elif align == "right":
        x = b.x + b.width
    ctx.fill_text(str(text), x, b.y)
    ctx.restore()


def paint_image(ctx: Context2D, node: ResolvedNode, styles: ComputedStyle, tokens: dict[str, Any], engine: CardEngine) -> None:
    path = node.props.get("src") or node.props.get("avatar") or node.props.get("image")
    if not path:
        return
    try:
        image = engine.asset_loader.load_image(path)
    except AssetError:
        _log.info(f"skipping image node, asset unavailable: {path}", extra={"event": "image_skipped", "path": path})
        return
    b = node.bounds
    ctx.draw_image(image, b.x, b.y, b.width, b.height)


def paint_progress(ctx: Context2D, node: ResolvedNode, styles: ComputedStyle, tokens: dict[str, Any], engine: CardEngine) -> None:
    b = node.bounds
    value = float(_prop(node, "value", styles, engine, 0))
    maximum = float(_prop(node, "max", styles, engine, 1) or 1)
    ratio = max(0.0, min(1.0, value / maximum))
    radius = b.height / 2

    ctx.fill_style = _prop(node, "trackColor", styles, engine, styles.background.secondary)
    ctx.fill_rounded_rect(b.x, b.y, b.width, b.height, radius)
    if ratio > 0:
        ctx.fill_style = _prop(node, "fillColor", styles, engine, styles.accent.primary)
        ctx.fill_rounded_rect(b.x, b.y, b.width * ratio, b.height, radius)


BUILTIN_PAINTERS: dict[str, Painter] = {
    "container": paint_container,
    "text": paint_text,
    "image": paint_image,
    "avatar": paint_image,
    "progress": paint_progress,
}
