"""Resolve a declarative layout tree into absolute bounds."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Mapping, Sequence

from .models import Bounds, LayoutContext, LayoutNode, ResolvedNode
from .values import Percentage, TokenRef, Value

ResolveFn = Callable[[LayoutNode | None, LayoutContext], ResolvedNode | None]
LayoutStrategy = Callable[[Sequence[LayoutNode | None], LayoutContext, ResolveFn], list[ResolvedNode]]


def _flow_layout(children, context, resolve_fn):
    # Children keep their own props.x/props.y; nothing is offset.
    resolved = (resolve_fn(child, context) for child in children)
    return [node for node in resolved if node is not None]


def _row_layout(children, context, resolve_fn):
    out: list[ResolvedNode] = []
    current_x = context.x
    for child in children:
        node = resolve_fn(child, replace(context, x=current_x))
        if node is None:
            continue
        current_x += node.bounds.width + context.gap
        out.append(node)
    return out


def _column_layout(children, context, resolve_fn):
    out: list[ResolvedNode] = []
    current_y = context.y
    for child in children:
        node = resolve_fn(child, replace(context, y=current_y))
        if node is None:
            continue
        current_y += node.bounds.height + context.gap
        out.append(node)
    return out


STRATEGIES: dict[str, LayoutStrategy] = {
    "flow": _flow_layout,
    "stack": _flow_layout,
    "row": _row_layout,
    "column": _column_layout,
    # Placeholder: grid places children like flow.
    "grid": _flow_layout,
}


def _dimension(value: Value | None, available: float) -> float:
    if value is None:
        return available
    if isinstance(value, Percentage):
        return value.resolve(available)
    if isinstance(value, TokenRef):
        # Style references are not layout units.
        return available
    return value.value


def _position(value: Value | None, origin: float, available: float) -> float:
    if value is None or isinstance(value, TokenRef):
        return origin
    if isinstance(value, Percentage):
        return origin + value.resolve(available)
    return value.value


class LayoutResolver:
    """Computes bounds for every node, parent before children.

    Each node is sized against its parent's context only. Percentages resolve
    against the parent's available size; missing sizes take all of it. No
    validation happens here: NaN from an unparseable size (``"auto"``,
    ``"abc%"``) or a negative size from oversized padding flows through to
    the bounds.
    """

    def __init__(self, strategies: Mapping[str, LayoutStrategy] | None = None) -> None:
        self.strategies = dict(STRATEGIES)
        if strategies:
            self.strategies.update(strategies)

    def resolve(
        self,
        layout: LayoutNode | Mapping[str, Any] | None,
        container: Mapping[str, float],
        gap: float = 0,
    ) -> ResolvedNode | None:
        root = layout if isinstance(layout, LayoutNode) or layout is None else LayoutNode.from_dict(layout)
        width = container["width"]
        height = container["height"]
        context = LayoutContext(
            x=0,
            y=0,
            width=width,
            height=height,
            available_width=width,
            available_height=height,
            gap=gap,
        )
        return self._resolve_node(root, context)

    def _resolve_node(self, node: LayoutNode | None, parent: LayoutContext) -> ResolvedNode | None:
        if node is None:
            return None

        bounds = self.compute_bounds(node, parent)
        child_context = self.child_context(node, bounds, parent)

        children: tuple[ResolvedNode, ...] = ()
        if node.children is not None:
            strategy = self.strategies.get(node.layout, _flow_layout)
            children = tuple(strategy(node.children, child_context, self._resolve_node))

        return ResolvedNode(
            type=node.type,
            props=node.props,
            style=node.style,
            bounds=bounds,
            children=children,
            extra=node.extra,
        )

    @staticmethod
    def compute_bounds(node: LayoutNode, context: LayoutContext) -> Bounds:
        geometry = node.geometry
        return Bounds(
            x=_position(geometry.x, context.x, context.available_width),
            y=_position(geometry.y, context.y, context.available_height),
            width=_dimension(geometry.width, context.available_width),
            height=_dimension(geometry.height, context.available_height),
        )

    @staticmethod
    def child_context(node: LayoutNode, bounds: Bounds, parent: LayoutContext) -> LayoutContext:
        context = LayoutContext(
            x=bounds.x,
            y=bounds.y,
            width=bounds.width,
            height=bounds.height,
            available_width=bounds.width,
            available_height=bounds.height,
            gap=parent.gap if node.gap is None else node.gap,
        )
        padding = node.padding
        if padding:
            context = replace(
                context,
                x=context.x + padding,
                y=context.y + padding,
                available_width=context.available_width - padding * 2,
                available_height=context.available_height - padding * 2,
            )
        return context

