"""Typed renderer models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from .errors import ValidationError
from .values import Value, parse_length, parse_number

_NODE_KEYS = ("type", "props", "style", "children")
# Node-level keys from older layouts that belong in props.
_LEGACY_PROPS = ("src", "avatar", "text", "x", "y", "width", "height")
# Of those, the ones ignored when falsy; x and y of 0 still count.
_TRUTHY_LEGACY_PROPS = ("src", "avatar", "text", "width", "height")


@dataclass(frozen=True)
class Bounds:
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class Geometry:
    """Parsed position/size declarations of a node (``None`` means not given)."""

    x: Value | None = None
    y: Value | None = None
    width: Value | None = None
    height: Value | None = None


def _pick(*candidates: Any) -> Value | None:
    for raw in candidates:
        if raw is not None:
            return parse_length(raw)
    return None


@dataclass(frozen=True)
class LayoutNode:
    type: str | None = None
    props: Mapping[str, Any] = field(default_factory=dict)
    style: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[LayoutNode | None, ...] | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)
    geometry: Geometry = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        props = self.props or {}
        style = self.style or {}
        object.__setattr__(
            self,
            "geometry",
            Geometry(
                x=_pick(props.get("x")),
                y=_pick(props.get("y")),
                width=_pick(props.get("width"), style.get("width")),
                height=_pick(props.get("height"), style.get("height")),
            ),
        )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> LayoutNode | None:
        """Build a node tree from JSON-shaped data.

        Older layouts put ``src``, ``text`` and geometry on the node itself;
        those keys are moved into ``props``. A missing type means container.
        """
        if raw is None:
            return None
        props = dict(raw.get("props") or {})
        for key in _LEGACY_PROPS:
            value = raw.get(key)
            if value is None or (key in _TRUTHY_LEGACY_PROPS and not value):
                continue
            props[key] = value
        children = raw.get("children")
        return cls(
            type=raw.get("type") or "container",
            props=props,
            style=dict(raw.get("style") or {}),
            children=None if children is None else tuple(cls.from_dict(c) for c in children),
            extra={k: v for k, v in raw.items() if k not in _NODE_KEYS and k not in _LEGACY_PROPS},
        )

    @staticmethod
    def validate(raw: Any) -> bool:
        try:
            validate_layout(raw)
        except ValidationError:
            return False
        return True

    @property
    def layout(self) -> str:
        return (self.props or {}).get("layout") or (self.style or {}).get("layout") or "flow"

    @property
    def padding(self) -> float | None:
        return parse_number((self.style or {}).get("padding"))

    @property
    def gap(self) -> float | None:
        return parse_number((self.props or {}).get("gap"))


def validate_layout(raw: Any, path: str = "root") -> None:
    """Raise :class:`ValidationError` naming the first malformed node."""
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Invalid node at {path}", {"path": path})
    if not raw.get("type") and raw.get("props") is None:
        raise ValidationError(f"Node at {path} missing type or props", {"path": path})
    for key in ("props", "style"):
        if raw.get(key) is not None and not isinstance(raw[key], Mapping):
            raise ValidationError(f"Invalid {key} at {path}", {"path": path})
    children = raw.get("children")
    if children is None:
        return
    if not isinstance(children, (list, tuple)):
        raise ValidationError(f"Invalid children at {path}", {"path": path})
    for index, child in enumerate(children):
        validate_layout(child, f"{path}.children[{index}]")


@dataclass(frozen=True)
class LayoutContext:
    x: float
    y: float
    width: float
    height: float
    available_width: float
    available_height: float
    gap: float = 0


@dataclass(frozen=True)
class ResolvedNode:
    type: str | None
    props: Mapping[str, Any]
    style: Mapping[str, Any]
    bounds: Bounds
    children: tuple[ResolvedNode, ...] = ()
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update(
            {
                "type": self.type,
                "props": dict(self.props),
                "style": dict(self.style),
                "bounds": self.bounds.to_dict(),
                "children": [child.to_dict() for child in self.children],
            }
        )
        return out


@dataclass
class BackgroundStyle:
    color: str | None = None
    card: str | None = None
    secondary: str | None = None


@dataclass
class TypographyStyle:
    primary: str | None = None
    secondary: str | None = None
    muted: str | None = None
    font_family: str | None = None


@dataclass
class SpacingStyle:
    unit: float | None = None
    xs: float | None = None
    sm: float | None = None
    md: float | None = None
    lg: float | None = None
    xl: float | None = None


@dataclass
class EffectsStyle:
    border_radius: float | None = None
    glow_strength: float | None = None
    shadow_blur: float | None = None


@dataclass
class AccentStyle:
    primary: str | None = None
    secondary: str | None = None
    glow: str | None = None


@dataclass
class ComputedStyle:
    background: BackgroundStyle = field(default_factory=BackgroundStyle)
    typography: TypographyStyle = field(default_factory=TypographyStyle)
    spacing: SpacingStyle = field(default_factory=SpacingStyle)
    effects: EffectsStyle = field(default_factory=EffectsStyle)
    accent: AccentStyle = field(default_factory=AccentStyle)
    custom: dict[str, Any] = field(default_factory=dict)
    components: dict[str, dict[str, Any]] = field(default_factory=dict)

    def component(self, node_type: str | None) -> dict[str, Any]:
        if not node_type:
            return {}
        return self.components.get(node_type, {})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CacheStats:
    images: int
    gradients: int
    fonts: int
    total: int


@dataclass(frozen=True)
class CardImage:
    width: int
    height: int
    format: str
    mime_type: str
    bytes: bytes
