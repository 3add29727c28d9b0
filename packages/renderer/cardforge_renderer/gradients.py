"""Linear gradient rasterisation with per-size caching."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from PIL import Image

from .cache import AssetCache
from .colors import parse_color


@dataclass(frozen=True)
class GradientSpec:
    kind: str = "linear"
    direction: str = "to-bottom"
    stops: tuple[tuple[float, Any], ...] = ()


def normalize_stops(stops: Sequence[Any]) -> tuple[tuple[float, Any], ...]:
    """Accept ``[color, ...]``, ``[(offset, color), ...]`` or ``[{"offset", "color"}, ...]``."""
    out: list[tuple[float, Any]] = []
    count = len(stops)
    for i, stop in enumerate(stops):
        if isinstance(stop, dict):
            out.append((float(stop.get("offset", i / max(count - 1, 1))), stop.get("color")))
        elif isinstance(stop, (tuple, list)) and len(stop) == 2 and not isinstance(stop[0], str):
            out.append((float(stop[0]), stop[1]))
        else:
            out.append((i / max(count - 1, 1), stop))
    return tuple(sorted(out, key=lambda s: s[0]))


def gradient_key(width: int, height: int, spec: GradientSpec) -> str:
    stops = ",".join(f"{offset:g}:{color}" for offset, color in spec.stops)
    return f"{spec.kind}|{spec.direction}|{width}x{height}|{stops}"


def linear_gradient(width: int, height: int, spec: GradientSpec) -> Image.Image:
    width = max(1, int(width))
    height = max(1, int(height))
    stops = spec.stops or ((0.0, (0, 0, 0, 0)), (1.0, (0, 0, 0, 0)))
    offsets = np.array([s[0] for s in stops], dtype=np.float32)
    colors = np.array([parse_color(s[1]) for s in stops], dtype=np.float32)

    vertical = spec.direction in ("to-bottom", "to-top")
    length = height if vertical else width
    t = np.linspace(0.0, 1.0, num=length, dtype=np.float32)
    if spec.direction in ("to-top", "to-left"):
        t = t[::-1]

    ramp = np.stack([np.interp(t, offsets, colors[:, c]) for c in range(4)], axis=-1)
    if vertical:
        arr = np.broadcast_to(ramp[:, None, :], (height, width, 4))
    else:
        arr = np.broadcast_to(ramp[None, :, :], (height, width, 4))
    return Image.fromarray(np.ascontiguousarray(arr.round().astype(np.uint8)), "RGBA")


def cached_gradient(assets: AssetCache | None, width: int, height: int, spec: GradientSpec) -> Image.Image:
    if assets is None:
        return linear_gradient(width, height, spec)
    key = gradient_key(int(width), int(height), spec)
    image = assets.get_gradient(key)
    if image is None:
        image = linear_gradient(width, height, spec)
        assets.set_gradient(key, image)
    return image
