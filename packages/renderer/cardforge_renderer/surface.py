"""Pooled Pillow drawing surfaces and the DPI-scaled 2D drawing context."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from cardforge_core.logging_setup import get_logger

from .cache import AssetCache
from .colors import parse_color
from .fonts import FontRegistry, TextMetrics
from .gradients import GradientSpec, cached_gradient, normalize_stops

_log = get_logger("surface")

_BLUR_RE = re.compile(r"blur\(\s*([\d.]+)\s*px\s*\)")

_RESAMPLE = {
    "low": Image.Resampling.BILINEAR,
    "medium": Image.Resampling.BICUBIC,
    "high": Image.Resampling.LANCZOS,
}

_ANCHOR_H = {"left": "l", "start": "l", "center": "m", "right": "r", "end": "r"}
_ANCHOR_V = {"top": "a", "middle": "m", "alphabetic": "s", "bottom": "d"}

_STATE_FIELDS = (
    "transform",
    "fill_style",
    "font_family",
    "font_size",
    "text_align",
    "text_baseline",
    "shadow_color",
    "shadow_blur",
    "shadow_offset_x",
    "shadow_offset_y",
    "filter",
    "gradient",
    "global_alpha",
    "image_smoothing_enabled",
    "image_smoothing_quality",
)

# Fail-open defaults per effect kind; missing options take these values.
EFFECT_DEFAULTS: dict[str, dict[str, Any]] = {
    "glow": {"color": "rgba(124, 58, 237, 0.5)", "blur": 20},
    "blur": {"amount": 5},
    "shadow": {"color": "rgba(0,0,0,0.3)", "blur": 20, "offsetX": 0, "offsetY": 10},
    "gradient": {"type": "linear", "direction": "to-bottom", "stops": []},
}


class Context2D:
    """Immediate-mode drawing state bound to one surface.

    Coordinates pass through a scale/translate transform, so callers draw in
    logical units once the renderer has scaled the context by the DPI.
    Fills honour the shadow fields, a ``blur(Npx)`` filter and an active
    gradient, like a canvas 2D context.
    """

    def __init__(self, surface: Surface, fonts: FontRegistry | None = None, assets: AssetCache | None = None) -> None:
        self.surface = surface
        self.fonts = fonts or FontRegistry(assets)
        self.assets = assets
        self._stack: list[dict[str, Any]] = []
        self.reset_state()

    def reset_state(self) -> None:
        self.transform = (1.0, 1.0, 0.0, 0.0)
        self.fill_style: Any = "#000000"
        self.font_family = "sans-serif"
        self.font_size = 16.0
        self.text_align = "left"
        self.text_baseline = "top"
        self.shadow_color: Any = "rgba(0,0,0,0)"
        self.shadow_blur = 0.0
        self.shadow_offset_x = 0.0
        self.shadow_offset_y = 0.0
        self.filter = "none"
        self.gradient: GradientSpec | None = None
        self.global_alpha = 1.0
        self.image_smoothing_enabled = True
        self.image_smoothing_quality = "low"
        self._stack.clear()

    # transform

    def set_transform(self, sx: float = 1.0, sy: float = 1.0, tx: float = 0.0, ty: float = 0.0) -> None:
        self.transform = (float(sx), float(sy), float(tx), float(ty))

    def reset_transform(self) -> None:
        self.set_transform()

    def scale(self, sx: float, sy: float | None = None) -> None:
        a, d, e, f = self.transform
        self.transform = (a * sx, d * (sx if sy is None else sy), e, f)

    def translate(self, tx: float, ty: float) -> None:
        a, d, e, f = self.transform
        self.transform = (a, d, e + tx * a, f + ty * d)

    def save(self) -> None:
        self._stack.append({name: getattr(self, name) for name in _STATE_FIELDS})

    def restore(self) -> None:
        if self._stack:
            for name, value in self._stack.pop().items():
                setattr(self, name, value)

    def _point(self, x: float, y: float) -> tuple[float, float]:
        a, d, e, f = self.transform
        return (x * a + e, y * d + f)

    def _box(self, x: float, y: float, w: float, h: float) -> tuple[float, float, float, float]:
        x0, y0 = self._point(x, y)
        x1, y1 = self._point(x + w, y + h)
        return (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))

    @property
    def _unit(self) -> float:
        return abs(self.transform[0])

    # drawing

    def clear_rect(self, x: float, y: float, w: float, h: float) -> None:
        x0, y0, x1, y1 = self._box(x, y, w, h)
        box = (int(math.floor(x0)), int(math.floor(y0)), int(math.ceil(x1)), int(math.ceil(y1)))
        self.surface.image.paste((0, 0, 0, 0), box)

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        box = self._box(x, y, w, h)
        self._fill(box, lambda draw, fill: draw.rectangle(box, fill=fill))

    def fill_rounded_rect(self, x: float, y: float, w: float, h: float, radius: float) -> None:
        box = self._box(x, y, w, h)
        r = max(0.0, min(radius * self._unit, (box[2] - box[0]) / 2, (box[3] - box[1]) / 2))
        self._fill(box, lambda draw, fill: draw.rounded_rectangle(box, radius=r, fill=fill))

    def fill_ellipse(self, x: float, y: float, w: float, h: float) -> None:
        box = self._box(x, y, w, h)
        self._fill(box, lambda draw, fill: draw.ellipse(box, fill=fill))

    def fill_text(self, text: str, x: float, y: float) -> None:
        font = self.fonts.load(self.font_family, self.font_size * self._unit)
        origin = self._point(x, y)
        kwargs: dict[str, Any] = {"font": font}
        if isinstance(font, ImageFont.FreeTypeFont):
            kwargs["anchor"] = _ANCHOR_H.get(self.text_align, "l") + _ANCHOR_V.get(self.text_baseline, "a")
        scratch = ImageDraw.Draw(Image.new("L", (1, 1)))
        box = scratch.textbbox(origin, text, **kwargs)
        self._fill(box, lambda draw, fill: draw.text(origin, text, fill=fill, **kwargs))

    def measure_text(self, text: str) -> TextMetrics:
        return self.fonts.measure(text, self.font_family, self.font_size)

    def draw_image(self, image: Image.Image, x: float, y: float, w: float | None = None, h: float | None = None) -> None:
        w = image.width / self._unit if w is None else w
        h = image.height / self._unit if h is None else h
        x0, y0, x1, y1 = self._box(x, y, w, h)
        size = (max(1, int(round(x1 - x0))), max(1, int(round(y1 - y0))))
        src = image.convert("RGBA")
        if src.size != size:
            resample = _RESAMPLE.get(self.image_smoothing_quality, Image.Resampling.BILINEAR)
            src = src.resize(size, resample if self.image_smoothing_enabled else Image.Resampling.NEAREST)
        if self.global_alpha < 1.0:
            src.putalpha(src.getchannel("A").point(lambda v: int(v * self.global_alpha)))
        layer = Image.new("RGBA", self.surface.image.size, (0, 0, 0, 0))
        layer.paste(src, (int(round(x0)), int(round(y0))))
        self.surface.image.alpha_composite(layer)

    def _fill(self, box: tuple[float, float, float, float], shape: Callable[[ImageDraw.ImageDraw, int], None]) -> None:
        size = self.surface.image.size
        mask = Image.new("L", size, 0)
        shape(ImageDraw.Draw(mask), 255)
        if self.global_alpha < 1.0:
            mask = mask.point(lambda v: int(v * self.global_alpha))

        shadow = parse_color(self.shadow_color)
        if shadow[3] and (self.shadow_blur or self.shadow_offset_x or self.shadow_offset_y):
            offset = (int(round(self.shadow_offset_x * self._unit)), int(round(self.shadow_offset_y * self._unit)))
            shadow_layer = Image.new("RGBA", size, (0, 0, 0, 0))
            shadow_layer.paste(Image.new("RGBA", size, shadow), offset, mask)
            if self.shadow_blur:
                shadow_layer = shadow_layer.filter(ImageFilter.GaussianBlur(self.shadow_blur * self._unit / 2))
            self.surface.image.alpha_composite(shadow_layer)

        layer = Image.new("RGBA", size, (0, 0, 0, 0))
        layer.paste(self._paint(box, size), (0, 0), mask)
        blur = _BLUR_RE.search(self.filter or "")
        if blur:
            layer = layer.filter(ImageFilter.GaussianBlur(float(blur.group(1)) * self._unit))
        self.surface.image.alpha_composite(layer)

    def _paint(self, box: tuple[float, float, float, float], size: tuple[int, int]) -> Image.Image:
        if self.gradient is None or not self.gradient.stops:
            return Image.new("RGBA", size, parse_color(self.fill_style))
        x0, y0, x1, y1 = (int(round(v)) for v in box)
        ramp = cached_gradient(self.assets, max(1, x1 - x0), max(1, y1 - y0), self.gradient)
        paint = Image.new("RGBA", size, (0, 0, 0, 0))
        paint.paste(ramp, (x0, y0))
        return paint


class Surface:
    """A pooled pixel buffer; ``get_context`` always returns the same context."""

    def __init__(self, width: int, height: int, fonts: FontRegistry | None = None, assets: AssetCache | None = None) -> None:
        self.image = Image.new("RGBA", (int(width), int(height)), (0, 0, 0, 0))
        self._fonts = fonts
        self._assets = assets
        self._context: Context2D | None = None

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def get_context(self) -> Context2D:
        if self._context is None:
            self._context = Context2D(self, self._fonts, self._assets)
        return self._context


@dataclass(frozen=True)
class Dimensions:
    width: float
    height: float
    pixel_width: int
    pixel_height: int


class RenderContext:
    """One surface on loan to a caller, with the region it asked for."""

    def __init__(self, surface: Surface, ctx: Context2D, dpi: float, pixel_width: int, pixel_height: int) -> None:
        self.surface = surface
        self.ctx = ctx
        self.dpi = dpi
        self.pixel_width = pixel_width
        self.pixel_height = pixel_height
        self.released = False

    def get_dimensions(self) -> Dimensions:
        return Dimensions(
            width=self.pixel_width / self.dpi,
            height=self.pixel_height / self.dpi,
            pixel_width=self.pixel_width,
            pixel_height=self.pixel_height,
        )

    def crop(self) -> Image.Image:
        """Copy of the requested region (a reused surface may be larger)."""
        return self.surface.image.crop((0, 0, self.pixel_width, self.pixel_height))


class CanvasRenderer:
    """Hands out DPI-scaled drawing contexts from a bounded surface pool.

    Pool lookup is a first-fit scan: the first pooled surface at least as
    large as the request is reused. Not thread-safe; each worker owns its own
    renderer.
    """

    def __init__(
        self,
        dpi: float = 2.0,
        max_pool_size: int = 10,
        fonts: FontRegistry | None = None,
        assets: AssetCache | None = None,
    ) -> None:
        self.dpi = dpi
        self.max_pool_size = max_pool_size
        self.assets = assets
        self.fonts = fonts or FontRegistry(assets)
        self.canvas_pool: list[Surface] = []
        self.registered_fonts: set[str] = set()

    @property
    def pool_size(self) -> int:
        return len(self.canvas_pool)

    def create_context(self, width: float, height: float, dpi: float | None = None) -> RenderContext:
        dpi = self.dpi if dpi is None else dpi
        w = math.floor(width * dpi)
        h = math.floor(height * dpi)

        surface = self._get_surface(w, h)
        ctx = surface.get_context()
        ctx.scale(dpi, dpi)
        ctx.image_smoothing_enabled = True
        ctx.image_smoothing_quality = "high"

        _log.debug(f"context created {width}x{height}@{dpi}", extra={"event": "context_create"})
        return RenderContext(surface, ctx, dpi, w, h)

    def _get_surface(self, w: int, h: int) -> Surface:
        for index, surface in enumerate(self.canvas_pool):
            if surface.width >= w and surface.height >= h:
                del self.canvas_pool[index]
                ctx = surface.get_context()
                ctx.reset_state()
                ctx.clear_rect(0, 0, surface.width, surface.height)
                return surface
        return Surface(w, h, self.fonts, self.assets)

    def release_context(self, context: RenderContext) -> None:
        if context.released:
            return
        context.released = True
        context.ctx.reset_transform()
        if len(self.canvas_pool) < self.max_pool_size:
            self.canvas_pool.append(context.surface)
        _log.debug("context released", extra={"event": "context_release"})

    async def apply_effect(self, ctx: Context2D | RenderContext, effect: Mapping[str, Any]) -> None:
        if isinstance(ctx, RenderContext):
            ctx = ctx.ctx
        kind = effect.get("type")
        handler = _EFFECTS.get(kind)
        if handler is None:
            _log.debug(f"ignoring unknown effect {kind!r}", extra={"event": "effect_unknown", "effect": kind})
            return
        options = {**EFFECT_DEFAULTS[kind], **{k: v for k, v in effect.items() if k != "type"}}
        await handler(ctx, options)

    def register_font(self, path: str, family: str) -> None:
        if family in self.registered_fonts:
            return
        self.fonts.register(path, family)
        self.registered_fonts.add(family)

    def clear_pool(self) -> None:
        self.canvas_pool = []


async def _apply_glow(ctx: Context2D, options: dict[str, Any]) -> None:
    ctx.shadow_color = options["color"]
    ctx.shadow_blur = options["blur"]


async def _apply_blur(ctx: Context2D, options: dict[str, Any]) -> None:
    ctx.filter = f"blur({options['amount']}px)"


async def _apply_shadow(ctx: Context2D, options: dict[str, Any]) -> None:
    ctx.shadow_color = options["color"]
    ctx.shadow_blur = options["blur"]
    ctx.shadow_offset_x = options["offsetX"]
    ctx.shadow_offset_y = options["offsetY"]


async def _apply_gradient(ctx: Context2D, options: dict[str, Any]) -> None:
    stops = normalize_stops(options["stops"] or [])
    ctx.gradient = GradientSpec(kind=options["type"], direction=options["direction"], stops=stops) if stops else None


_EFFECTS = {
    "glow": _apply_glow,
    "blur": _apply_blur,
    "shadow": _apply_shadow,
    "gradient": _apply_gradient,
}
