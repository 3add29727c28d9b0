import asyncio
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "renderer"))

from cardforge_renderer.cache import AssetCache
from cardforge_renderer.gradients import GradientSpec
from cardforge_renderer.surface import CanvasRenderer


class CanvasPoolTests(unittest.TestCase):
    def test_pixel_size_is_floored_and_context_scaled(self):
        renderer = CanvasRenderer(dpi=2)
        rc = renderer.create_context(100.5, 50.3)
        self.assertEqual((rc.pixel_width, rc.pixel_height), (201, 100))
        self.assertEqual(rc.ctx.transform, (2.0, 2.0, 0.0, 0.0))
        self.assertEqual(rc.ctx.image_smoothing_quality, "high")
        dims = rc.get_dimensions()
        self.assertEqual((dims.width, dims.height), (100.5, 50.0))

    def test_released_surface_is_reused_first_fit(self):
        renderer = CanvasRenderer(dpi=1)
        big = renderer.create_context(200, 200)
        renderer.release_context(big)
        self.assertEqual(renderer.pool_size, 1)

        small = renderer.create_context(100, 100)
        self.assertIs(small.surface, big.surface)
        self.assertEqual(renderer.pool_size, 0)
        self.assertEqual((small.pixel_width, small.pixel_height), (100, 100))
        self.assertEqual(small.crop().size, (100, 100))

    def test_too_small_pooled_surface_is_not_reused(self):
        renderer = CanvasRenderer(dpi=1)
        small = renderer.create_context(50, 50)
        renderer.release_context(small)
        big = renderer.create_context(100, 100)
        self.assertIsNot(big.surface, small.surface)
        self.assertEqual(renderer.pool_size, 1)

    def test_reused_surface_is_cleared_and_reset(self):
        renderer = CanvasRenderer(dpi=1)
        rc = renderer.create_context(20, 20)
        rc.ctx.fill_style = "#ff0000"
        rc.ctx.shadow_blur = 7
        rc.ctx.fill_rect(0, 0, 20, 20)
        self.assertEqual(rc.surface.image.getpixel((5, 5)), (255, 0, 0, 255))
        renderer.release_context(rc)

        again = renderer.create_context(20, 20)
        self.assertEqual(again.surface.image.getpixel((5, 5)), (0, 0, 0, 0))
        self.assertEqual(again.ctx.shadow_blur, 0)
        self.assertEqual(again.ctx.transform, (1.0, 1.0, 0.0, 0.0))

    def test_pool_never_exceeds_cap(self):
        renderer = CanvasRenderer(dpi=1, max_pool_size=2)
        contexts = [renderer.create_context(10, 10) for _ in range(4)]
        for rc in contexts:
            renderer.release_context(rc)
        self.assertEqual(renderer.pool_size, 2)

    def test_release_is_idempotent_and_resets_transform(self):
        renderer = CanvasRenderer(dpi=3)
        rc = renderer.create_context(10, 10)
        renderer.release_context(rc)
        renderer.release_context(rc)
        self.assertEqual(renderer.pool_size, 1)
        self.assertEqual(rc.ctx.transform, (1.0, 1.0, 0.0, 0.0))

    def test_clear_pool(self):
        renderer = CanvasRenderer(dpi=1)
        renderer.release_context(renderer.create_context(10, 10))
        renderer.clear_pool()
        self.assertEqual(renderer.pool_size, 0)

    def test_register_font_is_idempotent_per_family(self):
        renderer = CanvasRenderer()
        renderer.register_font("/fonts/a.ttf", "Brand")
        renderer.register_font("/fonts/b.ttf", "Brand")
        self.assertEqual(renderer.registered_fonts, {"Brand"})
        self.assertEqual(renderer.fonts.path_for("Brand, sans-serif"), "/fonts/a.ttf")


class DrawingTests(unittest.TestCase):
    def test_fill_rect_in_logical_units(self):
        renderer = CanvasRenderer(dpi=2)
        rc = renderer.create_context(20, 20)
        rc.ctx.fill_style = "#00ff00"
        rc.ctx.fill_rect(0, 0, 10, 10)
        self.assertEqual(rc.surface.image.getpixel((19, 19)), (0, 255, 0, 255))
        self.assertEqual(rc.surface.image.getpixel((30, 30)), (0, 0, 0, 0))

    def test_save_restore_round_trips_state(self):
        rc = CanvasRenderer(dpi=1).create_context(10, 10)
        ctx = rc.ctx
        ctx.fill_style = "#111111"
        ctx.save()
        ctx.fill_style = "#222222"
        ctx.translate(5, 5)
        ctx.restore()
        self.assertEqual(ctx.fill_style, "#111111")
        self.assertEqual(ctx.transform, (1.0, 1.0, 0.0, 0.0))

    def test_gradient_fill_uses_stops(self):
        assets = AssetCache()
        rc = CanvasRenderer(dpi=1, assets=assets).create_context(10, 10)
        rc.ctx.gradient = GradientSpec(direction="to-bottom", stops=((0.0, "#000000"), (1.0, "#ffffff")))
        rc.ctx.fill_rect(0, 0, 9, 9)
        top = rc.surface.image.getpixel((4, 0))
        bottom = rc.surface.image.getpixel((4, 8))
        self.assertLess(top[0], bottom[0])
        self.assertEqual(assets.get_stats().gradients, 1)

    def test_measure_text_caches_metrics(self):
        assets = AssetCache()
        rc = CanvasRenderer(dpi=1, assets=assets).create_context(10, 10)
        first = rc.ctx.measure_text("Hello")
        second = rc.ctx.measure_text("Hello")
        self.assertIs(first, second)
        self.assertGreater(first.width, 0)
        self.assertEqual(assets.get_stats().fonts, 1)

    def test_fill_text_marks_pixels(self):
        rc = CanvasRenderer(dpi=1).create_context(80, 30)
        rc.ctx.fill_style = "#ffffff"
        rc.ctx.font_size = 20
        rc.ctx.fill_text("Hi", 2, 2)
        self.assertIsNotNone(rc.surface.image.getbbox())


class EffectTests(unittest.TestCase):
    def setUp(self):
        self.renderer = CanvasRenderer(dpi=1)
        self.rc = self.renderer.create_context(10, 10)
        self.ctx = self.rc.ctx

    def _apply(self, effect):
        asyncio.run(self.renderer.apply_effect(self.rc, effect))

    def test_glow_defaults(self):
        self._apply({"type": "glow"})
        self.assertEqual(self.ctx.shadow_color, "rgba(124, 58, 237, 0.5)")
        self.assertEqual(self.ctx.shadow_blur, 20)

    def test_shadow_overrides_earlier_glow(self):
        self._apply({"type": "glow", "color": "#ff0000", "blur": 4})
        self._apply({"type": "shadow", "offsetY": 3})
        self.assertEqual(self.ctx.shadow_color, "rgba(0,0,0,0.3)")
        self.assertEqual(self.ctx.shadow_blur, 20)
        self.assertEqual((self.ctx.shadow_offset_x, self.ctx.shadow_offset_y), (0, 3))

    def test_blur_sets_filter(self):
        self._apply({"type": "blur"})
        self.assertEqual(self.ctx.filter, "blur(5px)")
        self._apply({"type": "blur", "amount": 2})
        self.assertEqual(self.ctx.filter, "blur(2px)")

    def test_gradient_with_and_without_stops(self):
        self._apply({"type": "gradient", "direction": "to-right", "stops": ["#000", "#fff"]})
        self.assertEqual(self.ctx.gradient.direction, "to-right")
        self.assertEqual(self.ctx.gradient.stops, ((0.0, "#000"), (1.0, "#fff")))
        self._apply({"type": "gradient"})
        self.assertIsNone(self.ctx.gradient)

    def test_unknown_effect_is_a_no_op(self):
        before = (self.ctx.shadow_color, self.ctx.shadow_blur, self.ctx.filter, self.ctx.gradient)
        self._apply({"type": "sparkle", "amount": 9})
        self._apply({})
        self.assertEqual((self.ctx.shadow_color, self.ctx.shadow_blur, self.ctx.filter, self.ctx.gradient), before)


if __name__ == "__main__":
    unittest.main()
