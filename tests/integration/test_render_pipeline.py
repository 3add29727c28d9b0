import asyncio
import io
import sys
import tempfile
import unittest
from pathlib import Path

from PIL import Image

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "renderer"))

from cardforge_core.config import EngineConfig, RendererConfig
from cardforge_renderer import CardEngine, ComponentError, ComponentRegistry, Plugin, RenderError, ValidationError


def _engine() -> CardEngine:
    return CardEngine(EngineConfig(renderer=RendererConfig(dpi=1.0, max_pool_size=2)))


LAYOUT = {
    "type": "container",
    "style": {"padding": 20},
    "children": [
        {
            "type": "container",
            "props": {"width": 100, "height": 50, "backgroundColor": "{accent.primary}", "cornerRadius": 0},
        },
        {"type": "text", "props": {"x": 20, "y": 80, "text": "Level 12", "size": 18, "glow": True}},
        {"type": "progress", "props": {"x": 20, "y": 130, "width": 200, "height": 10, "value": 0.4}},
        {"type": "avatar", "props": {"x": 300, "y": 20, "width": 40, "height": 40, "avatar": "/nonexistent/me.png"}},
    ],
}


def _decode(card):
    return Image.open(io.BytesIO(card.bytes)).convert("RGBA")


class RenderPipelineTests(unittest.TestCase):
    def test_renders_png_with_theme_and_tokens(self):
        engine = _engine()
        card = engine.render(LAYOUT, width=400, height=200, theme="Neon Slate")
        self.assertEqual((card.width, card.height, card.format, card.mime_type), (400, 200, "png", "image/png"))

        image = _decode(card)
        self.assertEqual(image.size, (400, 200))
        self.assertEqual(image.getpixel((2, 2)), (0x0A, 0x0F, 0x1D, 255))
        self.assertEqual(image.getpixel((60, 40)), (0x35, 0xD9, 0xFF, 255))

    def test_data_overrides_theme_tokens(self):
        card = _engine().render(LAYOUT, {"accentColor": "#ff0000"}, width=400, height=200)
        self.assertEqual(_decode(card).getpixel((60, 40)), (255, 0, 0, 255))

    def test_layout_tokens_sit_between_theme_and_data(self):
        layout = dict(LAYOUT, tokens={"accentColor": "#00ff00"})
        self.assertEqual(_decode(_engine().render(layout, width=400, height=200)).getpixel((60, 40)), (0, 255, 0, 255))
        card = _engine().render(layout, {"accentColor": "#0000ff"}, width=400, height=200)
        self.assertEqual(_decode(card).getpixel((60, 40)), (0, 0, 255, 255))

    def test_dpi_scales_output(self):
        card = _engine().render(LAYOUT, width=100, height=50, dpi=2)
        self.assertEqual(_decode(card).size, (200, 100))

    def test_surfaces_return_to_pool(self):
        engine = _engine()
        engine.render(LAYOUT, width=400, height=200)
        engine.render(LAYOUT, width=200, height=100)
        self.assertEqual(engine.renderer.pool_size, 1)

    def test_missing_assets_are_skipped_and_remembered(self):
        engine = _engine()
        engine.render(LAYOUT, width=400, height=200)
        self.assertIn("/nonexistent/me.png", engine.asset_loader.errors)

    def test_images_are_preloaded_into_cache(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = str(Path(tmp) / "badge.png")
            Image.new("RGB", (8, 8), (0, 0, 255)).save(path)
            layout = {
                "type": "container",
                "children": [{"type": "image", "props": {"x": 10, "y": 10, "width": 20, "height": 20, "src": path}}],
            }
            engine = _engine()
            card = engine.render(layout, width=60, height=60)
            self.assertEqual(engine.assets.get_stats().images, 1)
            r, g, b, a = _decode(card).getpixel((20, 20))
            self.assertLess(r, 16)
            self.assertGreater(b, 239)

    def test_jpeg_output(self):
        card = _engine().render(LAYOUT, width=120, height=60, format="jpeg")
        self.assertEqual((card.format, card.mime_type), ("jpg", "image/jpeg"))
        self.assertTrue(card.bytes.startswith(b"\xff\xd8"))

    def test_unknown_component_raises_and_releases(self):
        engine = _engine()
        with self.assertRaises(ComponentError) as ctx:
            engine.render({"type": "container", "children": [{"type": "hologram"}]}, width=50, height=50)
        self.assertEqual(ctx.exception.context, {"type": "hologram"})
        self.assertEqual(engine.renderer.pool_size, 1)

    def test_node_effects_are_scoped_to_the_node(self):
        seen = []

        def recorder(ctx, node, styles, tokens, engine):
            seen.append((node.props.get("name"), ctx.shadow_blur, ctx.filter))

        registry = ComponentRegistry({"recorder": recorder})
        engine = CardEngine(EngineConfig(renderer=RendererConfig(dpi=1.0)), registry=registry)
        layout = {
            "type": "recorder",
            "props": {"name": "root"},
            "effects": [{"type": "glow", "blur": 6}, {"type": "blur", "amount": 1}],
            "children": [{"type": "recorder", "props": {"name": "child"}}],
        }
        engine.render(layout, width=10, height=10)
        self.assertEqual(seen, [("root", 6, "blur(1px)"), ("child", 0.0, "none")])

    def test_invalid_options_raise_validation_error(self):
        engine = _engine()
        for options in ({"width": -5}, {"dpi": float("nan")}, {"format": "gif"}, {"quality": 2}):
            with self.assertRaises(ValidationError, msg=str(options)):
                engine.render(LAYOUT, **options)
        self.assertEqual(engine.renderer.pool_size, 0)

    def test_missing_layout_raises_render_error(self):
        with self.assertRaises(RenderError):
            _engine().render(None, width=10, height=10)

    def test_render_async(self):
        card = asyncio.run(_engine().render_async(LAYOUT, width=80, height=40))
        self.assertEqual((card.width, card.height), (80, 40))

    def test_nodes_with_unresolvable_geometry_are_skipped(self):
        engine = _engine()
        layout = {
            "type": "container",
            "children": [
                {
                    "type": "text",
                    "props": {"x": "abc%", "text": "hi"},
                    "children": [
                        {
                            "type": "container",
                            "props": {"x": 0, "y": 0, "width": 10, "height": 10, "backgroundColor": "#ff0000", "cornerRadius": 0},
                        }
                    ],
                },
                {
                    "type": "container",
                    "props": {"x": 20, "y": 0, "width": "auto", "height": 10, "backgroundColor": "#00ff00", "cornerRadius": 0},
                },
            ],
        }
        image = _decode(engine.render(layout, width=40, height=20, theme="Neon Slate"))
        self.assertEqual(image.getpixel((5, 5)), (255, 0, 0, 255))
        self.assertEqual(image.getpixel((30, 5)), (0x0A, 0x0F, 0x1D, 255))
        self.assertEqual(engine.renderer.pool_size, 1)

    def test_node_level_legacy_keys_render(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = str(Path(tmp) / "logo.png")
            Image.new("RGB", (4, 4), (255, 0, 0)).save(path)
            layout = {"children": [{"type": "image", "src": path, "x": 0, "y": 0, "width": 20, "height": 20}]}
            engine = _engine()
            card = engine.render(layout, width=40, height=40)
            self.assertEqual(engine.assets.get_stats().images, 1)
            r, g, b, a = _decode(card).getpixel((10, 10))
            self.assertGreater(r, 239)
            self.assertLess(b, 16)


class HookTests(unittest.TestCase):
    def test_hooks_run_in_pipeline_order(self):
        engine = _engine()
        events = []

        def record(event):
            def callback(context):
                events.append((event, context.node.type if context.node else None))

            return callback

        async def after_render(context):
            await asyncio.sleep(0)
            events.append(("after_render", context.render_context.pixel_width))

        for event in ("pre_layout", "post_layout", "before_render", "before_component", "after_component"):
            engine.on_hook(event, record(event))
        engine.on_hook("after_render", after_render)

        engine.render({"type": "container", "children": [{"type": "text", "props": {"text": "x"}}]}, width=30, height=10)
        self.assertEqual(
            events,
            [
                ("pre_layout", None),
                ("post_layout", None),
                ("before_render", None),
                ("before_component", "container"),
                ("after_component", "container"),
                ("before_component", "text"),
                ("after_component", "text"),
                ("after_render", 30),
            ],
        )

    def test_hook_sees_resolved_state(self):
        engine = _engine()
        seen = {}

        def capture(context):
            seen["bounds"] = context.layout.bounds.to_dict()
            seen["accent"] = context.styles.accent.primary
            seen["data"] = context.data

        engine.on_hook("pre_layout", lambda context: seen.setdefault("pre_layout", context.layout))
        engine.on_hook("before_render", capture)
        engine.render({"type": "container"}, {"accentColor": "#123456"}, width=20, height=10)
        self.assertIsNone(seen["pre_layout"])
        self.assertEqual(seen["bounds"], {"x": 0, "y": 0, "width": 20, "height": 10})
        self.assertEqual(seen["accent"], "#123456")
        self.assertEqual(seen["data"], {"accentColor": "#123456"})

    def test_invalid_hook_registration(self):
        engine = _engine()
        with self.assertRaises(ValidationError):
            engine.on_hook("onRender", lambda context: None)
        with self.assertRaises(ValidationError):
            engine.on_hook("before_render", "not callable")

    def test_hook_errors_abort_and_release(self):
        engine = _engine()

        def explode(context):
            raise RuntimeError("boom")

        engine.on_hook("after_component", explode)
        with self.assertRaises(RuntimeError):
            engine.render({"type": "container"}, width=10, height=10)
        self.assertEqual(engine.renderer.pool_size, 1)


class PluginTests(unittest.TestCase):
    def test_plugin_installs_painters_themes_and_hooks(self):
        installed = []
        painted = []

        class Badge(Plugin):
            def install(self, engine):
                installed.append(engine)

        plugin = Badge(
            name="badges",
            components={"badge": lambda ctx, node, styles, tokens, engine: painted.append(node.props["label"])},
            themes={"Badge Night": {"colors": {"surface": {"primary": "#000000"}}}},
            hooks={"before_render": lambda context: painted.append("start")},
        )
        engine = _engine()
        self.assertIs(engine.use(plugin), engine)
        self.assertEqual(installed, [engine])
        self.assertTrue(engine.plugins.has("badges"))
        self.assertTrue(engine.themes.has("Badge Night"))

        card = engine.render({"type": "badge", "props": {"label": "gold"}}, width=10, height=10, theme="Badge Night")
        self.assertEqual(painted, ["start", "gold"])
        self.assertEqual(_decode(card).getpixel((0, 0)), (0, 0, 0, 255))

        with self.assertRaises(ValidationError):
            engine.use(Plugin(name="badges"))

    def test_unregister_removes_hooks(self):
        calls = []
        engine = _engine()
        engine.use(Plugin(name="counter", hooks={"after_render": lambda context: calls.append(1)}))
        engine.render({"type": "container"}, width=10, height=10)
        self.assertTrue(engine.plugins.unregister("counter"))
        self.assertFalse(engine.plugins.unregister("counter"))
        engine.render({"type": "container"}, width=10, height=10)
        self.assertEqual(calls, [1])


class EngineThemeTests(unittest.TestCase):
    def test_registered_theme_is_used_by_name(self):
        engine = _engine().register_theme("Ink", {"colors": {"surface": {"primary": "#102030"}}}, base="Neon Slate")
        card = engine.render({"type": "container"}, width=10, height=10, theme="Ink")
        self.assertEqual(_decode(card).getpixel((0, 0)), (0x10, 0x20, 0x30, 255))

    def test_active_theme_is_the_default(self):
        engine = _engine()
        engine.extend_theme("Neon Slate", "Paper", {"colors": {"surface": {"primary": "#fafafa"}}})
        self.assertTrue(engine.set_theme("Paper"))
        card = engine.render({"type": "container"}, width=10, height=10)
        self.assertEqual(_decode(card).getpixel((0, 0)), (0xFA, 0xFA, 0xFA, 255))

    def test_unknown_active_theme_falls_back(self):
        engine = _engine()
        self.assertFalse(engine.set_theme("Nope"))
        card = engine.render({"type": "container"}, width=10, height=10)
        self.assertEqual(_decode(card).getpixel((0, 0)), (0x0A, 0x0F, 0x1D, 255))


if __name__ == "__main__":
    unittest.main()
