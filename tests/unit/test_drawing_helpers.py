import sys
import unittest
from pathlib import Path

from PIL import Image

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "renderer"))

from cardforge_renderer.cache import AssetCache
from cardforge_renderer.colors import TRANSPARENT, parse_color
from cardforge_renderer.encoding import BufferManager
from cardforge_renderer.fonts import primary_family
from cardforge_renderer.gradients import GradientSpec, cached_gradient, linear_gradient, normalize_stops


class ColorTests(unittest.TestCase):
    def test_css_colours(self):
        self.assertEqual(parse_color("#ff0000"), (255, 0, 0, 255))
        self.assertEqual(parse_color("rgba(0, 0, 0, 0.5)"), (0, 0, 0, 128))
        self.assertEqual(parse_color("rgb(1,2,3)"), (1, 2, 3, 255))
        self.assertEqual(parse_color((9, 8, 7)), (9, 8, 7, 255))

    def test_unparseable_is_transparent(self):
        self.assertEqual(parse_color("not-a-colour"), TRANSPARENT)
        self.assertEqual(parse_color(None), TRANSPARENT)


class GradientTests(unittest.TestCase):
    def test_vertical_and_horizontal_ramps(self):
        stops = normalize_stops(["#000000", "#ffffff"])
        down = linear_gradient(4, 3, GradientSpec(direction="to-bottom", stops=stops))
        self.assertEqual(down.size, (4, 3))
        self.assertEqual(down.getpixel((0, 0)), (0, 0, 0, 255))
        self.assertEqual(down.getpixel((3, 2)), (255, 255, 255, 255))

        left = linear_gradient(3, 2, GradientSpec(direction="to-left", stops=stops))
        self.assertEqual(left.getpixel((0, 0)), (255, 255, 255, 255))
        self.assertEqual(left.getpixel((2, 1)), (0, 0, 0, 255))

    def test_stop_shapes(self):
        self.assertEqual(normalize_stops([(1, "b"), (0, "a")]), ((0.0, "a"), (1.0, "b")))
        self.assertEqual(
            normalize_stops([{"offset": 0.2, "color": "a"}, {"color": "b"}]),
            ((0.2, "a"), (1.0, "b")),
        )

    def test_cached_by_size_and_stops(self):
        assets = AssetCache()
        spec = GradientSpec(stops=normalize_stops(["#000", "#fff"]))
        first = cached_gradient(assets, 5, 5, spec)
        self.assertIs(cached_gradient(assets, 5, 5, spec), first)
        cached_gradient(assets, 6, 5, spec)
        self.assertEqual(assets.get_stats().gradients, 2)


class BufferManagerTests(unittest.TestCase):
    def setUp(self):
        self.manager = BufferManager()
        self.image = Image.new("RGBA", (8, 4), (255, 0, 0, 255))

    def test_png_and_jpeg(self):
        self.assertTrue(self.manager.encode(self.image).startswith(b"\x89PNG"))
        self.assertTrue(self.manager.encode(self.image, "jpeg", 0.8).startswith(b"\xff\xd8"))
        self.assertTrue(self.manager.encode(self.image, "JPG").startswith(b"\xff\xd8"))

    def test_unsupported_format(self):
        with self.assertRaises(ValueError) as ctx:
            self.manager.encode(self.image, "gif")
        self.assertIn("png, jpeg, webp", str(ctx.exception))

    def test_extension_and_mime_type(self):
        self.assertEqual(BufferManager.get_extension("jpeg"), "jpg")
        self.assertEqual(BufferManager.get_extension("webp"), "webp")
        self.assertEqual(BufferManager.get_extension("bmp"), "png")
        self.assertEqual(BufferManager.get_mime_type("jpg"), "image/jpeg")
        self.assertEqual(BufferManager.get_mime_type("tiff"), "image/png")
        self.assertTrue(BufferManager.supports("WEBP"))
        self.assertFalse(BufferManager.supports("gif"))


class FontHelperTests(unittest.TestCase):
    def test_primary_family(self):
        self.assertEqual(primary_family("'Space Grotesk', sans-serif"), "Space Grotesk")
        self.assertEqual(primary_family(None), "")


if __name__ == "__main__":
    unittest.main()
