"""Local image loading through the asset cache."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from PIL import Image

from cardforge_core.logging_setup import get_logger

from .cache import AssetCache
from .errors import AssetError
from .models import LayoutNode, ResolvedNode

_log = get_logger("assets")

IMAGE_PROPS = ("src", "avatar", "image")


class AssetLoader:
    """Decodes local image files once and remembers paths that failed."""

    def __init__(self, cache: AssetCache) -> None:
        self.cache = cache
        self.errors: dict[str, AssetError] = {}

    def load_image(self, path: str) -> Image.Image:
        if not path or not isinstance(path, str):
            raise AssetError("Invalid image path", {"path": path})

        cached = self.cache.get_image(path)
        if cached is not None:
            return cached

        if path in self.errors:
            raise self.errors[path]

        try:
            with Image.open(Path(path).expanduser()) as img:
                image = img.convert("RGBA")
        except (OSError, ValueError) as exc:
            err = AssetError(f"Failed to load image: {path} - {exc}", {"path": path})
            self.errors[path] = err
            _log.warning(str(err), extra={"event": "asset_load_failed", "path": path})
            raise err from exc

        self.cache.set_image(path, image)
        self.errors.pop(path, None)
        return image

    def load_images(
        self, paths: Iterable[str], throw_on_error: bool = False
    ) -> tuple[dict[str, Image.Image], list[tuple[str, AssetError]]]:
        results: dict[str, Image.Image] = {}
        errors: list[tuple[str, AssetError]] = []
        for path in paths:
            try:
                results[path] = self.load_image(path)
            except AssetError as exc:
                if throw_on_error:
                    raise
                errors.append((path, exc))
        return results, errors

    def load(self, asset: Any) -> Image.Image:
        if isinstance(asset, str):
            return self.load_image(asset)
        if isinstance(asset, dict):
            if asset.get("type") == "image" and asset.get("src"):
                return self.load_image(asset["src"])
            raise AssetError(f"Unknown asset type: {asset.get('type')}", {"asset": asset})
        raise AssetError("Asset must be a path or a mapping", {"asset": asset})

    @staticmethod
    def extract_image_paths(node: LayoutNode | ResolvedNode | None) -> list[str]:
        found: dict[str, None] = {}

        def visit(current) -> None:
            if current is None:
                return
            props = current.props or {}
            for key in IMAGE_PROPS:
                value = props.get(key)
                if isinstance(value, str) and value:
                    found.setdefault(value, None)
            for child in current.children or ():
                visit(child)

        visit(node)
        return list(found)

    def clear_error(self, path: str) -> None:
        self.errors.pop(path, None)

    def clear_errors(self) -> None:
        self.errors.clear()
