"""Encode rendered surfaces into image bytes."""

from __future__ import annotations

from io import BytesIO

from PIL import Image

_PIL_FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG", "webp": "WEBP"}
_EXTENSIONS = {"png": "png", "jpeg": "jpg", "jpg": "jpg", "webp": "webp"}
_MIME_TYPES = {"png": "image/png", "jpeg": "image/jpeg", "jpg": "image/jpeg", "webp": "image/webp"}


class BufferManager:
    def encode(self, image: Image.Image, format: str = "png", quality: float = 0.92) -> bytes:
        if image is None:
            raise ValueError("image is required")
        fmt = _PIL_FORMATS.get(str(format).lower())
        if fmt is None:
            raise ValueError(f"Unsupported format: {format}. Supported formats: png, jpeg, webp")

        buf = BytesIO()
        if fmt == "PNG":
            image.save(buf, format=fmt)
        elif fmt == "JPEG":
            # No alpha channel in JPEG; flatten onto black like a cleared canvas.
            flat = Image.new("RGB", image.size, (0, 0, 0))
            flat.paste(image, mask=image.getchannel("A") if image.mode == "RGBA" else None)
            flat.save(buf, format=fmt, quality=int(round(quality * 100)))
        else:
            image.save(buf, format=fmt, quality=int(round(quality * 100)))
        return buf.getvalue()

    @staticmethod
    def supports(format: str) -> bool:
        return str(format).lower() in _PIL_FORMATS

    @staticmethod
    def get_extension(format: str) -> str:
        return _EXTENSIONS.get(str(format).lower(), "png")

    @staticmethod
    def get_mime_type(format: str) -> str:
        return _MIME_TYPES.get(str(format).lower(), "image/png")
