"""Exception types raised by the outer rendering surfaces."""

from __future__ import annotations

from typing import Any


class CardForgeError(Exception):
    """Base error carrying a machine-readable code and debugging context."""

    code = "CARDFORGE_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationError(CardForgeError):
    code = "VALIDATION_ERROR"


class RenderError(CardForgeError):
    code = "RENDER_ERROR"


class AssetError(CardForgeError):
    code = "ASSET_ERROR"


class ThemeError(CardForgeError):
    code = "THEME_ERROR"


class ComponentError(CardForgeError):
    code = "COMPONENT_ERROR"
