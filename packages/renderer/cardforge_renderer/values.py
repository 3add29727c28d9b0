"""Typed variants for the layout/style value mini-language.

Raw layout values arrive as JSON scalars. Two string shapes carry meaning:
``"NN%"`` is a percentage of the parent's available size and ``"{a.b}"`` is a
reference into the computed style document. Everything else is a literal.
Values are parsed once, when a :class:`~cardforge_renderer.models.LayoutNode`
is built, so resolution passes never re-match strings.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Union

# Always used with fullmatch; "$" would also accept a trailing newline.
_TOKEN_RE = re.compile(r"\{(.+)\}")
_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Percentage:
    fraction: float

    def resolve(self, available: float) -> float:
        return available * self.fraction


@dataclass(frozen=True)
class TokenRef:
    path: str

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.path.split("."))


Value = Union[Literal, Percentage, TokenRef]


def parse_float_prefix(text: str) -> float:
    """Parse the leading number of ``text``; NaN when there is none."""
    match = _LEADING_FLOAT_RE.match(text)
    if not match:
        return math.nan
    return float(match.group(0))


def parse_value(raw: Any) -> Value:
    if isinstance(raw, (Literal, Percentage, TokenRef)):
        return raw
    if isinstance(raw, str):
        if raw.endswith("%"):
            return Percentage(parse_float_prefix(raw[:-1]) / 100)
        match = _TOKEN_RE.fullmatch(raw)
        if match:
            return TokenRef(match.group(1))
    return Literal(raw)


def parse_number(raw: Any) -> float | None:
    """Numeric reading of a scalar layout value.

    ``None`` and style references give ``None``. Strings use their leading
    number, so ``"12px"`` is 12 and ``"auto"`` is NaN.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        if _TOKEN_RE.fullmatch(raw):
            return None
        return parse_float_prefix(raw)
    return math.nan


def parse_length(raw: Any) -> Value:
    """Like :func:`parse_value`, but literals are always numbers."""
    value = parse_value(raw)
    if isinstance(value, Literal) and not isinstance(value.value, (int, float)):
        number = parse_number(value.value)
        return Literal(math.nan if number is None else number)
    return value
