"""Design token registry producing the flat token set for one render."""

from __future__ import annotations

from typing import Any, Callable, Mapping

TokenResolver = Callable[[dict[str, Any], "TokenEngine"], Any]


class TokenEngine:
    """Static tokens plus computed tokens derived from the resolved set."""

    def __init__(self) -> None:
        self._tokens: dict[str, Any] = {}
        self._computed: dict[str, TokenResolver] = {}

    def define(self, name: str, value: Any) -> None:
        self._tokens[name] = value
        self._computed.pop(name, None)

    def define_batch(self, tokens: Mapping[str, Any]) -> None:
        for name, value in tokens.items():
            self.define(name, value)

    def define_computed(self, name: str, resolver: TokenResolver) -> None:
        self._computed[name] = resolver

    def get(self, name: str, context: Mapping[str, Any] | None = None, fallback: Any = None) -> Any:
        if name in self._computed:
            return self._computed[name](dict(context or {}), self)
        return self._tokens.get(name, fallback)

    def resolve(self, context: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Static tokens, overridden by ``context``, then computed tokens in definition order."""
        resolved = dict(self._tokens)
        resolved.update(context or {})
        for name, resolver in self._computed.items():
            resolved[name] = resolver(resolved, self)
        return resolved

    def has(self, name: str) -> bool:
        return name in self._tokens or name in self._computed

    def delete(self, name: str) -> None:
        self._tokens.pop(name, None)
        self._computed.pop(name, None)

    def clear(self) -> None:
        self._tokens.clear()
        self._computed.clear()

    def clone(self) -> TokenEngine:
        twin = TokenEngine()
        twin._tokens = dict(self._tokens)
        twin._computed = dict(self._computed)
        return twin

    def keys(self) -> list[str]:
        return list(dict.fromkeys([*self._tokens, *self._computed]))
