"""Bounded LRU cache with lazy TTL expiry, and the asset cache built on it."""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Hashable

from cardforge_core.logging_setup import get_logger

from .models import CacheStats

_log = get_logger("cache")

IMAGE_PREFIX = "img:"
GRADIENT_PREFIX = "grad:"
FONT_PREFIX = "font:"


@dataclass
class CacheEntry:
    value: Any
    last_access: float


class LRUCache:
    """Key/value store holding at most ``max_size`` entries.

    Insertion order of the backing ``OrderedDict`` is the recency order: the
    first entry is always the least recently used one. When ``ttl`` (seconds)
    is set, an entry older than ``ttl`` is treated as absent and deleted by
    the ``get`` that discovers it. Nothing is swept in the background.

    Not thread-safe; give each worker its own instance.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = int(max_size)
        self.ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[Hashable, CacheEntry] = OrderedDict()

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default

        now = self._clock()
        if self.ttl and now - entry.last_access > self.ttl:
            del self._entries[key]
            _log.debug("cache entry expired", extra={"event": "cache_expired"})
            return default

        self._entries.move_to_end(key)
        entry.last_access = now
        return entry.value

    def set(self, key: Hashable, value: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            _log.debug(f"cache evicted {evicted!r}", extra={"event": "cache_evicted"})

        self._entries[key] = CacheEntry(value=value, last_access=self._clock())

    def has(self, key: Hashable) -> bool:
        return key in self._entries

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> list[Hashable]:
        return list(self._entries.keys())

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        return self.size


class AssetCache:
    """Namespaced view over one :class:`LRUCache` for images, gradients and font metrics."""

    def __init__(self, cache: LRUCache | None = None) -> None:
        self.cache = cache if cache is not None else LRUCache()

    def get_image(self, key: str) -> Any:
        return self.cache.get(IMAGE_PREFIX + key)

    def set_image(self, key: str, image: Any) -> None:
        self.cache.set(IMAGE_PREFIX + key, image)

    def get_gradient(self, key: str) -> Any:
        return self.cache.get(GRADIENT_PREFIX + key)

    def set_gradient(self, key: str, gradient: Any) -> None:
        self.cache.set(GRADIENT_PREFIX + key, gradient)

    def get_font_metrics(self, key: str) -> Any:
        return self.cache.get(FONT_PREFIX + key)

    def set_font_metrics(self, key: str, metrics: Any) -> None:
        self.cache.set(FONT_PREFIX + key, metrics)

    def clear(self) -> None:
        self.cache.clear()

    def get_stats(self) -> CacheStats:
        # O(n) scan; asset caches stay small.
        keys = [k for k in self.cache.keys() if isinstance(k, str)]
        return CacheStats(
            images=sum(1 for k in keys if k.startswith(IMAGE_PREFIX)),
            gradients=sum(1 for k in keys if k.startswith(GRADIENT_PREFIX)),
            fonts=sum(1 for k in keys if k.startswith(FONT_PREFIX)),
            total=len(self.cache.keys()),
        )
