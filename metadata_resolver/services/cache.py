from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
import time
from typing import Any

from metadata_resolver.core.config import get_settings


@dataclass(slots=True, frozen=True)
class CacheEntry:
    payload: Any
    stored_at: float


class ResolutionCache:
    """Time-boxed memo of resolved payloads plus the in-flight registry.

    Entries are keyed by the normalized reference string. An entry is readable
    while ``now - stored_at < ttl``; expired entries are dropped on read. The
    map is bounded by ``max_entries`` with least-recently-used eviction.

    All mutations are synchronous, so a lookup followed by a registration
    cannot interleave with another coroutine on the same event loop.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = max(0.0, ttl_seconds)
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry

    def store(self, key: str, payload: Any) -> CacheEntry:
        entry = CacheEntry(payload=payload, stored_at=self._clock())
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return entry

    def pending(self, key: str) -> asyncio.Task[Any] | None:
        return self._inflight.get(key)

    def register(self, key: str, task: asyncio.Task[Any]) -> None:
        self._inflight[key] = task

    def release(self, key: str, task: asyncio.Task[Any] | None) -> None:
        # Only the task that registered the key may remove it.
        if task is not None and self._inflight.get(key) is task:
            del self._inflight[key]

    def inflight_count(self) -> int:
        return len(self._inflight)

    def clear(self) -> None:
        self._entries.clear()
        self._inflight.clear()


@lru_cache
def get_resolution_cache() -> ResolutionCache:
    settings = get_settings()
    return ResolutionCache(
        ttl_seconds=settings.cache_ttl_ms / 1000.0,
        max_entries=settings.cache_max_entries,
    )
