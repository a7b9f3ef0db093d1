"""Keyed memoization for slow reads.

One ``MemoizedFetch`` instance is created at startup and handed to the
services that need it (``app.state.memo``); tests build their own with a
fake clock.

Per key:
  * concurrent callers share one in-flight fetch;
  * a value fetched less than ``min_interval`` ago is returned as-is, even
    when the caller forces a refresh or the key was invalidated;
  * a value younger than ``ttl`` is returned unless forced/invalidated;
  * a fetch that raises or exceeds ``timeout`` yields the last good value,
    or ``default`` when there is none.

Entries older than ``max_age`` (ten TTLs by default) are evicted whenever a
fresh value is stored, so the map stays bounded by the keys in active use.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

log = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    value: Any
    fetched_at: float
    stale: bool = False


class MemoizedFetch:
    def __init__(
        self,
        ttl: float = 30.0,
        min_interval: float = 3.0,
        timeout: float | None = 5.0,
        clock: Callable[[], float] = time.monotonic,
        max_age: float | None = None,
    ) -> None:
        self.ttl = ttl
        # entries older than max_age are dropped on the next successful write
        self.max_age = max_age if max_age is not None else ttl * 10
        self.min_interval = min_interval
        self.timeout = timeout
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._pending: dict[str, asyncio.Future] = {}

    async def get(self, key: str, fetch: Fetcher, default: Any = None, force: bool = False) -> Any:
        pending = self._pending.get(key)
        if pending is not None:
            log.debug("memo join in-flight %s", key)
            return await asyncio.shield(pending)

        entry = self._entries.get(key)
        if entry is not None:
            age = self._clock() - entry.fetched_at
            if age < self.min_interval:
                log.debug("memo throttled %s (%.2fs)", key, age)
                return entry.value
            if age < self.ttl and not (force or entry.stale):
                log.debug("memo hit %s", key)
                return entry.value

        log.debug("memo miss %s", key)
        task = asyncio.ensure_future(self._run(key, fetch, default))
        self._pending[key] = task
        return await asyncio.shield(task)

    async def _run(self, key: str, fetch: Fetcher, default: Any) -> Any:
        try:
            if self.timeout is None:
                value = await fetch()
            else:
                value = await asyncio.wait_for(fetch(), timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warning("memo fetch %s timed out after %.1fs", key, self.timeout)
            return self._fallback(key, default)
        except Exception:
            log.warning("memo fetch %s failed", key, exc_info=True)
            return self._fallback(key, default)
        else:
            now = self._clock()
            self._evict(now)
            self._entries[key] = CacheEntry(value=value, fetched_at=now)
            return value
        finally:
            self._pending.pop(key, None)

    def _evict(self, now: float) -> int:
        old = [k for k, e in self._entries.items() if now - e.fetched_at > self.max_age]
        for k in old:
            del self._entries[k]
        if old:
            log.debug("memo evicted %d entries", len(old))
        return len(old)

    def _fallback(self, key: str, default: Any) -> Any:
        entry = self._entries.get(key)
        if entry is not None:
            return entry.value
        return default() if callable(default) else default

    def peek(self, key: str) -> Any:
        entry = self._entries.get(key)
        return entry.value if entry else None

    def invalidate(self, prefix: str = "") -> int:
        """Mark matching keys stale; their values stay as failure fallback."""
        n = 0
        for key, entry in self._entries.items():
            if key.startswith(prefix):
                entry.stale = True
                n += 1
        return n
