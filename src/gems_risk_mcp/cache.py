"""
In-memory TTL cache for Data360 responses

One entry per canonical parameter string. Entries are dropped lazily on a
stale read and in bulk by a background sweep that runs for the lifetime of
the server. All access happens on the event loop thread.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Mapping

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 300.0          # 5 minutes
SWEEP_INTERVAL_SECONDS = 600.0     # 10 minutes


def canonical_key(params: Mapping[str, Any]) -> str:
    """Sort keys so that insertion order never changes the key"""
    return "&".join(f"{key}={params[key]}" for key in sorted(params))


@dataclass
class CacheEntry:
    data: Any
    timestamp: float


class ResponseCache:
    def __init__(self, ttl: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, params: Mapping[str, Any]) -> bool:
        return self.get(params) is not None

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp >= self.ttl

    def get(self, params: Mapping[str, Any]) -> CacheEntry | None:
        key = canonical_key(params)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry

    def put(self, params: Mapping[str, Any], data: Any) -> CacheEntry:
        entry = CacheEntry(data=data, timestamp=self._clock())
        self._entries[canonical_key(params)] = entry
        return entry

    def sweep(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Cache cleanup: removed %d expired entries", len(expired))
        return len(expired)

    async def run_sweeper(self, interval: float = SWEEP_INTERVAL_SECONDS) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    @asynccontextmanager
    async def sweeping(self, interval: float = SWEEP_INTERVAL_SECONDS) -> AsyncIterator["ResponseCache"]:
        """Run the periodic sweep for as long as the context is open"""
        task = asyncio.create_task(self.run_sweeper(interval))
        logger.debug("Cache sweeper started (every %.0fs)", interval)
        try:
            yield self
        finally:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.debug("Cache sweeper stopped")
