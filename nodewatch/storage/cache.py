"""
Time-based expiry on top of a key-value storage backend.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .backends import StorageBackend, CacheError
from ..utils.monitoring import get_monitor


def now_millis() -> int:
    """Current unix time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """A cached JSON value plus the time it was stored."""
    value: Any
    stored_at: int

    def is_fresh(self, ttl: float, now: int) -> bool:
        """True while the entry is younger than ttl seconds."""
        return now - self.stored_at < ttl * 1000

    def to_json(self) -> str:
        return json.dumps({'value': self.value, 'stored_at': self.stored_at})

    @classmethod
    def from_json(cls, raw: str) -> 'CacheEntry':
        data = json.loads(raw)
        return cls(value=data['value'], stored_at=int(data['stored_at']))


class TTLCache:
    """
    Keyed JSON cache whose reads honour a per-call TTL.

    Expiry is decided on read, so entries are never deleted; a stale entry is
    simply overwritten by the next successful write.
    """

    def __init__(self, backend: StorageBackend, clock: Callable[[], int] = now_millis):
        self.backend = backend
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    async def read(self, key: str, ttl: float) -> Optional[Any]:
        """
        Return the cached value for key if it is younger than ttl seconds.

        Unreadable or corrupt entries count as a miss.
        """
        try:
            raw = await self.backend.get(key)
        except CacheError as e:
            self.logger.warning(f"Cache read failed for {key}: {e}")
            raw = None

        entry = None
        if raw is not None:
            try:
                entry = CacheEntry.from_json(raw)
            except (ValueError, KeyError, TypeError) as e:
                self.logger.warning(f"Discarding corrupt cache entry {key}: {e}")

        hit = entry is not None and entry.is_fresh(ttl, self.clock())
        self._record(key, hit)

        if not hit:
            self.logger.debug(f"Cache miss for {key}")
            return None

        age = (self.clock() - entry.stored_at) / 1000
        self.logger.info(f"Using cached {key} ({age:.0f}s old)")
        return entry.value

    async def write(self, key: str, value: Any):
        """Store value under key, stamped with the current time."""
        entry = CacheEntry(value=value, stored_at=self.clock())
        try:
            await self.backend.set(key, entry.to_json())
            self.logger.debug(f"Cached {key}")
        except CacheError as e:
            self.logger.warning(f"Cache write failed for {key}: {e}")

    def _record(self, key: str, hit: bool):
        monitor = get_monitor()
        if monitor:
            monitor.record_cache_lookup(key, hit)
