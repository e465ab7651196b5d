"""
Cache-first retrieval of the latest network snapshot.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from ..api.client import SnapshotApiClient
from ..api.models import Snapshot
from ..storage.cache import TTLCache
from ..utils.config import SnapshotConfig


class LatestSnapshotFetcher:
    """
    Returns the latest snapshot, from the cache while it is fresh.

    A cache hit is held back by ``cache_hit_delay`` seconds so both paths take
    a similar time to appear. Errors are not handled here.
    """

    def __init__(self, client: SnapshotApiClient, cache: TTLCache, config: SnapshotConfig,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.client = client
        self.cache = cache
        self.config = config
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

    async def fetch(self) -> Snapshot:
        cached = await self.cache.read(self.config.cache_key, self.config.ttl)
        if cached is not None:
            snapshot = Snapshot.from_dict(cached)
            if self.config.cache_hit_delay:
                await self.sleep(self.config.cache_hit_delay)
            return snapshot

        snapshot = await self.client.latest_snapshot()
        self.logger.info(
            f"Fetched snapshot {snapshot.timestamp} with {snapshot.total_nodes} nodes "
            f"at height {snapshot.latest_height}"
        )
        await self.cache.write(self.config.cache_key, snapshot.to_dict())
        return snapshot
