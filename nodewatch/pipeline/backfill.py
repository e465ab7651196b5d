"""
Historical backfill of the marker-node count.

Walks the paginated snapshot listing (newest first), keeps roughly one
snapshot per week, and counts marker nodes in each kept snapshot.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from ..api.client import SnapshotApiClient
from ..api.models import HistoricalPoint, SnapshotSummary
from ..storage.cache import TTLCache
from ..utils.config import BackfillConfig
from .aggregator import count_marker


class SpacingSampler:
    """
    Greedy spacing filter folded over the listing in arrival order.

    The first summary is kept; a later one is kept only if it lies at least
    ``min_spacing`` seconds from the last kept summary. State carries over
    between listing pages.

    The listing is expected newest first. A summary newer than its
    predecessor is counted in ``ordering_violations``; spacing is only
    guaranteed while that count stays zero.
    """

    def __init__(self, min_spacing: int):
        self.min_spacing = min_spacing
        self.last_kept: Optional[int] = None
        self.last_seen: Optional[int] = None
        self.ordering_violations = 0
        self.logger = logging.getLogger(__name__)

    def accept(self, summary: SnapshotSummary) -> bool:
        if self.last_seen is not None and summary.timestamp > self.last_seen:
            self.ordering_violations += 1
            self.logger.warning(
                f"Listing out of order: {summary.timestamp} follows {self.last_seen}"
            )
        self.last_seen = summary.timestamp

        if self.last_kept is None or abs(summary.timestamp - self.last_kept) >= self.min_spacing:
            self.last_kept = summary.timestamp
            return True
        return False


def sample_by_spacing(summaries: Iterable[SnapshotSummary], min_spacing: int) -> List[SnapshotSummary]:
    """Apply a fresh SpacingSampler to a complete summary sequence."""
    sampler = SpacingSampler(min_spacing)
    return [summary for summary in summaries if sampler.accept(summary)]


class HistoricalBackfill:
    """Builds the ascending marker-count series, cache first."""

    def __init__(self, client: SnapshotApiClient, cache: TTLCache, config: BackfillConfig,
                 marker: str, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.client = client
        self.cache = cache
        self.config = config
        self.marker = marker
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

        # Statistics of the last network walk
        self.stats = {
            'pages_fetched': 0,
            'snapshots_fetched': 0,
            'ordering_violations': 0
        }

    async def run(self) -> List[HistoricalPoint]:
        """
        Return the cached series, or rebuild it from the API.

        Any error aborts the walk; nothing collected so far is cached or
        returned.
        """
        cached = await self.cache.read(self.config.cache_key, self.config.ttl)
        if cached is not None:
            return [HistoricalPoint.from_dict(item) for item in cached]

        points = await self._collect()
        points.sort(key=lambda point: point.timestamp)

        # An empty series renders as "no data"; leave the cache empty so the
        # next run asks the listing again.
        if points:
            await self.cache.write(self.config.cache_key, [point.to_dict() for point in points])
        else:
            self.logger.warning("Snapshot listing yielded no data; nothing cached")
        return points

    async def _collect(self) -> List[HistoricalPoint]:
        sampler = SpacingSampler(self.config.min_spacing)
        points: List[HistoricalPoint] = []
        url: Optional[str] = None
        pages = 0
        snapshots = 0

        while pages < self.config.max_pages:
            if pages:
                await self.sleep(self.config.page_delay)

            listing = await self.client.snapshot_listing(url)
            pages += 1

            kept = [summary for summary in listing.results if sampler.accept(summary)]
            self.logger.debug(f"Listing page {pages}: kept {len(kept)} of {len(listing.results)}")

            for summary in kept:
                snapshot = await self.client.snapshot(summary.url)
                snapshots += 1
                points.append(HistoricalPoint(
                    timestamp=summary.timestamp,
                    marker_count=count_marker(snapshot.nodes.values(), self.marker)
                ))

            if not listing.next:
                break
            url = listing.next

        self.stats = {
            'pages_fetched': pages,
            'snapshots_fetched': snapshots,
            'ordering_violations': sampler.ordering_violations
        }
        self.logger.info(
            f"Backfill walked {pages} listing pages, sampled {snapshots} snapshots"
            + (f", {sampler.ordering_violations} ordering violations" if sampler.ordering_violations else "")
        )
        return points
