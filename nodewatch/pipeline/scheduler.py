"""
Dashboard scheduler that runs the snapshot and history pipelines side by side
and publishes their state to the presentation layer.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..api.client import SnapshotApiClient
from ..api.models import HistoricalPoint
from ..storage.cache import TTLCache
from ..utils.config import Config
from ..utils.logger import get_pipeline_logger
from ..utils.monitoring import get_monitor
from .aggregator import Aggregation, aggregate
from .backfill import HistoricalBackfill
from .snapshot_fetcher import LatestSnapshotFetcher
from .status import PipelineState


@dataclass(frozen=True)
class DashboardState:
    """One output slot per pipeline."""
    snapshot: PipelineState[Aggregation] = field(default_factory=PipelineState.idle)
    history: PipelineState[List[HistoricalPoint]] = field(default_factory=PipelineState.idle)


class DashboardScheduler:
    """
    Coordinates both pipelines.

    Each run starts the snapshot and history pipelines together and waits for
    both. A pipeline writes only its own slot, and every completed pipeline
    triggers ``on_update`` with the new DashboardState, so the two may finish
    in any order and one failing never touches the other.
    """

    def __init__(self, config: Config, client: SnapshotApiClient, cache: TTLCache,
                 on_update: Optional[Callable[[DashboardState], Any]] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.config = config
        self.on_update = on_update
        self.logger = logging.getLogger(__name__)

        self.snapshot_fetcher = LatestSnapshotFetcher(client, cache, config.snapshot, sleep=sleep)
        self.backfill = HistoricalBackfill(
            client, cache, config.backfill, config.aggregation.marker, sleep=sleep
        )

        self.state = DashboardState()
        self.runs = 0
        self.closed = False

    def _pipelines(self) -> Dict[str, Callable[[], Awaitable[Any]]]:
        pipelines = {'snapshot': self._load_snapshot}
        if self.config.backfill.enabled:
            pipelines['history'] = self.backfill.run
        return pipelines

    async def run_once(self) -> DashboardState:
        """Run every enabled pipeline once and return the resulting state."""
        if self.closed:
            self.logger.warning("Scheduler is closed")
            return self.state

        self.runs += 1
        pipelines = self._pipelines()

        # Slots that already hold data keep showing it while they refresh
        for name in pipelines:
            if not getattr(self.state, name).is_ready:
                self._set(name, PipelineState.loading(), notify=False)
        self._notify()

        await asyncio.gather(*(
            self._run_pipeline(name, producer) for name, producer in pipelines.items()
        ))
        return self.state

    async def watch(self, interval: float, shutdown_event: asyncio.Event):
        """Refresh every ``interval`` seconds until shutdown is requested."""
        while not shutdown_event.is_set() and not self.closed:
            await self.run_once()
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    async def _load_snapshot(self) -> Aggregation:
        snapshot = await self.snapshot_fetcher.fetch()
        aggregation = aggregate(snapshot, self.config.aggregation.marker)

        monitor = get_monitor()
        if monitor:
            monitor.update_marker_share(aggregation.marker_share)
        return aggregation

    async def _run_pipeline(self, name: str, producer: Callable[[], Awaitable[Any]]):
        """Run one pipeline, translating any failure into its Failed state."""
        logger = get_pipeline_logger(__name__, pipeline=name)
        start_time = time.time()

        try:
            data = await producer()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            duration = time.time() - start_time
            logger.log_pipeline_event(logging.ERROR, 'failed', f"Pipeline failed after {duration:.1f}s: {e}",
                                      exc_info=True)
            self._record(name, False, duration)

            if getattr(self.state, name).is_ready:
                logger.warning("Keeping data from the previous run")
            else:
                self._set(name, PipelineState.failed(e))
            return

        duration = time.time() - start_time
        self._record(name, True, duration)
        if name == 'history':
            monitor = get_monitor()
            if monitor:
                monitor.update_historical_points(len(data))

        logger.log_pipeline_event(logging.INFO, 'ready', f"Pipeline ready in {duration:.1f}s")
        self._set(name, PipelineState.ready(data))

    def _set(self, name: str, state: PipelineState, notify: bool = True):
        if self.closed:
            self.logger.debug(f"Dropping {state.status.value} update for {name}: scheduler closed")
            return
        self.state = replace(self.state, **{name: state})
        if notify:
            self._notify()

    def _notify(self):
        if self.on_update is None:
            return
        try:
            self.on_update(self.state)
        except Exception as e:
            self.logger.error(f"Error in update handler: {e}", exc_info=True)

    def _record(self, name: str, success: bool, duration: float):
        monitor = get_monitor()
        if monitor:
            monitor.record_pipeline_run(name, success, duration)

    def close(self):
        """Stop accepting pipeline results."""
        self.closed = True
        self.logger.info("Dashboard scheduler closed")

    def get_stats(self) -> Dict[str, Any]:
        """Get current scheduler statistics."""
        return {
            'runs': self.runs,
            'snapshot_status': self.state.snapshot.status.value,
            'history_status': self.state.history.status.value,
            'backfill': dict(self.backfill.stats),
            'closed': self.closed
        }
