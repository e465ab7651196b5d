"""
Shared fixtures: an in-memory API double, a controllable clock and a
recording sleep, so no test touches the network or waits.
"""

from typing import Dict, List, Optional

import pytest

from nodewatch.api.client import ApiError
from nodewatch.api.models import NodeRecord, Snapshot, SnapshotListing, SnapshotSummary
from nodewatch.storage.backends import MemoryBackend
from nodewatch.storage.cache import TTLCache
from nodewatch.utils.config import Config
from nodewatch.utils.monitoring import reset_monitoring

DAY = 24 * 60 * 60
WEEK = 7 * DAY
BASE_TS = 1_700_000_000


def make_snapshot(versions: Dict[str, int], timestamp: int = BASE_TS,
                  total_nodes: Optional[int] = None) -> Snapshot:
    """Snapshot with ``count`` nodes for each version string."""
    nodes = {}
    for version, count in versions.items():
        for i in range(count):
            nodes[f"{version}-{i}.example:8333"] = NodeRecord.from_list([70016, version, timestamp, 1033, 850000])
    return Snapshot(
        timestamp=timestamp,
        total_nodes=len(nodes) if total_nodes is None else total_nodes,
        latest_height=850000,
        nodes=nodes
    )


def summary(timestamp: int) -> SnapshotSummary:
    return SnapshotSummary(url=f"https://api.test/snapshots/{timestamp}/", timestamp=timestamp,
                           total_nodes=10, latest_height=850000)


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


class FakeApiClient:
    """
    Serves canned responses.

    ``pages`` maps a listing URL (None for the first page) to its listing.
    Snapshots default to one marker node per listing entry unless given in
    ``snapshots``. URLs in ``failing`` raise ApiError.
    """

    def __init__(self, latest: Optional[Snapshot] = None,
                 pages: Optional[Dict[Optional[str], SnapshotListing]] = None,
                 snapshots: Optional[Dict[str, Snapshot]] = None,
                 failing: Optional[set] = None):
        self.latest = latest
        self.pages = pages if pages is not None else {}
        self.snapshots = snapshots or {}
        self.failing = failing or set()
        self.calls: List[str] = []

    @property
    def listing_calls(self) -> List[str]:
        return [call for call in self.calls if call.startswith('listing')]

    @property
    def snapshot_calls(self) -> List[str]:
        return [call for call in self.calls if call.startswith('snapshot:')]

    def _maybe_fail(self, key):
        if key in self.failing:
            raise ApiError(str(key), "HTTP 503", 503)

    async def latest_snapshot(self) -> Snapshot:
        self.calls.append('latest')
        self._maybe_fail('latest')
        if self.latest is None:
            raise ApiError('latest', "HTTP 404", 404)
        return self.latest

    async def snapshot_listing(self, url: Optional[str] = None) -> SnapshotListing:
        self.calls.append(f"listing:{url}")
        self._maybe_fail(url)
        return self.pages[url]

    async def snapshot(self, url: str) -> Snapshot:
        self.calls.append(f"snapshot:{url}")
        self._maybe_fail(url)
        if url in self.snapshots:
            return self.snapshots[url]
        return make_snapshot({"/Satoshi:27.0.0/": 2, "/Knots:20240801/": 1})


def paged_listing(timestamps: List[int], per_page: int) -> Dict[Optional[str], SnapshotListing]:
    """Split newest-first timestamps into linked listing pages."""
    pages: Dict[Optional[str], SnapshotListing] = {}
    chunks = [timestamps[i:i + per_page] for i in range(0, len(timestamps), per_page)]
    for index, chunk in enumerate(chunks):
        key = None if index == 0 else f"https://api.test/snapshots/?page={index + 1}"
        next_url = f"https://api.test/snapshots/?page={index + 2}" if index + 1 < len(chunks) else None
        pages[key] = SnapshotListing(
            results=[summary(ts) for ts in chunk],
            count=len(timestamps),
            next=next_url
        )
    return pages


@pytest.fixture(autouse=True)
def no_global_monitor():
    reset_monitoring()
    yield
    reset_monitoring()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def cache(backend, clock) -> TTLCache:
    return TTLCache(backend, clock=clock)


@pytest.fixture
def config() -> Config:
    return Config()
