"""
Version bucketing for a single snapshot.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from ..api.models import NodeRecord, Snapshot

VersionCounts = Dict[str, int]

SATOSHI_PREFIX = '/Satoshi:'


@dataclass(frozen=True)
class Aggregation:
    """Per-version tallies and the marker split of one snapshot."""
    timestamp: int
    total_nodes: int
    marker_count: int
    other_count: int
    version_counts: VersionCounts = field(default_factory=dict)

    @property
    def record_count(self) -> int:
        return self.marker_count + self.other_count

    @property
    def marker_share(self) -> float:
        return percentage(self.marker_count, self.total_nodes)

    @property
    def other_share(self) -> float:
        return percentage(self.other_count, self.total_nodes)


def percentage(count: int, total: int) -> float:
    """count as a percentage of total; 0.0 for an empty total."""
    if not total:
        return 0.0
    return count / total * 100


def count_marker(records: Iterable[NodeRecord], marker: str) -> int:
    """Number of records whose version contains the marker token."""
    return sum(1 for record in records if marker in record.version)


def aggregate(snapshot: Snapshot, marker: str) -> Aggregation:
    """Tally every node of the snapshot by version and by marker match."""
    counts: Counter = Counter()
    marker_count = 0
    other_count = 0

    for record in snapshot.nodes.values():
        version = record.version
        counts[version] += 1
        if marker in version:
            marker_count += 1
        else:
            other_count += 1

    return Aggregation(
        timestamp=snapshot.timestamp,
        total_nodes=snapshot.total_nodes,
        marker_count=marker_count,
        other_count=other_count,
        version_counts=dict(counts)
    )


def display_name(version: str) -> str:
    """
    Shorten a user agent for display.

    The first '/Satoshi:' is removed, then a single leading and a single
    trailing slash, so '/Satoshi:24.0.1/' becomes '24.0.1' and
    '/Knots:20.1/' becomes 'Knots:20.1'.
    """
    name = version.replace(SATOSHI_PREFIX, '', 1)
    if name.startswith('/'):
        name = name[1:]
    if name.endswith('/'):
        name = name[:-1]
    return name


def top_versions(counts: VersionCounts, limit: int = 21) -> List[Tuple[str, int]]:
    """
    The most common versions, largest first.

    Ties keep their encounter order.
    """
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [(display_name(version), count) for version, count in ranked[:limit]]
