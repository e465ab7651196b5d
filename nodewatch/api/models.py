"""
Data model for Bitnodes snapshot responses.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional


class NodeRecord(NamedTuple):
    """Fixed-position record the crawler reports for every reachable node."""
    protocol_version: Optional[int] = None
    user_agent: str = ""
    connected_since: Optional[int] = None
    services: Optional[int] = None
    height: Optional[int] = None
    hostname: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None
    asn: Optional[str] = None
    organization: Optional[str] = None

    @classmethod
    def from_list(cls, values: List[Any]) -> 'NodeRecord':
        """Build a record from the API's positional list, padding short rows."""
        return cls(*values[:len(cls._fields)])

    @property
    def version(self) -> str:
        return self.user_agent


@dataclass(frozen=True)
class Snapshot:
    """All nodes observed by the crawler at one point in time."""
    timestamp: int
    total_nodes: int
    latest_height: int
    nodes: Dict[str, NodeRecord] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to the API's JSON shape."""
        return {
            'timestamp': self.timestamp,
            'total_nodes': self.total_nodes,
            'latest_height': self.latest_height,
            'nodes': {node_id: list(record) for node_id, record in self.nodes.items()}
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Snapshot':
        """Create Snapshot from the API's JSON shape."""
        return cls(
            timestamp=data['timestamp'],
            total_nodes=data['total_nodes'],
            latest_height=data['latest_height'],
            nodes={
                node_id: NodeRecord.from_list(values)
                for node_id, values in data['nodes'].items()
            }
        )


@dataclass(frozen=True)
class SnapshotSummary:
    """One entry of the snapshot listing."""
    url: str
    timestamp: int
    total_nodes: int = 0
    latest_height: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> 'SnapshotSummary':
        return cls(
            url=data['url'],
            timestamp=data['timestamp'],
            total_nodes=data.get('total_nodes', 0),
            latest_height=data.get('latest_height', 0)
        )


@dataclass(frozen=True)
class SnapshotListing:
    """One page of the snapshot listing, newest first."""
    results: List[SnapshotSummary]
    count: int = 0
    next: Optional[str] = None
    previous: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'SnapshotListing':
        return cls(
            results=[SnapshotSummary.from_dict(item) for item in data.get('results') or []],
            count=data.get('count', 0),
            next=data.get('next'),
            previous=data.get('previous')
        )


@dataclass(frozen=True)
class HistoricalPoint:
    """Marker-node count of one sampled snapshot."""
    timestamp: int
    marker_count: int

    def to_dict(self) -> dict:
        return {'timestamp': self.timestamp, 'marker_count': self.marker_count}

    @classmethod
    def from_dict(cls, data: dict) -> 'HistoricalPoint':
        return cls(timestamp=data['timestamp'], marker_count=data['marker_count'])
