"""
Snapshot API access.
"""

from .client import SnapshotApiClient, ApiError
from .models import NodeRecord, Snapshot, SnapshotSummary, SnapshotListing, HistoricalPoint

__all__ = [
    'SnapshotApiClient', 'ApiError',
    'NodeRecord', 'Snapshot', 'SnapshotSummary', 'SnapshotListing', 'HistoricalPoint'
]
