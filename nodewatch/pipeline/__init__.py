"""
Data acquisition and aggregation pipelines.
"""

from .aggregator import Aggregation, VersionCounts, aggregate, count_marker, display_name, percentage, top_versions
from .backfill import HistoricalBackfill, SpacingSampler, sample_by_spacing
from .snapshot_fetcher import LatestSnapshotFetcher
from .status import PipelineState, PipelineStatus
from .scheduler import DashboardScheduler, DashboardState

__all__ = [
    'Aggregation', 'VersionCounts', 'aggregate', 'count_marker', 'display_name', 'percentage', 'top_versions',
    'HistoricalBackfill', 'SpacingSampler', 'sample_by_spacing',
    'LatestSnapshotFetcher',
    'PipelineState', 'PipelineStatus',
    'DashboardScheduler', 'DashboardState'
]
