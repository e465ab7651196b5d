"""
Monitoring and metrics collection for the node version dashboard.
"""

import time
import logging
from typing import Dict, Optional, Any

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
from prometheus_client import start_http_server


class MetricsCollector:
    """Collects dashboard metrics in a private Prometheus registry."""

    def __init__(self, enable_server: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_server = enable_server
        self.prometheus_port = prometheus_port
        self.registry = CollectorRegistry()

        # Latest value of every series, readable without scraping
        self.current_values: Dict[str, float] = {}

        self.prometheus_metrics = {
            'api_requests_total': Counter(
                'nodewatch_api_requests_total',
                'Snapshot API requests',
                ['endpoint', 'outcome'],
                registry=self.registry
            ),
            'cache_lookups_total': Counter(
                'nodewatch_cache_lookups_total',
                'Cache lookups by key and result',
                ['key', 'result'],
                registry=self.registry
            ),
            'pipeline_runs_total': Counter(
                'nodewatch_pipeline_runs_total',
                'Completed pipeline runs',
                ['pipeline', 'outcome'],
                registry=self.registry
            ),
            'pipeline_duration_seconds': Histogram(
                'nodewatch_pipeline_duration_seconds',
                'Wall time of one pipeline run',
                ['pipeline'],
                registry=self.registry
            ),
            'historical_points': Gauge(
                'nodewatch_historical_points',
                'Points in the last historical series',
                registry=self.registry
            ),
            'marker_share_percent': Gauge(
                'nodewatch_marker_share_percent',
                'Share of nodes matching the marker in the latest snapshot',
                registry=self.registry
            ),
        }

        self.logger.info("Prometheus metrics initialized")

    def start_server(self):
        """Start Prometheus metrics HTTP server."""
        if not self.enable_server:
            return

        try:
            start_http_server(self.prometheus_port, registry=self.registry)
            self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def _series_name(self, name: str, labels: Optional[Dict[str, str]]) -> str:
        if not labels:
            return name
        label_text = ','.join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_text}}}"

    def increment_counter(self, name: str, labels: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        metric = self.prometheus_metrics[name]
        if labels:
            metric.labels(**labels).inc()
        else:
            metric.inc()

        series = self._series_name(name, labels)
        self.current_values[series] = self.current_values.get(series, 0) + 1

    def set_gauge(self, name: str, value: float):
        """Set a gauge metric value."""
        self.prometheus_metrics[name].set(value)
        self.current_values[name] = value

    def observe_histogram(self, name: str, value: float, labels: Optional[Dict[str, str]] = None):
        """Record a histogram observation."""
        metric = self.prometheus_metrics[name]
        if labels:
            metric.labels(**labels).observe(value)
        else:
            metric.observe(value)
        self.current_values[self._series_name(name, labels)] = value

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all recorded series."""
        return self.current_values.copy()


class DashboardMonitor:
    """High-level monitoring interface for the dashboard pipelines."""

    def __init__(self, metrics_collector: MetricsCollector):
        self.metrics = metrics_collector
        self.start_time = time.time()

    def record_request(self, endpoint: str, success: bool):
        """Record one API request."""
        outcome = 'success' if success else 'error'
        self.metrics.increment_counter('api_requests_total', {'endpoint': endpoint, 'outcome': outcome})

    def record_cache_lookup(self, key: str, hit: bool):
        """Record a cache hit or miss."""
        result = 'hit' if hit else 'miss'
        self.metrics.increment_counter('cache_lookups_total', {'key': key, 'result': result})

    def record_pipeline_run(self, pipeline: str, success: bool, duration: float):
        """Record a finished pipeline run."""
        outcome = 'success' if success else 'error'
        self.metrics.increment_counter('pipeline_runs_total', {'pipeline': pipeline, 'outcome': outcome})
        self.metrics.observe_histogram('pipeline_duration_seconds', duration, {'pipeline': pipeline})

    def update_historical_points(self, count: int):
        self.metrics.set_gauge('historical_points', count)

    def update_marker_share(self, percent: float):
        self.metrics.set_gauge('marker_share_percent', percent)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        return {
            'runtime_seconds': time.time() - self.start_time,
            'metrics': self.metrics.get_current_values(),
        }


# Global monitoring instance
_global_monitor: Optional[DashboardMonitor] = None


def initialize_monitoring(enable_server: bool = False, prometheus_port: int = 8000) -> DashboardMonitor:
    """Initialize global monitoring."""
    global _global_monitor

    metrics_collector = MetricsCollector(enable_server, prometheus_port)
    _global_monitor = DashboardMonitor(metrics_collector)

    return _global_monitor


def get_monitor() -> Optional[DashboardMonitor]:
    """Get the global monitor instance."""
    return _global_monitor


def reset_monitoring():
    """Drop the global monitor."""
    global _global_monitor
    _global_monitor = None
