"""
Configuration management for the node version dashboard.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class ApiConfig:
    """Configuration for the snapshot API client."""
    base_url: str = "https://bitnodes.io/api/v1"
    user_agent: str = "nodewatch/1.0"
    request_timeout: int = 60


@dataclass
class AggregationConfig:
    """Configuration for version bucketing."""
    marker: str = "Knots"
    marker_label: str = "Knots"
    other_label: str = "Core"
    table_limit: int = 21


@dataclass
class SnapshotConfig:
    """Configuration for the latest-snapshot pipeline."""
    cache_key: str = "latest-snapshot"
    ttl: float = 21 * 60
    cache_hit_delay: float = 3.0


@dataclass
class BackfillConfig:
    """Configuration for the historical backfill pipeline."""
    enabled: bool = True
    cache_key: str = "historical-series"
    ttl: float = 24 * 60 * 60
    max_pages: int = 12
    page_delay: float = 1.0
    min_spacing: int = 7 * 24 * 60 * 60


@dataclass
class CacheConfig:
    """Configuration for the local key-value cache."""
    type: str = "file"
    file: Dict[str, Any] = field(default_factory=lambda: {'directory': '.cache'})
    redis: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PresentationConfig:
    """Configuration for the rendered dashboard."""
    output: str = "dashboard.html"
    title: str = "Knots Go Up"
    refresh_interval: float = 21 * 60


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/nodewatch.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    api: ApiConfig = field(default_factory=ApiConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    backfill: BackfillConfig = field(default_factory=BackfillConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    presentation: PresentationConfig = field(default_factory=PresentationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            config_data = yaml.safe_load(file) or {}

        # Missing sections fall back to their defaults
        self._config = Config(
            api=ApiConfig(**config_data.get('api', {})),
            aggregation=AggregationConfig(**config_data.get('aggregation', {})),
            snapshot=SnapshotConfig(**config_data.get('snapshot', {})),
            backfill=BackfillConfig(**config_data.get('backfill', {})),
            cache=CacheConfig(**config_data.get('cache', {})),
            presentation=PresentationConfig(**config_data.get('presentation', {})),
            logging=LoggingConfig(**config_data.get('logging', {})),
            monitoring=MonitoringConfig(**config_data.get('monitoring', {}))
        )

        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ValueError("Configuration not loaded")

        if not self._config.api.base_url.startswith(('http://', 'https://')):
            raise ValueError("api.base_url must be an http(s) URL")

        if not self._config.aggregation.marker:
            raise ValueError("aggregation.marker must not be empty")

        if self._config.aggregation.table_limit < 1:
            raise ValueError("table_limit must be at least 1")

        if self._config.snapshot.ttl <= 0 or self._config.backfill.ttl <= 0:
            raise ValueError("cache TTLs must be positive")

        if self._config.snapshot.cache_hit_delay < 0 or self._config.backfill.page_delay < 0:
            raise ValueError("delays must be non-negative")

        if self._config.backfill.max_pages < 1:
            raise ValueError("max_pages must be at least 1")

        # Validate cache type
        if self._config.cache.type not in ['memory', 'file', 'redis']:
            raise ValueError("Cache type must be 'memory', 'file' or 'redis'")

        logging.info("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
