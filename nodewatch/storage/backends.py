"""
Key-value storage backends for the local cache.
Supports in-memory, file-based and Redis storage.
"""

import asyncio
import hashlib
import logging
from pathlib import Path
from typing import Optional, Dict, Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..utils.config import CacheConfig


class CacheError(Exception):
    """Custom exception for cache storage operations."""
    pass


class StorageBackend:
    """Abstract base class for storage backends."""

    async def initialize(self):
        """Initialize the storage backend."""
        raise NotImplementedError

    async def get(self, key: str) -> Optional[str]:
        """Return the stored string, or None when the key is absent."""
        raise NotImplementedError

    async def set(self, key: str, value: str):
        """Store a string under key, replacing any previous value."""
        raise NotImplementedError

    async def close(self):
        """Close storage connections."""
        pass


class MemoryBackend(StorageBackend):
    """Process-local dict storage, used for tests and one-off runs."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    async def initialize(self):
        pass

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str):
        self.data[key] = value


class FileBackend(StorageBackend):
    """One file per key under a cache directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.logger = logging.getLogger(__name__)

    async def initialize(self):
        """Create the cache directory."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self.logger.info(f"File cache initialized at {self.directory}")
        except OSError as e:
            raise CacheError(f"Failed to initialize file cache: {e}")

    def _get_file_path(self, key: str) -> Path:
        """Generate file path for key."""
        key_hash = hashlib.sha256(key.encode('utf-8')).hexdigest()[:16]
        return self.directory / f"{key_hash}.json"

    async def get(self, key: str) -> Optional[str]:
        file_path = self._get_file_path(key)
        try:
            return await asyncio.to_thread(file_path.read_text, encoding='utf-8')
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"Error reading {file_path}: {e}")

    async def set(self, key: str, value: str):
        file_path = self._get_file_path(key)
        tmp_path = file_path.with_suffix('.tmp')
        try:
            await asyncio.to_thread(tmp_path.write_text, value, encoding='utf-8')
            await asyncio.to_thread(tmp_path.replace, file_path)
            self.logger.debug(f"Stored cache key {key} to {file_path}")
        except OSError as e:
            raise CacheError(f"Error writing {file_path}: {e}")


class RedisBackend(StorageBackend):
    """Redis storage for sharing the cache between dashboard instances."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.key_prefix = config.get('key_prefix', 'nodewatch:')
        self.client: Optional[redis.Redis] = None
        self.logger = logging.getLogger(__name__)

    async def initialize(self):
        """Connect and ping Redis."""
        try:
            self.client = redis.Redis(
                host=self.config.get('host', 'localhost'),
                port=self.config.get('port', 6379),
                db=self.config.get('db', 0),
                password=self.config.get('password'),
                decode_responses=True
            )
            await self.client.ping()
            self.logger.info("Redis connection established")
        except RedisError as e:
            raise CacheError(f"Failed to initialize Redis cache: {e}")

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(f"{self.key_prefix}{key}")
        except RedisError as e:
            raise CacheError(f"Error reading {key} from Redis: {e}")

    async def set(self, key: str, value: str):
        try:
            await self.client.set(f"{self.key_prefix}{key}", value)
        except RedisError as e:
            raise CacheError(f"Error writing {key} to Redis: {e}")

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.logger.info("Redis connection closed")


def create_backend(config: CacheConfig) -> StorageBackend:
    """Build the storage backend named by the cache configuration."""
    backend_type = config.type.lower()

    if backend_type == 'memory':
        return MemoryBackend()
    elif backend_type == 'file':
        return FileBackend(config.file.get('directory', '.cache'))
    elif backend_type == 'redis':
        return RedisBackend(config.redis)

    raise CacheError(f"Unknown cache type: {backend_type}")
