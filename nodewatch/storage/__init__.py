"""
Local cache layer for fetched snapshots and derived series.
"""

from .backends import StorageBackend, MemoryBackend, FileBackend, RedisBackend, CacheError, create_backend
from .cache import TTLCache, CacheEntry

__all__ = [
    'StorageBackend', 'MemoryBackend', 'FileBackend', 'RedisBackend', 'CacheError',
    'create_backend', 'TTLCache', 'CacheEntry'
]
