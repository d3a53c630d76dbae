"""
Local Storage Module
"""
from .local_cache import (
    LocalCacheStore,
    RedisCacheStore,
    SQLiteCacheStore,
    cache_key,
    create_local_store,
)

__all__ = [
    "LocalCacheStore",
    "RedisCacheStore",
    "SQLiteCacheStore",
    "cache_key",
    "create_local_store",
]
