"""
Cache Package for SiteWatch

Counter/cache store contract and its memory and Redis backends.
"""

from cache.store import (
    CacheStore,
    MemoryCacheStore,
    RedisCacheStore,
    build_cache_store,
)

__all__ = [
    "CacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
    "build_cache_store",
]
