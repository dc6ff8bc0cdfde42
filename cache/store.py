"""
============================================================================
SITEWATCH - COUNTER / CACHE STORE
============================================================================
Key-value store holding the rolling per-target state of the engine:
uptime counters, failure streaks, latency windows and cached TLS results.

Contract
--------
    get(key)              -> value or None when absent/expired
    set(key, value, ttl)  -> store a JSON-compatible value, ttl in seconds
    remove(key)           -> delete the key (no error when absent)

No atomic increment is offered. Callers do read-modify-write and accept
that two overlapping cycles of the same target can lose an update.

Backends
--------
MemoryCacheStore   in-process dict with per-key expiry
RedisCacheStore    redis.asyncio client, JSON payloads, EX expiry
============================================================================
"""

import json
import time
from typing import Any, Dict, Optional, Protocol, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import CacheBackend, CacheSettings
from exceptions.monitoring import CacheStoreError
from utils.logger import get_logger


logger = get_logger("CacheStore")


class CacheStore(Protocol):
    """Structural type of every counter/cache store backend."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


# ============================================================================
# IN-MEMORY BACKEND
# ============================================================================

class MemoryCacheStore:
    """
    Dictionary-backed store for single-process deployments and tests.

    Values are kept JSON-encoded so a caller mutating a list it read
    never changes what is stored, exactly like a networked backend.
    Expired entries are dropped lazily on read.
    """

    def __init__(self, key_prefix: str = ""):
        self.key_prefix = key_prefix
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        entry = self._data.get(self._key(key))
        if entry is None:
            return None

        payload, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._data[self._key(key)]
            return None

        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._data[self._key(key)] = (json.dumps(value), expires_at)

    async def remove(self, key: str) -> None:
        self._data.pop(self._key(key), None)

    def __len__(self) -> int:
        return len(self._data)


# ============================================================================
# REDIS BACKEND
# ============================================================================

class RedisCacheStore:
    """
    Redis-backed store shared by every worker of a deployment.

    Backend failures are wrapped in CacheStoreError so the engine sees a
    single error type whatever the backend.
    """

    def __init__(self, client: aioredis.Redis, key_prefix: str = ""):
        self._client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "RedisCacheStore":
        client = aioredis.Redis.from_url(
            settings.redis_connection_url,
            decode_responses=True,
        )
        return cls(client, key_prefix=settings.key_prefix)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            payload = await self._client.get(self._key(key))
        except RedisError as e:
            raise CacheStoreError(f"Failed to read {key}", key=key, operation="get", cause=e) from e

        if payload is None:
            return None
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            await self._client.set(self._key(key), json.dumps(value), ex=ttl or None)
        except RedisError as e:
            raise CacheStoreError(f"Failed to write {key}", key=key, operation="set", cause=e) from e

    async def remove(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except RedisError as e:
            raise CacheStoreError(f"Failed to remove {key}", key=key, operation="remove", cause=e) from e

    async def close(self) -> None:
        await self._client.aclose()


def build_cache_store(settings: CacheSettings):
    """Create the store selected by CacheSettings.backend."""
    if settings.backend == CacheBackend.REDIS:
        logger.info("Using Redis counter/cache store")
        return RedisCacheStore.from_settings(settings)

    logger.info("Using in-memory counter/cache store")
    return MemoryCacheStore(key_prefix=settings.key_prefix)
