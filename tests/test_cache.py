"""
Unit tests for the counter/cache store backends.
"""
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

import cache.store as store_module
from cache.store import MemoryCacheStore, RedisCacheStore, build_cache_store
from config.settings import CacheBackend, CacheSettings
from exceptions import CacheStoreError

pytestmark = pytest.mark.anyio


class TestMemoryCacheStore:

    async def test_absent_key_reads_none(self, memory_store):
        assert await memory_store.get("missing") is None

    async def test_set_get_remove(self, memory_store):
        await memory_store.set("Uptime:Total:a", 3)
        assert await memory_store.get("Uptime:Total:a") == 3

        await memory_store.remove("Uptime:Total:a")
        assert await memory_store.get("Uptime:Total:a") is None

    async def test_remove_absent_key_is_noop(self, memory_store):
        await memory_store.remove("never-set")

    async def test_values_are_copies(self, memory_store):
        await memory_store.set("window", [1, 2])

        window = await memory_store.get("window")
        window.append(3)

        assert await memory_store.get("window") == [1, 2]

    async def test_entries_expire(self, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr(store_module, "time", SimpleNamespace(monotonic=lambda: clock[0]))
        store = MemoryCacheStore()

        await store.set("short", 1, ttl=60)
        await store.set("forever", 2)

        clock[0] += 59
        assert await store.get("short") == 1

        clock[0] += 1
        assert await store.get("short") is None
        assert await store.get("forever") == 2
        assert len(store) == 1

    async def test_key_prefix(self):
        store = MemoryCacheStore(key_prefix="sw:")
        await store.set("k", "v")

        assert "sw:k" in store._data


class TestRedisCacheStore:

    @pytest.fixture
    def client(self):
        return AsyncMock()

    async def test_values_serialized_as_json(self, client):
        store = RedisCacheStore(client, key_prefix="sw:")

        await store.set("LatencyWindow:a", [10, 20], ttl=120)

        client.set.assert_awaited_once_with("sw:LatencyWindow:a", json.dumps([10, 20]), ex=120)

    async def test_get_decodes_json(self, client):
        client.get.return_value = "[10, 20]"
        store = RedisCacheStore(client)

        assert await store.get("LatencyWindow:a") == [10, 20]

    async def test_get_absent(self, client):
        client.get.return_value = None

        assert await RedisCacheStore(client).get("x") is None

    async def test_no_ttl_means_no_expiry(self, client):
        await RedisCacheStore(client).set("k", 1)

        client.set.assert_awaited_once_with("k", "1", ex=None)

    @pytest.mark.parametrize("operation", ["get", "set", "remove"])
    async def test_backend_errors_wrapped(self, client, operation):
        for method in (client.get, client.set, client.delete):
            method.side_effect = RedisConnectionError("connection lost")
        store = RedisCacheStore(client)

        with pytest.raises(CacheStoreError) as exc_info:
            if operation == "set":
                await store.set("k", 1)
            else:
                await getattr(store, operation)("k")

        assert exc_info.value.details["operation"] == operation
        assert exc_info.value.details["key"] == "k"
        assert isinstance(exc_info.value.cause, RedisConnectionError)

    async def test_close(self, client):
        await RedisCacheStore(client).close()

        client.aclose.assert_awaited_once()


class TestBuildCacheStore:

    def test_memory_backend(self):
        store = build_cache_store(CacheSettings(backend=CacheBackend.MEMORY, key_prefix="t:"))

        assert isinstance(store, MemoryCacheStore)
        assert store.key_prefix == "t:"

    async def test_redis_backend(self):
        store = build_cache_store(
            CacheSettings(backend=CacheBackend.REDIS, redis_url="redis://localhost:6379/3")
        )
        try:
            assert isinstance(store, RedisCacheStore)
        finally:
            await store.close()
