# tests/conftest.py
import asyncio
from typing import List, Tuple

import pytest
from loguru import logger

from cache.store import MemoryCacheStore
from config.settings import MonitoringSettings
from monitoring.models import SiteMetrics


@pytest.fixture
def anyio_backend():
    """The engine is built on asyncio primitives."""
    return "asyncio"


@pytest.fixture
def log_messages():
    """Messages logged through loguru while the test runs."""
    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def memory_store():
    return MemoryCacheStore()


@pytest.fixture
def monitoring_settings():
    return MonitoringSettings(
        max_concurrent_checks=2,
        max_trend_history=5,
        ssl_cache_ttl_seconds=3600,
    )


class RecordingRepository:
    """Keeps every composite write in memory."""

    def __init__(self, failing_ids=()):
        self.updates: List[Tuple[str, SiteMetrics]] = []
        self.failing_ids = set(failing_ids)

    async def update_metrics(self, site_id: str, metrics: SiteMetrics) -> None:
        if site_id in self.failing_ids:
            raise RuntimeError(f"write failed for {site_id}")
        self.updates.append((site_id, metrics))


@pytest.fixture
def repository():
    return RecordingRepository()


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)
