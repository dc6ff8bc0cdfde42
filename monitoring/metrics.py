"""
============================================================================
SITEWATCH - METRICS AGGREGATOR
============================================================================
Rolling per-target metrics kept in the counter/cache store:

    LatencyWindow:{id}   last N latency samples, oldest first
    Uptime:Total:{id}    checks performed
    Uptime:Up:{id}       checks that came back UP
    FailureCount:{id}    consecutive non-UP checks, absent while zero

Counters are read-increment-write with no compare-and-swap. Two cycles of
the same target overlapping (a batch and an on-demand check) can lose an
increment; the percentages stay those of the simple counting model.
============================================================================
"""

import math
from typing import List, Optional, Sequence

from cache.store import CacheStore
from config.constants import CacheKeys, CheckStatus
from config.settings import MonitoringSettings
from monitoring.models import Percentiles
from utils.logger import get_logger


logger = get_logger("Metrics")


# ============================================================================
# PERCENTILES
# ============================================================================

def percentile(sorted_samples: Sequence[int], p: float) -> int:
    """
    Nearest-rank percentile of an ascending sequence.

    index = ceil(p / 100 * n) - 1, clamped to [0, n - 1]. Returns 0 for
    an empty sequence.
    """
    n = len(sorted_samples)
    if n == 0:
        return 0
    index = math.ceil(p / 100 * n) - 1
    index = max(0, min(index, n - 1))
    return sorted_samples[index]


def calculate_percentiles(window: Sequence[int]) -> Percentiles:
    if not window:
        return Percentiles()

    ordered = sorted(window)
    return Percentiles(
        p50=percentile(ordered, 50),
        p90=percentile(ordered, 90),
        p95=percentile(ordered, 95),
        p99=percentile(ordered, 99),
    )


# ============================================================================
# AGGREGATOR
# ============================================================================

class MetricsAggregator:
    """
    Maintains the latency window, uptime counters and failure streak of
    every target.

    Absent keys read as empty/zero, so state is created lazily on the
    first sample. Store errors propagate to the caller.
    """

    def __init__(self, cache: CacheStore, settings: MonitoringSettings):
        self.cache = cache
        self.counter_ttl = settings.counter_ttl_seconds

    async def record_sample(
        self,
        site_id: str,
        latency_ms: int,
        status: CheckStatus,
        max_window: int,
        seed: Optional[List[int]] = None,
    ) -> List[int]:
        """
        Append a latency sample and update the failure streak.

        Args:
            site_id: Target id
            latency_ms: Elapsed time of the probe
            status: Probe outcome
            max_window: Maximum window length, oldest samples evicted first
            seed: Window to start from when the store holds none

        Returns:
            The window after insertion and eviction
        """
        window_key = CacheKeys.latency_window(site_id)
        window = await self.cache.get(window_key)
        if window is None:
            window = list(seed or [])

        window.append(int(latency_ms))
        while len(window) > max_window:
            window.pop(0)
        await self.cache.set(window_key, window, self.counter_ttl)

        failure_key = CacheKeys.failure_count(site_id)
        if CheckStatus.is_successful(status):
            await self.cache.remove(failure_key)
        else:
            failures = await self.failure_count(site_id)
            await self.cache.set(failure_key, failures + 1, self.counter_ttl)

        return window

    async def uptime(self, site_id: str, status: CheckStatus) -> float:
        """Count this check and return the cumulative UP percentage."""
        total_key = CacheKeys.uptime_total(site_id)
        up_key = CacheKeys.uptime_up(site_id)

        total = int(await self.cache.get(total_key) or 0) + 1
        up = int(await self.cache.get(up_key) or 0)
        if CheckStatus.is_successful(status):
            up += 1

        await self.cache.set(total_key, total, self.counter_ttl)
        await self.cache.set(up_key, up, self.counter_ttl)

        if total == 0:
            return 100.0
        return up / total * 100

    async def failure_count(self, site_id: str) -> int:
        return int(await self.cache.get(CacheKeys.failure_count(site_id)) or 0)

    async def stability(self, site_id: str) -> float:
        # Not clamped: more than 100 straight failures goes below zero.
        failures = await self.failure_count(site_id)
        return 100.0 - failures
