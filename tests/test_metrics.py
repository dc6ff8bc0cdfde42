"""
Unit tests for the metrics aggregator and nearest-rank percentiles.
"""
import pytest

from config.constants import CacheKeys, CheckStatus
from monitoring.metrics import MetricsAggregator, calculate_percentiles, percentile
from monitoring.models import Percentiles

pytestmark = pytest.mark.anyio


@pytest.fixture
def aggregator(memory_store, monitoring_settings):
    return MetricsAggregator(memory_store, monitoring_settings)


class TestPercentiles:

    def test_fixed_window_values(self):
        result = calculate_percentiles([10, 20, 30, 40, 50])

        assert result == Percentiles(p50=30, p90=50, p95=50, p99=50)

    def test_unsorted_window_is_sorted_first(self):
        window = [50, 10, 40, 20, 30]

        assert calculate_percentiles(window) == Percentiles(30, 50, 50, 50)
        assert window == [50, 10, 40, 20, 30]

    def test_empty_window_is_all_zero(self):
        assert calculate_percentiles([]) == Percentiles(0, 0, 0, 0)
        assert percentile([], 50) == 0

    @pytest.mark.parametrize("window", [[7], [3, 9, 1], [120, 80, 400, 95, 210, 60]])
    def test_p100_is_maximum(self, window):
        assert percentile(sorted(window), 100) == max(window)

    def test_index_is_clamped(self):
        ordered = [5, 6, 7]

        assert percentile(ordered, 0) == 5
        assert percentile(ordered, 150) == 7

    def test_nearest_rank_not_interpolated(self):
        # ceil(0.5 * 4) - 1 = 1
        assert percentile([100, 200, 300, 400], 50) == 200


class TestLatencyWindow:

    async def test_window_created_lazily(self, aggregator, memory_store):
        window = await aggregator.record_sample("site-1", 120, CheckStatus.UP, max_window=5)

        assert window == [120]
        assert await memory_store.get(CacheKeys.latency_window("site-1")) == [120]

    async def test_fifo_eviction_keeps_most_recent(self, aggregator):
        for latency in range(1, 13):
            window = await aggregator.record_sample("site-1", latency, CheckStatus.UP, max_window=5)
            assert len(window) <= 5

        assert window == [8, 9, 10, 11, 12]

    async def test_seed_used_when_store_has_no_window(self, aggregator):
        window = await aggregator.record_sample(
            "site-1", 99, CheckStatus.UP, max_window=3, seed=[1, 2, 3]
        )

        assert window == [2, 3, 99]

    async def test_seed_ignored_when_window_cached(self, aggregator):
        await aggregator.record_sample("site-1", 10, CheckStatus.UP, max_window=3)
        window = await aggregator.record_sample(
            "site-1", 20, CheckStatus.UP, max_window=3, seed=[1, 2, 3]
        )

        assert window == [10, 20]

    async def test_windows_are_per_target(self, aggregator):
        await aggregator.record_sample("a", 10, CheckStatus.UP, max_window=5)
        window = await aggregator.record_sample("b", 20, CheckStatus.UP, max_window=5)

        assert window == [20]


class TestUptime:

    async def test_up_then_down_is_fifty_percent(self, aggregator):
        assert await aggregator.uptime("site-1", CheckStatus.UP) == 100.0
        assert await aggregator.uptime("site-1", CheckStatus.DOWN) == 50.0

    async def test_error_counts_as_not_up(self, aggregator, memory_store):
        await aggregator.uptime("site-1", CheckStatus.UP)
        await aggregator.uptime("site-1", CheckStatus.UP)
        await aggregator.uptime("site-1", CheckStatus.UP)
        result = await aggregator.uptime("site-1", CheckStatus.ERROR)

        assert result == 75.0
        assert await memory_store.get(CacheKeys.uptime_total("site-1")) == 4
        assert await memory_store.get(CacheKeys.uptime_up("site-1")) == 3


class TestStability:

    async def test_three_failures_then_recovery(self, aggregator, memory_store):
        for status in (CheckStatus.DOWN, CheckStatus.ERROR, CheckStatus.DOWN):
            await aggregator.record_sample("site-1", 100, status, max_window=5)

        assert await aggregator.stability("site-1") == 97

        await aggregator.record_sample("site-1", 100, CheckStatus.UP, max_window=5)

        assert await aggregator.stability("site-1") == 100
        assert await memory_store.get(CacheKeys.failure_count("site-1")) is None

    async def test_no_failures_is_full_stability(self, aggregator):
        assert await aggregator.stability("never-checked") == 100.0

    async def test_stability_goes_below_zero(self, aggregator, memory_store):
        await memory_store.set(CacheKeys.failure_count("site-1"), 104)

        await aggregator.record_sample("site-1", 100, CheckStatus.DOWN, max_window=5)

        assert await aggregator.failure_count("site-1") == 105
        assert await aggregator.stability("site-1") == -5.0
