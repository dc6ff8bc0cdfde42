"""
============================================================================
SITEWATCH - HEALTH CHECK JOB
============================================================================
Asyncio-native periodic driver of the health check engine. Cycles land on
UTC wall-clock boundaries: every minute of the day that is a multiple of
base_interval_minutes. Each cycle asks the repository for the sites due at
that minute and hands them to the engine as one batch.

A site is due when preferred_interval_minutes > 0 and the cycle minute
is a multiple of it, so a 15-minute site runs at :00, :15, :30 and :45
and a 5-minute base interval covers every multiple of 5.

A failed cycle is logged and counted; the loop keeps running.
============================================================================
"""

import asyncio
import math
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from config.settings import MonitoringSettings
from monitoring.models import SiteMetrics, Target
from monitoring.monitor import HealthCheckEngine
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Scheduler")


class DueSiteSource(Protocol):
    async def get_sites_due_for_check(self, current_minute: int) -> List[Target]:
        ...


def next_cycle_at(now: datetime, interval_minutes: int) -> datetime:
    """
    First moment at or after *now* whose minute of the UTC day is a
    multiple of *interval_minutes*, with seconds zeroed.
    """
    now = TimeHelper.ensure_utc(now)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    interval = timedelta(minutes=interval_minutes)
    slots = math.ceil((now - midnight) / interval)
    return midnight + slots * interval


class HealthCheckJob:
    """
    Periodic health check cycle.

    Usage
    -----
        job = HealthCheckJob(engine, repository, settings.monitoring)
        await job.start()
        # ... later ...
        await job.stop()
    """

    def __init__(
        self,
        engine: HealthCheckEngine,
        repository: DueSiteSource,
        settings: MonitoringSettings,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.engine = engine
        self.repository = repository
        self.interval_minutes = settings.base_interval_minutes
        self.interval_seconds = settings.base_interval_minutes * 60
        self._clock = clock or TimeHelper.get_utc_now
        self._sleep = sleep or asyncio.sleep

        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._last_cycle: Optional[datetime] = None

        self.run_count = 0
        self.error_count = 0
        self.last_run: Optional[datetime] = None
    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the cycle loop."""
        if self._running:
            logger.warning("HealthCheckJob is already running")
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._loop())
        logger.info(f"✓ HealthCheckJob started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the loop, cancelling a cycle in progress."""
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        logger.info("✓ HealthCheckJob stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # MAIN LOOP
    # ------------------------------------------------------------------

    async def _loop(self) -> None:
        logger.info("[Scheduler] Cycle loop started")
        while self._running:
            due = next_cycle_at(self._clock(), self.interval_minutes)
            if self._last_cycle is not None and due <= self._last_cycle:
                due = self._last_cycle + timedelta(minutes=self.interval_minutes)

            delay = (due - self._clock()).total_seconds()
            try:
                if delay > 0:
                    await self._sleep(delay)
                self._last_cycle = due
                await self.run_once(due)
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.error_count += 1
                logger.opt(exception=e).error(f"[Scheduler] Health check cycle FAILED: {e}")

        logger.info("[Scheduler] Cycle loop exited")

    async def run_once(self, now: Optional[datetime] = None) -> Dict[str, SiteMetrics]:
        """
        Run one cycle for the sites due at *now* (default: current UTC time).
        """
        now = now or TimeHelper.get_utc_now()
        sites = await self.repository.get_sites_due_for_check(now.minute)

        if not sites:
            logger.debug(f"[Scheduler] No sites due at minute {now.minute}")
            results: Dict[str, SiteMetrics] = {}
        else:
            logger.info(f"[Scheduler] {len(sites)} sites due at minute {now.minute}")
            results = await self.engine.run_batch(sites, checked_at=now)

        self.run_count += 1
        self.last_run = now
        return results

    def get_stats(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "run_count": self.run_count,
            "error_count": self.error_count,
            "last_run": TimeHelper.format_datetime(self.last_run) if self.last_run else None,
            "in_flight_checks": self.engine.in_flight_checks,
        }
