"""
============================================================================
SITEWATCH - HEALTH CHECK ENGINE
============================================================================
Runs the per-target pipeline for a batch of targets under a concurrency
cap, or for a single target on demand.

Architecture
------------
HealthCheckEngine             ← orchestrator, owns the admission gate
├── run_batch()               ← fans out every target via asyncio.gather
│   └── _run_guarded()        ← acquire gate, run pipeline, release
├── check_single()            ← same pipeline, bypasses the gate
└── _run_pipeline()           ← strictly sequential per target:
    ├── HTTPProber            ← GET, headers only, Up/Down/Error
    ├── TLSValidator          ← certificate validity and days remaining
    ├── MetricsAggregator     ← window, uptime, failure streak
    ├── classify_health()     ← Healthy / Warning / Critical
    └── repository            ← one composite write

On-demand checks never wait for a batch permit, so a batch and on-demand
checks together can exceed max_concurrent_checks.

Cancelling the task awaiting run_batch() cancels every pipeline; permits
are released by the semaphore context manager on every path.
============================================================================
"""

import asyncio
from datetime import datetime
from typing import Dict, Iterable, Optional, Protocol

import httpx

from cache.store import CacheStore
from config.constants import CacheKeys
from config.settings import MonitoringSettings, get_settings
from exceptions.base import ConfigurationError, SiteWatchException
from monitoring.health import classify_health
from monitoring.metrics import MetricsAggregator, calculate_percentiles
from monitoring.models import SiteMetrics, Target
from monitoring.prober import HTTPProber, build_http_client
from monitoring.tls import TLSValidator
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("HealthCheckEngine")


class MetricsRepository(Protocol):
    """Write side of the site repository used by the engine."""

    async def update_metrics(self, site_id: str, metrics: SiteMetrics) -> None:
        ...


# ============================================================================
# HEALTH CHECK ENGINE
# ============================================================================

class HealthCheckEngine:
    """
    Async health check orchestrator with a bounded worker pool
    (asyncio.Semaphore) for batch cycles.

    Store and repository errors abort the pipeline of the affected target
    only: a batch logs them and carries on, check_single() raises them.
    """

    def __init__(
        self,
        repository: MetricsRepository,
        cache: CacheStore,
        settings: Optional[MonitoringSettings] = None,
        prober: Optional[HTTPProber] = None,
        tls_validator: Optional[TLSValidator] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Parameters
        ----------
        repository : MetricsRepository
            Receives the composite result of every pipeline.
        cache : CacheStore
            Counter/cache store holding the rolling per-target state.
        settings : MonitoringSettings | None
            Defaults to the application settings.
        prober, tls_validator, http_client
            Collaborators built from settings when not supplied.
        """
        if repository is None:
            raise ConfigurationError("HealthCheckEngine requires a repository", config_key="repository")
        if cache is None:
            raise ConfigurationError("HealthCheckEngine requires a cache store", config_key="cache")

        self.settings = settings or get_settings().monitoring
        self.repository = repository
        self.cache = cache

        # --- collaborators ---
        self._owns_client = prober is None and http_client is None
        if prober is None:
            http_client = http_client or build_http_client(self.settings)
            prober = HTTPProber(http_client)
        self._http_client = http_client
        self.prober = prober
        self.tls_validator = tls_validator or TLSValidator(self.settings, cache=cache)
        self.aggregator = MetricsAggregator(cache, self.settings)

        # --- concurrency control ---
        self._semaphore = asyncio.Semaphore(self.settings.max_concurrent_checks)
        self._in_flight: int = 0  # batch pipelines currently holding a permit

        logger.info(
            f"HealthCheckEngine created — "
            f"max_concurrent={self.settings.max_concurrent_checks}, "
            f"window={self.settings.max_trend_history}"
        )

    @property
    def in_flight_checks(self) -> int:
        return self._in_flight

    async def close(self) -> None:
        """Close the HTTP client if the engine created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------------

    async def run_batch(
        self,
        targets: Iterable[Target],
        checked_at: Optional[datetime] = None,
    ) -> Dict[str, SiteMetrics]:
        """
        Check every target, at most max_concurrent_checks at a time.

        Args:
            targets: Targets to check
            checked_at: Timestamp written with every result (default: now)

        Returns:
            Metrics of each target whose pipeline completed, keyed by id
        """
        targets = list(targets)
        if not targets:
            return {}

        checked_at = checked_at or TimeHelper.get_utc_now()
        logger.debug(f"[Engine] Batch of {len(targets)} targets started")

        tasks = [
            asyncio.create_task(self._run_guarded(target, checked_at))
            for target in targets
        ]
        # One failing target must not cancel the others
        results = await asyncio.gather(*tasks, return_exceptions=True)

        completed: Dict[str, SiteMetrics] = {}
        for target, result in zip(targets, results):
            if isinstance(result, SiteWatchException):
                logger.error(f"[Engine] Check for site {target.id} skipped: {result.log_format()}")
            elif isinstance(result, BaseException):
                logger.opt(exception=result).error(
                    f"[Engine] Check for site {target.id} ({target.url}) failed: {result}"
                )
            else:
                completed[target.id] = result

        logger.info(
            f"[Engine] Batch finished — {len(completed)}/{len(targets)} targets updated"
        )
        return completed

    async def check_single(
        self,
        target: Target,
        checked_at: Optional[datetime] = None,
    ) -> SiteMetrics:
        """
        Check one target immediately, without waiting for a batch permit.

        Store and repository errors propagate to the caller.
        """
        return await self._run_pipeline(target, checked_at or TimeHelper.get_utc_now())

    # ------------------------------------------------------------------
    # GUARDED PIPELINE
    # ------------------------------------------------------------------

    async def _run_guarded(self, target: Target, checked_at: datetime) -> SiteMetrics:
        """
        Acquire the concurrency semaphore, run the pipeline, release.
        """
        async with self._semaphore:
            self._in_flight += 1
            try:
                return await self._run_pipeline(target, checked_at)
            finally:
                self._in_flight -= 1

    async def _run_pipeline(self, target: Target, checked_at: datetime) -> SiteMetrics:
        settings = self.settings

        result = await self.prober.probe(target.url)
        tls = await self.tls_validator.validate(
            target.url, cache_key=CacheKeys.ssl_check(target.id)
        )

        window = await self.aggregator.record_sample(
            target.id,
            result.elapsed_ms,
            result.status,
            settings.max_trend_history,
            seed=target.latency_window,
        )
        percentiles = calculate_percentiles(window)
        uptime = await self.aggregator.uptime(target.id, result.status)
        stability = await self.aggregator.stability(target.id)

        health = classify_health(result.status, uptime, stability, tls.days_remaining)

        metrics = SiteMetrics(
            status=result.status,
            response_time_ms=result.elapsed_ms,
            latency_window=window,
            uptime_percentage=uptime,
            stability_percentage=stability,
            percentiles=percentiles,
            is_ssl_valid=tls.is_valid,
            ssl_expires_in_days=tls.days_remaining,
            health_status=health,
            last_checked_at=checked_at,
        )
        await self.repository.update_metrics(target.id, metrics)

        error = f", error={result.error_message}" if result.error_message else ""
        logger.debug(
            f"[Engine] {target.display_name} → {result.status.value} "
            f"{result.elapsed_ms}ms, uptime={uptime:.2f}%, "
            f"stability={stability:.0f}, ssl_days={tls.days_remaining}, "
            f"health={health.value}{error}"
        )
        return metrics
