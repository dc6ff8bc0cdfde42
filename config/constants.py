"""
Constants Module for SiteWatch

Contains constant values, enumerations, key templates and fixed
thresholds used throughout the health check engine.
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class CheckStatus(str, Enum):
    """
    Probe Outcome Enumeration

    Tri-state result of one HTTP probe against a target.
    """

    UP = "up"
    DOWN = "down"
    ERROR = "error"

    @classmethod
    def is_successful(cls, status: "CheckStatus") -> bool:
        """Check if the probe succeeded."""
        return status == cls.UP


class HealthStatus(str, Enum):
    """
    Health Verdict Enumeration

    Derived every cycle from status, uptime, stability and TLS expiry.
    """

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class StatusCodes:
    """HTTP status code categories."""

    @classmethod
    def is_success(cls, code: int) -> bool:
        """2xx and 3xx responses count as the target being up."""
        return 200 <= code < 400


class HealthThresholds:
    """
    Fixed classification thresholds.

    Critical below 95% uptime (about 8.4 hours of downtime per week),
    Warning below 99.5% (about 36 minutes per month) or when the
    certificate expires within 30 days.
    """

    CRITICAL_UPTIME: Final[float] = 95.0
    WARNING_UPTIME: Final[float] = 99.5
    WARNING_STABILITY: Final[float] = 99.5
    WARNING_SSL_DAYS: Final[int] = 30


class CacheKeys:
    """
    Cache Key Templates

    Per-target keys used in the counter/cache store.
    """

    UPTIME_TOTAL: Final[str] = "Uptime:Total:{site_id}"
    UPTIME_UP: Final[str] = "Uptime:Up:{site_id}"
    FAILURE_COUNT: Final[str] = "FailureCount:{site_id}"
    LATENCY_WINDOW: Final[str] = "LatencyWindow:{site_id}"
    SSL_CHECK: Final[str] = "SSLCheck:{site_id}"

    @classmethod
    def uptime_total(cls, site_id: str) -> str:
        return cls.UPTIME_TOTAL.format(site_id=site_id)

    @classmethod
    def uptime_up(cls, site_id: str) -> str:
        return cls.UPTIME_UP.format(site_id=site_id)

    @classmethod
    def failure_count(cls, site_id: str) -> str:
        return cls.FAILURE_COUNT.format(site_id=site_id)

    @classmethod
    def latency_window(cls, site_id: str) -> str:
        return cls.LATENCY_WINDOW.format(site_id=site_id)

    @classmethod
    def ssl_check(cls, site_id: str) -> str:
        return cls.SSL_CHECK.format(site_id=site_id)


class ErrorCodes:
    """Application error codes."""

    # General errors (1xxx)
    UNKNOWN_ERROR: Final[int] = 1000
    CONFIGURATION_ERROR: Final[int] = 1002

    # Database errors (2xxx)
    REPOSITORY_ERROR: Final[int] = 2000

    # Monitoring errors (5xxx)
    MONITORING_ERROR: Final[int] = 5000
    CACHE_STORE_ERROR: Final[int] = 5004
