"""
Value objects passed between the stages of a target pipeline.

Target       a monitored site as the engine sees it
ProbeResult  timing and outcome of one HTTP probe
TLSProbeResult / TLSStatus
             side channel of one TLS probe, and the pair derived from it
Percentiles  nearest-rank latency snapshot
SiteMetrics  the composite record written once per target per cycle
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, NamedTuple, Optional

from config.constants import CheckStatus, HealthStatus
from utils.helpers import TimeHelper


@dataclass
class Target:
    """
    A monitored site.

    Identity and URL are owned by the repository. The metric fields are
    the last values written by the engine and are only read back to seed
    the latency window when the store has lost it.
    """

    id: str
    url: str
    name: Optional[str] = None
    preferred_interval_minutes: int = 5
    latency_window: List[int] = field(default_factory=list)

    last_status: Optional[CheckStatus] = None
    current_response_time_ms: int = 0
    uptime_percentage: float = 0.0
    stability_percentage: float = 0.0
    p50_ms: int = 0
    p90_ms: int = 0
    p95_ms: int = 0
    p99_ms: int = 0
    is_ssl_valid: bool = False
    ssl_expires_in_days: int = 0
    health_status: Optional[HealthStatus] = None
    last_checked_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.name or self.url


@dataclass
class ProbeResult:
    """Result of a single HTTP probe. Always carries a timing sample."""

    elapsed_ms: int
    status: CheckStatus
    status_code: Optional[int] = None
    error_message: Optional[str] = None


@dataclass
class CertificateInfo:
    """Validity window and names of a captured leaf certificate."""

    not_before: datetime
    not_after: datetime
    subject: str = ""
    issuer: str = ""

    def days_remaining(self, now: datetime) -> int:
        return TimeHelper.whole_days_until(self.not_after, now)

    def is_current(self, now: datetime) -> bool:
        now = TimeHelper.ensure_utc(now)
        return (
            TimeHelper.ensure_utc(self.not_before) <= now
            < TimeHelper.ensure_utc(self.not_after)
        )


@dataclass
class TLSProbeResult:
    """
    Side channel filled while a TLS probe runs.

    The certificate is recorded before trust is decided, so it survives
    a rejected handshake. Only lives for the duration of one probe.
    """

    certificate: Optional[CertificateInfo] = None
    policy_errors: List[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return not self.policy_errors


@dataclass(frozen=True)
class TLSStatus:
    """What a TLS probe contributes to the target's metrics."""

    is_valid: bool
    days_remaining: int

    @classmethod
    def invalid(cls) -> "TLSStatus":
        return cls(False, 0)


class Percentiles(NamedTuple):
    p50: int = 0
    p90: int = 0
    p95: int = 0
    p99: int = 0


@dataclass
class SiteMetrics:
    """Composite result of one pipeline run, written in a single call."""

    status: CheckStatus
    response_time_ms: int
    latency_window: List[int]
    uptime_percentage: float
    stability_percentage: float
    percentiles: Percentiles
    is_ssl_valid: bool
    ssl_expires_in_days: int
    health_status: HealthStatus
    last_checked_at: datetime
