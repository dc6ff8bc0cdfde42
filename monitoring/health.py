"""
Health verdict of a target, recomputed every cycle.
"""

from typing import Optional

from config.constants import CheckStatus, HealthStatus, HealthThresholds


def classify_health(
    last_status: Optional[CheckStatus],
    uptime: float,
    stability: float,
    ssl_days: int,
) -> HealthStatus:
    """
    First matching rule wins:

    1. CRITICAL  last probe DOWN/ERROR, or uptime below 95%
    2. WARNING   uptime or stability below 99.5%, or certificate
                 expiring in less than 30 days
    3. HEALTHY
    """
    if last_status in (CheckStatus.DOWN, CheckStatus.ERROR):
        return HealthStatus.CRITICAL
    if uptime < HealthThresholds.CRITICAL_UPTIME:
        return HealthStatus.CRITICAL

    if (
        uptime < HealthThresholds.WARNING_UPTIME
        or stability < HealthThresholds.WARNING_STABILITY
        or ssl_days < HealthThresholds.WARNING_SSL_DAYS
    ):
        return HealthStatus.WARNING

    return HealthStatus.HEALTHY
