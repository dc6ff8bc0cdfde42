"""
============================================================================
SITEWATCH - MONITORING PACKAGE
============================================================================
The health check engine and its pipeline stages:
    • HTTPProber         : one GET per target, Up / Down / Error
    • TLSValidator       : certificate validity and days to expiry
    • MetricsAggregator  : latency window, uptime, failure streak
    • classify_health    : Healthy / Warning / Critical
    • HealthCheckEngine  : bounded batch cycles and on-demand checks
    • HealthCheckJob     : periodic driver of the engine

File layout
-----------
monitoring/
├── __init__.py          ← this file
├── models.py            ← value objects shared by the stages
├── prober.py            ← HTTPProber
├── tls.py               ← TLSValidator
├── metrics.py           ← MetricsAggregator + nearest-rank percentiles
├── health.py            ← classify_health
├── monitor.py           ← HealthCheckEngine
└── scheduler.py         ← HealthCheckJob
============================================================================
"""

from monitoring.models import (
    CertificateInfo,
    Percentiles,
    ProbeResult,
    SiteMetrics,
    Target,
    TLSProbeResult,
    TLSStatus,
)
from monitoring.prober import HTTPProber, build_http_client
from monitoring.tls import TLSValidator, normalize_https_url
from monitoring.metrics import MetricsAggregator, calculate_percentiles, percentile
from monitoring.health import classify_health
from monitoring.monitor import HealthCheckEngine
from monitoring.scheduler import HealthCheckJob

__all__ = [
    # Models
    "CertificateInfo",
    "Percentiles",
    "ProbeResult",
    "SiteMetrics",
    "Target",
    "TLSProbeResult",
    "TLSStatus",

    # Pipeline stages
    "HTTPProber",
    "build_http_client",
    "TLSValidator",
    "normalize_https_url",
    "MetricsAggregator",
    "calculate_percentiles",
    "percentile",
    "classify_health",

    # Orchestration
    "HealthCheckEngine",
    "HealthCheckJob",
]
