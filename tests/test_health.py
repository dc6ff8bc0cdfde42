"""
Unit tests for classify_health.
"""
import pytest

from config.constants import CheckStatus, HealthStatus
from monitoring.health import classify_health


def test_down_is_critical_before_thresholds():
    assert classify_health(CheckStatus.DOWN, 100, 100, 100) == HealthStatus.CRITICAL


def test_error_is_critical():
    assert classify_health(CheckStatus.ERROR, 100, 100, 100) == HealthStatus.CRITICAL


def test_low_uptime_is_warning():
    assert classify_health(CheckStatus.UP, 97, 100, 100) == HealthStatus.WARNING


def test_everything_good_is_healthy():
    assert classify_health(CheckStatus.UP, 99.9, 99.9, 40) == HealthStatus.HEALTHY


@pytest.mark.parametrize(
    "uptime, stability, ssl_days, expected",
    [
        (94.99, 100, 100, HealthStatus.CRITICAL),
        (95.0, 100, 100, HealthStatus.WARNING),
        (99.49, 100, 100, HealthStatus.WARNING),
        (99.5, 100, 100, HealthStatus.HEALTHY),
        (100, 99, 100, HealthStatus.WARNING),
        (100, -3, 100, HealthStatus.WARNING),
        (100, 100, 29, HealthStatus.WARNING),
        (100, 100, 30, HealthStatus.HEALTHY),
        (100, 100, 0, HealthStatus.WARNING),
    ],
)
def test_threshold_boundaries(uptime, stability, ssl_days, expected):
    assert classify_health(CheckStatus.UP, uptime, stability, ssl_days) == expected


def test_unknown_status_falls_through_to_thresholds():
    assert classify_health(None, 100, 100, 100) == HealthStatus.HEALTHY
