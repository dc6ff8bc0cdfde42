"""
Configuration Package for SiteWatch

This package contains all configuration-related modules including:
- Settings management with environment variable support
- Constants, enumerations and fixed thresholds
"""

from config.settings import (
    Settings,
    DatabaseSettings,
    MonitoringSettings,
    LoggingSettings,
    CacheSettings,
    CacheBackend,
    DatabaseType,
    get_settings,
)

from config.constants import (
    CheckStatus,
    HealthStatus,
    StatusCodes,
    HealthThresholds,
    CacheKeys,
    ErrorCodes,
)

__all__ = [
    # Settings
    "Settings",
    "DatabaseSettings",
    "MonitoringSettings",
    "LoggingSettings",
    "CacheSettings",
    "CacheBackend",
    "DatabaseType",
    "get_settings",

    # Constants
    "CheckStatus",
    "HealthStatus",
    "StatusCodes",
    "HealthThresholds",
    "CacheKeys",
    "ErrorCodes",
]
