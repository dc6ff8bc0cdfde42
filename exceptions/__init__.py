"""
Exceptions Package for SiteWatch

Provides the exception hierarchy for error handling
throughout the application.
"""

from exceptions.base import (
    SiteWatchException,
    ConfigurationError,
)

from exceptions.monitoring import (
    MonitoringException,
    CacheStoreError,
    RepositoryError,
)

__all__ = [
    # Base exceptions
    "SiteWatchException",
    "ConfigurationError",

    # Monitoring exceptions
    "MonitoringException",
    "CacheStoreError",
    "RepositoryError",
]
