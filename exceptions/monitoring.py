"""
Monitoring Exception Classes for SiteWatch

Errors raised by the collaborators of the health check engine.
Probe and TLS failures are not exceptions: they are mapped to
outcomes where they happen.
"""

from __future__ import annotations

from typing import Any, Optional

from config.constants import ErrorCodes
from exceptions.base import SiteWatchException


class MonitoringException(SiteWatchException):
    """
    Base Monitoring Exception

    Parent class for all errors surfaced by a target pipeline.
    """

    default_error_code = ErrorCodes.MONITORING_ERROR

    def __init__(
        self,
        message: str,
        site_id: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if site_id:
            self.details["site_id"] = site_id


class CacheStoreError(MonitoringException):
    """
    Cache Store Error

    Raised when the counter/cache store cannot be read or written.
    The pipeline of the affected target is abandoned for this cycle.
    """

    default_error_code = ErrorCodes.CACHE_STORE_ERROR

    def __init__(
        self,
        message: str = "Counter/cache store unavailable",
        key: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if key:
            self.details["key"] = key

        if operation:
            self.details["operation"] = operation


class RepositoryError(MonitoringException):
    """
    Repository Error

    Raised when the composite metrics write of a target fails.
    """

    default_error_code = ErrorCodes.REPOSITORY_ERROR
    default_recoverable = False

    def __init__(
        self,
        message: str = "Unable to persist site metrics",
        table: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if table:
            self.details["table"] = table
