"""
============================================================================
SITEWATCH - DATABASE MODELS
============================================================================
SQLAlchemy ORM model of a monitored site and its last written metrics.
============================================================================
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, Float, Integer, JSON, String, Text, func
)
from sqlalchemy.orm import declarative_base

from config.constants import CheckStatus, HealthStatus


# ============================================================================
# BASE MODEL CONFIGURATION
# ============================================================================

Base = declarative_base()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.
    Automatically manages these fields.
    """
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utc_now,
        server_default=func.now(),
        index=True
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utc_now,
        onupdate=_utc_now,
        server_default=func.now()
    )


# ============================================================================
# SITE
# ============================================================================

class Site(Base, TimestampMixin):
    """
    A monitored URL with the composite result of its last health check.
    """
    __tablename__ = "sites"

    # Identity
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(500), nullable=True)
    url = Column(Text, nullable=False)

    # Scheduling
    preferred_interval_minutes = Column(Integer, default=5, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    last_checked_at = Column(DateTime(timezone=True), nullable=True)

    # Last probe
    last_status = Column(Enum(CheckStatus), nullable=True)
    current_response_time_ms = Column(Integer, default=0, nullable=False)
    response_trend_data = Column(JSON, default=list, nullable=False)

    # Aggregates
    uptime_percentage = Column(Float, default=0.0, nullable=False)
    stability_percentage = Column(Float, default=0.0, nullable=False)
    p50_ms = Column(Integer, default=0, nullable=False)
    p90_ms = Column(Integer, default=0, nullable=False)
    p95_ms = Column(Integer, default=0, nullable=False)
    p99_ms = Column(Integer, default=0, nullable=False)

    # TLS
    is_ssl_valid = Column(Boolean, default=False, nullable=False)
    ssl_expires_in_days = Column(Integer, default=0, nullable=False)

    # Verdict
    health_status = Column(Enum(HealthStatus), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Site(id={self.id}, url={self.url!r}, health={self.health_status})>"
