"""
Database Package for SiteWatch

Provides database connectivity, the site model, and the repository
used by the health check engine, on SQLAlchemy with async support.
"""

from database.manager import (
    DatabaseManager,
    SiteRepository,
)

from database.models import (
    Base,
    Site,
    TimestampMixin,
)

__all__ = [
    # Connection
    "DatabaseManager",

    # Models
    "Base",
    "Site",
    "TimestampMixin",

    # Repositories
    "SiteRepository",
]
