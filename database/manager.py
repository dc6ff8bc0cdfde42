"""
============================================================================
SITEWATCH - DATABASE MANAGER
============================================================================
Engine and session management, and the site repository used by the
health check engine and its periodic job.
============================================================================
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from sqlalchemy import literal, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import DatabaseSettings, DatabaseType
from database.models import Base, Site
from exceptions.monitoring import RepositoryError
from monitoring.models import SiteMetrics, Target
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Database")


# ============================================================================
# DATABASE MANAGER CLASS
# ============================================================================

class DatabaseManager:
    """
    Owns the async engine and hands out transactional sessions.
    """

    def __init__(self, settings: DatabaseSettings):
        """
        Initialize database manager.

        Args:
            settings: Database section of the application settings
        """
        self.settings = settings
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None
        self._is_initialized = False
        self._lock = asyncio.Lock()

        self.database_url = settings.url

        logger.info(f"DatabaseManager initialized with URL: {self._mask_password(self.database_url)}")

    @staticmethod
    def _mask_password(url: str) -> str:
        """
        Mask password in database URL for logging.
        """
        if "://" not in url:
            return url

        protocol, rest = url.split("://", 1)
        if "@" not in rest:
            return url

        credentials, host_part = rest.split("@", 1)
        if ":" in credentials:
            user, _ = credentials.split(":", 1)
            return f"{protocol}://{user}:****@{host_part}"

        return url

    def _engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self.settings.echo}
        # aiosqlite has no connection pool to size
        if not self.database_url.startswith("sqlite"):
            options.update(
                pool_size=self.settings.pool_size,
                max_overflow=self.settings.max_overflow,
                pool_timeout=self.settings.pool_timeout,
                pool_recycle=self.settings.pool_recycle,
                pool_pre_ping=True,
            )
        return options

    async def initialize(self) -> None:
        """
        Initialize database engine and session factory.
        Creates all tables if they don't exist.
        """
        async with self._lock:
            if self._is_initialized:
                logger.warning("Database already initialized")
                return

            try:
                if self.settings.type == DatabaseType.SQLITE:
                    self.settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)

                self.engine = create_async_engine(self.database_url, **self._engine_options())

                self.session_factory = async_sessionmaker(
                    self.engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )

                await self.create_tables()

                self._is_initialized = True
                logger.info("Database initialized successfully")

            except Exception as e:
                logger.opt(exception=e).error(f"Failed to initialize database: {e}")
                raise

    async def create_tables(self) -> None:
        """
        Create all database tables.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional scope for database operations.

        Example:
            async with db_manager.session() as session:
                site = await session.get(Site, site_id)
        """
        if not self._is_initialized:
            await self.initialize()

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Session error: {e}")
            raise
        finally:
            await session.close()

    async def close(self) -> None:
        """
        Close database connections and cleanup resources.
        """
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connections closed")
            self._is_initialized = False


# ============================================================================
# SITE REPOSITORY
# ============================================================================

class SiteRepository:
    """
    Reads sites for the periodic job and stores the composite result of
    every health check.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.logger = get_logger(self.__class__.__name__)

    async def add_site(
        self,
        url: str,
        name: Optional[str] = None,
        preferred_interval_minutes: int = 5,
    ) -> Target:
        """Register a site to monitor."""
        try:
            async with self.db.session() as session:
                site = Site(
                    url=url,
                    name=name,
                    preferred_interval_minutes=preferred_interval_minutes,
                )
                session.add(site)
                await session.flush()
                target = self._to_target(site)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to add site {url}", table=Site.__tablename__, cause=e) from e

        self.logger.info(f"Site {target.id} added: {url}")
        return target

    async def get_site(self, site_id: str) -> Optional[Target]:
        try:
            async with self.db.session() as session:
                site = await session.get(Site, site_id)
                return self._to_target(site) if site else None
        except SQLAlchemyError as e:
            raise RepositoryError(
                f"Failed to load site {site_id}", table=Site.__tablename__, site_id=site_id, cause=e
            ) from e

    async def get_sites_due_for_check(self, current_minute: int) -> List[Target]:
        """
        Active sites whose preferred interval divides *current_minute*.
        """
        query = select(Site).where(
            Site.is_active.is_(True),
            Site.preferred_interval_minutes > 0,
            literal(current_minute) % Site.preferred_interval_minutes == 0,
        )
        try:
            async with self.db.session() as session:
                result = await session.execute(query)
                return [self._to_target(site) for site in result.scalars().all()]
        except SQLAlchemyError as e:
            raise RepositoryError("Failed to load due sites", table=Site.__tablename__, cause=e) from e

    async def update_metrics(self, site_id: str, metrics: SiteMetrics) -> None:
        """
        Write the composite result of one health check.

        Writing the same metrics twice leaves the row unchanged.
        """
        try:
            async with self.db.session() as session:
                site = await session.get(Site, site_id)
                if site is None:
                    raise RepositoryError(
                        f"Site {site_id} not found", table=Site.__tablename__, site_id=site_id
                    )

                site.last_status = metrics.status
                site.current_response_time_ms = metrics.response_time_ms
                site.response_trend_data = list(metrics.latency_window)
                site.uptime_percentage = metrics.uptime_percentage
                site.stability_percentage = metrics.stability_percentage
                site.p50_ms = metrics.percentiles.p50
                site.p90_ms = metrics.percentiles.p90
                site.p95_ms = metrics.percentiles.p95
                site.p99_ms = metrics.percentiles.p99
                site.is_ssl_valid = metrics.is_ssl_valid
                site.ssl_expires_in_days = metrics.ssl_expires_in_days
                site.health_status = metrics.health_status
                site.last_checked_at = metrics.last_checked_at
        except SQLAlchemyError as e:
            raise RepositoryError(
                f"Failed to update metrics for site {site_id}",
                table=Site.__tablename__,
                site_id=site_id,
                cause=e,
            ) from e

    @staticmethod
    def _to_target(site: Site) -> Target:
        return Target(
            id=site.id,
            url=site.url,
            name=site.name,
            preferred_interval_minutes=site.preferred_interval_minutes,
            latency_window=list(site.response_trend_data or []),
            last_status=site.last_status,
            current_response_time_ms=site.current_response_time_ms or 0,
            uptime_percentage=site.uptime_percentage or 0.0,
            stability_percentage=site.stability_percentage or 0.0,
            p50_ms=site.p50_ms or 0,
            p90_ms=site.p90_ms or 0,
            p95_ms=site.p95_ms or 0,
            p99_ms=site.p99_ms or 0,
            is_ssl_valid=bool(site.is_ssl_valid),
            ssl_expires_in_days=site.ssl_expires_in_days or 0,
            health_status=site.health_status,
            last_checked_at=(
                TimeHelper.ensure_utc(site.last_checked_at) if site.last_checked_at else None
            ),
        )
