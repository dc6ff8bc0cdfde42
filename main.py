"""
============================================================================
SITEWATCH - MAIN APPLICATION
============================================================================
Runs the health check engine as a standalone service.

Startup Order
-------------
1.  Load settings & configure logging
2.  Initialize DatabaseManager (create tables if needed)
3.  Build the counter/cache store
4.  Wire up HealthCheckEngine (needs repository + cache store)
5.  Start HealthCheckJob (every base_interval_minutes)
6.  Wait for SIGINT / SIGTERM

Shutdown Order (reverse)
-------------------------
Stop job (cancels a cycle in progress) → close engine HTTP client →
close cache store → close DB → exit
============================================================================
"""

import asyncio
import signal
import sys
from typing import Optional

from cache.store import CacheStore, build_cache_store
from config.settings import Settings, get_settings
from database.manager import DatabaseManager, SiteRepository
from monitoring.monitor import HealthCheckEngine
from monitoring.scheduler import HealthCheckJob
from utils.logger import get_logger, setup_logging


logger = get_logger("Main")


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class SiteWatchApplication:
    """
    Top-level application orchestrator.

    Owns every subsystem and is the single place that knows the startup /
    shutdown order.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        # --- subsystems (populated during startup) ---
        self.db_manager: Optional[DatabaseManager] = None
        self.repository: Optional[SiteRepository] = None
        self.cache: Optional[CacheStore] = None
        self.engine: Optional[HealthCheckEngine] = None
        self.job: Optional[HealthCheckJob] = None

        self._stop_event = asyncio.Event()

    # ==================================================================
    # STARTUP
    # ==================================================================

    async def startup(self) -> None:
        """
        Execute the startup sequence. Errors propagate: a service that
        cannot reach its database or store must not start.
        """
        settings = self.settings
        logger.info("=" * 74)
        logger.info(f"  STARTING {settings.app_name} v{settings.app_version} ({settings.environment.value})")
        logger.info("=" * 74)

        logger.info("── Phase 1: Database ─────────────────────────────")
        self.db_manager = DatabaseManager(settings.database)
        await self.db_manager.initialize()
        self.repository = SiteRepository(self.db_manager)

        logger.info("── Phase 2: Counter/cache store ──────────────────")
        self.cache = build_cache_store(settings.cache)

        logger.info("── Phase 3: Health check engine ──────────────────")
        self.engine = HealthCheckEngine(
            repository=self.repository,
            cache=self.cache,
            settings=settings.monitoring,
        )
        self.job = HealthCheckJob(self.engine, self.repository, settings.monitoring)
        await self.job.start()

        logger.info("=" * 74)
        logger.info("  ✓ ALL SYSTEMS OPERATIONAL")
        logger.info(
            f"  Monitoring: {settings.monitoring.max_concurrent_checks} concurrent, "
            f"every {settings.monitoring.base_interval_minutes} min"
        )
        logger.info("=" * 74)

    # ==================================================================
    # SHUTDOWN SEQUENCE
    # ==================================================================

    async def shutdown(self) -> None:
        """
        Graceful shutdown in reverse order.
        Each step is wrapped in try/except so a failure in one subsystem
        doesn't prevent the others from cleaning up.
        """
        logger.info("  SHUTTING DOWN …")

        if self.job:
            try:
                await self.job.stop()
            except Exception as e:
                logger.error(f"  ✗ HealthCheckJob stop error: {e}")

        if self.engine:
            try:
                await self.engine.close()
            except Exception as e:
                logger.error(f"  ✗ Engine close error: {e}")

        close_cache = getattr(self.cache, "close", None)
        if close_cache is not None:
            try:
                await close_cache()
            except Exception as e:
                logger.error(f"  ✗ Cache store close error: {e}")

        if self.db_manager:
            try:
                await self.db_manager.close()
            except Exception as e:
                logger.error(f"  ✗ Database close error: {e}")

        logger.info("  ✓ SHUTDOWN COMPLETE")

    # ==================================================================
    # RUN
    # ==================================================================

    def request_stop(self) -> None:
        logger.info("  ⚡ Signal received — initiating graceful shutdown…")
        self._stop_event.set()

    async def run(self) -> None:
        """Block until a stop is requested."""
        await self._stop_event.wait()


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(app: SiteWatchApplication) -> None:
    """
    Install SIGTERM / SIGINT handlers so that the service shuts down
    gracefully even when killed by the OS.
    """
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, app.request_stop)
        except (NotImplementedError, OSError):
            # Not supported on Windows: KeyboardInterrupt still applies
            pass


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

async def main() -> None:
    settings = get_settings()
    setup_logging(settings.logging)

    app = SiteWatchApplication(settings)
    _install_signal_handlers(app)

    try:
        await app.startup()
        await app.run()
    finally:
        await app.shutdown()


def cli() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.opt(exception=e).error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
