"""
============================================================================
SITEWATCH - LOGGING UTILITY
============================================================================
loguru sinks for console, rotating file, JSON file and a separate error
file. Modules obtain a bound logger through get_logger(name).
============================================================================
"""

import sys
from typing import Optional

from loguru import logger

from config.settings import LoggingSettings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}"

logger.configure(extra={"name": "sitewatch"})


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

def setup_logging(settings: LoggingSettings) -> None:
    """
    Configure logging system with multiple handlers.

    Args:
        settings: Logging section of the application settings
    """
    logger.remove()

    log_level = settings.level.value

    if settings.console_enabled:
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=settings.console_colored,
            backtrace=True,
            diagnose=False,
        )

    if settings.file_enabled:
        settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=settings.file_rotation,
            retention=settings.file_retention,
            compression="zip",
            serialize=settings.json_enabled,
            enqueue=True,
        )

    if settings.error_file_enabled:
        settings.error_file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.error_file_path,
            format=FILE_FORMAT,
            level="ERROR",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            backtrace=True,
            enqueue=True,
        )

    logger.info(f"Logging system initialized (level={log_level})")


def get_logger(name: Optional[str] = None):
    """
    Get logger instance with optional name.

    Args:
        name: Logger name (usually the component name)

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger
