"""
Utilities Package for SiteWatch

Logging setup and small shared helpers.
"""

from utils.logger import get_logger, setup_logging
from utils.helpers import TimeHelper

__all__ = [
    "get_logger",
    "setup_logging",
    "TimeHelper",
]
