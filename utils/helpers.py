"""
============================================================================
SITEWATCH - HELPERS UTILITY
============================================================================
Time helpers shared by the probes and the periodic job.
============================================================================
"""

import math
from datetime import datetime, timezone


# ============================================================================
# TIME UTILITIES
# ============================================================================

class TimeHelper:
    """
    Time and date manipulation utilities.
    """

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current timezone-aware UTC datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """Treat naive datetimes as UTC."""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def whole_days_until(moment: datetime, now: datetime) -> int:
        """
        Whole days from *now* until *moment*, floored.

        Negative once *moment* has passed: one hour after expiry
        yields -1, not 0.
        """
        delta = TimeHelper.ensure_utc(moment) - TimeHelper.ensure_utc(now)
        return math.floor(delta.total_seconds() / 86400)

    @staticmethod
    def format_datetime(dt: datetime, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
        """Format datetime to string."""
        return dt.strftime(fmt)
