"""UTC helpers for timestamps, validity windows and expiry checks.

Columns are ``DateTime(timezone=True)`` defaulting to ``utc_now``. Some
backends (SQLite in tests) hand values back without tzinfo, so anything
compared against ``utc_now()`` goes through ``as_utc`` first.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes read back from the database as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def has_passed(moment: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when ``moment`` is set and not later than ``now``."""
    if moment is None:
        return False
    return as_utc(moment) <= (now or utc_now())
