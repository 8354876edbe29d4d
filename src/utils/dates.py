# src/utils/dates.py

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Текущее время в UTC (timezone-aware)."""
    return datetime.now(timezone.utc)
