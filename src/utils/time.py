from __future__ import annotations

from contextlib import suppress
from datetime import UTC, date, datetime, timedelta
from typing import Any


def now_utc() -> datetime:
    """Return timezone-aware UTC timestamp."""
    return datetime.now(tz=UTC)


def parse_date(value: Any) -> date | None:
    """Parse common date formats to a date object."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        parsed = coerce_datetime_utc(value)
        return parsed.date() if parsed else None
    return None


def coerce_datetime_utc(value: Any) -> datetime | None:
    """Coerce datetime or string to timezone-aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time(), tzinfo=UTC)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        with suppress(ValueError):
            dt = datetime.fromisoformat(raw)
            return dt if dt.tzinfo else dt.replace(tzinfo=UTC)
        for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%Y %H:%M:%S", "%Y%m%d"):
            with suppress(ValueError):
                dt = datetime.strptime(raw, fmt)
                return dt.replace(tzinfo=UTC)
    return None


def is_within_days(value: Any, days: int, now: datetime | None = None) -> bool:
    """True when ``value`` parses and lies less than ``days`` before ``now``.

    Future dates count as within the window. Unparsable values never do.
    """
    moment = coerce_datetime_utc(value)
    if moment is None:
        return False
    reference = now or now_utc()
    return reference - moment < timedelta(days=days)
