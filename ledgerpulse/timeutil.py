"""Timezone and date-key helpers.

Ledger timestamps are stored as fixed-width UTC ISO strings so that SQLite
string comparison orders them chronologically. Calendar keys (YYYY-MM-DD) are
always computed in the business timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

import pytz

DATE_KEY_FORMAT = "%Y-%m-%d"


def localize(dt: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Return dt in tz; naive datetimes are taken to be business-local."""
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


def to_storage(dt: datetime, tz: pytz.BaseTzInfo = pytz.utc) -> str:
    """Serialize a timestamp for the ledger table (UTC, microsecond precision)."""
    return localize(dt, tz).astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Best-effort conversion of a snapshot timestamp; None when unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, (int, float)):
        # epoch seconds, or milliseconds when implausibly large
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, dict) and "_seconds" in value:
        return parse_timestamp(value["_seconds"] + value.get("_nanoseconds", 0) / 1e9)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def date_key(dt: datetime, tz: pytz.BaseTzInfo) -> str:
    """Calendar date key of a timestamp in the business timezone."""
    return localize(dt, tz).strftime(DATE_KEY_FORMAT)


def parse_date_key(value: str) -> date:
    """Parse YYYY-MM-DD (a trailing time part is ignored). Raises ValueError."""
    return datetime.strptime(value.strip()[:10], DATE_KEY_FORMAT).date()


def day_bounds(day: date, tz: pytz.BaseTzInfo) -> tuple[datetime, datetime]:
    """[00:00, 23:59:59.999] of a local calendar day, as aware datetimes."""
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day, time(23, 59, 59, 999000)))
    return start, end


def month_bounds(year: int, month: int, tz: pytz.BaseTzInfo) -> tuple[datetime, datetime]:
    """First instant and last millisecond of a local calendar month."""
    first = date(year, month, 1)
    next_first = date(year + (month == 12), month % 12 + 1, 1)
    start, _ = day_bounds(first, tz)
    _, end = day_bounds(next_first - timedelta(days=1), tz)
    return start, end


def subtract_months(dt: datetime, months: int) -> datetime:
    """Same wall-clock time `months` earlier, clamping the day to month end."""
    total = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    next_first = date(year + (month == 12), month % 12 + 1, 1)
    last_day = (next_first - timedelta(days=1)).day
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def iso_now(now: datetime) -> str:
    """Metadata timestamp (updated_at, generated_at, ...)."""
    return now.astimezone(timezone.utc).isoformat(timespec="seconds")
