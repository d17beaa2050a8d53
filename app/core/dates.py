"""Date helpers: UTC clock, expiry arithmetic and weekly chart buckets."""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import pytz

from app.domain.enums import ExpiryUnit

WEEKS_IN_CHART = 4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_time(value: datetime, amount: int, unit: str = "minutes") -> datetime:
    if value is None:
        raise ValueError("The 'value' parameter is required.")
    if not amount:
        raise ValueError("The 'amount' parameter is required.")

    unit = unit.value if isinstance(unit, ExpiryUnit) else unit
    if unit in ("minute", "minutes"):
        return value + timedelta(minutes=amount)
    if unit in ("hour", "hours"):
        return value + timedelta(hours=amount)
    if unit in (ExpiryUnit.DAY.value, "days"):
        return value + timedelta(days=amount)
    if unit in (ExpiryUnit.MONTH.value, "months"):
        return _add_months(value, amount)
    if unit in (ExpiryUnit.YEAR.value, "years"):
        return _add_months(value, amount * 12)
    raise ValueError(f"Unsupported time unit: {unit}")


def _week_starts(now: datetime) -> List[datetime]:
    # Weeks start on Sunday, oldest first.
    days_since_sunday = (now.weekday() + 1) % 7
    current = (now - timedelta(days=days_since_sunday)).replace(hour=0, minute=0, second=0, microsecond=0)
    return [current - timedelta(weeks=i) for i in range(WEEKS_IN_CHART - 1, -1, -1)]


def process_weekly_stats(
    items: Iterable[Dict[str, Any]],
    unique_field: Optional[str] = None,
    date_field: str = "created_at",
    tz_name: str = "UTC",
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Bucket `items` into the last four weeks.

    With `unique_field`, each week counts distinct values of that field
    instead of rows.
    """
    tz = pytz.timezone(tz_name)
    now = (now or utcnow()).astimezone(tz)
    items = list(items)

    weeks = []
    for week_start in _week_starts(now):
        week_end = week_start + timedelta(weeks=1)
        in_week = []
        for item in items:
            stamp = as_utc(item.get(date_field))
            if stamp is not None and week_start <= stamp.astimezone(tz) < week_end:
                in_week.append(item)

        if unique_field:
            count = len({str(item.get(unique_field)) for item in in_week if item.get(unique_field)})
        else:
            count = len(in_week)

        weeks.append({"week": week_start.strftime("%d/%m"), "count": count})

    return weeks
