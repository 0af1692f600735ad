"""Calendar boundary helpers for quota accounting."""

from __future__ import annotations

import math
from datetime import datetime, time, timedelta, timezone, tzinfo

from marketplace.models.base import as_utc, utcnow

ONE_DAY = timedelta(days=1)


def local_midnight(now: datetime, zone: tzinfo) -> datetime:
    """Midnight of `now`'s local day in `zone`, returned in UTC."""
    local = as_utc(now).astimezone(zone)
    return datetime.combine(local.date(), time.min, tzinfo=zone).astimezone(timezone.utc)


def week_start(now: datetime, zone: tzinfo) -> datetime:
    """Monday 00:00 of `now`'s ISO week in `zone`, returned in UTC."""
    local = as_utc(now).astimezone(zone)
    monday = local.date() - timedelta(days=local.weekday())
    return datetime.combine(monday, time.min, tzinfo=zone).astimezone(timezone.utc)


def year_start(now: datetime, zone: tzinfo) -> datetime:
    local = as_utc(now).astimezone(zone)
    return datetime(local.year, 1, 1, tzinfo=zone).astimezone(timezone.utc)


def days_left(end_date: datetime | None, now: datetime | None = None) -> int:
    """Whole days until `end_date`, rounded up and floored at zero."""
    if end_date is None:
        return 0
    current = as_utc(now) if now is not None else utcnow()
    delta = as_utc(end_date) - current
    return max(0, math.ceil(delta / ONE_DAY))
