"""Timezone utilities for consistent route-date handling.

The engine never reads the wall clock: callers pass the target calendar date
and every window or schedule is derived from it in the configured local
timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

from .config import settings


def local_timezone(name: str | None = None) -> pytz.BaseTzInfo:
    return pytz.timezone(name or settings.timezone)


def localize(route_date: date, at: time, tz: pytz.BaseTzInfo | None = None) -> datetime:
    """Attach the local timezone to a wall-clock time on the route date."""
    return (tz or local_timezone()).localize(datetime.combine(route_date, at))


def day_window(route_date: date, tz: pytz.BaseTzInfo | None = None) -> tuple[datetime, datetime]:
    """Return the [start, end) UTC bounds of the local calendar day."""
    tz = tz or local_timezone()
    start = localize(route_date, time.min, tz)
    end = localize(route_date + timedelta(days=1), time.min, tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def normalize_route_date(route_date: date) -> datetime:
    """Pin a route's calendar date to a fixed UTC hour so no timezone shifts its day."""
    return datetime.combine(route_date, time(hour=settings.route_date_anchor_hour_utc), tzinfo=timezone.utc)


def utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
