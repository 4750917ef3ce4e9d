from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo

from lesson_engine.config import settings
from lesson_engine.errors import ValidationError

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def today(tz_name: str | None = None) -> date:
    """Current date in the school's timezone."""
    return datetime.now(ZoneInfo(tz_name or settings.SCHOOL_TIMEZONE)).date()


def now(tz_name: str | None = None) -> datetime:
    # stored zone-naive, like every other calendar value
    return datetime.now(ZoneInfo(tz_name or settings.SCHOOL_TIMEZONE)).replace(tzinfo=None)


def parse_time(hhmm: str) -> time:
    try:
        return datetime.strptime(hhmm, "%H:%M").time()
    except (TypeError, ValueError):
        raise ValidationError(f"Time must be in 24h HH:mm format, got {hhmm!r}") from None


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Date must be in ISO format YYYY-MM-DD, got {value!r}") from None


def day_name(day_of_week: int) -> str:
    return DAY_NAMES[day_of_week]


def daterange(start: date, end: date) -> Iterator[date]:
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def dates_on_weekday(start: date, end: date, day_of_week: int) -> Iterator[date]:
    """Every date in [start, end] falling on ``day_of_week`` (Monday=0)."""
    d = start + timedelta(days=(day_of_week - start.weekday()) % 7)
    while d <= end:
        yield d
        d += timedelta(days=7)


def intervals_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    # half-open: a lesson ending at 11:00 does not clash with one starting at 11:00
    return a_start < b_end and b_start < a_end


def clamp_window(start: date, end: date, lower: date, upper: date) -> tuple[date, date] | None:
    lo, hi = max(start, lower), min(end, upper)
    if lo > hi:
        return None
    return lo, hi


def month_bounds(d: date) -> tuple[date, date]:
    last = calendar.monthrange(d.year, d.month)[1]
    return d.replace(day=1), d.replace(day=last)


def validate_time_range(start: time, end: time) -> None:
    if start >= end:
        raise ValidationError(f"Start time {format_time(start)} must be before end time {format_time(end)}")


def validate_day_of_week(day_of_week: int) -> None:
    if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
        raise ValidationError(f"Unknown day of week {day_of_week!r} (expected 0=Monday .. 6=Sunday)")
