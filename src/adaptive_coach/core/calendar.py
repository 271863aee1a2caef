"""
Calendar arithmetic in the program's fixed civil timezone.

Every "today" question is answered in one zone (Europe/Tallinn by default)
so unlock behaviour is identical for all users regardless of device locale.
The zone and the current instant are always explicit parameters; nothing in
this module reads the wall clock except SystemClock.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo

from .config import WEEKEND_DAYS


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at one instant (tests, CLI --now)."""

    def __init__(self, instant: datetime):
        self._instant = instant if instant.tzinfo else instant.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._instant


def as_utc(instant: datetime) -> datetime:
    """Aware UTC datetime; naive input is taken to be UTC already."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_local(instant: datetime, tz: ZoneInfo) -> datetime:
    """
    Convert an instant to the program zone.

    Naive datetimes are treated as UTC.

    Args:
        instant: Datetime to convert
        tz: Program timezone

    Returns:
        Aware datetime in tz
    """
    return as_utc(instant).astimezone(tz)


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    """Calendar date of an instant in the program zone."""
    return to_local(instant, tz).date()


def is_weekend(day: date) -> bool:
    """True for Saturday and Sunday."""
    return day.weekday() in WEEKEND_DAYS


def is_program_day(day: date) -> bool:
    """True for Monday through Friday."""
    return not is_weekend(day)


def is_after_unlock_time(now: datetime, tz: ZoneInfo, unlock_hour: int) -> bool:
    """
    Check whether the local clock has reached the unlock hour.

    Args:
        now: Current instant
        tz: Program timezone
        unlock_hour: Hour of day (0-23) at which due days open

    Returns:
        True at or after unlock_hour:00 local time
    """
    return to_local(now, tz).time() >= time(unlock_hour)


def weekday_offset(start: date, end: date) -> int:
    """
    Count weekdays d with start <= d < end.

    Negative when end is before start, mirroring the forward count.

    Args:
        start: First date (inclusive)
        end: Last date (exclusive)

    Returns:
        Number of weekdays between the two dates
    """
    if end < start:
        return -weekday_offset(end, start)

    total_days = (end - start).days
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * 5
    for i in range(remainder):
        if is_program_day(start + timedelta(days=full_weeks * 7 + i)):
            count += 1
    return count


def add_weekdays(start: date, n: int) -> date:
    """
    Date of the n-th weekday counting from start (1-based).

    add_weekdays(monday, 1) is that Monday; add_weekdays(monday, 6) is the
    following Monday.  A weekend start rolls forward to Monday first.

    Args:
        start: Anchor date
        n: Weekday ordinal (>= 1)

    Returns:
        The weekday date
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")

    current = start
    while is_weekend(current):
        current += timedelta(days=1)

    full_weeks, remainder = divmod(n - 1, 5)
    current += timedelta(weeks=full_weeks)
    while remainder > 0:
        current += timedelta(days=1)
        if is_program_day(current):
            remainder -= 1
    return current


def most_recent_weekday(day: date) -> date:
    """The day itself on weekdays, otherwise the preceding Friday."""
    while is_weekend(day):
        day -= timedelta(days=1)
    return day


def previous_weekday(day: date) -> date:
    """The weekday strictly before day."""
    return most_recent_weekday(day - timedelta(days=1))


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def unlock_moment(day: date, tz: ZoneInfo, unlock_hour: int) -> datetime:
    """Aware instant at which a program day dated `day` opens."""
    return datetime.combine(day, time(unlock_hour), tzinfo=tz)


def next_unlock_at(now: datetime, tz: ZoneInfo, unlock_hour: int) -> datetime:
    """
    Next weekday unlock instant strictly after now.

    Args:
        now: Current instant
        tz: Program timezone
        unlock_hour: Unlock hour in local time

    Returns:
        Aware datetime in tz
    """
    local_now = to_local(now, tz)
    candidate = local_now.date()
    while True:
        if is_program_day(candidate):
            moment = unlock_moment(candidate, tz, unlock_hour)
            if moment > local_now:
                return moment
        candidate += timedelta(days=1)


def time_until_unlock(now: datetime, tz: ZoneInfo, unlock_hour: int) -> timedelta:
    """Remaining time until the next weekday unlock."""
    return next_unlock_at(now, tz, unlock_hour) - to_local(now, tz)


def format_time_until(delta: timedelta) -> str:
    """Render a countdown as '3h 05m' or '2d 4h'."""
    total_minutes = max(0, int(delta.total_seconds() // 60))
    days, rem = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rem, 60)
    if days:
        return f"{days}d {hours}h"
    return f"{hours}h {minutes:02d}m"
