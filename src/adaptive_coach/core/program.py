"""
Program unlock and streak state machine.

A program is a repeating cycle of numbered weekdays.  Absolute program day n
(counted across cycles) is scheduled on the n-th weekday from the program's
week-start anchor.  Each day moves locked → unlocked → completed:

- unlocked: the scheduled date is before today, or it is today and the local
  clock has reached the unlock hour.  Weekend dates never host a transition.
- completed: a completion event exists for (cycle, day).  Completed is sticky
  and implies unlocked, whatever the clock says.

Nothing here is stored: cycle position, calendar, streak and status are all
recomputed from the append-only completion events.
"""

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Iterable
from zoneinfo import ZoneInfo

from .calendar import (
    add_weekdays,
    is_after_unlock_time,
    is_weekend,
    local_date,
    most_recent_weekday,
    next_unlock_at,
    previous_weekday,
    week_start,
)
from .config import CYCLE_LENGTH_DAYS, WEEKEND_ACTION
from .models import DayRecord, DayState, ProgramCycle, ProgramDayCompletion, ProgramStatus

logger = logging.getLogger(__name__)


class ProgramStateError(ValueError):
    """Raised when a completion would be an illegal state transition."""

    pass


def start_anchor(now: datetime, tz: ZoneInfo) -> date:
    """Anchor for a program started at `now`: Monday of the current local week."""
    return week_start(local_date(now, tz))


def completed_days_by_cycle(
    completions: Iterable[ProgramDayCompletion],
    cycle_length: int = CYCLE_LENGTH_DAYS,
) -> dict[int, set[int]]:
    """
    Group completed day numbers by cycle.

    Day numbers outside 1..cycle_length are ignored.

    Returns:
        {cycle_number: {day_number, ...}}
    """
    grouped: dict[int, set[int]] = defaultdict(set)
    for event in completions:
        if 1 <= event.day_number <= cycle_length:
            grouped[event.cycle_number].add(event.day_number)
        else:
            logger.debug("ignoring out-of-range completion day %d", event.day_number)
    return dict(grouped)


def program_cycle(
    anchor: date | None,
    completions: Iterable[ProgramDayCompletion],
    cycle_length: int = CYCLE_LENGTH_DAYS,
) -> ProgramCycle:
    """
    Current position in the repeating program.

    The current cycle is the first one not fully completed; day_in_cycle is
    its lowest uncompleted day.  Completing day 20 therefore rolls over to
    day 1 of the next cycle.

    Args:
        anchor: Program week-start date (None if not started)
        completions: Completion events
        cycle_length: Days per cycle

    Returns:
        ProgramCycle
    """
    done = completed_days_by_cycle(completions, cycle_length)
    full = set(range(1, cycle_length + 1))

    cycle = 0
    while done.get(cycle, set()) >= full:
        cycle += 1

    remaining = full - done.get(cycle, set())
    return ProgramCycle(
        start_reference=anchor,
        current_cycle_number=cycle,
        day_in_cycle=min(remaining),
        cycle_length_days=cycle_length,
    )


def scheduled_date(
    anchor: date,
    cycle_number: int,
    day_number: int,
    cycle_length: int = CYCLE_LENGTH_DAYS,
) -> date:
    """Calendar date on which a cycle-relative day is due."""
    return add_weekdays(anchor, cycle_number * cycle_length + day_number)


def day_state(
    anchor: date,
    cycle_number: int,
    day_number: int,
    is_completed: bool,
    now: datetime,
    tz: ZoneInfo,
    unlock_hour: int,
    cycle_length: int = CYCLE_LENGTH_DAYS,
) -> DayState:
    """
    Lifecycle state of one program day at `now`.

    Equivalent to: absolute day n is unlocked iff
    n <= weekday_offset(anchor, today) + 1 and, when n is due today, the
    unlock hour has passed.
    """
    if is_completed:
        return DayState.COMPLETED

    due = scheduled_date(anchor, cycle_number, day_number, cycle_length)
    today = local_date(now, tz)
    if due < today:
        return DayState.UNLOCKED
    if due == today and is_after_unlock_time(now, tz, unlock_hour):
        return DayState.UNLOCKED
    return DayState.LOCKED


def build_calendar(
    anchor: date,
    completions: Iterable[ProgramDayCompletion],
    now: datetime,
    tz: ZoneInfo,
    unlock_hour: int,
    cycle_length: int = CYCLE_LENGTH_DAYS,
    cycle_number: int | None = None,
) -> list[DayRecord]:
    """
    Day records for one cycle (the current one by default).

    Args:
        anchor: Program week-start date
        completions: Completion events
        now: Current instant
        tz: Program timezone
        unlock_hour: Local unlock hour
        cycle_length: Days per cycle
        cycle_number: Cycle to render; defaults to the current cycle

    Returns:
        cycle_length DayRecords in day order
    """
    completions = list(completions)
    if cycle_number is None:
        cycle_number = program_cycle(anchor, completions, cycle_length).current_cycle_number
    done = completed_days_by_cycle(completions, cycle_length).get(cycle_number, set())

    days = []
    for day_number in range(1, cycle_length + 1):
        state = day_state(
            anchor, cycle_number, day_number, day_number in done,
            now, tz, unlock_hour, cycle_length,
        )
        due = scheduled_date(anchor, cycle_number, day_number, cycle_length)
        days.append(
            DayRecord(
                day_number=day_number,
                calendar_date=due,
                is_weekend=is_weekend(due),
                is_unlocked=state is not DayState.LOCKED,
                is_completed=state is DayState.COMPLETED,
            )
        )
    return days


def completion_dates(completions: Iterable[ProgramDayCompletion], tz: ZoneInfo) -> set[date]:
    """Local calendar dates on which at least one program day was completed."""
    return {local_date(c.completed_at, tz) for c in completions}


def calc_streak(dates: Iterable[date], today: date) -> int:
    """
    Consecutive completed weekdays ending today.

    Starts at today (or the preceding Friday on a weekend) and walks back one
    weekday at a time while each date has a completion.  Weekends are skipped
    and neither extend nor break the streak.

    Args:
        dates: Local dates with a completion event
        today: Local date to evaluate

    Returns:
        Streak length in weekdays
    """
    completed = set(dates)
    if not completed:
        return 0

    streak = 0
    check = most_recent_weekday(today)
    while check in completed:
        streak += 1
        check = previous_weekday(check)
    return streak


def validate_completion(
    anchor: date | None,
    completions: Iterable[ProgramDayCompletion],
    day_number: int,
    cycle_number: int,
    now: datetime,
    tz: ZoneInfo,
    unlock_hour: int,
    cycle_length: int = CYCLE_LENGTH_DAYS,
) -> DayRecord:
    """
    Validate a completion before it is appended to the event log.

    Returns:
        The DayRecord being completed

    Raises:
        ProgramStateError: Program not started, unknown day, locked day or
            day already completed
    """
    if anchor is None:
        raise ProgramStateError("Program has not been started")
    if not 1 <= day_number <= cycle_length:
        raise ProgramStateError(f"day_number must be in 1..{cycle_length}, got {day_number}")
    if cycle_number < 0:
        raise ProgramStateError("cycle_number must be non-negative")

    days = build_calendar(
        anchor, completions, now, tz, unlock_hour, cycle_length, cycle_number=cycle_number
    )
    record = days[day_number - 1]
    if record.is_completed:
        raise ProgramStateError(f"Day {day_number} of cycle {cycle_number} is already completed")
    if not record.is_unlocked:
        raise ProgramStateError(
            f"Day {day_number} is locked until {record.calendar_date.isoformat()} "
            f"{unlock_hour:02d}:00"
        )
    return record


def program_status(
    anchor: date | None,
    completions: Iterable[ProgramDayCompletion],
    now: datetime,
    tz: ZoneInfo,
    unlock_hour: int,
    cycle_length: int = CYCLE_LENGTH_DAYS,
) -> ProgramStatus:
    """
    Full derived program view at `now`.

    A user without an anchor gets has_started=False, day 1 current and
    locked, streak 0.

    Args:
        anchor: Program week-start date, or None
        completions: Completion events
        now: Current instant
        tz: Program timezone
        unlock_hour: Local unlock hour
        cycle_length: Days per cycle

    Returns:
        ProgramStatus
    """
    completions = list(completions)
    today = local_date(now, tz)
    weekend_today = is_weekend(today)
    dates = completion_dates(completions, tz)

    if anchor is None:
        return ProgramStatus(
            has_started=False,
            cycle=ProgramCycle(start_reference=None, cycle_length_days=cycle_length),
            streak_days=calc_streak(dates, today),
            is_weekend_today=weekend_today,
            weekend_action=WEEKEND_ACTION if weekend_today else None,
        )

    cycle = program_cycle(anchor, completions, cycle_length)
    days = build_calendar(
        anchor, completions, now, tz, unlock_hour, cycle_length,
        cycle_number=cycle.current_cycle_number,
    )
    current = days[cycle.day_in_cycle - 1]
    completed_in_cycle = sum(1 for d in days if d.is_completed)

    status = ProgramStatus(
        has_started=True,
        cycle=cycle,
        days=tuple(days),
        current_day=current,
        can_complete_today=(
            not weekend_today and current.is_unlocked and not current.is_completed
        ),
        completed_today=today in dates,
        completed_days_in_cycle=completed_in_cycle,
        progress_percentage=round(completed_in_cycle / cycle_length * 100),
        streak_days=calc_streak(dates, today),
        is_weekend_today=weekend_today,
        weekend_action=WEEKEND_ACTION if weekend_today else None,
        next_unlock_at=next_unlock_at(now, tz, unlock_hour),
    )
    logger.debug(
        "program status cycle=%d day=%d unlocked=%s streak=%d",
        cycle.current_cycle_number, cycle.day_in_cycle, current.is_unlocked, status.streak_days,
    )
    return status
