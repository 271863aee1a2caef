"""
Tests for the program unlock / streak state machine.

All scenarios use the week of Monday 2025-03-03 in Europe/Tallinn
(UTC+2 at that time of year) with the default 07:00 unlock hour.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from adaptive_coach.core.models import DayState, ProgramDayCompletion
from adaptive_coach.core.program import (
    ProgramStateError,
    build_calendar,
    calc_streak,
    completed_days_by_cycle,
    completion_dates,
    day_state,
    program_cycle,
    program_status,
    start_anchor,
    validate_completion,
)

TZ = ZoneInfo("Europe/Tallinn")
HOUR = 7
ANCHOR = date(2025, 3, 3)  # Monday


def _local(d: date, hour: int, minute: int = 0) -> datetime:
    return datetime(d.year, d.month, d.day, hour, minute, tzinfo=TZ)


def _done(day_number: int, when: datetime, cycle: int = 0) -> ProgramDayCompletion:
    return ProgramDayCompletion(
        user_id="u1", day_number=day_number, completed_at=when, cycle_number=cycle
    )


def _week_of_completions() -> list[ProgramDayCompletion]:
    """Days 1-5 completed Mon-Fri at 09:00."""
    return [_done(i + 1, _local(ANCHOR + timedelta(days=i), 9)) for i in range(5)]


class TestDayState:
    """locked → unlocked at the unlock hour on the due date; completed is sticky."""

    def test_day_one_locked_before_unlock_hour(self):
        state = day_state(ANCHOR, 0, 1, False, _local(ANCHOR, 6, 59), TZ, HOUR)
        assert state is DayState.LOCKED

    def test_day_one_unlocked_at_unlock_hour(self):
        state = day_state(ANCHOR, 0, 1, False, _local(ANCHOR, 7, 0), TZ, HOUR)
        assert state is DayState.UNLOCKED

    def test_future_day_locked(self):
        state = day_state(ANCHOR, 0, 2, False, _local(ANCHOR, 23), TZ, HOUR)
        assert state is DayState.LOCKED

    def test_past_days_stay_unlocked_after_midnight(self):
        # Thursday 00:30: Mon-Wed are past, Thursday not yet unlocked
        now = _local(date(2025, 3, 6), 0, 30)
        assert day_state(ANCHOR, 0, 3, False, now, TZ, HOUR) is DayState.UNLOCKED
        assert day_state(ANCHOR, 0, 4, False, now, TZ, HOUR) is DayState.LOCKED

    def test_completed_is_sticky_when_clock_moves_back(self):
        completions = [_done(1, _local(ANCHOR, 8))]
        earlier = _local(ANCHOR, 6)
        days = build_calendar(ANCHOR, completions, earlier, TZ, HOUR)
        assert days[0].is_completed
        assert days[0].is_unlocked
        assert days[0].state is DayState.COMPLETED

    def test_weekend_does_not_unlock_anything(self):
        # Saturday: Mon-Fri unlocked, next Monday (day 6) still locked
        days = build_calendar(ANCHOR, [], _local(date(2025, 3, 8), 12), TZ, HOUR)
        assert all(d.is_unlocked for d in days[:5])
        assert not days[5].is_unlocked
        assert days[5].calendar_date == date(2025, 3, 10)


class TestBuildCalendar:
    def test_twenty_weekdays(self):
        days = build_calendar(ANCHOR, [], _local(ANCHOR, 9), TZ, HOUR)
        assert len(days) == 20
        assert [d.day_number for d in days] == list(range(1, 21))
        assert days[0].calendar_date == ANCHOR
        assert days[19].calendar_date == date(2025, 3, 28)
        assert not any(d.is_weekend for d in days)

    def test_cycle_dates_continue_from_anchor(self):
        days = build_calendar(ANCHOR, [], _local(ANCHOR, 9), TZ, HOUR, cycle_number=1)
        assert days[0].calendar_date == date(2025, 3, 31)


class TestProgramCycle:
    """Cycle position is derived from completions only."""

    def test_empty_history_is_day_one(self):
        cycle = program_cycle(ANCHOR, [])
        assert cycle.current_cycle_number == 0
        assert cycle.day_in_cycle == 1

    def test_first_uncompleted_day(self):
        cycle = program_cycle(ANCHOR, [_done(1, _local(ANCHOR, 8)), _done(2, _local(ANCHOR, 9))])
        assert cycle.day_in_cycle == 3

    def test_full_cycle_wraps_to_next(self):
        when = _local(ANCHOR, 8)
        completions = [_done(d, when) for d in range(1, 21)]
        cycle = program_cycle(ANCHOR, completions)
        assert cycle.current_cycle_number == 1
        assert cycle.day_in_cycle == 1
        assert cycle.absolute_day == 21

    def test_out_of_range_days_ignored(self):
        grouped = completed_days_by_cycle([_done(21, _local(ANCHOR, 8)), _done(3, _local(ANCHOR, 8))])
        assert grouped == {0: {3}}


class TestStreak:
    """Consecutive completed weekdays; weekends neither extend nor break."""

    def test_five_on_friday_evening(self):
        dates = completion_dates(_week_of_completions(), TZ)
        assert calc_streak(dates, date(2025, 3, 7)) == 5

    def test_weekend_keeps_friday_streak(self):
        dates = completion_dates(_week_of_completions(), TZ)
        assert calc_streak(dates, date(2025, 3, 8)) == 5
        assert calc_streak(dates, date(2025, 3, 9)) == 5

    def test_missed_monday_resets_on_tuesday(self):
        dates = completion_dates(_week_of_completions(), TZ)
        assert calc_streak(dates, date(2025, 3, 11)) == 0

    def test_streak_spans_weekend(self):
        completions = _week_of_completions() + [_done(6, _local(date(2025, 3, 10), 9))]
        dates = completion_dates(completions, TZ)
        assert calc_streak(dates, date(2025, 3, 10)) == 6

    def test_empty(self):
        assert calc_streak([], date(2025, 3, 7)) == 0

    def test_completion_dates_use_program_zone(self):
        # 22:30 UTC Monday is 00:30 Tuesday in Tallinn
        late = datetime(2025, 3, 3, 22, 30, tzinfo=ZoneInfo("UTC"))
        assert completion_dates([_done(1, late)], TZ) == {date(2025, 3, 4)}


class TestProgramStatus:
    def test_not_started(self):
        status = program_status(None, [], _local(ANCHOR, 9), TZ, HOUR)
        assert not status.has_started
        assert status.current_day_number == 1
        assert status.current_day is None
        assert not status.can_complete_today
        assert status.streak_days == 0

    def test_day_one_available_after_unlock(self):
        status = program_status(ANCHOR, [], _local(ANCHOR, 9), TZ, HOUR)
        assert status.has_started
        assert status.can_complete_today
        assert not status.completed_today
        assert status.current_day.calendar_date == ANCHOR

    def test_day_one_not_available_before_unlock(self):
        status = program_status(ANCHOR, [], _local(ANCHOR, 6), TZ, HOUR)
        assert not status.can_complete_today
        assert status.next_unlock_at == _local(ANCHOR, 7)

    def test_after_completing_today(self):
        status = program_status(ANCHOR, [_done(1, _local(ANCHOR, 8))], _local(ANCHOR, 9), TZ, HOUR)
        assert status.completed_today
        assert status.current_day_number == 2
        assert not status.can_complete_today
        assert status.completed_days_in_cycle == 1
        assert status.progress_percentage == 5
        assert status.streak_days == 1

    def test_friday_evening_after_full_week(self):
        status = program_status(
            ANCHOR, _week_of_completions(), _local(date(2025, 3, 7), 20), TZ, HOUR
        )
        assert status.streak_days == 5
        assert status.progress_percentage == 25
        assert status.current_day_number == 6

    def test_weekend_offers_alternative(self):
        status = program_status(ANCHOR, [], _local(date(2025, 3, 8), 10), TZ, HOUR)
        assert status.is_weekend_today
        assert status.weekend_action == "mindfulness"
        assert not status.can_complete_today
        assert status.next_unlock_at == _local(date(2025, 3, 10), 7)

    def test_weekday_has_no_alternative(self):
        status = program_status(ANCHOR, [], _local(ANCHOR, 9), TZ, HOUR)
        assert status.weekend_action is None

    def test_start_anchor_is_monday(self):
        assert start_anchor(_local(date(2025, 3, 6), 12), TZ) == ANCHOR
        assert start_anchor(_local(date(2025, 3, 9), 12), TZ) == ANCHOR


class TestValidateCompletion:
    """Illegal transitions raise ProgramStateError (a ValueError)."""

    def test_unlocked_day_accepted(self):
        record = validate_completion(ANCHOR, [], 1, 0, _local(ANCHOR, 9), TZ, HOUR)
        assert record.day_number == 1

    def test_locked_day_rejected(self):
        with pytest.raises(ProgramStateError, match="locked"):
            validate_completion(ANCHOR, [], 2, 0, _local(ANCHOR, 9), TZ, HOUR)

    def test_completed_day_rejected(self):
        completions = [_done(1, _local(ANCHOR, 8))]
        with pytest.raises(ProgramStateError, match="already completed"):
            validate_completion(ANCHOR, completions, 1, 0, _local(ANCHOR, 9), TZ, HOUR)

    def test_unknown_day_rejected(self):
        with pytest.raises(ProgramStateError):
            validate_completion(ANCHOR, [], 0, 0, _local(ANCHOR, 9), TZ, HOUR)
        with pytest.raises(ProgramStateError):
            validate_completion(ANCHOR, [], 21, 0, _local(ANCHOR, 9), TZ, HOUR)

    def test_not_started_rejected(self):
        with pytest.raises(ValueError):
            validate_completion(None, [], 1, 0, _local(ANCHOR, 9), TZ, HOUR)
