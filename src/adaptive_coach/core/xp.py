"""
XP and leveling.

XP is never stored.  It is recomputed from the full event history:

1. Events are grouped by local calendar date.
2. Each day earns 30 XP per qualifying workout (>= 8 minutes), 15 XP for the
   first recovery-routine completion and a 5 XP bonus when all four active
   habits were logged.  The day is then capped at 60.
3. Capped days are summed and the total is capped at 5000.

Level L requires the cumulative sum of level_increment(i) for i in 2..L,
clamped at 5000 so that the last levels share the 5000 floor.
"""

import logging
from collections import defaultdict
from datetime import date
from functools import lru_cache
from zoneinfo import ZoneInfo

from .calendar import local_date
from .config import (
    DAILY_XP_CAP,
    HABIT_BONUS_XP,
    HABITS_FOR_BONUS,
    MAX_LEVEL,
    MAX_XP,
    MIN_WORKOUT_MINUTES,
    RECOVERY_XP,
    TIER_LEVEL_THRESHOLDS,
    WORKOUT_XP,
    level_increment,
)
from .models import DailyXP, EventHistory, LevelInfo, Tier, WorkoutSession, XPState, XPStats

logger = logging.getLogger(__name__)


def is_qualifying_workout(session: WorkoutSession) -> bool:
    """A session counts for XP when it lasted at least MIN_WORKOUT_MINUTES."""
    return session.duration_minutes >= MIN_WORKOUT_MINUTES


def _check_habit_count(history: EventHistory) -> None:
    if history.active_habit_count > HABITS_FOR_BONUS:
        raise ValueError(
            f"At most {HABITS_FOR_BONUS} active habits are supported, "
            f"got {history.active_habit_count}"
        )


def _perfect_habit_days(history: EventHistory) -> set[date]:
    """Dates on which every one of exactly HABITS_FOR_BONUS active habits was logged."""
    if history.active_habit_count != HABITS_FOR_BONUS:
        return set()

    logged: dict[date, set[str]] = defaultdict(set)
    for log in history.habit_logs:
        if log.habit_id in history.active_habit_ids:
            logged[log.log_date].add(log.habit_id)
    return {day for day, ids in logged.items() if ids >= history.active_habit_ids}


def daily_xp(history: EventHistory, tz: ZoneInfo) -> dict[date, DailyXP]:
    """
    Per-day XP breakdown.

    Workouts are bucketed by the local date of started_at, recovery
    completions by the local date of completed_at, habit logs by log_date.

    Args:
        history: User's event history
        tz: Program timezone

    Returns:
        {local_date: DailyXP}, only for dates that earned anything

    Raises:
        ValueError: If more than HABITS_FOR_BONUS habits are active
    """
    _check_habit_count(history)

    workouts: dict[date, int] = defaultdict(int)
    for session in history.workouts:
        if is_qualifying_workout(session):
            workouts[local_date(session.started_at, tz)] += 1

    recovery_days = {local_date(c.completed_at, tz) for c in history.completions}
    bonus_days = _perfect_habit_days(history)

    result: dict[date, DailyXP] = {}
    for day in sorted(set(workouts) | recovery_days | bonus_days):
        n_workouts = workouts.get(day, 0)
        recovery = day in recovery_days
        bonus = day in bonus_days
        subtotal = (
            n_workouts * WORKOUT_XP
            + (RECOVERY_XP if recovery else 0)
            + (HABIT_BONUS_XP if bonus else 0)
        )
        result[day] = DailyXP(
            day=day,
            workouts=n_workouts,
            recovery=recovery,
            habit_bonus=bonus,
            subtotal=subtotal,
            capped=min(subtotal, DAILY_XP_CAP),
        )
    return result


@lru_cache(maxsize=None)
def xp_for_level(level: int) -> int:
    """
    Cumulative XP floor of a level, clamped at MAX_XP.

    Args:
        level: Level (1..MAX_LEVEL)

    Returns:
        Minimum total XP for that level
    """
    if level <= 1:
        return 0
    total = sum(level_increment(i) for i in range(2, level + 1))
    return min(total, MAX_XP)


def level_from_xp(total_xp: int) -> LevelInfo:
    """
    Level position for a total XP value.

    At total_xp >= MAX_XP the level is MAX_LEVEL regardless of the formula.

    Args:
        total_xp: Lifetime XP (already capped)

    Returns:
        LevelInfo
    """
    if total_xp < 0:
        raise ValueError("total_xp must be non-negative")

    if total_xp >= MAX_XP:
        return LevelInfo(
            level=MAX_LEVEL,
            current_level_xp=MAX_XP,
            next_level_xp=MAX_XP,
            xp_to_next=0,
            progress=100.0,
        )

    level = 1
    while level < MAX_LEVEL and xp_for_level(level + 1) <= total_xp:
        level += 1

    current = xp_for_level(level)
    if level == MAX_LEVEL:
        return LevelInfo(level, current, MAX_XP, 0, 100.0)

    nxt = xp_for_level(level + 1)
    return LevelInfo(
        level=level,
        current_level_xp=current,
        next_level_xp=nxt,
        xp_to_next=nxt - total_xp,
        progress=(total_xp - current) / (nxt - current) * 100,
    )


def tier_for_level(level: int) -> Tier:
    """Highest tier whose threshold the level reaches."""
    for threshold, name in TIER_LEVEL_THRESHOLDS:
        if level >= threshold:
            return Tier(name)
    return Tier.BRONZE


def compute_xp_state(history: EventHistory, tz: ZoneInfo) -> XPState:
    """
    Recompute the complete XP state from an event history.

    An empty history yields level 1, 0 XP, bronze tier.

    Args:
        history: User's event history
        tz: Program timezone

    Returns:
        XPState
    """
    days = daily_xp(history, tz)
    total = min(sum(d.capped for d in days.values()), MAX_XP)
    info = level_from_xp(total)

    stats = XPStats(
        valid_workouts=sum(1 for s in history.workouts if is_qualifying_workout(s)),
        recovery_days=sum(1 for d in days.values() if d.recovery),
        active_days=len(days),
        active_habits=history.active_habit_count,
        perfect_habit_days=sum(1 for d in days.values() if d.habit_bonus),
    )
    logger.debug(
        "xp user=%s total=%d level=%d days=%d", history.user_id, total, info.level, len(days)
    )
    return XPState(
        total_xp=total,
        level=info.level,
        tier=tier_for_level(info.level),
        level_info=info,
        daily=tuple(days.values()),
        stats=stats,
    )
