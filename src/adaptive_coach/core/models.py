"""
Data models for adaptive-coach.

Core dataclasses for exercise state, feedback surveys, program days and the
append-only completion events everything else is derived from.

Derived records (ProgramCycle, DayRecord, XPState and friends) are frozen:
they are produced by recomputation over the event log and are never written
to directly.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Literal

Feedback = Literal["too_easy", "just_right", "too_hard"]
Category = Literal["compound", "isolation", "bodyweight"]
Direction = Literal["increase", "decrease", "maintain"]
Energy = Literal["low", "normal", "high"]
Soreness = Literal["none", "mild", "high"]
Pump = Literal["poor", "good", "excellent"]

FEEDBACK_VALUES: tuple[str, ...] = ("too_easy", "just_right", "too_hard")
CATEGORY_VALUES: tuple[str, ...] = ("compound", "isolation", "bodyweight")
ENERGY_VALUES: tuple[str, ...] = ("low", "normal", "high")
SORENESS_VALUES: tuple[str, ...] = ("none", "mild", "high")
PUMP_VALUES: tuple[str, ...] = ("poor", "good", "excellent")


def _is_half_multiple(value: float) -> bool:
    return float(value * 2).is_integer()


def _require_datetime(value: datetime, name: str) -> None:
    if not isinstance(value, datetime):
        raise ValueError(f"{name} must be a datetime, got {type(value).__name__}")


# =============================================================================
# Exercise progression
# =============================================================================


@dataclass(frozen=True)
class ExerciseProgression:
    """
    Next prescription for one exercise.

    rep_adjustment is only meaningful for bodyweight (or unloaded) work:
    +1 / -1 rep per set, 0 to maintain.  is_estimate marks output of the
    RPE/RIR preview path, which is an approximation and not a prescription.
    """

    new_weight: float
    change: float
    reason: str
    direction: Direction
    rep_adjustment: int = 0
    is_estimate: bool = False


@dataclass
class ExerciseState:
    """
    Working weight for one exercise slot of one user.

    Created with a seed weight at the first logged set and only moved
    forward by applying calculator output.
    """

    exercise_id: str
    category: Category
    current_weight: float = 0.0

    def __post_init__(self) -> None:
        """Validate exercise state."""
        if not self.exercise_id:
            raise ValueError("exercise_id must be non-empty")
        if self.category not in CATEGORY_VALUES:
            raise ValueError(f"Invalid category: {self.category!r}")
        if self.current_weight < 0:
            raise ValueError("current_weight must be non-negative")
        if not _is_half_multiple(self.current_weight):
            raise ValueError(
                f"current_weight must be a multiple of 0.5, got {self.current_weight}"
            )

    def apply(self, progression: ExerciseProgression) -> "ExerciseState":
        """Return the state after a prescription from the authoritative calculator."""
        if progression.is_estimate:
            raise ValueError("RPE/RIR previews cannot update exercise state")
        return replace(self, current_weight=progression.new_weight)


# =============================================================================
# Workout survey
# =============================================================================


@dataclass(frozen=True)
class WorkoutSurvey:
    """Composite post-workout survey."""

    energy: Energy
    soreness: Soreness
    pump: Pump
    joint_pain: bool
    overall_difficulty: Feedback
    notes: str | None = None

    def __post_init__(self) -> None:
        """Validate survey values."""
        if self.energy not in ENERGY_VALUES:
            raise ValueError(f"Invalid energy: {self.energy!r}")
        if self.soreness not in SORENESS_VALUES:
            raise ValueError(f"Invalid soreness: {self.soreness!r}")
        if self.pump not in PUMP_VALUES:
            raise ValueError(f"Invalid pump: {self.pump!r}")
        if not isinstance(self.joint_pain, bool):
            raise ValueError("joint_pain must be a bool")
        if self.overall_difficulty not in FEEDBACK_VALUES:
            raise ValueError(f"Invalid overall_difficulty: {self.overall_difficulty!r}")


@dataclass(frozen=True)
class WorkoutAdjustment:
    """Multipliers for the next session's volume and intensity."""

    volume_multiplier: float
    intensity_multiplier: float
    reason: str
    recommendations: list[str] = field(default_factory=list)
    fired_rules: list[str] = field(default_factory=list)


# =============================================================================
# Program
# =============================================================================


class DayState(str, Enum):
    """Lifecycle of one numbered program day."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ProgramCycle:
    """
    Position in the repeating program.

    current_cycle_number counts fully completed cycles; day_in_cycle is the
    next day to complete (1..cycle_length_days).
    """

    start_reference: date | None
    current_cycle_number: int = 0
    day_in_cycle: int = 1
    cycle_length_days: int = 20

    def __post_init__(self) -> None:
        """Validate cycle position."""
        if self.current_cycle_number < 0:
            raise ValueError("current_cycle_number must be non-negative")
        if not 1 <= self.day_in_cycle <= self.cycle_length_days:
            raise ValueError(
                f"day_in_cycle must be in 1..{self.cycle_length_days}, got {self.day_in_cycle}"
            )

    @property
    def absolute_day(self) -> int:
        """1-based day number counted across all cycles."""
        return self.current_cycle_number * self.cycle_length_days + self.day_in_cycle


@dataclass(frozen=True)
class DayRecord:
    """One numbered weekday of the current cycle."""

    day_number: int  # cycle-relative, 1-based
    calendar_date: date
    is_weekend: bool
    is_unlocked: bool
    is_completed: bool

    @property
    def state(self) -> DayState:
        """Lifecycle state derived from the flags."""
        if self.is_completed:
            return DayState.COMPLETED
        if self.is_unlocked:
            return DayState.UNLOCKED
        return DayState.LOCKED

    @property
    def is_locked(self) -> bool:
        return not self.is_unlocked and not self.is_weekend


@dataclass(frozen=True)
class ProgramStatus:
    """
    Derived view of a user's program at one instant.

    weekend_action names the always-available alternative offered on
    weekends (None on weekdays).
    """

    has_started: bool
    cycle: ProgramCycle
    days: tuple[DayRecord, ...] = ()
    current_day: DayRecord | None = None
    can_complete_today: bool = False
    completed_today: bool = False
    completed_days_in_cycle: int = 0
    progress_percentage: int = 0
    streak_days: int = 0
    is_weekend_today: bool = False
    weekend_action: str | None = None
    next_unlock_at: datetime | None = None

    @property
    def current_day_number(self) -> int:
        return self.cycle.day_in_cycle


# =============================================================================
# Completion events (append-only)
# =============================================================================


@dataclass(frozen=True)
class WorkoutSession:
    """A workout session with start and end timestamps."""

    user_id: str
    session_id: str
    started_at: datetime
    ended_at: datetime

    def __post_init__(self) -> None:
        """Validate session timestamps."""
        _require_datetime(self.started_at, "started_at")
        _require_datetime(self.ended_at, "ended_at")
        if self.ended_at < self.started_at:
            raise ValueError("ended_at must not be before started_at")

    @property
    def duration_minutes(self) -> float:
        return (self.ended_at - self.started_at).total_seconds() / 60.0


@dataclass(frozen=True)
class ProgramDayCompletion:
    """
    Completion of one recovery-routine program day.

    cycle_number identifies which pass through the program the day belongs to.
    """

    user_id: str
    day_number: int
    completed_at: datetime
    cycle_number: int = 0

    def __post_init__(self) -> None:
        """Validate completion data."""
        _require_datetime(self.completed_at, "completed_at")
        if self.day_number < 1:
            raise ValueError("day_number must be >= 1")
        if self.cycle_number < 0:
            raise ValueError("cycle_number must be non-negative")


@dataclass(frozen=True)
class HabitLog:
    """A custom-habit log row for one local calendar date."""

    user_id: str
    habit_id: str
    log_date: date

    def __post_init__(self) -> None:
        """Validate habit log."""
        if not self.habit_id:
            raise ValueError("habit_id must be non-empty")


@dataclass(frozen=True)
class EventHistory:
    """Everything the engine reads for one user."""

    user_id: str
    workouts: tuple[WorkoutSession, ...] = ()
    completions: tuple[ProgramDayCompletion, ...] = ()
    habit_logs: tuple[HabitLog, ...] = ()
    active_habit_ids: frozenset[str] = frozenset()

    @property
    def active_habit_count(self) -> int:
        return len(self.active_habit_ids)

    @property
    def is_empty(self) -> bool:
        return not (self.workouts or self.completions or self.habit_logs)


# =============================================================================
# XP
# =============================================================================


class Tier(str, Enum):
    """Cosmetic rank bands, lowest to highest."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"
    OBSIDIAN = "obsidian"
    MYTHIC = "mythic"


@dataclass(frozen=True)
class DailyXP:
    """XP earned on one local calendar date."""

    day: date
    workouts: int
    recovery: bool
    habit_bonus: bool
    subtotal: int  # before the daily cap
    capped: int


@dataclass(frozen=True)
class LevelInfo:
    """Level position for a total XP value."""

    level: int
    current_level_xp: int  # floor of the current level
    next_level_xp: int  # floor of the next level (== current at max level)
    xp_to_next: int
    progress: float  # percent toward next level


@dataclass(frozen=True)
class XPStats:
    """Counters shown next to the level badge."""

    valid_workouts: int = 0
    recovery_days: int = 0
    active_days: int = 0
    active_habits: int = 0
    perfect_habit_days: int = 0


@dataclass(frozen=True)
class XPState:
    """Fully derived experience state."""

    total_xp: int
    level: int
    tier: Tier
    level_info: LevelInfo
    daily: tuple[DailyXP, ...] = ()
    stats: XPStats = field(default_factory=XPStats)
