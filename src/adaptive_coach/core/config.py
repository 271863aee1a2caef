"""
Configuration constants for the adaptive training engine.

All adjustable parameters are centralized here for easy tuning.
Values that the surrounding application may need to change at deploy time
(timezone, unlock hour, increment table, display labels) can also be
overridden through engine.yaml; see core/engine/config_loader.py.
"""

from typing import Final

# =============================================================================
# CALENDAR
# =============================================================================

PROGRAM_TIMEZONE: Final[str] = "Europe/Tallinn"  # Single civil zone for all users
UNLOCK_HOUR: Final[int] = 7  # Local hour at which a due program day opens
WEEKEND_DAYS: Final[frozenset[int]] = frozenset({5, 6})  # date.weekday(): Sat, Sun
WEEKEND_ACTION: Final[str] = "mindfulness"  # Offered instead of a program day

# =============================================================================
# EXERCISE PROGRESSION (ternary feedback)
# =============================================================================

ROUNDING_UNIT: Final[float] = 0.5  # Weights always land on multiples of this

CATEGORY_MIN_INCREMENT: Final[dict[str, float]] = {
    "compound": 2.5,
    "isolation": 1.25,
    "bodyweight": 0.0,
}

COMPOUND_STEP_FRACTION: Final[float] = 0.025  # 2.5% of current weight
DEFAULT_STEP_FRACTION: Final[float] = 0.02  # 2.0% for other weighted categories

# Per-exercise minimum increments; engine.yaml may extend this table
EXERCISE_INCREMENTS: Final[dict[str, float]] = {
    "squat": 2.5,
    "deadlift": 2.5,
    "bench_press": 2.5,
    "overhead_press": 2.5,
    "barbell_row": 2.5,
    "bicep_curl": 1.25,
    "tricep_extension": 1.25,
    "lateral_raise": 1.25,
    "rear_delt_fly": 1.25,
    "leg_curl": 1.25,
    "leg_extension": 1.25,
}

# Keyword classification of free-text exercise names
BODYWEIGHT_KEYWORDS: Final[tuple[str, ...]] = (
    "push-up", "pull-up", "dip", "chin-up", "plank", "burpee",
)
COMPOUND_KEYWORDS: Final[tuple[str, ...]] = (
    "squat", "deadlift", "bench", "press", "row", "pull", "push",
)

# =============================================================================
# EXERCISE PROGRESSION (RPE/RIR preview)
# =============================================================================

RPE_MIN: Final[int] = 1
RPE_MAX: Final[int] = 10
RIR_MIN: Final[int] = 0
RIR_MAX: Final[int] = 5  # "5+" is reported as 5

RPE_EASY_MAX: Final[int] = 6  # rpe <= 6 ...
RIR_EASY_MIN: Final[int] = 3  # ... and rir >= 3 -> increase
RPE_HARD_MIN: Final[int] = 9  # rpe >= 9 or rir == 0 -> decrease
RPE_PREVIEW_FRACTION: Final[float] = 0.075  # Flat 7.5% step

# =============================================================================
# WORKOUT-LEVEL ADJUSTMENT
# =============================================================================

VOLUME_MULTIPLIER_MIN: Final[float] = 0.80
VOLUME_MULTIPLIER_MAX: Final[float] = 1.20
INTENSITY_MULTIPLIER_MIN: Final[float] = 0.85
INTENSITY_MULTIPLIER_MAX: Final[float] = 1.15

LOW_ENERGY_HIGH_SORENESS_VOLUME: Final[float] = 0.90
HIGH_ENERGY_NO_SORENESS_VOLUME: Final[float] = 1.05
HIGH_SORENESS_VOLUME: Final[float] = 0.95
NO_SORENESS_NORMAL_ENERGY_VOLUME: Final[float] = 1.02
POOR_PUMP_VOLUME: Final[float] = 1.03
EXCELLENT_PUMP_MILD_SORENESS_VOLUME: Final[float] = 0.98
JOINT_PAIN_INTENSITY: Final[float] = 0.95
TOO_EASY_VOLUME: Final[float] = 1.05
TOO_EASY_INTENSITY: Final[float] = 1.02
TOO_HARD_VOLUME: Final[float] = 0.90
TOO_HARD_INTENSITY: Final[float] = 0.95

# =============================================================================
# PROGRAM CYCLE
# =============================================================================

CYCLE_LENGTH_DAYS: Final[int] = 20  # 4 weeks x 5 weekdays

# =============================================================================
# XP AND LEVELING
# =============================================================================

WORKOUT_XP: Final[int] = 30
RECOVERY_XP: Final[int] = 15  # First recovery-routine completion per day
HABIT_BONUS_XP: Final[int] = 5  # All habits logged on a day
HABITS_FOR_BONUS: Final[int] = 4  # Bonus requires exactly this many active habits
DAILY_XP_CAP: Final[int] = 60
MIN_WORKOUT_MINUTES: Final[float] = 8.0
MAX_LEVEL: Final[int] = 99
MAX_XP: Final[int] = 5000

LEVEL_BASE_XP: Final[float] = 15.0
LEVEL_LINEAR_XP: Final[float] = 0.8
LEVEL_GROWTH_XP: Final[float] = 0.12
LEVEL_GROWTH_EXPONENT: Final[float] = 1.5

# Highest threshold wins; values match models.Tier
TIER_LEVEL_THRESHOLDS: Final[tuple[tuple[int, str], ...]] = (
    (85, "mythic"),
    (70, "obsidian"),
    (55, "diamond"),
    (40, "platinum"),
    (25, "gold"),
    (10, "silver"),
    (1, "bronze"),
)


def level_increment(level: int) -> int:
    """
    XP needed to go from level-1 to level.

        floor(15 + (L-2) * 0.8 + (L-2)^1.5 * 0.12)

    Args:
        level: Target level (>= 2)

    Returns:
        Incremental XP for that single level
    """
    k = level - 2
    return int(
        LEVEL_BASE_XP + k * LEVEL_LINEAR_XP + (k ** LEVEL_GROWTH_EXPONENT) * LEVEL_GROWTH_XP
    )
