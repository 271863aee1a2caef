"""
Exercise progression: next working weight from effort feedback.

Two entry points:

- calculate_exercise_progression(): the authoritative prescription, driven
  by three-way feedback and the per-category increment table.
- preview_progression_from_rpe(): a coarse flat 7.5% estimate from an RPE /
  RIR pair, used for on-screen previews only.  Its output is marked
  is_estimate=True and may disagree with the authoritative calculator.
"""

import logging
import math
from typing import Mapping

from .config import (
    BODYWEIGHT_KEYWORDS,
    CATEGORY_MIN_INCREMENT,
    COMPOUND_KEYWORDS,
    COMPOUND_STEP_FRACTION,
    DEFAULT_STEP_FRACTION,
    EXERCISE_INCREMENTS,
    RIR_EASY_MIN,
    RIR_MAX,
    RIR_MIN,
    ROUNDING_UNIT,
    RPE_EASY_MAX,
    RPE_HARD_MIN,
    RPE_MAX,
    RPE_MIN,
    RPE_PREVIEW_FRACTION,
)
from .models import CATEGORY_VALUES, FEEDBACK_VALUES, Category, ExerciseProgression, Feedback

logger = logging.getLogger(__name__)


def round_to_half(value: float) -> float:
    """
    Round to the nearest 0.5, ties up.

    round_to_half(101.25) == 101.5, round_to_half(-1.25) == -1.0.
    Python's round() uses banker's rounding and must not be used here.
    """
    units = 1.0 / ROUNDING_UNIT
    return math.floor(value * units + 0.5) / units


def normalize_exercise_key(name: str) -> str:
    """Lower-case an exercise name and replace whitespace runs with '_'."""
    return "_".join(name.strip().lower().split())


def classify_exercise(name: str) -> Category:
    """
    Guess an exercise category from its name.

    Bodyweight keywords are checked first so that "pull-up" is not
    swallowed by the compound keyword "pull".

    Args:
        name: Free-text exercise name

    Returns:
        "bodyweight", "compound" or "isolation"
    """
    lowered = name.lower()
    if any(k in lowered for k in BODYWEIGHT_KEYWORDS):
        return "bodyweight"
    if any(k in lowered for k in COMPOUND_KEYWORDS):
        return "compound"
    return "isolation"


def minimum_increment(
    category: Category,
    exercise_key: str | None = None,
    increments: Mapping[str, float] | None = None,
) -> float:
    """
    Smallest weight change allowed for an exercise.

    Args:
        category: Exercise category
        exercise_key: Optional exercise name or key for a per-exercise lookup
        increments: Per-exercise table (defaults to config.EXERCISE_INCREMENTS)

    Returns:
        Increment in the unit of record
    """
    table = EXERCISE_INCREMENTS if increments is None else increments
    if exercise_key:
        key = normalize_exercise_key(exercise_key)
        if key in table:
            return float(table[key])
    return CATEGORY_MIN_INCREMENT[category]


def step_fraction(category: Category) -> float:
    """Percentage step as a fraction: 2.5% compound, 2.0% otherwise."""
    return COMPOUND_STEP_FRACTION if category == "compound" else DEFAULT_STEP_FRACTION


def _bodyweight_progression(feedback: Feedback, current_weight: float) -> ExerciseProgression:
    if feedback == "too_easy":
        reason, reps = "Too easy - add 1 rep per set next time", 1
    elif feedback == "too_hard":
        reason, reps = "Too hard - remove 1 rep per set next time", -1
    else:
        reason, reps = "Perfect difficulty - maintain current reps", 0
    return ExerciseProgression(
        new_weight=current_weight,
        change=0.0,
        reason=reason,
        direction="maintain",
        rep_adjustment=reps,
    )


def calculate_exercise_progression(
    feedback: Feedback,
    current_weight: float,
    category: Category,
    exercise_key: str | None = None,
    increments: Mapping[str, float] | None = None,
) -> ExerciseProgression:
    """
    Prescribe the next working weight from three-way feedback.

    step = max(current * fraction(category), minimum_increment)

    too_easy  → round_to_half(current + step)
    too_hard  → max(0, round_to_half(current - step))
    just_right → unchanged

    Bodyweight exercises and unloaded (weight 0) exercises never change
    weight; the result carries a ±1 rep signal instead.

    Args:
        feedback: "too_easy" | "just_right" | "too_hard"
        current_weight: Last working weight (>= 0)
        category: "compound" | "isolation" | "bodyweight"
        exercise_key: Optional exercise name for the increment table
        increments: Optional per-exercise increment table override

    Returns:
        ExerciseProgression

    Raises:
        ValueError: On unknown feedback/category or negative weight
    """
    if feedback not in FEEDBACK_VALUES:
        raise ValueError(f"Invalid feedback: {feedback!r}")
    if category not in CATEGORY_VALUES:
        raise ValueError(f"Invalid category: {category!r}")
    if current_weight < 0:
        raise ValueError("current_weight must be non-negative")

    if category == "bodyweight" or current_weight == 0:
        return _bodyweight_progression(feedback, current_weight)

    step = max(
        current_weight * step_fraction(category),
        minimum_increment(category, exercise_key, increments),
    )

    if feedback == "too_easy":
        new_weight = round_to_half(current_weight + step)
        direction = "increase"
        reason = f"Too easy - increasing by {new_weight - current_weight:.1f}"
    elif feedback == "too_hard":
        new_weight = max(0.0, round_to_half(current_weight - step))
        direction = "decrease"
        reason = f"Too hard - decreasing by {current_weight - new_weight:.1f}"
    else:
        new_weight = current_weight
        direction = "maintain"
        reason = "Perfect difficulty - maintaining weight"

    logger.debug(
        "progression %s %s %.2f step=%.3f -> %.1f",
        exercise_key or category, feedback, current_weight, step, new_weight,
    )

    return ExerciseProgression(
        new_weight=new_weight,
        change=new_weight - current_weight,
        reason=reason,
        direction=direction,
    )


def preview_progression_from_rpe(rpe: int, rir: int, current_weight: float) -> ExerciseProgression:
    """
    Estimate the next weight from an RPE / reps-in-reserve pair.

    rpe <= 6 and rir >= 3  → +7.5% (rounded to 0.5)
    rpe >= 9 or rir == 0   → -7.5% (floored at 0)
    otherwise              → maintain

    This is a preview only: it ignores the category increment table and is
    flagged is_estimate=True so it cannot be applied to ExerciseState.

    Args:
        rpe: Rate of perceived exertion, 1..10
        rir: Reps in reserve, 0..5 (report "5+" as 5)
        current_weight: Current working weight (>= 0)

    Returns:
        ExerciseProgression with is_estimate=True

    Raises:
        ValueError: If any input is out of range
    """
    if isinstance(rpe, bool) or not isinstance(rpe, int) or not RPE_MIN <= rpe <= RPE_MAX:
        raise ValueError(f"rpe must be an integer in {RPE_MIN}..{RPE_MAX}, got {rpe!r}")
    if isinstance(rir, bool) or not isinstance(rir, int) or not RIR_MIN <= rir <= RIR_MAX:
        raise ValueError(f"rir must be an integer in {RIR_MIN}..{RIR_MAX}, got {rir!r}")
    if current_weight < 0:
        raise ValueError("current_weight must be non-negative")

    step = round_to_half(current_weight * RPE_PREVIEW_FRACTION)

    if step > 0 and rpe <= RPE_EASY_MAX and rir >= RIR_EASY_MIN:
        new_weight = current_weight + step
        direction = "increase"
        reason = "Too light - increase the weight"
    elif step > 0 and (rpe >= RPE_HARD_MIN or rir == 0):
        new_weight = max(0.0, current_weight - step)
        direction = "decrease"
        reason = "Too heavy - decrease the weight"
    else:
        new_weight = current_weight
        direction = "maintain"
        reason = "Ideal range - keep the weight"

    return ExerciseProgression(
        new_weight=new_weight,
        change=new_weight - current_weight,
        reason=reason,
        direction=direction,
        is_estimate=True,
    )


def format_progression_summary(progression: ExerciseProgression) -> str:
    """One-line summary: '+2.5 (reason)', '-2.5 (reason)' or 'No change (reason)'."""
    if progression.change > 0:
        return f"+{progression.change:.1f} ({progression.reason})"
    if progression.change < 0:
        return f"{progression.change:.1f} ({progression.reason})"
    return f"No change ({progression.reason})"
