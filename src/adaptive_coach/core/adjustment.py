"""
Workout-level adjustment from the post-workout survey.

Each rule that matches multiplies the running volume and/or intensity
multiplier.  Rules are cumulative and evaluated in a fixed order; the final
multipliers are clamped to their allowed ranges.
"""

from dataclasses import dataclass
from typing import Callable

from .config import (
    EXCELLENT_PUMP_MILD_SORENESS_VOLUME,
    HIGH_ENERGY_NO_SORENESS_VOLUME,
    HIGH_SORENESS_VOLUME,
    INTENSITY_MULTIPLIER_MAX,
    INTENSITY_MULTIPLIER_MIN,
    JOINT_PAIN_INTENSITY,
    LOW_ENERGY_HIGH_SORENESS_VOLUME,
    NO_SORENESS_NORMAL_ENERGY_VOLUME,
    POOR_PUMP_VOLUME,
    TOO_EASY_INTENSITY,
    TOO_EASY_VOLUME,
    TOO_HARD_INTENSITY,
    TOO_HARD_VOLUME,
    VOLUME_MULTIPLIER_MAX,
    VOLUME_MULTIPLIER_MIN,
)
from .models import WorkoutAdjustment, WorkoutSurvey


@dataclass(frozen=True)
class AdjustmentRule:
    """One survey rule and its multiplicative effect."""

    rule_id: str
    applies: Callable[[WorkoutSurvey], bool]
    volume: float
    intensity: float
    recommendation: str


ADJUSTMENT_RULES: tuple[AdjustmentRule, ...] = (
    AdjustmentRule(
        "low_energy_high_soreness",
        lambda s: s.energy == "low" and s.soreness == "high",
        LOW_ENERGY_HIGH_SORENESS_VOLUME, 1.0,
        "Reduce volume due to low energy and high soreness",
    ),
    AdjustmentRule(
        "high_energy_no_soreness",
        lambda s: s.energy == "high" and s.soreness == "none",
        HIGH_ENERGY_NO_SORENESS_VOLUME, 1.0,
        "Increase volume - high energy and no soreness",
    ),
    AdjustmentRule(
        "high_soreness",
        lambda s: s.soreness == "high",
        HIGH_SORENESS_VOLUME, 1.0,
        "Reduce volume due to high soreness",
    ),
    AdjustmentRule(
        "no_soreness_normal_energy",
        lambda s: s.soreness == "none" and s.energy == "normal",
        NO_SORENESS_NORMAL_ENERGY_VOLUME, 1.0,
        "Slight volume increase - no soreness",
    ),
    AdjustmentRule(
        "poor_pump",
        lambda s: s.pump == "poor" and s.energy == "normal",
        POOR_PUMP_VOLUME, 1.0,
        "Increase volume to improve muscle pump",
    ),
    AdjustmentRule(
        "excellent_pump_mild_soreness",
        lambda s: s.pump == "excellent" and s.soreness == "mild",
        EXCELLENT_PUMP_MILD_SORENESS_VOLUME, 1.0,
        "Trim volume slightly - excellent pump achieved",
    ),
    AdjustmentRule(
        "joint_pain",
        lambda s: s.joint_pain,
        1.0, JOINT_PAIN_INTENSITY,
        "Reduce intensity due to joint pain",
    ),
    AdjustmentRule(
        "too_easy",
        lambda s: s.overall_difficulty == "too_easy",
        TOO_EASY_VOLUME, TOO_EASY_INTENSITY,
        "Increase volume and intensity - workout too easy",
    ),
    AdjustmentRule(
        "too_hard",
        lambda s: s.overall_difficulty == "too_hard",
        TOO_HARD_VOLUME, TOO_HARD_INTENSITY,
        "Reduce volume and intensity - workout too hard",
    ),
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_workout_adjustment(survey: WorkoutSurvey) -> WorkoutAdjustment:
    """
    Compute next-session volume and intensity multipliers.

    Both multipliers start at 1.0; every matching rule multiplies them.
    Final clamp: volume in [0.8, 1.2], intensity in [0.85, 1.15].

    Args:
        survey: Validated post-workout survey

    Returns:
        WorkoutAdjustment listing every fired rule in evaluation order
    """
    volume = 1.0
    intensity = 1.0
    recommendations: list[str] = []
    fired: list[str] = []

    for rule in ADJUSTMENT_RULES:
        if rule.applies(survey):
            volume *= rule.volume
            intensity *= rule.intensity
            recommendations.append(rule.recommendation)
            fired.append(rule.rule_id)

    return WorkoutAdjustment(
        volume_multiplier=_clamp(volume, VOLUME_MULTIPLIER_MIN, VOLUME_MULTIPLIER_MAX),
        intensity_multiplier=_clamp(intensity, INTENSITY_MULTIPLIER_MIN, INTENSITY_MULTIPLIER_MAX),
        reason=(
            f"Based on energy: {survey.energy}, soreness: {survey.soreness}, "
            f"pump: {survey.pump}"
        ),
        recommendations=recommendations,
        fired_rules=fired,
    )


def format_adjustment_summary(adjustment: WorkoutAdjustment) -> str:
    """'Volume: +5.0%, Intensity: +2.0%' or 'No changes recommended'."""
    parts = []
    if adjustment.volume_multiplier != 1.0:
        parts.append(f"Volume: {(adjustment.volume_multiplier - 1) * 100:+.1f}%")
    if adjustment.intensity_multiplier != 1.0:
        parts.append(f"Intensity: {(adjustment.intensity_multiplier - 1) * 100:+.1f}%")
    return ", ".join(parts) if parts else "No changes recommended"
