"""Progression commands: next-weight, rpe-preview, adjust."""

import json
from typing import Annotated, Optional

import typer

from ...core.adjustment import calculate_workout_adjustment
from ...core.engine.config_loader import load_engine_settings
from ...core.models import ExerciseState, WorkoutSurvey
from ...core.progression import (
    calculate_exercise_progression,
    classify_exercise,
    preview_progression_from_rpe,
)
from .. import views
from ..app import JsonOption, app


@app.command("next-weight")
def next_weight(
    exercise: Annotated[str, typer.Argument(help="Exercise name, e.g. 'bench press'")],
    weight: Annotated[
        float,
        typer.Option("--weight", "-w", help="Current working weight (multiple of 0.5)"),
    ],
    feedback: Annotated[
        str,
        typer.Option("--feedback", "-f", help="too_easy / just_right / too_hard"),
    ],
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-c", help="compound / isolation / bodyweight (default: guessed from name)"),
    ] = None,
    json_out: JsonOption = False,
) -> None:
    """
    Prescribe the next working weight from effort feedback.

    Compound lifts step by max(2.5%, 2.5), isolation by max(2%, 1.25), or by
    the exercise's own increment when it has one.  Bodyweight exercises keep
    their weight and get a rep adjustment instead.
    """
    resolved = category or classify_exercise(exercise)
    settings = load_engine_settings()

    try:
        state = ExerciseState(exercise_id=exercise, category=resolved, current_weight=weight)
        progression = calculate_exercise_progression(
            feedback, state.current_weight, state.category,
            exercise_key=exercise, increments=settings.exercise_increments,
        )
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        out = views.progression_to_dict(progression)
        out.update({"exercise": exercise, "category": resolved, "current_weight": weight})
        print(json.dumps(out, indent=2))
        return

    views.print_progression(exercise, weight, progression)
    if category is None:
        views.console.print(f"[dim]Category: {resolved}[/dim]")


@app.command("rpe-preview")
def rpe_preview(
    weight: Annotated[
        float,
        typer.Option("--weight", "-w", help="Current working weight"),
    ],
    rpe: Annotated[
        int,
        typer.Option("--rpe", help="Rate of perceived exertion, 1-10"),
    ],
    rir: Annotated[
        int,
        typer.Option("--rir", help="Reps in reserve, 0-5 (use 5 for 5+)"),
    ],
    json_out: JsonOption = False,
) -> None:
    """
    Estimate a weight change from RPE and reps in reserve.

    This is a flat 7.5% estimate for display only.  It never changes the
    working weight; use next-weight for the prescription.
    """
    try:
        progression = preview_progression_from_rpe(rpe, rir, weight)
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(views.progression_to_dict(progression), indent=2))
        return

    views.print_progression("Preview", weight, progression)


@app.command()
def adjust(
    energy: Annotated[
        str,
        typer.Option("--energy", "-e", help="low / normal / high"),
    ] = "normal",
    soreness: Annotated[
        str,
        typer.Option("--soreness", "-s", help="none / mild / high"),
    ] = "mild",
    pump: Annotated[
        str,
        typer.Option("--pump", help="poor / good / excellent"),
    ] = "good",
    joint_pain: Annotated[
        bool,
        typer.Option("--joint-pain/--no-joint-pain", help="Any joint pain during the workout"),
    ] = False,
    difficulty: Annotated[
        str,
        typer.Option("--difficulty", "-d", help="too_easy / just_right / too_hard"),
    ] = "just_right",
    notes: Annotated[
        Optional[str],
        typer.Option("--notes", help="Free-text notes (not used in the calculation)"),
    ] = None,
    json_out: JsonOption = False,
) -> None:
    """
    Next-session volume and intensity from the post-workout survey.
    """
    try:
        survey = WorkoutSurvey(
            energy=energy,
            soreness=soreness,
            pump=pump,
            joint_pain=joint_pain,
            overall_difficulty=difficulty,
            notes=notes,
        )
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    adjustment = calculate_workout_adjustment(survey)

    if json_out:
        print(json.dumps(views.adjustment_to_dict(adjustment), indent=2))
        return

    views.print_adjustment(adjustment)
