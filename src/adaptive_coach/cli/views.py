"""
Rich-based output for the CLI.

Tables and text blocks for program status, XP and progression results,
plus the JSON shapes used by --json.
"""

from datetime import datetime
from typing import Any

from rich.console import Console
from rich.table import Table

from ..core.adjustment import format_adjustment_summary
from ..core.calendar import format_time_until
from ..core.engagement import EngagementSnapshot
from ..core.engine.config_loader import EngineSettings
from ..core.models import (
    DayRecord,
    DayState,
    ExerciseProgression,
    ProgramStatus,
    WorkoutAdjustment,
    XPState,
)
from ..core.progression import format_progression_summary

console = Console()

_STATE_STYLE = {
    DayState.COMPLETED: "[green]done[/green]",
    DayState.UNLOCKED: "[cyan]open[/cyan]",
    DayState.LOCKED: "[dim]locked[/dim]",
}


# =============================================================================
# JSON shapes
# =============================================================================


def progression_to_dict(progression: ExerciseProgression) -> dict[str, Any]:
    return {
        "new_weight": progression.new_weight,
        "change": progression.change,
        "direction": progression.direction,
        "rep_adjustment": progression.rep_adjustment,
        "reason": progression.reason,
        "is_estimate": progression.is_estimate,
    }


def adjustment_to_dict(adjustment: WorkoutAdjustment) -> dict[str, Any]:
    return {
        "volume_multiplier": round(adjustment.volume_multiplier, 4),
        "intensity_multiplier": round(adjustment.intensity_multiplier, 4),
        "reason": adjustment.reason,
        "recommendations": list(adjustment.recommendations),
        "fired_rules": list(adjustment.fired_rules),
    }


def program_to_dict(status: ProgramStatus) -> dict[str, Any]:
    return {
        "has_started": status.has_started,
        "cycle": status.cycle.current_cycle_number,
        "day_in_cycle": status.cycle.day_in_cycle,
        "can_complete_today": status.can_complete_today,
        "completed_today": status.completed_today,
        "completed_days_in_cycle": status.completed_days_in_cycle,
        "progress_percentage": status.progress_percentage,
        "streak_days": status.streak_days,
        "is_weekend_today": status.is_weekend_today,
        "weekend_action": status.weekend_action,
        "next_unlock_at": status.next_unlock_at.isoformat() if status.next_unlock_at else None,
        "days": [
            {
                "day_number": d.day_number,
                "date": d.calendar_date.isoformat(),
                "state": d.state.value,
            }
            for d in status.days
        ],
    }


def xp_to_dict(state: XPState, settings: EngineSettings) -> dict[str, Any]:
    info = state.level_info
    return {
        "total_xp": state.total_xp,
        "level": state.level,
        "tier": state.tier.value,
        "tier_label": settings.tier_label(state.tier),
        "current_level_xp": info.current_level_xp,
        "next_level_xp": info.next_level_xp,
        "xp_to_next": info.xp_to_next,
        "progress": round(info.progress, 1),
        "stats": {
            "valid_workouts": state.stats.valid_workouts,
            "recovery_days": state.stats.recovery_days,
            "active_days": state.stats.active_days,
            "active_habits": state.stats.active_habits,
            "perfect_habit_days": state.stats.perfect_habit_days,
        },
        "daily": [
            {"date": d.day.isoformat(), "subtotal": d.subtotal, "xp": d.capped}
            for d in state.daily
        ],
    }


def snapshot_to_dict(snapshot: EngagementSnapshot, settings: EngineSettings) -> dict[str, Any]:
    return {
        "user_id": snapshot.user_id,
        "computed_at": snapshot.computed_at.isoformat(),
        "program": program_to_dict(snapshot.program),
        "xp": xp_to_dict(snapshot.xp, settings),
    }


# =============================================================================
# Rich output
# =============================================================================


def format_calendar_table(days: tuple[DayRecord, ...], current_day: int) -> Table:
    """
    Create a Rich table for one program cycle.

    Args:
        days: Day records of the cycle
        current_day: Day number to mark with '>'

    Returns:
        Rich Table object
    """
    table = Table(title="Program Cycle")

    table.add_column("", width=1)
    table.add_column("Day", justify="right", style="bold")
    table.add_column("Date", style="cyan")
    table.add_column("Weekday")
    table.add_column("State")

    for d in days:
        table.add_row(
            ">" if d.day_number == current_day else "",
            str(d.day_number),
            d.calendar_date.isoformat(),
            d.calendar_date.strftime("%a"),
            _STATE_STYLE[d.state],
        )
    return table


def print_program_status(status: ProgramStatus, now: datetime, settings: EngineSettings) -> None:
    """Print the program calendar and today's availability."""
    if not status.has_started:
        print_info("Program not started. Run 'init --start' to begin.")
        console.print(f"Streak: {status.streak_days} days")
        return

    console.print(format_calendar_table(status.days, status.current_day_number))
    console.print(
        f"Cycle {status.cycle.current_cycle_number + 1}, "
        f"day {status.current_day_number}/{status.cycle.cycle_length_days} "
        f"({status.progress_percentage}% complete)"
    )
    console.print(f"Streak: [bold]{status.streak_days}[/bold] weekdays")

    if status.is_weekend_today:
        print_info(f"Weekend: program days resume Monday. Try {status.weekend_action} instead.")
    elif status.completed_today:
        print_success("Today's program day is done.")
    elif status.can_complete_today:
        print_success(f"Day {status.current_day_number} is open and can be completed now.")

    if status.next_unlock_at is not None and not status.can_complete_today:
        remaining = status.next_unlock_at - now
        console.print(
            f"Next unlock: {status.next_unlock_at:%a %Y-%m-%d %H:%M} "
            f"(in {format_time_until(remaining)})"
        )
    if settings.unlock_copy:
        console.print(f"[dim]{settings.unlock_copy}[/dim]")


def print_xp_state(state: XPState, settings: EngineSettings) -> None:
    """Print level, tier, progress and counters."""
    info = state.level_info
    console.print(
        f"Level [bold]{state.level}[/bold] · {settings.tier_label(state.tier)} · "
        f"{state.total_xp} XP"
    )
    if info.xp_to_next > 0:
        console.print(
            f"Progress: {info.progress:.1f}% ({info.xp_to_next} XP to level {state.level + 1})"
        )
    else:
        console.print("Progress: max level")

    table = Table(title="Stats", show_header=False)
    table.add_column("Stat", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Valid workouts", str(state.stats.valid_workouts))
    table.add_row("Recovery days", str(state.stats.recovery_days))
    table.add_row("Active days", str(state.stats.active_days))
    table.add_row("Active habits", str(state.stats.active_habits))
    table.add_row("Perfect habit days", str(state.stats.perfect_habit_days))
    console.print(table)


def print_recent_xp(state: XPState, days: int = 7) -> None:
    """Print the last few days of the XP breakdown."""
    if not state.daily:
        return
    table = Table(title="Recent XP")
    table.add_column("Date", style="cyan")
    table.add_column("Workouts", justify="right")
    table.add_column("Recovery", justify="center")
    table.add_column("Habits", justify="center")
    table.add_column("XP", justify="right", style="bold")
    for d in state.daily[-days:]:
        xp = f"{d.capped}" if d.capped == d.subtotal else f"{d.capped} (cap)"
        table.add_row(
            d.day.isoformat(),
            str(d.workouts),
            "✓" if d.recovery else "",
            "✓" if d.habit_bonus else "",
            xp,
        )
    console.print(table)


def print_progression(name: str, current_weight: float, progression: ExerciseProgression) -> None:
    """Print a progression result."""
    label = "Estimate" if progression.is_estimate else "Next"
    console.print(
        f"{name}: {current_weight:g} → [bold]{progression.new_weight:g}[/bold] "
        f"({label}: {format_progression_summary(progression)})"
    )
    if progression.rep_adjustment:
        console.print(f"Reps per set: {progression.rep_adjustment:+d}")
    if progression.is_estimate:
        print_warning("RPE/RIR preview only; use 'next-weight' to update your working weight.")


def print_adjustment(adjustment: WorkoutAdjustment) -> None:
    """Print next-session multipliers and the recommendations behind them."""
    console.print(f"[bold]{format_adjustment_summary(adjustment)}[/bold]")
    console.print(
        f"Volume ×{adjustment.volume_multiplier:.3f}, "
        f"intensity ×{adjustment.intensity_multiplier:.3f}"
    )
    console.print(f"[dim]{adjustment.reason}[/dim]")
    for rec in adjustment.recommendations:
        console.print(f"  - {rec}")


def print_settings(settings: EngineSettings, sources: list[str]) -> None:
    """Print the resolved engine settings."""
    table = Table(title="Engine Settings", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("timezone", settings.timezone_name)
    table.add_row("unlock_hour", f"{settings.unlock_hour:02d}:00")
    table.add_row("unlock_copy", settings.unlock_copy or "-")
    for tier_value, label in settings.tier_labels.items():
        table.add_row(f"tier.{tier_value}", label)
    console.print(table)
    console.print(f"[dim]Sources: {', '.join(sources) or 'built-in defaults'}[/dim]")
    if not settings.unlock_copy_in_sync():
        print_warning("unlock_copy names a different hour than unlock_hour.")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
