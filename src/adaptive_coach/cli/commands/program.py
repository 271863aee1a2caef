"""Program commands: init, complete-day, status, config."""

import json
from typing import Annotated, Optional

import typer

from ...core.calendar import local_date
from ...core.engine.config_loader import (
    get_bundled_yaml_path,
    get_user_yaml_path,
    load_engine_settings,
)
from ...core.models import ProgramDayCompletion
from ...core.program import ProgramStateError, start_anchor, validate_completion
from ...io.serializers import ValidationError
from .. import views
from ..app import EventsPathOption, JsonOption, NowOption, app, get_service, get_store, require_store


@app.command()
def init(
    user_id: Annotated[
        str,
        typer.Option("--user", "-u", help="User id that owns this event log"),
    ] = "me",
    habits: Annotated[
        Optional[list[str]],
        typer.Option("--habit", "-H", help="Active custom habit id (repeat up to 4 times)"),
    ] = None,
    start: Annotated[
        bool,
        typer.Option("--start/--no-start", help="Start the program this week"),
    ] = True,
    events_path: EventsPathOption = None,
    now: NowOption = None,
) -> None:
    """
    Initialize the profile and event log.

    With --start (the default) the program is anchored on Monday of the
    current week in the program timezone.  Re-running init keeps an existing
    anchor and event log.
    """
    store = get_store(events_path)

    try:
        store.init(user_id, habits)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    service = get_service(store, now)
    if start and store.load_program_anchor(user_id) is None:
        anchor = start_anchor(service.clock.now(), service.settings.tz)
        store.set_program_anchor(anchor)
        views.print_success(f"Program started: week of {anchor.isoformat()}")

    views.print_success(f"Initialised event log at {store.events_path}")
    active = store.load_active_habits()
    if active:
        views.print_info(f"Active habits: {', '.join(active)}")


@app.command("complete-day")
def complete_day(
    day: Annotated[
        Optional[int],
        typer.Option("--day", "-d", help="Program day to complete (default: current day)"),
    ] = None,
    events_path: EventsPathOption = None,
    now: NowOption = None,
) -> None:
    """
    Complete a recovery-program day.

    Only unlocked, not-yet-completed days of the current cycle can be
    completed, and never on a weekend.
    """
    store = require_store(events_path)
    service = get_service(store, now)
    user_id = store.user_id

    try:
        snap = service.snapshot(user_id)
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    status = snap.program
    if status.is_weekend_today:
        views.print_error("Program days cannot be completed on weekends.")
        views.print_info(f"Try {status.weekend_action} instead.")
        raise typer.Exit(1)

    history = store.load_events(user_id)
    day_number = day if day is not None else status.current_day_number
    cycle_number = status.cycle.current_cycle_number

    try:
        record = validate_completion(
            store.load_program_anchor(user_id),
            history.completions,
            day_number,
            cycle_number,
            snap.computed_at,
            service.settings.tz,
            service.settings.unlock_hour,
        )
    except ProgramStateError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    store.append_event(
        ProgramDayCompletion(
            user_id=user_id,
            day_number=record.day_number,
            completed_at=snap.computed_at,
            cycle_number=cycle_number,
        )
    )

    after = service.snapshot(user_id)
    views.print_success(
        f"Completed day {record.day_number} ({record.calendar_date.isoformat()}). "
        f"Streak: {after.streak_days}"
    )
    if after.xp.level > snap.xp.level:
        views.print_success(f"Level up! You are now level {after.xp.level}.")


@app.command()
def status(
    events_path: EventsPathOption = None,
    now: NowOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show the program calendar, streak and XP summary.
    """
    store = require_store(events_path)
    service = get_service(store, now)

    try:
        snap = service.snapshot(store.user_id)
    except (FileNotFoundError, ValidationError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(views.snapshot_to_dict(snap, service.settings), indent=2))
        return

    today = local_date(snap.computed_at, service.settings.tz)
    views.console.print(f"[bold cyan]adaptive-coach[/bold cyan] · {today:%A %Y-%m-%d}")
    views.print_program_status(snap.program, snap.computed_at, service.settings)
    views.console.print()
    views.console.print(
        f"Level {snap.xp.level} · {service.settings.tier_label(snap.xp.tier)} · "
        f"{snap.xp.total_xp} XP"
    )


@app.command("config")
def show_config(
    json_out: JsonOption = False,
) -> None:
    """
    Show the resolved engine settings and where they came from.
    """
    try:
        settings = load_engine_settings()
    except ValueError as e:
        views.print_error(f"Invalid engine configuration: {e}")
        raise typer.Exit(1)

    sources = [str(p) for p in (get_bundled_yaml_path(), get_user_yaml_path()) if p is not None]

    if json_out:
        print(json.dumps({
            "timezone": settings.timezone_name,
            "unlock_hour": settings.unlock_hour,
            "unlock_copy": settings.unlock_copy,
            "unlock_copy_in_sync": settings.unlock_copy_in_sync(),
            "exercise_increments": settings.exercise_increments,
            "tier_labels": settings.tier_labels,
            "sources": sources,
        }, indent=2, ensure_ascii=False))
        return

    views.print_settings(settings, sources)
