"""Engagement commands: log-workout, log-habit, xp."""

import json
import uuid
from datetime import timedelta
from typing import Annotated, Optional

import typer

from ...core.calendar import local_date
from ...core.config import MIN_WORKOUT_MINUTES
from ...core.models import HabitLog, WorkoutSession
from ...io.serializers import ValidationError, validate_date
from .. import views
from ..app import EventsPathOption, JsonOption, NowOption, app, get_service, require_store


@app.command("log-workout")
def log_workout(
    minutes: Annotated[
        float,
        typer.Option("--minutes", "-m", help="Session length in minutes"),
    ],
    events_path: EventsPathOption = None,
    now: NowOption = None,
) -> None:
    """
    Log a workout session that ended now.

    Sessions shorter than 8 minutes are stored but earn no XP.
    """
    if minutes <= 0:
        views.print_error("Minutes must be positive")
        raise typer.Exit(1)

    store = require_store(events_path)
    service = get_service(store, now)
    user_id = store.user_id
    ended_at = service.clock.now()

    try:
        before = service.snapshot(user_id)
        store.append_event(
            WorkoutSession(
                user_id=user_id,
                session_id=uuid.uuid4().hex,
                started_at=ended_at - timedelta(minutes=minutes),
                ended_at=ended_at,
            )
        )
        after = service.snapshot(user_id)
    except (FileNotFoundError, ValidationError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    gained = after.xp.total_xp - before.xp.total_xp
    views.print_success(f"Logged {minutes:g}-minute workout (+{gained} XP)")
    if minutes < MIN_WORKOUT_MINUTES:
        views.print_warning(f"Workouts under {MIN_WORKOUT_MINUTES:g} minutes earn no XP.")
    if after.xp.level > before.xp.level:
        views.print_success(f"Level up! You are now level {after.xp.level}.")


@app.command("log-habit")
def log_habit(
    habit_id: Annotated[str, typer.Argument(help="Active habit id")],
    on_date: Annotated[
        Optional[str],
        typer.Option("--date", help="Date logged (YYYY-MM-DD, default: today)"),
    ] = None,
    events_path: EventsPathOption = None,
    now: NowOption = None,
) -> None:
    """
    Log a custom habit for a day.

    Logging all four active habits on the same day earns a 5 XP bonus.
    """
    store = require_store(events_path)
    service = get_service(store, now)
    user_id = store.user_id

    active = store.load_active_habits()
    if habit_id not in active:
        views.print_error(f"Unknown habit: {habit_id}")
        views.print_info(f"Active habits: {', '.join(active) or '(none)'}")
        raise typer.Exit(1)

    try:
        log_date = (
            validate_date(on_date)
            if on_date is not None
            else local_date(service.clock.now(), service.settings.tz)
        )
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    try:
        history = store.load_events(user_id)
        if any(h.habit_id == habit_id and h.log_date == log_date for h in history.habit_logs):
            views.print_info(f"{habit_id} is already logged for {log_date.isoformat()}.")
            return

        store.append_event(HabitLog(user_id=user_id, habit_id=habit_id, log_date=log_date))
        logged = {
            h.habit_id for h in store.load_events(user_id).habit_logs if h.log_date == log_date
        }
    except (FileNotFoundError, ValidationError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(
        f"Logged {habit_id} for {log_date.isoformat()} ({len(logged & set(active))}/{len(active)})"
    )


@app.command()
def xp(
    days: Annotated[
        int,
        typer.Option("--days", "-n", help="Recent days to show in the breakdown"),
    ] = 7,
    events_path: EventsPathOption = None,
    now: NowOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show total XP, level, tier and the recent daily breakdown.
    """
    store = require_store(events_path)
    service = get_service(store, now)

    try:
        snap = service.snapshot(store.user_id)
    except (FileNotFoundError, ValidationError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(views.xp_to_dict(snap.xp, service.settings), indent=2, ensure_ascii=False))
        return

    views.print_xp_state(snap.xp, service.settings)
    views.print_recent_xp(snap.xp, days)
