"""Shared Typer app object, shared option types, and store/engine utilities."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.calendar import Clock, FixedClock, SystemClock
from ..core.engagement import EngagementService
from ..core.engine.config_loader import load_engine_settings
from ..io.event_store import EventStore, get_default_events_path
from ..io.serializers import ValidationError, validate_datetime
from . import views

# Shared --events-path option type used by every command that touches the store
EventsPathOption = Annotated[
    Optional[Path],
    typer.Option("--events-path", "-p", help="Path to events JSONL file"),
]

# Shared --now option: evaluate as if the current instant were this ISO timestamp
NowOption = Annotated[
    Optional[str],
    typer.Option("--now", help="Override the current instant (ISO 8601, e.g. 2025-03-03T09:00+02:00)"),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

app = typer.Typer(
    name="adaptive-coach",
    help="Adaptive training progression, recovery program and XP engine.",
    no_args_is_help=True,
)


def get_store(events_path: Path | None) -> EventStore:
    """Get event store from path or default location."""
    if events_path is None:
        events_path = get_default_events_path()
    return EventStore(events_path)


def require_store(events_path: Path | None) -> EventStore:
    """Get an initialised store or exit with an error."""
    store = get_store(events_path)
    if not store.exists():
        views.print_error(f"Event store not found: {store.events_path}")
        views.print_info("Run 'init' first to create the profile and event log.")
        raise typer.Exit(1)
    return store


def get_clock(now: str | None) -> Clock:
    """System clock, or a fixed clock when --now was given."""
    if now is None:
        return SystemClock()
    try:
        return FixedClock(validate_datetime(now))
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def get_service(store: EventStore, now: str | None) -> EngagementService:
    """Engagement service reading from the store."""
    try:
        settings = load_engine_settings()
    except ValueError as e:
        views.print_error(f"Invalid engine configuration: {e}")
        raise typer.Exit(1)
    return EngagementService(store, store, clock=get_clock(now), settings=settings)
