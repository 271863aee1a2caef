"""
JSON serialization for completion events and the user profile.

Handles conversion between event dataclasses and JSON-compatible dicts.
Every event record carries a "type" field: "workout", "recovery" or "habit".
"""

import json
import re
from datetime import date, datetime
from typing import Any, Union

from ..core.config import HABITS_FOR_BONUS
from ..core.models import HabitLog, ProgramDayCompletion, WorkoutSession

Event = Union[WorkoutSession, ProgramDayCompletion, HabitLog]

EVENT_TYPES: tuple[str, ...] = ("workout", "recovery", "habit")


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_date(date_str: str) -> date:
    """
    Parse a YYYY-MM-DD string.

    Raises:
        ValidationError: If date format is invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    try:
        return date.fromisoformat(date_str)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e


def validate_datetime(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp.

    Offsets are kept; a naive timestamp is later interpreted as UTC.

    Raises:
        ValidationError: If the timestamp cannot be parsed
    """
    if not isinstance(value, str):
        raise ValidationError(f"Invalid timestamp: {value!r}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value}. Expected ISO 8601") from e


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ValidationError(f"Missing field: {key}")
    return data[key]


def event_to_dict(event: Event) -> dict[str, Any]:
    """
    Convert an event to a JSON-compatible dict.

    Args:
        event: WorkoutSession, ProgramDayCompletion or HabitLog

    Returns:
        Dict representation with a "type" discriminator
    """
    if isinstance(event, WorkoutSession):
        return {
            "type": "workout",
            "user_id": event.user_id,
            "session_id": event.session_id,
            "started_at": event.started_at.isoformat(),
            "ended_at": event.ended_at.isoformat(),
        }
    if isinstance(event, ProgramDayCompletion):
        return {
            "type": "recovery",
            "user_id": event.user_id,
            "cycle_number": event.cycle_number,
            "day_number": event.day_number,
            "completed_at": event.completed_at.isoformat(),
        }
    if isinstance(event, HabitLog):
        return {
            "type": "habit",
            "user_id": event.user_id,
            "habit_id": event.habit_id,
            "log_date": event.log_date.isoformat(),
        }
    raise TypeError(f"Unsupported event type: {type(event).__name__}")


def dict_to_event(data: dict[str, Any]) -> Event:
    """
    Convert a dict to an event.

    Args:
        data: Dict with a "type" discriminator

    Returns:
        The event dataclass

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Event record must be an object, got {type(data).__name__}")

    event_type = _require(data, "type")
    user_id = str(_require(data, "user_id"))

    try:
        if event_type == "workout":
            return WorkoutSession(
                user_id=user_id,
                session_id=str(_require(data, "session_id")),
                started_at=validate_datetime(_require(data, "started_at")),
                ended_at=validate_datetime(_require(data, "ended_at")),
            )
        if event_type == "recovery":
            return ProgramDayCompletion(
                user_id=user_id,
                day_number=int(_require(data, "day_number")),
                completed_at=validate_datetime(_require(data, "completed_at")),
                cycle_number=int(data.get("cycle_number", 0)),
            )
        if event_type == "habit":
            return HabitLog(
                user_id=user_id,
                habit_id=str(_require(data, "habit_id")),
                log_date=validate_date(_require(data, "log_date")),
            )
    except (TypeError, ValueError) as e:
        raise ValidationError(str(e)) from e

    raise ValidationError(f"Invalid event type: {event_type}. Must be one of {EVENT_TYPES}")


def event_to_json_line(event: Event) -> str:
    """Serialize an event as a single JSONL line (no trailing newline)."""
    return json.dumps(event_to_dict(event), separators=(",", ":"), ensure_ascii=False)


def profile_to_dict(
    user_id: str,
    program_anchor: date | None,
    active_habits: list[str],
) -> dict[str, Any]:
    """
    Convert profile fields to a JSON-compatible dict.

    Args:
        user_id: Owner of the store
        program_anchor: Program week-start date, or None
        active_habits: Active custom habit ids

    Returns:
        Dict representation
    """
    return {
        "user_id": user_id,
        "program_anchor": program_anchor.isoformat() if program_anchor else None,
        "active_habits": list(active_habits),
    }


def dict_to_profile(data: dict[str, Any]) -> tuple[str, date | None, list[str]]:
    """
    Convert a profile dict to (user_id, program_anchor, active_habits).

    Raises:
        ValidationError: If data is invalid
    """
    user_id = _require(data, "user_id")
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id must be a non-empty string")

    anchor_raw = data.get("program_anchor")
    anchor = validate_date(anchor_raw) if anchor_raw else None

    habits = data.get("active_habits") or []
    if not isinstance(habits, list) or not all(isinstance(h, str) and h for h in habits):
        raise ValidationError("active_habits must be a list of non-empty strings")
    if len(set(habits)) > HABITS_FOR_BONUS:
        raise ValidationError(
            f"At most {HABITS_FOR_BONUS} active habits are supported, got {len(set(habits))}"
        )

    return user_id, anchor, habits
