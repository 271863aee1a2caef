"""
JSONL-based event storage.

The events file is append-only: one JSON event per line, never rewritten.
A separate profile.json holds the user id, the program anchor date and the
active custom habits.
"""

import json
import logging
import os
from datetime import date
from pathlib import Path

from ..core.calendar import as_utc
from ..core.models import EventHistory, HabitLog, ProgramDayCompletion, WorkoutSession
from .serializers import (
    Event,
    ValidationError,
    dict_to_event,
    dict_to_profile,
    event_to_json_line,
    profile_to_dict,
)

logger = logging.getLogger(__name__)

DATA_DIR_ENV_VAR = "ADAPTIVE_COACH_HOME"


def get_default_events_path() -> Path:
    """~/.adaptive-coach/events.jsonl, or $ADAPTIVE_COACH_HOME/events.jsonl."""
    base = os.environ.get(DATA_DIR_ENV_VAR)
    root = Path(base).expanduser() if base else Path.home() / ".adaptive-coach"
    return root / "events.jsonl"


class EventStore:
    """
    Manages one user's completion events stored in JSONL format.

    Implements the event history reader and program anchor reader used by
    the engagement service.
    """

    def __init__(self, events_path: str | Path):
        """
        Initialize the event store.

        Args:
            events_path: Path to the JSONL events file
        """
        self.events_path = Path(events_path)
        self.profile_path = self.events_path.parent / "profile.json"

    def exists(self) -> bool:
        """Check if the store has been initialised."""
        return self.events_path.exists() and self.profile_path.exists()

    def init(self, user_id: str, active_habits: list[str] | None = None) -> None:
        """
        Create the events file and profile if they don't exist.

        An existing profile keeps its anchor; user id and habits are updated.

        Args:
            user_id: Owner of the store
            active_habits: Active custom habit ids
        """
        self.events_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.events_path.exists():
            self.events_path.touch()

        anchor = None
        if self.profile_path.exists():
            _, anchor, existing = self._read_profile()
            if active_habits is None:
                active_habits = existing

        self._write_profile(user_id, anchor, list(dict.fromkeys(active_habits or [])))
        logger.info("Initialised event store at %s for %s", self.events_path, user_id)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def _read_profile(self) -> tuple[str, date | None, list[str]]:
        if not self.profile_path.exists():
            raise FileNotFoundError(
                f"Profile not found: {self.profile_path}. Run 'init' first."
            )
        try:
            with open(self.profile_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Error parsing {self.profile_path}: {e}") from e
        return dict_to_profile(data)

    def _write_profile(self, user_id: str, anchor: date | None, habits: list[str]) -> None:
        # validate before touching the file
        data = profile_to_dict(user_id, anchor, habits)
        dict_to_profile(data)
        with open(self.profile_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    @property
    def user_id(self) -> str:
        return self._read_profile()[0]

    def load_active_habits(self) -> list[str]:
        """Active custom habit ids from profile.json."""
        return self._read_profile()[2]

    def set_active_habits(self, habits: list[str]) -> None:
        """
        Replace the active habit list.

        Raises:
            ValidationError: If more than four habits are given
        """
        user_id, anchor, _ = self._read_profile()
        self._write_profile(user_id, anchor, list(dict.fromkeys(habits)))
        logger.info("Active habits set to %s", habits)

    def load_program_anchor(self, user_id: str) -> date | None:
        """Program week-start date, or None if the program was never started."""
        owner, anchor, _ = self._read_profile()
        if owner != user_id:
            return None
        return anchor

    def set_program_anchor(self, anchor: date) -> None:
        """Store the program week-start date."""
        user_id, _, habits = self._read_profile()
        self._write_profile(user_id, anchor, habits)
        logger.info("Program anchor set to %s", anchor.isoformat())

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def append_event(self, event: Event) -> None:
        """
        Append one event to the log.

        Raises:
            FileNotFoundError: If the store was not initialised
        """
        if not self.events_path.exists():
            raise FileNotFoundError(
                f"Events file not found: {self.events_path}. Run 'init' first."
            )
        with open(self.events_path, "a", encoding="utf-8") as f:
            f.write(event_to_json_line(event) + "\n")
        logger.info("Appended %s event for %s", type(event).__name__, event.user_id)

    def load_raw_events(self) -> list[Event]:
        """
        Load every event in file order.

        Raises:
            FileNotFoundError: If events file doesn't exist
            ValidationError: If a line cannot be parsed
        """
        if not self.events_path.exists():
            raise FileNotFoundError(
                f"Events file not found: {self.events_path}. Run 'init' first."
            )

        events: list[Event] = []
        with open(self.events_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(dict_to_event(json.loads(line)))
                except (json.JSONDecodeError, ValidationError) as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.events_path}: {e}"
                    ) from e
        return events

    def load_events(self, user_id: str) -> EventHistory:
        """
        Load one user's event history.

        Args:
            user_id: User whose events to return

        Returns:
            EventHistory with events sorted by timestamp
        """
        workouts: list[WorkoutSession] = []
        completions: list[ProgramDayCompletion] = []
        habit_logs: list[HabitLog] = []

        for event in self.load_raw_events():
            if event.user_id != user_id:
                continue
            if isinstance(event, WorkoutSession):
                workouts.append(event)
            elif isinstance(event, ProgramDayCompletion):
                completions.append(event)
            else:
                habit_logs.append(event)

        owner, _, habits = self._read_profile()
        active = frozenset(habits) if owner == user_id else frozenset()

        return EventHistory(
            user_id=user_id,
            workouts=tuple(sorted(workouts, key=lambda s: as_utc(s.started_at))),
            completions=tuple(sorted(completions, key=lambda c: as_utc(c.completed_at))),
            habit_logs=tuple(sorted(habit_logs, key=lambda h: h.log_date)),
            active_habit_ids=active,
        )
