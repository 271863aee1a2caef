"""
Tests for the JSONL event store and its serializers.
"""

import json
import tempfile
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from adaptive_coach.core.models import HabitLog, ProgramDayCompletion, WorkoutSession
from adaptive_coach.io.event_store import EventStore, get_default_events_path
from adaptive_coach.io.serializers import (
    ValidationError,
    dict_to_event,
    dict_to_profile,
    event_to_dict,
    validate_datetime,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    s = EventStore(temp_dir / "events.jsonl")
    s.init("u1", ["water", "sleep"])
    return s


def _workout(user: str = "u1", minutes: int = 20) -> WorkoutSession:
    start = datetime(2025, 3, 3, 7, 0, tzinfo=timezone.utc)
    return WorkoutSession(
        user_id=user,
        session_id="abc",
        started_at=start,
        ended_at=start + timedelta(minutes=minutes),
    )


class TestSerializers:
    def test_workout_dict_shape(self):
        data = event_to_dict(_workout())
        assert data["type"] == "workout"
        assert data["started_at"] == "2025-03-03T07:00:00+00:00"

    def test_recovery_defaults_cycle_zero(self):
        event = dict_to_event({
            "type": "recovery",
            "user_id": "u1",
            "day_number": 3,
            "completed_at": "2025-03-05T09:00:00+02:00",
        })
        assert isinstance(event, ProgramDayCompletion)
        assert event.cycle_number == 0
        assert event.day_number == 3

    def test_zulu_suffix_accepted(self):
        assert validate_datetime("2025-03-03T07:00:00Z").tzinfo is not None

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError, match="Invalid event type"):
            dict_to_event({"type": "meditation", "user_id": "u1"})

    def test_missing_field_rejected(self):
        with pytest.raises(ValidationError, match="Missing field"):
            dict_to_event({"type": "habit", "user_id": "u1", "habit_id": "water"})

    def test_model_validation_becomes_validation_error(self):
        with pytest.raises(ValidationError):
            dict_to_event({
                "type": "workout",
                "user_id": "u1",
                "session_id": "x",
                "started_at": "2025-03-03T08:00:00+00:00",
                "ended_at": "2025-03-03T07:00:00+00:00",
            })

    def test_profile_habit_limit(self):
        with pytest.raises(ValidationError):
            dict_to_profile({"user_id": "u1", "active_habits": ["a", "b", "c", "d", "e"]})


class TestEventStore:
    def test_init_creates_files(self, store, temp_dir):
        assert store.exists()
        assert (temp_dir / "events.jsonl").exists()
        profile = json.loads((temp_dir / "profile.json").read_text())
        assert profile == {"user_id": "u1", "program_anchor": None, "active_habits": ["water", "sleep"]}

    def test_load_before_init_fails(self, temp_dir):
        with pytest.raises(FileNotFoundError, match="Run 'init' first"):
            EventStore(temp_dir / "missing" / "events.jsonl").load_raw_events()

    def test_append_and_load(self, store):
        store.append_event(_workout())
        store.append_event(
            ProgramDayCompletion("u1", 1, datetime(2025, 3, 3, 8, tzinfo=timezone.utc))
        )
        store.append_event(HabitLog("u1", "water", date(2025, 3, 3)))

        history = store.load_events("u1")
        assert len(history.workouts) == 1
        assert history.workouts[0].duration_minutes == pytest.approx(20.0)
        assert len(history.completions) == 1
        assert history.habit_logs[0].habit_id == "water"
        assert history.active_habit_ids == frozenset({"water", "sleep"})

    def test_append_only(self, store):
        store.append_event(_workout())
        first = store.events_path.read_text()
        store.append_event(_workout(minutes=30))
        assert store.events_path.read_text().startswith(first)

    def test_other_users_filtered(self, store):
        store.append_event(_workout(user="someone_else"))
        history = store.load_events("u1")
        assert history.is_empty
        assert store.load_events("someone_else").active_habit_ids == frozenset()

    def test_bad_line_reports_line_number(self, store):
        store.append_event(_workout())
        with open(store.events_path, "a") as f:
            f.write("{not json\n")
        with pytest.raises(ValidationError, match="line 2"):
            store.load_events("u1")

    def test_program_anchor(self, store):
        assert store.load_program_anchor("u1") is None
        store.set_program_anchor(date(2025, 3, 3))
        assert store.load_program_anchor("u1") == date(2025, 3, 3)
        assert store.load_program_anchor("other") is None

    def test_reinit_keeps_anchor(self, store):
        store.set_program_anchor(date(2025, 3, 3))
        store.init("u1")
        assert store.load_program_anchor("u1") == date(2025, 3, 3)
        assert store.load_active_habits() == ["water", "sleep"]

    def test_init_drops_duplicate_habits(self, temp_dir):
        s = EventStore(temp_dir / "dupes" / "events.jsonl")
        s.init("u1", ["a", "a", "b", "c", "d"])
        assert s.load_active_habits() == ["a", "b", "c", "d"]
        assert s.load_events("u1").active_habit_count == 4

    def test_too_many_habits_rejected(self, store):
        with pytest.raises(ValidationError):
            store.set_active_habits(["a", "b", "c", "d", "e"])
        assert store.load_active_habits() == ["water", "sleep"]

    def test_default_path_env_override(self, monkeypatch, temp_dir):
        monkeypatch.setenv("ADAPTIVE_COACH_HOME", str(temp_dir))
        assert get_default_events_path() == temp_dir / "events.jsonl"
