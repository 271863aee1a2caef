"""
Tests for engine settings loading and the engagement recomputation service.
"""

import warnings
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from adaptive_coach.core.calendar import FixedClock
from adaptive_coach.core.engagement import EngagementService, recompute_engagement
from adaptive_coach.core.engine.config_loader import (
    EngineSettings,
    _deep_merge,
    load_engine_config,
    settings_from_dict,
)
from adaptive_coach.core.models import (
    EventHistory,
    ProgramDayCompletion,
    Tier,
    WorkoutSession,
)

TZ = ZoneInfo("Europe/Tallinn")
ANCHOR = date(2025, 3, 3)


def _local(d: date, hour: int) -> datetime:
    return datetime(d.year, d.month, d.day, hour, tzinfo=TZ)


def _history() -> EventHistory:
    workouts = tuple(
        WorkoutSession(
            user_id="u1",
            session_id=str(i),
            started_at=_local(ANCHOR + timedelta(days=i), 8),
            ended_at=_local(ANCHOR + timedelta(days=i), 8) + timedelta(minutes=30),
        )
        for i in range(5)
    )
    completions = tuple(
        ProgramDayCompletion("u1", i + 1, _local(ANCHOR + timedelta(days=i), 9))
        for i in range(5)
    )
    return EventHistory(user_id="u1", workouts=workouts, completions=completions)


class _MemoryReader:
    """In-memory event and anchor reader."""

    def __init__(self, history: EventHistory, anchor: date | None):
        self.history = history
        self.anchor = anchor
        self.calls = 0

    def load_events(self, user_id: str) -> EventHistory:
        self.calls += 1
        return self.history

    def load_program_anchor(self, user_id: str) -> date | None:
        return self.anchor


# ===========================================================================
# config_loader.py
# ===========================================================================

class TestEngineSettings:
    def test_defaults(self):
        settings = EngineSettings()
        assert settings.timezone_name == "Europe/Tallinn"
        assert settings.unlock_hour == 7
        assert settings.tz == TZ

    def test_invalid_hour_rejected(self):
        with pytest.raises(ValueError):
            EngineSettings(unlock_hour=24)

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValueError):
            EngineSettings(timezone_name="Mars/Olympus")

    def test_tier_label_falls_back_to_value(self):
        settings = EngineSettings(tier_labels={"gold": "Kuld"})
        assert settings.tier_label(Tier.GOLD) == "Kuld"
        assert settings.tier_label(Tier.MYTHIC) == "Mythic"

    def test_deep_merge(self):
        merged = _deep_merge({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1}


class TestSettingsFromDict:
    def test_bundled_defaults_in_sync(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ADAPTIVE_COACH_CONFIG", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            settings = settings_from_dict(load_engine_config())
        assert settings.unlock_hour == 7
        assert settings.unlock_copy_in_sync()
        assert settings.tier_label(Tier.MYTHIC) == "Müütiline"
        assert settings.exercise_increments["bench_press"] == 2.5

    def test_copy_mismatch_warns(self):
        config = {"calendar": {"unlock_hour": 7, "unlock_copy": "Unlocks daily at 15:00"}}
        with pytest.warns(UserWarning, match="unlock_copy"):
            settings = settings_from_dict(config)
        assert settings.unlock_hour == 7

    def test_user_override_merged(self, tmp_path, monkeypatch):
        user_file = tmp_path / "engine.yaml"
        user_file.write_text(
            "calendar:\n  unlock_hour: 8\n  unlock_copy: 'Opens at 08:00'\n", encoding="utf-8"
        )
        monkeypatch.setenv("ADAPTIVE_COACH_CONFIG", str(user_file))
        config = load_engine_config()
        assert config["calendar"]["unlock_hour"] == 8
        assert config["calendar"]["timezone"] == "Europe/Tallinn"
        assert settings_from_dict(config).unlock_copy_in_sync()

    def test_malformed_user_file_warns_and_is_ignored(self, tmp_path, monkeypatch):
        user_file = tmp_path / "engine.yaml"
        user_file.write_text("calendar: [unclosed\n", encoding="utf-8")
        monkeypatch.setenv("ADAPTIVE_COACH_CONFIG", str(user_file))
        with pytest.warns(UserWarning, match="ignoring"):
            config = load_engine_config()
        assert config["calendar"]["unlock_hour"] == 7


# ===========================================================================
# engagement.py
# ===========================================================================

class TestRecomputeEngagement:
    def test_full_week(self):
        snap = recompute_engagement(
            _history(), ANCHOR, _local(date(2025, 3, 7), 20), EngineSettings()
        )
        # 5 days × (30 + 15)
        assert snap.xp.total_xp == 225
        assert snap.streak_days == 5
        assert snap.program.current_day_number == 6

    def test_empty_user_defaults(self):
        snap = recompute_engagement(
            EventHistory(user_id="new"), None, _local(ANCHOR, 9), EngineSettings()
        )
        assert snap.xp.total_xp == 0
        assert snap.xp.level == 1
        assert snap.streak_days == 0
        assert not snap.program.has_started
        assert snap.program.current_day_number == 1
        assert not snap.program.can_complete_today

    def test_deterministic(self):
        now = _local(date(2025, 3, 7), 20)
        a = recompute_engagement(_history(), ANCHOR, now, EngineSettings())
        b = recompute_engagement(_history(), ANCHOR, now, EngineSettings())
        assert a == b

    def test_unlock_hour_from_settings(self):
        settings = EngineSettings(unlock_hour=10)
        snap = recompute_engagement(EventHistory(user_id="u1"), ANCHOR, _local(ANCHOR, 9), settings)
        assert not snap.program.can_complete_today


class TestEngagementService:
    def test_snapshot_uses_injected_clock(self):
        reader = _MemoryReader(_history(), ANCHOR)
        service = EngagementService(
            reader, reader, clock=FixedClock(_local(date(2025, 3, 11), 9)), settings=EngineSettings()
        )
        snap = service.snapshot("u1")
        # Monday 2025-03-10 was missed
        assert snap.streak_days == 0
        assert snap.computed_at == _local(date(2025, 3, 11), 9)
        assert reader.calls == 1

    def test_derived_state_is_frozen(self):
        reader = _MemoryReader(_history(), ANCHOR)
        service = EngagementService(
            reader, reader, clock=FixedClock(_local(date(2025, 3, 7), 20)), settings=EngineSettings()
        )
        snap = service.snapshot("u1")
        with pytest.raises(AttributeError):
            snap.xp.total_xp = 9999
