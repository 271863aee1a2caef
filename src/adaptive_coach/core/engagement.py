"""
Engagement recomputation.

recompute_engagement() is the single place XP, level, tier, streak and
program status are produced.  Callers never write those values; they append
events and recompute.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from .calendar import Clock, SystemClock
from .engine.config_loader import EngineSettings, load_engine_settings
from .models import EventHistory, ProgramStatus, XPState
from .program import program_status
from .xp import compute_xp_state

logger = logging.getLogger(__name__)


class EventHistoryReader(Protocol):
    """Returns all completion events and the active habit ids for a user."""

    def load_events(self, user_id: str) -> EventHistory: ...


class ProgramAnchorReader(Protocol):
    """Returns the program week-start date, or None when not started."""

    def load_program_anchor(self, user_id: str) -> date | None: ...


@dataclass(frozen=True)
class EngagementSnapshot:
    """Everything derived for one user at one instant."""

    user_id: str
    computed_at: datetime
    xp: XPState
    program: ProgramStatus

    @property
    def streak_days(self) -> int:
        return self.program.streak_days


def recompute_engagement(
    history: EventHistory,
    anchor: date | None,
    now: datetime,
    settings: EngineSettings,
) -> EngagementSnapshot:
    """
    Derive XP and program state from the event log.

    Pure: the same inputs always give an equal snapshot.

    Args:
        history: User's event history
        anchor: Program week-start date, or None
        now: Current instant
        settings: Engine settings (timezone, unlock hour)

    Returns:
        EngagementSnapshot
    """
    tz = settings.tz
    return EngagementSnapshot(
        user_id=history.user_id,
        computed_at=now,
        xp=compute_xp_state(history, tz),
        program=program_status(anchor, history.completions, now, tz, settings.unlock_hour),
    )


class EngagementService:
    """Wires the event and anchor readers, a clock and settings together."""

    def __init__(
        self,
        events: EventHistoryReader,
        anchors: ProgramAnchorReader,
        clock: Clock | None = None,
        settings: EngineSettings | None = None,
    ):
        self.events = events
        self.anchors = anchors
        self.clock = clock or SystemClock()
        self.settings = settings or load_engine_settings()

    def snapshot(self, user_id: str) -> EngagementSnapshot:
        """Load a user's events and recompute their engagement state."""
        history = self.events.load_events(user_id)
        anchor = self.anchors.load_program_anchor(user_id)
        now = self.clock.now()

        logger.debug(
            "recomputing engagement user=%s workouts=%d completions=%d habits=%d",
            user_id, len(history.workouts), len(history.completions), len(history.habit_logs),
        )
        snap = recompute_engagement(history, anchor, now, self.settings)
        logger.info(
            "user=%s xp=%d level=%d streak=%d",
            user_id, snap.xp.total_xp, snap.xp.level, snap.streak_days,
        )
        return snap
