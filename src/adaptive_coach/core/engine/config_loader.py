"""
YAML → typed engine settings.

Loads engine settings from engine.yaml (bundled with the package) and
optionally merges user overrides from ~/.adaptive-coach/engine.yaml, or from
the file named by the ADAPTIVE_COACH_CONFIG environment variable.

Usage:
    from adaptive_coach.core.engine.config_loader import load_engine_settings
    settings = load_engine_settings()
    settings.tz, settings.unlock_hour

If the bundled YAML cannot be parsed, the Python defaults from config.py are
used.  If the user override file exists but has parse errors, a warning is
issued and the file is ignored.
"""

from __future__ import annotations

import importlib.resources
import logging
import os
import re
import warnings
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from ..config import EXERCISE_INCREMENTS, PROGRAM_TIMEZONE, UNLOCK_HOUR
from ..models import Tier

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ADAPTIVE_COACH_CONFIG"

_DEFAULT_TIER_LABELS: dict[str, str] = {t.value: t.value.capitalize() for t in Tier}

_COPY_TIME_RE = re.compile(r"\b(\d{1,2})[:.](\d{2})\b")

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; raise yaml.YAMLError / OSError on failure."""
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _copy_hour(copy: str) -> int | None:
    """Extract the hour from an HH:MM time mentioned in display copy."""
    match = _COPY_TIME_RE.search(copy)
    return int(match.group(1)) if match else None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineSettings:
    """Resolved engine settings."""

    timezone_name: str = PROGRAM_TIMEZONE
    unlock_hour: int = UNLOCK_HOUR
    unlock_copy: str = ""
    exercise_increments: dict[str, float] = field(
        default_factory=lambda: dict(EXERCISE_INCREMENTS)
    )
    tier_labels: dict[str, str] = field(default_factory=lambda: dict(_DEFAULT_TIER_LABELS))

    def __post_init__(self) -> None:
        """Validate settings."""
        if not 0 <= self.unlock_hour <= 23:
            raise ValueError(f"unlock_hour must be in 0..23, got {self.unlock_hour}")
        try:
            ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {self.timezone_name!r}") from e
        for key, inc in self.exercise_increments.items():
            if inc < 0:
                raise ValueError(f"exercise_increments[{key!r}] must be non-negative")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)

    def tier_label(self, tier: Tier) -> str:
        """Display label for a tier."""
        return self.tier_labels.get(tier.value, tier.value.capitalize())

    def unlock_copy_in_sync(self) -> bool:
        """True when the display copy names the scheduling hour (or no hour at all)."""
        hour = _copy_hour(self.unlock_copy)
        return hour is None or hour == self.unlock_hour


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled engine.yaml, or None if not found."""
    try:
        ref = importlib.resources.files("adaptive_coach").joinpath("engine.yaml")
        with importlib.resources.as_file(ref) as p:
            return p if p.exists() else None
    except (ModuleNotFoundError, FileNotFoundError, TypeError):
        # Fallback: look relative to this file's package root
        candidate = Path(__file__).parent.parent.parent / "engine.yaml"
        return candidate if candidate.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return the user override file if it exists, else None."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path).expanduser()
        return p if p.exists() else None
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / ".adaptive-coach" / "engine.yaml"
    return p if p.exists() else None


def load_engine_config() -> dict[str, Any]:
    """
    Load and merge engine configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/adaptive_coach/engine.yaml
    2. User override (ADAPTIVE_COACH_CONFIG or ~/.adaptive-coach/engine.yaml)

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        try:
            config = _deep_merge(config, _load_yaml_file(bundled))
        except (yaml.YAMLError, OSError) as e:
            warnings.warn(f"adaptive-coach: bundled engine.yaml unreadable ({e}); using defaults")

    user = get_user_yaml_path()
    if user is not None:
        try:
            user_cfg = _load_yaml_file(user)
        except (yaml.YAMLError, OSError) as e:
            warnings.warn(f"adaptive-coach: ignoring {user}: {e}")
        else:
            logger.debug("Merging user engine config from %s", user)
            config = _deep_merge(config, user_cfg)

    return config


def settings_from_dict(config: dict[str, Any]) -> EngineSettings:
    """
    Build EngineSettings from a merged config dict.

    Missing sections fall back to the constants in config.py.

    Raises:
        ValueError: If a value has the wrong type or is out of range
    """
    calendar = config.get("calendar") or {}
    progression = config.get("progression") or {}
    xp = config.get("xp") or {}

    increments = dict(EXERCISE_INCREMENTS)
    increments.update(
        {str(k): float(v) for k, v in (progression.get("exercise_increments") or {}).items()}
    )
    tier_labels = dict(_DEFAULT_TIER_LABELS)
    tier_labels.update({str(k): str(v) for k, v in (xp.get("tier_labels") or {}).items()})

    settings = EngineSettings(
        timezone_name=str(calendar.get("timezone", PROGRAM_TIMEZONE)),
        unlock_hour=int(calendar.get("unlock_hour", UNLOCK_HOUR)),
        unlock_copy=str(calendar.get("unlock_copy", "")),
        exercise_increments=increments,
        tier_labels=tier_labels,
    )

    if not settings.unlock_copy_in_sync():
        warnings.warn(
            f"adaptive-coach: unlock_copy mentions {_copy_hour(settings.unlock_copy)}:00 "
            f"but unlock_hour is {settings.unlock_hour}; update the display copy"
        )
    return settings


@lru_cache(maxsize=1)
def load_engine_settings() -> EngineSettings:
    """Load, merge and validate engine settings (cached per process)."""
    return settings_from_dict(load_engine_config())
