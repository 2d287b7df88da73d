"""User settings and process-level configuration.

Settings are persisted through :class:`tremorsense.storage.SessionStore`
and merged over the defaults on load, so older or hand-edited settings
files never fail to load.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

DATA_DIR_ENV = "TREMORSENSE_DATA_DIR"
COUNTDOWN_SECONDS = 3


class SamplingRate(str, Enum):
    """Selectable sensor sampling rate."""

    LOW = "low"  # 20 Hz
    MEDIUM = "medium"  # 50 Hz
    HIGH = "high"  # 100 Hz

    @property
    def interval_ms(self) -> int:
        return SAMPLING_INTERVALS_MS[self]

    @property
    def hz(self) -> float:
        return 1000.0 / self.interval_ms


SAMPLING_INTERVALS_MS = {
    SamplingRate.LOW: 50,
    SamplingRate.MEDIUM: 20,
    SamplingRate.HIGH: 10,
}


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


@dataclass
class Settings:
    """User-facing settings."""

    sampling_rate: SamplingRate = SamplingRate.MEDIUM
    recording_duration: float = 10  # seconds
    theme: Theme = Theme.DARK

    def to_dict(self) -> dict[str, Any]:
        return {
            "samplingRate": self.sampling_rate.value,
            "recordingDuration": self.recording_duration,
            "theme": self.theme.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Settings":
        """Merge *data* over the defaults.

        Missing or unrecognized values keep their default; unknown keys
        are ignored.
        """
        settings = cls()
        if not isinstance(data, dict):
            return settings

        try:
            settings.sampling_rate = SamplingRate(data.get("samplingRate"))
        except ValueError:
            pass

        try:
            settings.theme = Theme(data.get("theme"))
        except ValueError:
            pass

        duration = data.get("recordingDuration")
        # bool is an int subclass; reject it explicitly
        if isinstance(duration, (int, float)) and not isinstance(duration, bool) and duration > 0:
            settings.recording_duration = duration

        return settings


def default_data_dir() -> Path:
    """Resolve the data directory from the environment or the home default."""
    env = os.environ.get(DATA_DIR_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".tremorsense"
