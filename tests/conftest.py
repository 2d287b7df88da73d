"""Shared fixtures and helpers for the tremorsense test suite."""

from __future__ import annotations

import asyncio
import itertools
import json
from pathlib import Path

import pytest

from tremorsense.models import (
    RecordingContext,
    RecordingSession,
    RecordingStats,
    SensorData,
    SensorReading,
    Vector3,
)
from tremorsense.storage import MemoryBackend, SessionStore, StorageBackend

# 2025-10-09T10:13:20Z
NOW_MS = 1_760_004_800_000
HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

_ids = itertools.count()


# ---------------------------------------------------------------------------
# Session-building helpers
# ---------------------------------------------------------------------------


def make_session(
    variability: float = 1.0,
    timestamp: int = NOW_MS,
    session_id: str | None = None,
    magnitude: list[float] | None = None,
    caffeine: bool = False,
    stress: bool = False,
    sleep_deprived: bool = False,
    notes: str = "",
    with_context: bool = True,
    duration: float = 10,
) -> RecordingSession:
    """Build a session whose stats are set directly (not derived)."""
    if magnitude is None:
        magnitude = [1.0, 1.0, 1.0, 1.0]
    n = len(magnitude)
    context = (
        RecordingContext(caffeine=caffeine, sleep_deprived=sleep_deprived, stress=stress, notes=notes)
        if with_context else None
    )
    return RecordingSession(
        id=session_id or f"session_{timestamp}_{next(_ids):09d}",
        timestamp=timestamp,
        duration=duration,
        accelerometer=SensorData(x=[0.0] * n, y=[0.0] * n, z=list(magnitude)),
        gyroscope=SensorData(x=[0.0] * n, y=[0.0] * n, z=[0.0] * n),
        magnitude=list(magnitude),
        stats=RecordingStats(mean_amplitude=variability * 0.8, variability=variability,
                             peak_amplitude=variability * 2.0),
        context=context,
    )


def make_history(variabilities: list[float], spacing_ms: int = HOUR_MS, end: int = NOW_MS) -> list[RecordingSession]:
    """Sessions oldest to newest, the last one at *end*."""
    n = len(variabilities)
    return [
        make_session(v, timestamp=end - (n - 1 - i) * spacing_ms, session_id=f"s{i}")
        for i, v in enumerate(variabilities)
    ]


def make_readings(accel: list[tuple[float, float, float]], start: int = NOW_MS) -> list[SensorReading]:
    """Readings with the given accelerometer triples and a constant gyroscope."""
    return [
        SensorReading(
            accelerometer=Vector3(*a),
            gyroscope=Vector3(0.1, 0.2, 0.3),
            timestamp=start + i * 20,
        )
        for i, a in enumerate(accel)
    ]


def write_jsonl(path: Path, entries: list[dict]) -> Path:
    """Write a list of dicts as JSONL to the given path."""
    with open(path, "w") as f:
        for entry in entries:
            f.write(json.dumps(entry) + "\n")
    return path


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSource:
    """Sensor source that delivers one fixed sample as soon as it starts."""

    def __init__(self, sample: Vector3 | None = Vector3(0.0, 0.0, 1.0), available: bool = True) -> None:
        self.sample = sample
        self.available = available
        self.interval_ms: int | None = None
        self.started = 0
        self.stopped = 0

    async def is_available(self) -> bool:
        return self.available

    def set_update_interval(self, interval_ms: int) -> None:
        self.interval_ms = interval_ms

    def start(self, handler) -> None:
        self.started += 1
        if self.sample is not None:
            handler(self.sample)

    def stop(self) -> None:
        self.stopped += 1


class FailingBackend(StorageBackend):
    """Backend whose every operation raises OSError."""

    name = "failing"

    def __init__(self) -> None:
        self.calls = 0

    def get(self, key):
        self.calls += 1
        raise OSError("disk unavailable")

    def set(self, key, value):
        self.calls += 1
        raise OSError("disk unavailable")

    def remove(self, key):
        self.calls += 1
        raise OSError("disk unavailable")


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def memory_store() -> SessionStore:
    return SessionStore(MemoryBackend())
