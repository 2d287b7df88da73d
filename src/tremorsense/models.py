"""Core data types for recorded motion sessions.

Field names follow Python conventions; ``to_dict``/``from_dict`` map them
to the camelCase keys used by the persisted and exported JSON records.
Timestamps are integer milliseconds since the Unix epoch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

SENSORS = ("accelerometer", "gyroscope")
AXES = ("magnitude", "x", "y", "z")


@dataclass
class Vector3:
    """A single 3-axis sample."""

    x: float
    y: float
    z: float

    def __repr__(self) -> str:
        return f"Vector3(x={self.x:.3f}, y={self.y:.3f}, z={self.z:.3f})"


@dataclass
class SensorReading:
    """One collection tick: the latest value of both sensors."""

    accelerometer: Vector3
    gyroscope: Vector3
    timestamp: int  # ms


@dataclass
class SensorData:
    """Per-axis readings of one sensor across a session."""

    x: list[float] = field(default_factory=list)
    y: list[float] = field(default_factory=list)
    z: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return min(len(self.x), len(self.y), len(self.z))

    def to_dict(self) -> dict[str, list[float]]:
        return {"x": list(self.x), "y": list(self.y), "z": list(self.z)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SensorData":
        return cls(
            x=[float(v) for v in data["x"]],
            y=[float(v) for v in data["y"]],
            z=[float(v) for v in data["z"]],
        )


@dataclass(frozen=True)
class RecordingStats:
    """Summary statistics of a magnitude series."""

    mean_amplitude: float = 0.0  # mean |deviation from mean|
    variability: float = 0.0  # population std dev
    peak_amplitude: float = 0.0  # max |deviation from mean|

    def to_dict(self) -> dict[str, float]:
        return {
            "meanAmplitude": self.mean_amplitude,
            "variability": self.variability,
            "peakAmplitude": self.peak_amplitude,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordingStats":
        return cls(
            mean_amplitude=float(data["meanAmplitude"]),
            variability=float(data["variability"]),
            peak_amplitude=float(data["peakAmplitude"]),
        )


@dataclass
class RecordingContext:
    """Optional user annotation attached to a session."""

    caffeine: bool = False
    sleep_deprived: bool = False
    stress: bool = False
    notes: str = ""

    def flag(self, name: str) -> bool:
        """Look up a context flag by attribute name."""
        if name not in ("caffeine", "sleep_deprived", "stress"):
            raise KeyError(name)
        return bool(getattr(self, name))

    def to_dict(self) -> dict[str, Any]:
        return {
            "caffeine": self.caffeine,
            "sleepDeprived": self.sleep_deprived,
            "stress": self.stress,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordingContext":
        return cls(
            caffeine=bool(data.get("caffeine", False)),
            sleep_deprived=bool(data.get("sleepDeprived", False)),
            stress=bool(data.get("stress", False)),
            notes=str(data.get("notes") or ""),
        )


@dataclass
class RecordingSession:
    """One complete timed recording with its derived statistics."""

    id: str
    timestamp: int  # ms, recording start
    duration: float  # nominal seconds
    accelerometer: SensorData
    gyroscope: SensorData
    magnitude: list[float]
    stats: RecordingStats
    context: RecordingContext | None = None

    @property
    def started_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000.0, tz=timezone.utc)

    def has_flag(self, name: str) -> bool:
        return self.context is not None and self.context.flag(name)

    def series(self, sensor: str = "accelerometer", axis: str = "magnitude") -> list[float]:
        """Return the magnitude series or one raw axis of *sensor*."""
        if sensor not in SENSORS:
            raise ValueError(f"unknown sensor: {sensor}")
        if axis not in AXES:
            raise ValueError(f"unknown axis: {axis}")
        if axis == "magnitude":
            return list(self.magnitude)
        data: SensorData = getattr(self, sensor)
        return list(getattr(data, axis))

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "duration": self.duration,
            "accelerometer": self.accelerometer.to_dict(),
            "gyroscope": self.gyroscope.to_dict(),
            "magnitude": list(self.magnitude),
            "stats": self.stats.to_dict(),
        }
        if self.context is not None:
            record["context"] = self.context.to_dict()
        return record

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordingSession":
        """Build a session from a persisted record.

        Raises KeyError, TypeError or ValueError on malformed input.
        """
        context = data.get("context")
        return cls(
            id=str(data["id"]),
            timestamp=int(data["timestamp"]),
            duration=float(data["duration"]),
            accelerometer=SensorData.from_dict(data["accelerometer"]),
            gyroscope=SensorData.from_dict(data["gyroscope"]),
            magnitude=[float(v) for v in data["magnitude"]],
            stats=RecordingStats.from_dict(data["stats"]),
            context=RecordingContext.from_dict(context) if isinstance(context, dict) else None,
        )

    def __repr__(self) -> str:
        return (
            f"RecordingSession({self.id}, "
            f"{self.started_at.isoformat(timespec='seconds')}, "
            f"n={len(self.magnitude)}, "
            f"var={self.stats.variability:.4f})"
        )


REQUIRED_FIELDS = ("id", "timestamp", "accelerometer", "gyroscope", "magnitude")


def validate_record(record: Any) -> bool:
    """Minimal structural check applied to persisted records on load."""
    if not isinstance(record, dict):
        return False
    for key in REQUIRED_FIELDS:
        value = record.get(key)
        if value is None:
            return False
        if key in ("id", "timestamp") and not value:
            return False
    return True
