"""Sensor sources feeding the recorder.

A source delivers successive ``Vector3`` samples for one sensor through a
callback, at an update interval chosen by the recorder.  Device drivers
live outside this package; :class:`ReplaySource` plays back a JSONL
capture so sessions can be recorded offline.

Capture files hold one JSON object per line::

    {"sensor": "accelerometer", "x": 0.01, "y": -0.02, "z": 0.98}
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Callable, Iterable, Protocol

from tremorsense.models import SENSORS, SensorReading, Vector3

logger = logging.getLogger(__name__)

SampleHandler = Callable[[Vector3], None]


class SensorSource(Protocol):
    """Push source of 3-axis samples for a single sensor."""

    async def is_available(self) -> bool:
        ...

    def set_update_interval(self, interval_ms: int) -> None:
        ...

    def start(self, handler: SampleHandler) -> None:
        """Begin delivering samples to *handler*."""
        ...

    def stop(self) -> None:
        ...


def load_capture(path: str | Path) -> dict[str, list[Vector3]]:
    """Parse a JSONL capture into per-sensor sample lists.

    Lines that are blank, not JSON, or not a sample for a known sensor are
    skipped.
    """
    samples: dict[str, list[Vector3]] = {name: [] for name in SENSORS}
    skipped = 0

    with open(path, encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
                sensor = entry["sensor"]
                vec = Vector3(float(entry["x"]), float(entry["y"]), float(entry["z"]))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                skipped += 1
                logger.debug("capture line %d: not a sample, skipping", line_num)
                continue
            if sensor not in samples:
                skipped += 1
                continue
            samples[sensor].append(vec)

    logger.info(
        "Loaded capture %s: %d accelerometer, %d gyroscope samples (%d skipped)",
        Path(path).name, len(samples["accelerometer"]), len(samples["gyroscope"]), skipped,
    )
    return samples


def write_capture(path: str | Path, readings: Iterable[SensorReading]) -> Path:
    """Write readings as a JSONL capture (two lines per reading)."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        for r in readings:
            for sensor in SENSORS:
                vec: Vector3 = getattr(r, sensor)
                f.write(json.dumps({
                    "sensor": sensor,
                    "timestamp": r.timestamp,
                    "x": vec.x,
                    "y": vec.y,
                    "z": vec.z,
                }) + "\n")
    return out


class ReplaySource:
    """Replay recorded samples for one sensor at the update interval.

    Delivery stops once the samples run out; the recorder then keeps
    ticking with the last delivered value.
    """

    def __init__(self, samples: list[Vector3], interval_ms: int = 20) -> None:
        self.samples = list(samples)
        self.interval_ms = interval_ms
        self._task: asyncio.Task | None = None

    @classmethod
    def from_capture(cls, path: str | Path, sensor: str) -> "ReplaySource":
        if sensor not in SENSORS:
            raise ValueError(f"unknown sensor: {sensor}")
        return cls(load_capture(path)[sensor])

    async def is_available(self) -> bool:
        return len(self.samples) > 0

    def set_update_interval(self, interval_ms: int) -> None:
        self.interval_ms = interval_ms

    def start(self, handler: SampleHandler) -> None:
        if self._task is not None and not self._task.done():
            raise RuntimeError("replay already running")
        self._task = asyncio.get_running_loop().create_task(self._run(handler))

    async def _run(self, handler: SampleHandler) -> None:
        for sample in self.samples:
            handler(sample)
            await asyncio.sleep(self.interval_ms / 1000.0)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
