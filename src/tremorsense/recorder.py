"""Recording workflow: countdown, sample collection and session assembly.

The accelerometer and gyroscope sources push samples independently into a
:class:`LatestValueCache`.  A single collection loop reads the cache once
per sampling interval and appends a :class:`SensorReading` to the buffer.
When the recording ends the buffer is turned into an immutable
:class:`RecordingSession` and saved; the buffer is only cleared once the
save has succeeded.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import threading
import time
from typing import Callable, Sequence

from tremorsense.acquisition import SensorSource
from tremorsense.analytics.magnitude import compute_stats, magnitude_series
from tremorsense.config import COUNTDOWN_SECONDS, Settings
from tremorsense.models import (
    RecordingContext,
    RecordingSession,
    SensorData,
    SensorReading,
    Vector3,
)
from tremorsense.storage import SessionStore, StorageError

logger = logging.getLogger(__name__)

ID_ALPHABET = string.digits + string.ascii_lowercase
ID_SUFFIX_LEN = 9


class RecorderError(Exception):
    """Base class for recording failures."""


class SensorUnavailableError(RecorderError):
    """Motion sensors are missing or access was denied."""


class NoDataCollectedError(RecorderError):
    """The recording ended with an empty reading buffer."""

    def __init__(self, message: str = "No data collected") -> None:
        super().__init__(message)


class RecordingInProgressError(RecorderError):
    """A recording is already running (or an unsaved one is pending)."""


class SessionSaveError(RecorderError):
    """The finished session could not be persisted; it is kept for retry."""


# ---------------------------------------------------------------------------
# Session assembly
# ---------------------------------------------------------------------------


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_session_id(now_ms: int | None = None) -> str:
    """``session_<epoch ms>_<9 random base36 chars>``.

    Unique enough for one device; there is no check against stored ids.
    """
    ts = _now_ms() if now_ms is None else now_ms
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_SUFFIX_LEN))
    return f"session_{ts}_{suffix}"


def build_session(
    readings: Sequence[SensorReading],
    duration: float,
    started_at: int,
    context: RecordingContext | None = None,
    session_id: str | None = None,
) -> RecordingSession:
    """Assemble a session from a reading buffer.

    Args:
        readings: Collected readings, oldest first.
        duration: Nominal recording duration in seconds.
        started_at: Recording start time (epoch ms).
        context: Optional user annotation.
        session_id: Override the generated id.

    Raises:
        NoDataCollectedError: if *readings* is empty.
    """
    if len(readings) == 0:
        raise NoDataCollectedError()

    accelerometer = SensorData(
        x=[r.accelerometer.x for r in readings],
        y=[r.accelerometer.y for r in readings],
        z=[r.accelerometer.z for r in readings],
    )
    gyroscope = SensorData(
        x=[r.gyroscope.x for r in readings],
        y=[r.gyroscope.y for r in readings],
        z=[r.gyroscope.z for r in readings],
    )
    magnitude = magnitude_series(accelerometer)

    return RecordingSession(
        id=session_id or generate_session_id(),
        timestamp=started_at,
        duration=duration,
        accelerometer=accelerometer,
        gyroscope=gyroscope,
        magnitude=magnitude,
        stats=compute_stats(magnitude),
        context=context,
    )


# ---------------------------------------------------------------------------
# Live collection
# ---------------------------------------------------------------------------


class LatestValueCache:
    """Most recent sample of each sensor.

    Each slot has a single writer (its sensor callback) and its own lock;
    the collection loop is the only reader.
    """

    def __init__(self) -> None:
        self._accel: Vector3 | None = None
        self._gyro: Vector3 | None = None
        self._accel_lock = threading.Lock()
        self._gyro_lock = threading.Lock()

    def update_accelerometer(self, value: Vector3) -> None:
        with self._accel_lock:
            self._accel = value

    def update_gyroscope(self, value: Vector3) -> None:
        with self._gyro_lock:
            self._gyro = value

    def snapshot(self, timestamp: int) -> SensorReading | None:
        """Current pair of values, or None until both sensors have reported."""
        with self._accel_lock:
            accel = self._accel
        with self._gyro_lock:
            gyro = self._gyro
        if accel is None or gyro is None:
            return None
        return SensorReading(
            accelerometer=Vector3(accel.x, accel.y, accel.z),
            gyroscope=Vector3(gyro.x, gyro.y, gyro.z),
            timestamp=timestamp,
        )


class SessionRecorder:
    """Runs one recording at a time and persists the result.

    Usage:
        recorder = SessionRecorder(accel_source, gyro_source, store, settings)
        session = await recorder.record(context=RecordingContext(caffeine=True))
    """

    def __init__(
        self,
        accelerometer: SensorSource,
        gyroscope: SensorSource,
        store: SessionStore,
        settings: Settings | None = None,
    ) -> None:
        self.accelerometer = accelerometer
        self.gyroscope = gyroscope
        self.store = store
        self.settings = settings if settings else Settings()

        self.readings: list[SensorReading] = []
        self.pending: RecordingSession | None = None

        self._active = False
        self._aborted = False
        self._stop_event: asyncio.Event | None = None

    @property
    def is_recording(self) -> bool:
        return self._active

    def stop(self) -> None:
        """End collection early and keep what was recorded."""
        if self._stop_event is not None:
            self._stop_event.set()

    def abort(self) -> None:
        """End collection and discard the buffer."""
        self._aborted = True
        self.stop()

    async def _wait_stop(self, timeout: float) -> bool:
        """Sleep up to *timeout* seconds; True if stop() was called."""
        assert self._stop_event is not None
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def record(
        self,
        duration: float | None = None,
        context: RecordingContext | None = None,
        countdown: int = COUNTDOWN_SECONDS,
        on_countdown: Callable[[int], None] | None = None,
        on_progress: Callable[[float], None] | None = None,
    ) -> RecordingSession | None:
        """Count down, record and save one session.

        Args:
            duration: Recording length in seconds (default: settings).
            context: Annotation stored with the session.
            countdown: Seconds to count down before collecting.
            on_countdown: Called with the remaining countdown seconds.
            on_progress: Called with percent complete on every tick.

        Returns:
            The saved session, or None if the recording was aborted.

        Raises:
            RecordingInProgressError: a recording is running or unsaved.
            SensorUnavailableError: a sensor is not available.
            NoDataCollectedError: no readings were collected.
            SessionSaveError: saving failed; see :meth:`retry_save`.
        """
        if self._active:
            raise RecordingInProgressError("A recording is already in progress")
        if self.pending is not None:
            raise RecordingInProgressError(
                f"Session {self.pending.id} has not been saved; retry or discard it first"
            )

        self._active = True
        self._aborted = False
        self._stop_event = asyncio.Event()
        try:
            if not (await self.accelerometer.is_available()
                    and await self.gyroscope.is_available()):
                raise SensorUnavailableError("Sensors are not available on this device")

            duration = duration if duration is not None else self.settings.recording_duration
            self.readings = []

            for remaining in range(countdown, 0, -1):
                if on_countdown is not None:
                    on_countdown(remaining)
                if await self._wait_stop(1.0):
                    break

            if self._aborted:
                logger.info("Recording aborted during countdown")
                return None

            started_at = _now_ms()
            logger.info(
                "Recording %.1fs at %s (%.0f Hz)",
                duration, self.settings.sampling_rate.value, self.settings.sampling_rate.hz,
            )
            await self._collect(duration, on_progress)

            if self._aborted:
                logger.info("Recording aborted; discarded %d readings", len(self.readings))
                self.readings = []
                return None

            session = build_session(self.readings, duration, started_at, context)
            self.pending = session
            await self._persist()
            return session
        finally:
            self._active = False
            self._stop_event = None

    async def _collect(
        self,
        duration: float,
        on_progress: Callable[[float], None] | None,
    ) -> None:
        interval_ms = self.settings.sampling_rate.interval_ms
        cache = LatestValueCache()

        self.accelerometer.set_update_interval(interval_ms)
        self.gyroscope.set_update_interval(interval_ms)
        self.accelerometer.start(cache.update_accelerometer)
        self.gyroscope.start(cache.update_gyroscope)

        loop = asyncio.get_running_loop()
        t0 = loop.time()
        try:
            while True:
                elapsed = loop.time() - t0
                if duration > 0 and elapsed >= duration:
                    break
                reading = cache.snapshot(_now_ms())
                if reading is not None:
                    self.readings.append(reading)
                if on_progress is not None and duration > 0:
                    on_progress(min(100.0, elapsed / duration * 100.0))
                if await self._wait_stop(interval_ms / 1000.0):
                    break
        finally:
            self.accelerometer.stop()
            self.gyroscope.stop()
        logger.debug("Collected %d readings", len(self.readings))

    async def _persist(self) -> None:
        assert self.pending is not None
        try:
            await asyncio.to_thread(self.store.save, self.pending)
        except StorageError as e:
            logger.error("Failed to save session %s: %s", self.pending.id, e)
            raise SessionSaveError(f"Failed to save session: {e}") from e
        self.readings = []
        self.pending = None

    async def retry_save(self) -> RecordingSession:
        """Re-attempt saving the pending session."""
        if self.pending is None:
            raise RecorderError("No unsaved session to retry")
        session = self.pending
        await self._persist()
        return session

    def discard_pending(self) -> None:
        """Drop an unsaved session and its readings."""
        if self.pending is not None:
            logger.info("Discarding unsaved session %s", self.pending.id)
        self.pending = None
        self.readings = []
