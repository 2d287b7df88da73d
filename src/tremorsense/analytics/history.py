"""Per-day aggregations of session variability for charts and reports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Sequence

import numpy as np

from tremorsense.models import RecordingSession


@dataclass(frozen=True)
class DailyAverage:
    date: str  # YYYY-MM-DD
    average: float  # mean variability
    count: int  # sessions in the window


def day_key(session: RecordingSession, tz: tzinfo | None = None) -> str:
    """Calendar day of the session start, in local time unless *tz* is given."""
    started = datetime.fromtimestamp(session.timestamp / 1000.0, tz=tz)
    return started.strftime("%Y-%m-%d")


def group_sessions_by_day(
    sessions: Sequence[RecordingSession],
    tz: tzinfo | None = None,
) -> dict[str, list[RecordingSession]]:
    """Group sessions by calendar day, preserving input order within a day."""
    grouped: dict[str, list[RecordingSession]] = {}
    for session in sessions:
        grouped.setdefault(day_key(session, tz), []).append(session)
    return grouped


def daily_averages(
    sessions: Sequence[RecordingSession],
    tz: tzinfo | None = None,
) -> list[DailyAverage]:
    """Mean variability of each day with sessions, oldest day first."""
    grouped = group_sessions_by_day(sessions, tz)
    return [
        DailyAverage(
            date=day,
            average=float(np.mean([s.stats.variability for s in grouped[day]])),
            count=len(grouped[day]),
        )
        for day in sorted(grouped)
    ]


def rolling_average(
    sessions: Sequence[RecordingSession],
    window_days: int = 7,
    tz: tzinfo | None = None,
) -> list[DailyAverage]:
    """Rolling mean variability, one point per day with sessions.

    Each point averages every session in that day and the preceding
    ``window_days - 1`` days that have sessions (days without recordings
    do not count towards the window).
    """
    if window_days < 1:
        raise ValueError("window_days must be >= 1")
    grouped = group_sessions_by_day(sessions, tz)
    days = sorted(grouped)

    rolling: list[DailyAverage] = []
    for i, day in enumerate(days):
        window = days[max(0, i - window_days + 1): i + 1]
        values = [s.stats.variability for d in window for s in grouped[d]]
        rolling.append(DailyAverage(
            date=day,
            average=float(np.mean(values)),
            count=len(values),
        ))
    return rolling
