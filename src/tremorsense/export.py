"""JSON and CSV export of the session history."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Sequence

from tremorsense.models import RecordingSession

CSV_HEADER = [
    "ID",
    "Timestamp",
    "Duration",
    "Mean Amplitude",
    "Variability",
    "Peak Amplitude",
    "Caffeine",
    "Sleep Deprived",
    "Stress",
    "Notes",
]

FORMATS = ("json", "csv")


def _iso_timestamp(session: RecordingSession) -> str:
    # 2026-02-13T12:00:00.000Z
    return session.started_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def _csv_row(session: RecordingSession) -> list[str]:
    ctx = session.context
    return [
        session.id,
        _iso_timestamp(session),
        f"{session.duration:g}",
        f"{session.stats.mean_amplitude:.4f}",
        f"{session.stats.variability:.4f}",
        f"{session.stats.peak_amplitude:.4f}",
        _yes_no(ctx is not None and ctx.caffeine),
        _yes_no(ctx is not None and ctx.sleep_deprived),
        _yes_no(ctx is not None and ctx.stress),
        ctx.notes if ctx is not None else "",
    ]


def export_json(sessions: Sequence[RecordingSession]) -> str:
    """Pretty-printed JSON array of session records."""
    return json.dumps([s.to_dict() for s in sessions], indent=2)


def export_csv(sessions: Sequence[RecordingSession]) -> str:
    """One summary row per session under a fixed header.

    Rows are newline-separated with no trailing newline.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for session in sessions:
        writer.writerow(_csv_row(session))
    return buf.getvalue().rstrip("\n")


def write_export(
    path: str | Path,
    sessions: Sequence[RecordingSession],
    fmt: str = "json",
) -> Path:
    """Write the history to *path* in *fmt* ("json" or "csv")."""
    if fmt not in FORMATS:
        raise ValueError(f"unknown export format: {fmt}")
    text = export_json(sessions) if fmt == "json" else export_csv(sessions)
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
    return out
