"""CLI for the tremorsense motion-stability tracker."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

from tremorsense.config import DATA_DIR_ENV, SamplingRate, Theme, default_data_dir
from tremorsense.storage import FileBackend, SessionStore, StorageError


def _store(ctx: click.Context) -> SessionStore:
    return ctx.obj["store"]


def _progress_printer(step: int = 10):
    """Progress callback that echoes once per *step* percent."""
    last = -1

    def on_progress(percent: float) -> None:
        nonlocal last
        current = int(percent // step) * step
        if current > last:
            last = current
            click.echo(f"  Recording... {current}%")

    return on_progress


@click.group()
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path),
              default=None, envvar=DATA_DIR_ENV,
              help="Directory holding sessions and settings.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, data_dir: Path | None, verbose: bool) -> None:
    """tremorsense: record motion sessions and track stability trends."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    directory = data_dir if data_dir is not None else default_data_dir()
    ctx.ensure_object(dict)
    ctx.obj["store"] = SessionStore(FileBackend(directory))


@main.command()
@click.option("--replay", "replay_file", required=True, type=click.Path(exists=True, dir_okay=False),
              help="JSONL capture to record from.")
@click.option("--duration", "-d", default=None, type=float,
              help="Recording duration in seconds (default: settings).")
@click.option("--caffeine", is_flag=True, help="Caffeine before this session.")
@click.option("--sleep-deprived", is_flag=True, help="Short on sleep.")
@click.option("--stress", is_flag=True, help="Feeling stressed.")
@click.option("--notes", default="", help="Free-text notes.")
@click.option("--no-countdown", is_flag=True, help="Start collecting immediately.")
@click.pass_context
def record(
    ctx: click.Context,
    replay_file: str,
    duration: float | None,
    caffeine: bool,
    sleep_deprived: bool,
    stress: bool,
    notes: str,
    no_countdown: bool,
) -> None:
    """Record a session from a sensor capture."""
    from tremorsense.acquisition import ReplaySource, load_capture
    from tremorsense.config import COUNTDOWN_SECONDS
    from tremorsense.models import RecordingContext
    from tremorsense.recorder import RecorderError, SessionRecorder

    store = _store(ctx)
    settings = store.load_settings()
    capture = load_capture(replay_file)
    recorder = SessionRecorder(
        ReplaySource(capture["accelerometer"]),
        ReplaySource(capture["gyroscope"]),
        store,
        settings,
    )

    context = None
    if caffeine or sleep_deprived or stress or notes:
        context = RecordingContext(
            caffeine=caffeine,
            sleep_deprived=sleep_deprived,
            stress=stress,
            notes=notes,
        )

    try:
        session = asyncio.run(recorder.record(
            duration=duration,
            context=context,
            countdown=0 if no_countdown else COUNTDOWN_SECONDS,
            on_countdown=lambda n: click.echo(f"  {n}..."),
            on_progress=_progress_printer(),
        ))
    except KeyboardInterrupt:
        click.echo("\nAborted.")
        return
    except RecorderError as e:
        raise click.ClickException(str(e)) from e

    if session is None:
        click.echo("Recording discarded.")
        return
    click.echo(f"Saved {session.id}: {len(session.magnitude)} samples")
    click.echo(f"  Mean amplitude: {session.stats.mean_amplitude:.4f}")
    click.echo(f"  Variability:    {session.stats.variability:.4f}")
    click.echo(f"  Peak amplitude: {session.stats.peak_amplitude:.4f}")
    if store.using_fallback:
        click.echo(
            "Warning: the data directory could not be written. This session is "
            "held in memory only and will be lost when the command exits.",
            err=True,
        )


@main.command()
@click.pass_context
def history(ctx: click.Context) -> None:
    """List recorded sessions, newest first."""
    sessions = sorted(_store(ctx).load_all(), key=lambda s: s.timestamp, reverse=True)
    if not sessions:
        click.echo("No sessions recorded.")
        return
    for s in sessions:
        flags = []
        if s.context is not None:
            flags = [name for name in ("caffeine", "sleep_deprived", "stress") if s.context.flag(name)]
        click.echo(
            f"{s.id}  {s.started_at.astimezone():%Y-%m-%d %H:%M}  "
            f"mean={s.stats.mean_amplitude:.3f} "
            f"var={s.stats.variability:.3f} "
            f"peak={s.stats.peak_amplitude:.3f}"
            + (f"  [{', '.join(flags)}]" if flags else "")
        )


@main.command()
@click.argument("session_id")
@click.option("--sensor", type=click.Choice(["accelerometer", "gyroscope"]), default="accelerometer")
@click.option("--axis", type=click.Choice(["magnitude", "x", "y", "z"]), default="magnitude")
@click.option("--smooth", is_flag=True, help="Apply a centered moving average.")
@click.option("--window", default=5, show_default=True, help="Moving average window.")
@click.pass_context
def show(
    ctx: click.Context,
    session_id: str,
    sensor: str,
    axis: str,
    smooth: bool,
    window: int,
) -> None:
    """Show one session's statistics and signal."""
    from tremorsense.analytics.smoothing import smooth as smooth_series

    session = _store(ctx).get(session_id)
    if session is None:
        raise click.ClickException(f"No session {session_id}")

    click.echo(f"Session {session.id}")
    click.echo(f"  Started:        {session.started_at.astimezone():%Y-%m-%d %H:%M:%S}")
    click.echo(f"  Duration:       {session.duration:g}s ({len(session.magnitude)} samples)")
    click.echo(f"  Mean amplitude: {session.stats.mean_amplitude:.4f}")
    click.echo(f"  Variability:    {session.stats.variability:.4f}")
    click.echo(f"  Peak amplitude: {session.stats.peak_amplitude:.4f}")
    if session.context is not None:
        note_ctx = session.context
        click.echo(f"  Context:        caffeine={note_ctx.caffeine} "
                   f"sleep_deprived={note_ctx.sleep_deprived} stress={note_ctx.stress}")
        if note_ctx.notes:
            click.echo(f"  Notes:          {note_ctx.notes}")

    data = session.series(sensor, axis)
    if smooth and data:
        data = smooth_series(data, window)
    click.echo(f"\n{sensor} {axis} ({len(data)} points):")
    click.echo(" ".join(f"{v:.4f}" for v in data))


@main.command()
@click.argument("session_ids", nargs=-1, required=True)
@click.pass_context
def delete(ctx: click.Context, session_ids: tuple[str, ...]) -> None:
    """Delete one or more sessions."""
    try:
        removed = _store(ctx).delete_many(session_ids)
    except StorageError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Deleted {removed} session(s).")


@main.command()
@click.confirmation_option(prompt="Permanently delete all recording sessions?")
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Delete every recorded session."""
    try:
        _store(ctx).clear_all()
    except StorageError as e:
        raise click.ClickException(str(e)) from e
    click.echo("All sessions deleted.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.pass_context
def insights(ctx: click.Context, as_json: bool) -> None:
    """Stability score, trend summary, anomalies and correlations."""
    from tremorsense.analytics.trends import generate_trend_analysis

    sessions = _store(ctx).load_all()
    analysis = generate_trend_analysis(sessions)

    if as_json:
        click.echo(analysis.to_json())
        return

    c = analysis.classification
    click.echo(f"\n{'=' * 60}")
    click.echo(f"  Insights ({len(sessions)} sessions)")
    click.echo(f"{'=' * 60}")
    click.echo(f"  Stability score: {analysis.stability_score}/100")
    click.echo(f"  Pattern:         {c.type.value.capitalize()} "
               f"({c.confidence:.0%} confidence)")
    click.echo(f"\n  {analysis.summary}")
    for a in analysis.anomalies:
        click.echo(f"  ! {a}")
    for corr in analysis.correlations:
        click.echo(f"  {corr.context} [{corr.impact.value}]: {corr.description}")
    click.echo(f"{'=' * 60}")


@main.command()
@click.option("--window", default=7, show_default=True, help="Rolling window in days with data.")
@click.pass_context
def trends(ctx: click.Context, window: int) -> None:
    """Daily and rolling average variability."""
    from tremorsense.analytics.history import daily_averages, rolling_average

    sessions = _store(ctx).load_all()
    if not sessions:
        click.echo("No sessions recorded.")
        return

    rolling = {r.date: r for r in rolling_average(sessions, window)}
    click.echo(f"{'Date':<12}{'Sessions':>9}{'Daily':>10}{'Rolling':>10}")
    for day in daily_averages(sessions):
        click.echo(f"{day.date:<12}{day.count:>9}{day.average:>10.4f}"
                   f"{rolling[day.date].average:>10.4f}")


@main.command("export")
@click.option("--format", "fmt", type=click.Choice(["json", "csv"]), default="json")
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False),
              help="Output file path.")
@click.pass_context
def export_cmd(ctx: click.Context, fmt: str, output: str) -> None:
    """Export the session history."""
    from tremorsense.export import write_export

    sessions = _store(ctx).load_all()
    if not sessions:
        click.echo("No sessions to export.")
        return
    path = write_export(output, sessions, fmt)
    click.echo(f"Exported {len(sessions)} session(s) to {path}")


@main.group(invoke_without_command=True)
@click.pass_context
def settings(ctx: click.Context) -> None:
    """Show or change settings."""
    if ctx.invoked_subcommand is None:
        s = _store(ctx).load_settings()
        click.echo(f"sampling rate:      {s.sampling_rate.value} ({s.sampling_rate.hz:.0f} Hz)")
        click.echo(f"recording duration: {s.recording_duration:g}s")
        click.echo(f"theme:              {s.theme.value}")


@settings.command("set")
@click.option("--sampling-rate", type=click.Choice([r.value for r in SamplingRate]), default=None)
@click.option("--duration", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Recording duration in seconds.")
@click.option("--theme", type=click.Choice([t.value for t in Theme]), default=None)
@click.pass_context
def settings_set(
    ctx: click.Context,
    sampling_rate: str | None,
    duration: float | None,
    theme: str | None,
) -> None:
    """Update one or more settings."""
    store = _store(ctx)
    s = store.load_settings()
    if sampling_rate is not None:
        s.sampling_rate = SamplingRate(sampling_rate)
    if duration is not None:
        s.recording_duration = duration
    if theme is not None:
        s.theme = Theme(theme)
    try:
        store.save_settings(s)
    except StorageError as e:
        raise click.ClickException(str(e)) from e
    click.echo("Settings saved.")


if __name__ == "__main__":
    main()
