"""Tests for tremorsense.analytics.history -- day grouping and rolling averages."""

from datetime import datetime, timezone

import pytest

from tremorsense.analytics.history import (
    DailyAverage,
    daily_averages,
    group_sessions_by_day,
    rolling_average,
)

from tests.conftest import make_session

UTC = timezone.utc


def at(day: int, hour: int = 12, variability: float = 1.0):
    ts = int(datetime(2026, 3, day, hour, tzinfo=UTC).timestamp() * 1000)
    return make_session(variability, timestamp=ts)


class TestGroupSessionsByDay:
    def test_empty(self):
        assert group_sessions_by_day([], tz=UTC) == {}

    def test_groups_by_calendar_day(self):
        a, b, c = at(1, 8), at(1, 20), at(2, 1)
        grouped = group_sessions_by_day([a, b, c], tz=UTC)
        assert list(grouped) == ["2026-03-01", "2026-03-02"]
        assert grouped["2026-03-01"] == [a, b]
        assert grouped["2026-03-02"] == [c]

    def test_preserves_input_order_within_day(self):
        a, b = at(1, 8), at(1, 20)
        assert group_sessions_by_day([b, a], tz=UTC)["2026-03-01"] == [b, a]


class TestDailyAverages:
    def test_empty(self):
        assert daily_averages([], tz=UTC) == []

    def test_sorted_by_day(self):
        sessions = [at(3, variability=3.0), at(1, variability=1.0), at(1, 18, variability=2.0)]
        result = daily_averages(sessions, tz=UTC)
        assert [d.date for d in result] == ["2026-03-01", "2026-03-03"]
        assert result[0] == DailyAverage("2026-03-01", pytest.approx(1.5), 2)
        assert result[1].average == pytest.approx(3.0)


class TestRollingAverage:
    def test_empty(self):
        assert rolling_average([], tz=UTC) == []

    def test_single_day(self):
        result = rolling_average([at(1, variability=2.0), at(1, 13, variability=4.0)], tz=UTC)
        assert len(result) == 1
        assert result[0].average == pytest.approx(3.0)
        assert result[0].count == 2

    def test_window_accumulates(self):
        sessions = [at(d, variability=float(d)) for d in (1, 2, 3)]
        result = rolling_average(sessions, window_days=7, tz=UTC)
        assert [r.average for r in result] == pytest.approx([1.0, 1.5, 2.0])

    def test_window_slides(self):
        sessions = [at(d, variability=float(d)) for d in (1, 2, 3, 4)]
        result = rolling_average(sessions, window_days=2, tz=UTC)
        assert [r.average for r in result] == pytest.approx([1.0, 1.5, 2.5, 3.5])

    def test_window_counts_days_with_data(self):
        # days 1 and 20 are adjacent in the window despite the gap
        sessions = [at(1, variability=1.0), at(20, variability=3.0)]
        result = rolling_average(sessions, window_days=2, tz=UTC)
        assert result[1].average == pytest.approx(2.0)

    def test_weighted_by_sessions(self):
        sessions = [at(1, variability=1.0), at(2, variability=4.0), at(2, 15, variability=4.0)]
        result = rolling_average(sessions, window_days=7, tz=UTC)
        assert result[1].average == pytest.approx(3.0)
        assert result[1].count == 3

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            rolling_average([at(1)], window_days=0)
