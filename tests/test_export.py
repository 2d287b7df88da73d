"""Tests for tremorsense.export -- JSON and CSV output."""

import csv
import io
import json

import pytest

from tremorsense.export import CSV_HEADER, export_csv, export_json, write_export
from tremorsense.models import RecordingSession, RecordingStats

from tests.conftest import make_session

HEADER_LINE = "ID,Timestamp,Duration,Mean Amplitude,Variability,Peak Amplitude,Caffeine,Sleep Deprived,Stress,Notes"


def _session(**kwargs) -> RecordingSession:
    s = make_session(timestamp=1_707_825_600_000, session_id="session_1", **kwargs)
    s.stats = RecordingStats(mean_amplitude=0.012345, variability=0.5, peak_amplitude=1.23456789)
    return s


class TestExportCSV:
    def test_header_only(self):
        assert export_csv([]) == HEADER_LINE

    def test_header_constant(self):
        assert ",".join(CSV_HEADER) == HEADER_LINE

    def test_row(self):
        out = export_csv([_session(caffeine=True, stress=False, notes="")])
        lines = out.split("\n")
        assert lines[0] == HEADER_LINE
        assert lines[1] == (
            "session_1,2024-02-13T12:00:00.000Z,10,0.0123,0.5000,1.2346,Yes,No,No,"
        )

    def test_no_trailing_newline(self):
        assert not export_csv([_session()]).endswith("\n")

    def test_missing_context(self):
        line = export_csv([_session(with_context=False)]).split("\n")[1]
        assert line.endswith(",No,No,No,")

    def test_all_flags(self):
        line = export_csv([_session(caffeine=True, sleep_deprived=True, stress=True, notes="tired")]).split("\n")[1]
        assert line.endswith(",Yes,Yes,Yes,tired")

    def test_notes_with_comma_are_quoted(self):
        out = export_csv([_session(notes="coffee, then run")])
        rows = list(csv.reader(io.StringIO(out)))
        assert rows[1][-1] == "coffee, then run"
        assert len(rows[1]) == len(CSV_HEADER)

    def test_one_row_per_session(self):
        out = export_csv([_session(), _session(), _session()])
        assert len(out.split("\n")) == 4


class TestExportJSON:
    def test_empty(self):
        assert json.loads(export_json([])) == []

    def test_pretty_printed(self):
        out = export_json([_session()])
        assert out.startswith("[\n  {")

    def test_records(self):
        s = _session(caffeine=True)
        data = json.loads(export_json([s]))
        assert data == [s.to_dict()]
        assert RecordingSession.from_dict(data[0]) == s


class TestWriteExport:
    def test_json_file(self, tmp_path):
        path = write_export(tmp_path / "out.json", [_session()], "json")
        assert json.loads(path.read_text())[0]["id"] == "session_1"

    def test_csv_file(self, tmp_path):
        path = write_export(tmp_path / "sub" / "out.csv", [_session()], "csv")
        assert path.read_text().startswith(HEADER_LINE)

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ValueError):
            write_export(tmp_path / "out.xml", [], "xml")
