"""Tests for export functionality (JSON, CSV and Markdown)."""

import csv
import json

import pytest

from tui_cronograma.export import CSV_HEADERS, export_csv, export_json, export_markdown_table, export_view
from tui_cronograma.projection import project_schedule
from tui_cronograma.workdays import WorkCalendar


@pytest.fixture
def view(chain_snapshot):
    return project_schedule(chain_snapshot, WorkCalendar(chain_snapshot.holidays))


class TestExportJSON:
    def test_grouped_by_row(self, view, tmp_path):
        out = tmp_path / "out.json"
        export_json(view, out)
        data = json.loads(out.read_text(encoding="utf-8"))
        rows = {r["id"]: r for r in data["rows"]}
        assert [t["id"] for t in rows["1"]["tasks"]] == ["T1", "T2"]
        assert rows["ferias"]["tasks"] == []
        assert rows["A"]["label"] == "Técnico A"

    def test_task_fields(self, view, tmp_path):
        out = tmp_path / "out.json"
        export_json(view, out)
        data = json.loads(out.read_text(encoding="utf-8"))
        t2 = data["rows"][0]["tasks"][1]
        assert t2["start"] == "2025-01-13"
        assert t2["depends_on"] == ["T1"]
        assert t2["blocked"] is True
        assert t2["duration_days"] == 3

    def test_holidays(self, view, tmp_path):
        out = tmp_path / "out.json"
        export_json(view, out)
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["holidays"] == [
            {"name": "Aniversário da cidade", "start": "2025-01-20", "end": "2025-01-20"}
        ]


class TestExportCSV:
    def test_headers_and_rows(self, view, tmp_path):
        out = tmp_path / "out.csv"
        export_csv(view, out)
        with open(out, encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            assert reader.fieldnames == CSV_HEADERS
            rows = list(reader)
        assert len(rows) == 4
        assert rows[0]["id"] == "T1"
        assert rows[0]["protocol"] == "EF-001"
        assert rows[2]["depends_on"] == "T2"
        assert rows[3]["row"] == "Técnico A"


class TestExportMarkdown:
    def test_table(self, view, tmp_path):
        out = tmp_path / "out.md"
        export_markdown_table(view, out)
        lines = out.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("| ID | Row |")
        assert lines[1].startswith("| -- |")
        assert len(lines) == 2 + 4
        assert "| T2 | Terminal 1 |" in lines[3]


class TestExportView:
    @pytest.mark.parametrize(
        "name, fmt, expected",
        [
            ("out.json", None, "json"),
            ("out.csv", None, "csv"),
            ("out.md", None, "md"),
            ("out.markdown", None, "md"),
            ("out.txt", "csv", "csv"),
        ],
    )
    def test_format_resolution(self, view, tmp_path, name, fmt, expected):
        assert export_view(view, tmp_path / name, fmt) == expected
        assert (tmp_path / name).exists()

    def test_unknown_format(self, view, tmp_path):
        with pytest.raises(ValueError, match="Unknown export format"):
            export_view(view, tmp_path / "out.xlsx")
