"""Tests for JSON persistence."""

import json
from datetime import date

import pytest

from tui_cronograma.errors import PersistFailed, SnapshotCorrupt
from tui_cronograma.models import BUILTIN_ROWS, ScheduleSnapshot, TaskStatus
from tui_cronograma.store import (
    FORMAT_VERSION,
    JsonScheduleStore,
    MemoryScheduleStore,
    snapshot_from_dict,
    snapshot_to_dict,
)


def _task(task_id="E1", **overrides):
    data = {
        "id": task_id,
        "category": "efficiency",
        "rowId": "1",
        "startDate": "2025-01-10",
        "endDate": "2025-01-12",
        "status": "pending",
    }
    data.update(overrides)
    return data


def _doc(tasks=(), **extra):
    data = {
        "rows": [{"id": "1", "label": "Terminal 1", "category": "efficiency"}],
        "tasks": list(tasks),
    }
    data.update(extra)
    return data


class TestSerialization:
    def test_roundtrip(self, chain_snapshot):
        assert snapshot_from_dict(snapshot_to_dict(chain_snapshot)) == chain_snapshot

    def test_layout(self, chain_snapshot):
        data = snapshot_to_dict(chain_snapshot)
        assert data["version"] == FORMAT_VERSION
        assert data["dependencies"] == [{"from": "T1", "to": "T2"}, {"from": "T2", "to": "T3"}]
        assert data["tasks"][0]["startDate"] == "2025-01-10"
        assert data["tasks"][1]["dependsOn"] == ["T1"]
        assert data["holidays"][0]["name"] == "Aniversário da cidade"

    def test_missing_rows_defaults_to_builtins(self):
        snapshot = snapshot_from_dict({"tasks": []})
        assert snapshot.rows == BUILTIN_ROWS

    def test_dependencies_list_merged_into_tasks(self):
        data = _doc(
            [_task("E1"), _task("E2", startDate="2025-01-13", endDate="2025-01-14")],
            dependencies=[{"from": "E1", "to": "E2"}],
        )
        assert snapshot_from_dict(data).get_task("E2").depends_on == ("E1",)

    def test_defaults_for_optional_task_keys(self):
        task = snapshot_from_dict(_doc([_task()])).get_task("E1")
        assert task.protocol == ""
        assert task.fields == ()
        assert task.status == TaskStatus.PENDING


class TestCorruption:
    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"version": 99},
            {"tasks": {}},
            _doc([_task(status="bogus")]),
            _doc([_task(category="safety", status="cancelled")]),
            _doc([_task(startDate="10/01/2025")]),
            _doc([_task(endDate="2025-01-09")]),
            _doc([_task(rowId="9")]),
            _doc([_task(category="safety")]),
            _doc([_task("E1"), _task("E1")]),
            _doc([_task("E1", dependsOn=["E2"]), _task("E2", dependsOn=["E1"])]),
            _doc([_task("E1", dependsOn=["X"])]),
            _doc([_task()], dependencies=[{"from": "E1", "to": "X"}]),
            _doc(holidays=[{"id": "one", "startDate": "2025-01-01", "endDate": "2025-01-01"}]),
        ],
        ids=[
            "not-an-object",
            "version",
            "tasks-not-list",
            "unknown-status",
            "status-not-allowed",
            "bad-date",
            "ends-before-start",
            "unknown-row",
            "row-category",
            "duplicate-id",
            "cycle",
            "unknown-prerequisite",
            "unknown-edge-target",
            "holiday-id",
        ],
    )
    def test_refused(self, data):
        with pytest.raises(SnapshotCorrupt):
            snapshot_from_dict(data)


class TestJsonScheduleStore:
    def test_missing_file_is_empty_schedule(self, tmp_path):
        store = JsonScheduleStore(tmp_path / "cronograma.json")
        assert store.load_snapshot() == ScheduleSnapshot()

    def test_save_and_load(self, tmp_path, chain_snapshot):
        store = JsonScheduleStore(tmp_path / "cronograma.json")
        assert store.save_snapshot(chain_snapshot).ok
        assert store.load_snapshot() == chain_snapshot

    def test_save_keeps_unrelated_keys(self, tmp_path, chain_snapshot):
        path = tmp_path / "cronograma.json"
        path.write_text(
            json.dumps({"inventory": [{"id": "PNL-01"}], "tasks": []}), encoding="utf-8"
        )
        JsonScheduleStore(path).save_snapshot(chain_snapshot)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["inventory"] == [{"id": "PNL-01"}]
        assert len(data["tasks"]) == 4

    def test_save_creates_parent_dir(self, tmp_path, chain_snapshot):
        path = tmp_path / "dados" / "cronograma.json"
        assert JsonScheduleStore(path).save_snapshot(chain_snapshot).ok
        assert path.exists()

    def test_no_temp_files_left(self, tmp_path, chain_snapshot):
        JsonScheduleStore(tmp_path / "cronograma.json").save_snapshot(chain_snapshot)
        assert [p.name for p in tmp_path.iterdir()] == ["cronograma.json"]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "cronograma.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SnapshotCorrupt):
            JsonScheduleStore(path).load_snapshot()

    def test_not_utf8(self, tmp_path):
        path = tmp_path / "cronograma.json"
        path.write_bytes(b'{"tasks": [], "note": "\xff\xfe"}')
        with pytest.raises(SnapshotCorrupt, match="not UTF-8"):
            JsonScheduleStore(path).load_snapshot()

    def test_save_over_non_utf8_file(self, tmp_path, chain_snapshot):
        path = tmp_path / "cronograma.json"
        path.write_bytes(b"\xff\xfe garbage")
        assert JsonScheduleStore(path).save_snapshot(chain_snapshot).ok
        assert JsonScheduleStore(path).load_snapshot() == chain_snapshot

    def test_save_over_unreadable_file(self, tmp_path, chain_snapshot):
        path = tmp_path / "cronograma.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonScheduleStore(path).save_snapshot(chain_snapshot).ok
        assert JsonScheduleStore(path).load_snapshot() == chain_snapshot

    def test_os_error_becomes_persist_failed(self, tmp_path, chain_snapshot):
        # a directory where the file should be
        path = tmp_path / "cronograma.json"
        path.mkdir()
        result = JsonScheduleStore(path).save_snapshot(chain_snapshot)
        assert isinstance(result.error, PersistFailed)

    def test_unicode_kept(self, tmp_path, chain_snapshot):
        path = tmp_path / "cronograma.json"
        JsonScheduleStore(path).save_snapshot(chain_snapshot)
        assert "Técnico A" in path.read_text(encoding="utf-8")


class TestMemoryScheduleStore:
    def test_counts_saves(self, chain_snapshot):
        store = MemoryScheduleStore()
        assert store.load_snapshot() == ScheduleSnapshot()
        store.save_snapshot(chain_snapshot)
        assert store.saves == 1
        assert store.load_snapshot() == chain_snapshot

    def test_date_types(self, chain_snapshot):
        store = MemoryScheduleStore(chain_snapshot)
        assert store.load_snapshot().get_task("T1").start == date(2025, 1, 10)
