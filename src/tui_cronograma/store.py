"""JSON persistence for the schedule.

The schedule lives in one JSON file shared with the rest of the laboratory
tracker (inventory, reports, ...). Saving only replaces the schedule keys and
keeps every other top-level key that is already in the file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Protocol

from tui_cronograma.errors import PersistFailed, Result, SnapshotCorrupt
from tui_cronograma.graph import DependencyGraph
from tui_cronograma.models import (
    BUILTIN_ROWS,
    STATUSES_BY_CATEGORY,
    Holiday,
    Row,
    RowCategory,
    ScheduleSnapshot,
    Task,
    TaskCategory,
    TaskStatus,
)

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class ScheduleStore(Protocol):
    """What the session needs from a persistence backend."""

    def load_snapshot(self) -> ScheduleSnapshot: ...

    def save_snapshot(self, snapshot: ScheduleSnapshot) -> Result: ...


# ── Serialization ──


def _task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "category": task.category.value,
        "rowId": task.row_id,
        "startDate": task.start.isoformat(),
        "endDate": task.end.isoformat(),
        "status": task.status.value,
        "protocol": task.protocol,
        "fields": dict(task.fields),
        "dependsOn": list(task.depends_on),
    }


def snapshot_to_dict(snapshot: ScheduleSnapshot) -> dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "rows": [
            {"id": r.id, "label": r.label, "category": r.category.value, "builtin": r.builtin}
            for r in snapshot.rows
        ],
        "tasks": [_task_to_dict(t) for t in snapshot.tasks],
        "dependencies": [{"from": d.from_id, "to": d.to_id} for d in snapshot.dependencies],
        "holidays": [
            {
                "id": h.id,
                "name": h.name,
                "startDate": h.start.isoformat(),
                "endDate": h.end.isoformat(),
            }
            for h in snapshot.holidays
        ],
    }


def _parse_date(value: Any, where: str) -> date:
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise SnapshotCorrupt(f"{where}: invalid date {value!r}") from None


def _require(data: dict, key: str, where: str) -> Any:
    if key not in data:
        raise SnapshotCorrupt(f"{where}: missing '{key}'")
    return data[key]


def _parse_row(data: Any, index: int) -> Row:
    where = f"rows[{index}]"
    if not isinstance(data, dict):
        raise SnapshotCorrupt(f"{where}: expected an object")
    try:
        category = RowCategory(_require(data, "category", where))
    except ValueError:
        raise SnapshotCorrupt(f"{where}: unknown row category {data['category']!r}") from None
    return Row(
        id=str(_require(data, "id", where)),
        label=str(data.get("label", "")),
        category=category,
        builtin=bool(data.get("builtin", False)),
    )


def _parse_task(data: Any, index: int) -> Task:
    where = f"tasks[{index}]"
    if not isinstance(data, dict):
        raise SnapshotCorrupt(f"{where}: expected an object")
    task_id = str(_require(data, "id", where))
    where = f"task {task_id}"
    try:
        category = TaskCategory(_require(data, "category", where))
        status = TaskStatus(_require(data, "status", where))
    except ValueError as e:
        raise SnapshotCorrupt(f"{where}: {e}") from None
    if status not in STATUSES_BY_CATEGORY[category]:
        raise SnapshotCorrupt(f"{where}: status {status.value} invalid for {category.value}")
    start = _parse_date(_require(data, "startDate", where), where)
    end = _parse_date(_require(data, "endDate", where), where)
    if end < start:
        raise SnapshotCorrupt(f"{where}: ends before it starts")
    fields = data.get("fields", {})
    depends_on = data.get("dependsOn", [])
    if not isinstance(fields, dict) or not isinstance(depends_on, list):
        raise SnapshotCorrupt(f"{where}: malformed fields or dependsOn")
    return Task(
        id=task_id,
        category=category,
        row_id=str(_require(data, "rowId", where)),
        start=start,
        end=end,
        status=status,
        protocol=str(data.get("protocol", "")),
        fields={str(k): str(v) for k, v in fields.items()},
        depends_on=tuple(str(d) for d in depends_on),
    )


def _parse_holiday(data: Any, index: int) -> Holiday:
    where = f"holidays[{index}]"
    if not isinstance(data, dict):
        raise SnapshotCorrupt(f"{where}: expected an object")
    try:
        holiday_id = int(_require(data, "id", where))
    except (TypeError, ValueError):
        raise SnapshotCorrupt(f"{where}: id must be an integer") from None
    start = _parse_date(_require(data, "startDate", where), where)
    end = _parse_date(_require(data, "endDate", where), where)
    if end < start:
        raise SnapshotCorrupt(f"{where}: ends before it starts")
    return Holiday(id=holiday_id, name=str(data.get("name", "")), start=start, end=end)


def _merge_edges(tasks: list[Task], edges: Any) -> list[Task]:
    """Fold a top-level ``dependencies`` list into the tasks' ``dependsOn``."""
    if not isinstance(edges, list):
        raise SnapshotCorrupt("dependencies: expected a list")
    extra: dict[str, list[str]] = {}
    for i, edge in enumerate(edges):
        if not isinstance(edge, dict):
            raise SnapshotCorrupt(f"dependencies[{i}]: expected an object")
        from_id = str(_require(edge, "from", f"dependencies[{i}]"))
        to_id = str(_require(edge, "to", f"dependencies[{i}]"))
        extra.setdefault(to_id, []).append(from_id)
    result = []
    for task in tasks:
        deps = list(task.depends_on)
        for dep_id in extra.pop(task.id, []):
            if dep_id not in deps:
                deps.append(dep_id)
        result.append(replace(task, depends_on=tuple(deps)))
    if extra:
        raise SnapshotCorrupt(f"dependencies: unknown task(s) {', '.join(sorted(extra))}")
    return result


def validate_snapshot(snapshot: ScheduleSnapshot) -> None:
    """Raise SnapshotCorrupt unless every cross reference holds."""
    row_ids = [r.id for r in snapshot.rows]
    if len(set(row_ids)) != len(row_ids):
        raise SnapshotCorrupt("rows: duplicate row id")
    task_ids = [t.id for t in snapshot.tasks]
    if len(set(task_ids)) != len(task_ids):
        raise SnapshotCorrupt("tasks: duplicate task id")
    holiday_ids = [h.id for h in snapshot.holidays]
    if len(set(holiday_ids)) != len(holiday_ids):
        raise SnapshotCorrupt("holidays: duplicate holiday id")

    rows = {r.id: r for r in snapshot.rows}
    graph = DependencyGraph(snapshot.task_map())
    for task in snapshot.tasks:
        row = rows.get(task.row_id)
        if row is None:
            raise SnapshotCorrupt(f"task {task.id}: unknown row {task.row_id}")
        if not row.hosts(task.category):
            raise SnapshotCorrupt(f"task {task.id}: row {row.id} cannot host {task.category.value}")
        if len(set(task.depends_on)) != len(task.depends_on):
            raise SnapshotCorrupt(f"task {task.id}: duplicate dependency")
        for dep_id in task.depends_on:
            result = graph.add_edge(dep_id, task.id)
            if not result.ok:
                raise SnapshotCorrupt(f"task {task.id}: {result.error.message}")


def snapshot_from_dict(data: Any) -> ScheduleSnapshot:
    """Parse and validate stored data. Raises SnapshotCorrupt."""
    if not isinstance(data, dict):
        raise SnapshotCorrupt("schedule: expected a JSON object")
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise SnapshotCorrupt(f"schedule: unsupported version {version!r}")

    raw_rows = data.get("rows")
    raw_tasks = data.get("tasks", [])
    raw_holidays = data.get("holidays", [])
    for key, value in (("tasks", raw_tasks), ("holidays", raw_holidays)):
        if not isinstance(value, list):
            raise SnapshotCorrupt(f"{key}: expected a list")

    if raw_rows is None:
        rows = list(BUILTIN_ROWS)
    elif isinstance(raw_rows, list):
        rows = [_parse_row(r, i) for i, r in enumerate(raw_rows)]
    else:
        raise SnapshotCorrupt("rows: expected a list")

    tasks = [_parse_task(t, i) for i, t in enumerate(raw_tasks)]
    tasks = _merge_edges(tasks, data.get("dependencies", []))
    holidays = [_parse_holiday(h, i) for i, h in enumerate(raw_holidays)]

    snapshot = ScheduleSnapshot(tasks=tuple(tasks), rows=tuple(rows), holidays=tuple(holidays))
    validate_snapshot(snapshot)
    return snapshot


# ── Store ──


class JsonScheduleStore:
    """Schedule persisted in a JSON file, written atomically."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read_raw(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise SnapshotCorrupt(f"{self.path}: invalid JSON ({e})") from None
        except UnicodeDecodeError as e:
            raise SnapshotCorrupt(f"{self.path}: not UTF-8 text ({e.reason} at byte {e.start})") from None
        if not isinstance(data, dict):
            raise SnapshotCorrupt(f"{self.path}: expected a JSON object")
        return data

    def load_snapshot(self) -> ScheduleSnapshot:
        """Load the schedule; an absent file is an empty schedule."""
        if not self.path.exists():
            logger.info("No schedule at %s, starting empty", self.path)
            return ScheduleSnapshot()
        snapshot = snapshot_from_dict(self._read_raw())
        logger.info(
            "Loaded %d task(s), %d row(s) from %s",
            len(snapshot.tasks),
            len(snapshot.rows),
            self.path,
        )
        return snapshot

    def save_snapshot(self, snapshot: ScheduleSnapshot) -> Result:
        """Write the schedule, keeping unrelated keys. All or nothing."""
        try:
            try:
                existing = self._read_raw()
            except SnapshotCorrupt:
                logger.warning("Overwriting unreadable %s", self.path)
                existing = {}
            data = {**existing, **snapshot_to_dict(snapshot)}
            content = json.dumps(data, indent=2, ensure_ascii=False)
            self._atomic_write(content)
        except OSError as e:
            logger.error("Saving %s failed: %s", self.path, e)
            return Result.failure(PersistFailed(str(e)))
        logger.info("Saved %d task(s) to %s", len(snapshot.tasks), self.path)
        return Result.success()

    def _atomic_write(self, content: str) -> None:
        target_dir = self.path.parent
        target_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=target_dir, suffix=".tmp", prefix=".cronograma-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


class MemoryScheduleStore:
    """Keeps the schedule in memory. Used for demo mode."""

    def __init__(self, snapshot: ScheduleSnapshot | None = None) -> None:
        self.snapshot = snapshot or ScheduleSnapshot()
        self.saves = 0

    def load_snapshot(self) -> ScheduleSnapshot:
        validate_snapshot(self.snapshot)
        return self.snapshot

    def save_snapshot(self, snapshot: ScheduleSnapshot) -> Result:
        self.snapshot = snapshot
        self.saves += 1
        return Result.success()
