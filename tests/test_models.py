"""Tests for data models."""

from dataclasses import replace
from datetime import date

import pytest

from tui_cronograma.models import (
    BUILTIN_ROWS,
    DATE_FORMAT_PRESETS,
    DEFAULT_DATE_FORMAT,
    DEFAULT_STATUS,
    STATUS_ICONS,
    STATUSES_BY_CATEGORY,
    Dependency,
    Holiday,
    Role,
    Row,
    RowCategory,
    ScheduleConfig,
    ScheduleSnapshot,
    Task,
    TaskCategory,
    TaskStatus,
    format_date,
    next_holiday_id,
    next_task_id,
    parse_date_input,
)


def _task(task_id="E1", category=TaskCategory.EFFICIENCY, **kwargs):
    kwargs.setdefault("row_id", "1")
    kwargs.setdefault("start", date(2025, 3, 3))
    kwargs.setdefault("end", date(2025, 3, 5))
    return Task(id=task_id, category=category, **kwargs)


class TestTask:
    def test_default_values(self):
        task = _task()
        assert task.status == TaskStatus.PENDING
        assert task.protocol == ""
        assert task.fields == ()
        assert task.depends_on == ()

    def test_duration_is_inclusive(self):
        assert _task().duration_days == 3
        assert _task(end=date(2025, 3, 3)).duration_days == 1

    def test_frozen(self):
        task = _task()
        with pytest.raises(AttributeError):
            task.start = date(2025, 1, 1)  # type: ignore[misc]

    def test_fields_frozen_as_pairs(self):
        task = _task(fields={"equipment": "Freezer", "client": "Frio Sul"})
        assert task.fields == (("equipment", "Freezer"), ("client", "Frio Sul"))
        assert task.field_map() == {"equipment": "Freezer", "client": "Frio Sul"}
        with pytest.raises(TypeError):
            task.fields["equipment"] = "Forno"  # type: ignore[index]

    def test_hashable(self):
        task = _task(fields={"equipment": "Freezer"}, depends_on=["E0"])
        assert task.depends_on == ("E0",)
        assert hash(task) == hash(_task(fields=[("equipment", "Freezer")], depends_on=("E0",)))

    def test_with_dates_keeps_row_unless_given(self):
        task = _task()
        moved = task.with_dates(date(2025, 4, 1), date(2025, 4, 3))
        assert moved.row_id == "1"
        assert moved.start == date(2025, 4, 1)
        assert task.with_dates(task.start, task.end, "2").row_id == "2"

    def test_completed_safety_task_is_retired(self):
        assert _task("S1", TaskCategory.SAFETY, status=TaskStatus.COMPLETED).retired
        assert not _task("S1", TaskCategory.SAFETY, status=TaskStatus.IN_PROGRESS).retired
        assert not _task(status=TaskStatus.COMPLETED).retired

    def test_status_icon(self):
        for status, icon in STATUS_ICONS.items():
            assert replace(_task(), status=status).status_icon == icon


class TestCategories:
    def test_default_status_is_allowed(self):
        for category, status in DEFAULT_STATUS.items():
            assert status in STATUSES_BY_CATEGORY[category]

    def test_vacation_only_scheduled(self):
        assert STATUSES_BY_CATEGORY[TaskCategory.VACATION] == (TaskStatus.SCHEDULED,)

    def test_safety_has_no_cancelled(self):
        assert TaskStatus.CANCELLED not in STATUSES_BY_CATEGORY[TaskCategory.SAFETY]


class TestRow:
    def test_efficiency_row_hosts(self):
        row = Row(id="1", label="Terminal 1", category=RowCategory.EFFICIENCY)
        assert row.hosts(TaskCategory.EFFICIENCY)
        assert row.hosts(TaskCategory.CALIBRATION)
        assert not row.hosts(TaskCategory.SAFETY)

    def test_safety_row_hosts(self):
        row = Row(id="A", label="Técnico A", category=RowCategory.SAFETY)
        assert row.hosts(TaskCategory.SAFETY)
        assert row.hosts(TaskCategory.VACATION)
        assert not row.hosts(TaskCategory.EFFICIENCY)

    def test_builtin_rows_host_everything(self):
        for row in BUILTIN_ROWS:
            assert row.builtin
            assert all(row.hosts(c) for c in TaskCategory)


class TestHoliday:
    def test_covers_inclusive(self):
        h = Holiday(id=1, name="Carnaval", start=date(2025, 3, 3), end=date(2025, 3, 4))
        assert h.covers(date(2025, 3, 3))
        assert h.covers(date(2025, 3, 4))
        assert not h.covers(date(2025, 3, 5))


class TestScheduleSnapshot:
    def test_defaults_to_builtin_rows(self):
        snap = ScheduleSnapshot()
        assert snap.rows == BUILTIN_ROWS
        assert snap.tasks == ()

    def test_dependencies_derived_from_tasks(self):
        snap = ScheduleSnapshot(
            tasks=(_task("E1"), _task("E2", depends_on=("E1",)), _task("E3", depends_on=("E1", "E2")))
        )
        assert snap.dependencies == (
            Dependency("E1", "E2"),
            Dependency("E1", "E3"),
            Dependency("E2", "E3"),
        )

    def test_lookups(self):
        snap = ScheduleSnapshot(tasks=(_task("E1"), _task("E2", row_id="ferias")))
        assert snap.get_task("E2").row_id == "ferias"
        assert snap.get_task("X") is None
        assert snap.get_row("calibracao").label == "Calibrações"
        assert snap.task_index("E2") == 1
        assert snap.task_index("X") == -1
        assert snap.row_index("calibracao") == 1
        assert [t.id for t in snap.tasks_on_row("ferias")] == ["E2"]

    def test_structural_equality(self):
        a = ScheduleSnapshot(tasks=(_task("E1"), _task("E2")))
        b = ScheduleSnapshot(tasks=(_task("E1"), _task("E2")))
        c = ScheduleSnapshot(tasks=(_task("E2"), _task("E1")))
        assert a == b
        assert a != c


class TestIds:
    def test_next_task_id_per_category(self):
        snap = ScheduleSnapshot(tasks=(_task("E1"), _task("E7"), _task("S2", TaskCategory.SAFETY)))
        assert next_task_id(snap, TaskCategory.EFFICIENCY) == "E8"
        assert next_task_id(snap, TaskCategory.SAFETY) == "S3"
        assert next_task_id(snap, TaskCategory.CALIBRATION) == "C1"

    def test_next_task_id_ignores_foreign_shapes(self):
        snap = ScheduleSnapshot(tasks=(_task("Extra"), _task("E2")))
        assert next_task_id(snap, TaskCategory.EFFICIENCY) == "E3"

    def test_next_holiday_id(self):
        assert next_holiday_id(ScheduleSnapshot()) == 1
        snap = ScheduleSnapshot(
            holidays=(Holiday(id=4, name="x", start=date(2025, 1, 1), end=date(2025, 1, 1)),)
        )
        assert next_holiday_id(snap) == 5


class TestFormatDate:
    def test_default_format(self):
        assert DEFAULT_DATE_FORMAT in DATE_FORMAT_PRESETS
        assert format_date(date(2025, 1, 9)) == "09/01/2025"

    def test_iso(self):
        assert format_date(date(2025, 1, 9), "YYYY-MM-DD") == "2025-01-09"

    def test_unknown_preset_falls_back_to_iso(self):
        assert format_date(date(2025, 1, 9), "bogus") == "2025-01-09"

    def test_none(self):
        assert format_date(None) == ""


class TestParseDateInput:
    def test_formats(self):
        assert parse_date_input("2025-01-20") == date(2025, 1, 20)
        assert parse_date_input(" 20/01/2025 ") == date(2025, 1, 20)

    def test_invalid(self):
        assert parse_date_input("31/02/2025") is None
        assert parse_date_input("amanhã") is None


class TestScheduleConfig:
    def test_unknown_users_get_default_role(self):
        config = ScheduleConfig(users={"ana": Role.ADMINISTRATOR})
        assert config.role_for("ana") == Role.ADMINISTRATOR
        assert config.role_for("bruno") == Role.VIEWER
