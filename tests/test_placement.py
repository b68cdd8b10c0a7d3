"""Tests for the placement engine."""

from dataclasses import replace
from datetime import date

from tui_cronograma.errors import (
    DependencyViolation,
    InvalidDates,
    InvalidTask,
    RowCategoryMismatch,
    RowNotFound,
    TaskNotFound,
    TaskRetired,
)
from tui_cronograma.models import DependencyPolicy, Task, TaskCategory, TaskStatus
from tui_cronograma.placement import (
    propose_move,
    propose_resize,
    validate_new_task,
    validate_status,
)
from tui_cronograma.workdays import WorkCalendar


class TestProposeMove:
    def test_valid_move_keeps_duration(self, chain_snapshot):
        result = propose_move(chain_snapshot, "T3", "1", date(2025, 1, 20))
        assert result.ok
        placement = result.value
        assert (placement.row_id, placement.start, placement.end) == (
            "1",
            date(2025, 1, 20),
            date(2025, 1, 21),
        )
        assert placement.cascade == ()

    def test_start_on_prerequisite_end_day_is_allowed(self, chain_snapshot):
        assert propose_move(chain_snapshot, "T2", "1", date(2025, 1, 12)).ok

    def test_before_prerequisite_end(self, chain_snapshot):
        result = propose_move(chain_snapshot, "T2", "1", date(2025, 1, 11))
        assert result.error == DependencyViolation("T2", "T1")
        assert result.error.conflicting_task_id == "T1"

    def test_does_not_modify_snapshot(self, chain_snapshot):
        before = chain_snapshot
        propose_move(chain_snapshot, "T1", "2", date(2025, 1, 11))
        assert chain_snapshot == before

    def test_reject_when_dependent_would_start_too_early(self, chain_snapshot):
        result = propose_move(chain_snapshot, "T1", "1", date(2025, 1, 12))
        assert result.error == DependencyViolation("T1", "T2")

    def test_cascade_shifts_descendants(self, chain_snapshot):
        result = propose_move(
            chain_snapshot, "T1", "1", date(2025, 1, 14), DependencyPolicy.CASCADE
        )
        placement = result.value
        assert placement.end == date(2025, 1, 16)
        shifted = {s.task_id: (s.new_start, s.new_end) for s in placement.cascade}
        assert shifted == {
            "T2": (date(2025, 1, 17), date(2025, 1, 19)),
            "T3": (date(2025, 1, 20), date(2025, 1, 21)),
        }
        task = chain_snapshot.get_task("T1")
        moved = placement.to_command(task).apply(chain_snapshot)
        for t in moved.tasks:
            for dep_id in t.depends_on:
                assert t.start >= moved.get_task(dep_id).end

    def test_cascade_leaves_unaffected_dependents(self, chain_snapshot):
        result = propose_move(
            chain_snapshot, "T2", "1", date(2025, 1, 14), DependencyPolicy.CASCADE
        )
        # T2 now ends on the 16th, T3 starts on the 16th: still fine
        assert result.value.cascade == ()

    def test_moving_earlier_never_cascades(self, chain_snapshot):
        result = propose_move(
            chain_snapshot, "T3", "2", date(2025, 1, 15), DependencyPolicy.CASCADE
        )
        assert result.ok
        assert result.value.cascade == ()

    def test_retired_task(self, chain_snapshot):
        snapshot = replace(
            chain_snapshot,
            tasks=tuple(
                replace(t, status=TaskStatus.COMPLETED) if t.id == "S1" else t
                for t in chain_snapshot.tasks
            ),
        )
        result = propose_move(snapshot, "S1", "A", date(2025, 2, 3))
        assert result.error == TaskRetired("S1")

    def test_row_category_mismatch(self, chain_snapshot):
        result = propose_move(chain_snapshot, "S1", "1", date(2025, 1, 13))
        assert result.error == RowCategoryMismatch("1", "safety")

    def test_builtin_row_hosts_anything(self, chain_snapshot):
        assert propose_move(chain_snapshot, "S1", "ferias", date(2025, 1, 13)).ok

    def test_unknown_row(self, chain_snapshot):
        result = propose_move(chain_snapshot, "T3", "9", date(2025, 1, 20))
        assert result.error == RowNotFound("9")

    def test_unknown_task(self, chain_snapshot):
        assert propose_move(chain_snapshot, "X", "1", date(2025, 1, 1)).error == TaskNotFound("X")

    def test_overlap_on_one_row_is_allowed(self, chain_snapshot):
        assert propose_move(chain_snapshot, "T3", "1", date(2025, 1, 15)).ok

    def test_span_kept_across_holiday(self, chain_snapshot):
        calendar = WorkCalendar(chain_snapshot.holidays)
        result = propose_move(chain_snapshot, "T3", "2", date(2025, 1, 19), calendar=calendar)
        assert (result.value.start, result.value.end) == (date(2025, 1, 19), date(2025, 1, 20))


class TestProposeResize:
    def test_extend(self, chain_snapshot):
        result = propose_resize(chain_snapshot, "T3", date(2025, 1, 24))
        assert result.value.start == date(2025, 1, 16)
        assert result.value.end == date(2025, 1, 24)

    def test_end_before_start(self, chain_snapshot):
        result = propose_resize(chain_snapshot, "T3", date(2025, 1, 15))
        assert result.error == InvalidDates("T3")

    def test_single_day(self, chain_snapshot):
        assert propose_resize(chain_snapshot, "T3", date(2025, 1, 16)).ok

    def test_extend_into_dependent(self, chain_snapshot):
        result = propose_resize(chain_snapshot, "T1", date(2025, 1, 14))
        assert result.error == DependencyViolation("T1", "T2")
        cascaded = propose_resize(
            chain_snapshot, "T1", date(2025, 1, 14), DependencyPolicy.CASCADE
        )
        assert [s.task_id for s in cascaded.value.cascade] == ["T2", "T3"]


class TestValidation:
    def test_status_per_category(self):
        assert validate_status("F1", TaskCategory.VACATION, TaskStatus.SCHEDULED).ok
        result = validate_status("S1", TaskCategory.SAFETY, TaskStatus.CANCELLED)
        assert isinstance(result.error, InvalidTask)

    def _task(self, **kwargs):
        values = dict(
            id="E9",
            category=TaskCategory.EFFICIENCY,
            row_id="2",
            start=date(2025, 1, 20),
            end=date(2025, 1, 21),
        )
        values.update(kwargs)
        return Task(**values)

    def test_valid_new_task(self, chain_snapshot):
        assert validate_new_task(chain_snapshot, self._task(depends_on=("T3",))).ok

    def test_duplicate_id(self, chain_snapshot):
        assert isinstance(validate_new_task(chain_snapshot, self._task(id="T1")).error, InvalidTask)

    def test_empty_id(self, chain_snapshot):
        assert isinstance(validate_new_task(chain_snapshot, self._task(id=" ")).error, InvalidTask)

    def test_dates(self, chain_snapshot):
        task = self._task(end=date(2025, 1, 19))
        assert validate_new_task(chain_snapshot, task).error == InvalidDates("E9")

    def test_unknown_prerequisite(self, chain_snapshot):
        task = self._task(depends_on=("X",))
        assert validate_new_task(chain_snapshot, task).error == TaskNotFound("X")

    def test_starts_before_prerequisite(self, chain_snapshot):
        task = self._task(start=date(2025, 1, 14), depends_on=("T1", "T2"))
        assert validate_new_task(chain_snapshot, task).error == DependencyViolation("E9", "T2")

    def test_wrong_row(self, chain_snapshot):
        task = self._task(row_id="A")
        assert validate_new_task(chain_snapshot, task).error == RowCategoryMismatch("A", "efficiency")
