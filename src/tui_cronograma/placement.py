"""Placement engine: validate moves, resizes and new tasks.

Row exclusivity is not checked: several tasks may overlap on one row.
What is checked, in order:

1. the task is not retired and its dates are ordered;
2. it does not start before its prerequisites end;
3. its dependents still start after it ends, either by rejecting the move or
   by shifting them forward, depending on the :class:`DependencyPolicy`;
4. the target row exists and hosts the task's category.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from tui_cronograma.errors import (
    DependencyViolation,
    InvalidDates,
    InvalidTask,
    Result,
    RowCategoryMismatch,
    RowNotFound,
    TaskNotFound,
    TaskRetired,
)
from tui_cronograma.graph import DependencyGraph
from tui_cronograma.history import MoveTask, TaskShift
from tui_cronograma.models import (
    STATUSES_BY_CATEGORY,
    DependencyPolicy,
    ScheduleSnapshot,
    Task,
    TaskCategory,
    TaskStatus,
)
from tui_cronograma.workdays import WorkCalendar


@dataclass(frozen=True)
class Placement:
    """An accepted placement, ready to be wrapped in a MoveTask."""

    task_id: str
    row_id: str
    start: date
    end: date
    cascade: tuple[TaskShift, ...] = ()

    def to_command(self, task: Task) -> MoveTask:
        shift = TaskShift(
            task_id=task.id,
            old_row_id=task.row_id,
            old_start=task.start,
            old_end=task.end,
            new_row_id=self.row_id,
            new_start=self.start,
            new_end=self.end,
        )
        return MoveTask(shift=shift, cascade=self.cascade)


def propose_move(
    snapshot: ScheduleSnapshot,
    task_id: str,
    new_row_id: str,
    new_start: date,
    policy: DependencyPolicy = DependencyPolicy.REJECT,
    calendar: WorkCalendar | None = None,
) -> Result:
    """Check moving *task_id* to *new_row_id* starting *new_start*.

    The calendar-day duration is preserved, non-working days included.
    Returns a :class:`Placement` on success; the snapshot is never modified
    here.
    """
    task = snapshot.get_task(task_id)
    if task is None:
        return Result.failure(TaskNotFound(task_id))
    calendar = calendar or WorkCalendar(snapshot.holidays)
    new_end = calendar.shift_by_calendar_days(new_start, (task.end - task.start).days)
    return _validate(snapshot, task, new_row_id, new_start, new_end, policy, calendar)


def propose_resize(
    snapshot: ScheduleSnapshot,
    task_id: str,
    new_end: date,
    policy: DependencyPolicy = DependencyPolicy.REJECT,
    calendar: WorkCalendar | None = None,
) -> Result:
    """Check changing only the end date of *task_id*."""
    task = snapshot.get_task(task_id)
    if task is None:
        return Result.failure(TaskNotFound(task_id))
    calendar = calendar or WorkCalendar(snapshot.holidays)
    return _validate(snapshot, task, task.row_id, task.start, new_end, policy, calendar)


def _validate(
    snapshot: ScheduleSnapshot,
    task: Task,
    row_id: str,
    start: date,
    end: date,
    policy: DependencyPolicy,
    calendar: WorkCalendar,
) -> Result:
    if task.retired:
        return Result.failure(TaskRetired(task.id))
    if end < start:
        return Result.failure(InvalidDates(task.id))

    graph = DependencyGraph.from_snapshot(snapshot)
    earliest = graph.earliest_start(task.id)
    if earliest is not None and start < earliest:
        return Result.failure(
            DependencyViolation(task.id, graph.latest_prerequisite(task.id))
        )

    moved = task.with_dates(start, end, row_id)
    cascade = plan_dependents(snapshot, graph, task, moved, policy, calendar)
    if not cascade.ok:
        return cascade

    row = snapshot.get_row(row_id)
    if row is None:
        return Result.failure(RowNotFound(row_id))
    if not row.hosts(task.category):
        return Result.failure(RowCategoryMismatch(row_id, task.category.value))

    return Result.success(
        Placement(task_id=task.id, row_id=row_id, start=start, end=end, cascade=cascade.value)
    )


def plan_dependents(
    snapshot: ScheduleSnapshot,
    graph: DependencyGraph,
    original: Task,
    moved: Task,
    policy: DependencyPolicy,
    calendar: WorkCalendar | None = None,
) -> Result:
    """Re-validate the tasks depending on *original* once it becomes *moved*.

    Returns the tuple of shifts to apply (empty under ``REJECT``).
    """
    tasks = snapshot.task_map()
    overrides = {moved.id: moved}
    calendar = calendar or WorkCalendar(snapshot.holidays)

    if policy == DependencyPolicy.REJECT:
        for dep_id in graph.dependents(moved.id):
            if tasks[dep_id].start < moved.end:
                return Result.failure(DependencyViolation(moved.id, dep_id))
        return Result.success(())

    delta = (moved.end - original.end).days
    shifts: list[TaskShift] = []
    for dep_id in graph.topological_order(graph.descendants(moved.id)):
        dep = tasks[dep_id]
        earliest = graph.earliest_start(dep_id, overrides)
        if earliest is None or dep.start >= earliest:
            continue
        if dep.retired:
            return Result.failure(DependencyViolation(moved.id, dep_id))
        by = max(delta, (earliest - dep.start).days)
        shifted = dep.with_dates(
            calendar.shift_by_calendar_days(dep.start, by),
            calendar.shift_by_calendar_days(dep.end, by),
        )
        overrides[dep_id] = shifted
        shifts.append(
            TaskShift(
                task_id=dep_id,
                old_row_id=dep.row_id,
                old_start=dep.start,
                old_end=dep.end,
                new_row_id=dep.row_id,
                new_start=shifted.start,
                new_end=shifted.end,
            )
        )
    return Result.success(tuple(shifts))


def validate_status(task_id: str, category: TaskCategory, status: TaskStatus) -> Result:
    if status not in STATUSES_BY_CATEGORY[category]:
        return Result.failure(
            InvalidTask(f"Status '{status.value}' is not valid for {category.value} task {task_id}")
        )
    return Result.success(status)


def validate_new_task(snapshot: ScheduleSnapshot, task: Task) -> Result:
    """Check a task about to be added to *snapshot*."""
    if not task.id.strip():
        return Result.failure(InvalidTask("Task id must not be empty"))
    if snapshot.get_task(task.id) is not None:
        return Result.failure(InvalidTask(f"Task id {task.id} is already in use"))
    status = validate_status(task.id, task.category, task.status)
    if not status.ok:
        return status
    if task.end < task.start:
        return Result.failure(InvalidDates(task.id))
    if len(set(task.depends_on)) != len(task.depends_on) or task.id in task.depends_on:
        return Result.failure(InvalidTask(f"Task {task.id} lists a dependency twice or on itself"))

    latest: Task | None = None
    for dep_id in task.depends_on:
        dep = snapshot.get_task(dep_id)
        if dep is None:
            return Result.failure(TaskNotFound(dep_id))
        if latest is None or dep.end > latest.end:
            latest = dep
    if latest is not None and task.start < latest.end:
        return Result.failure(DependencyViolation(task.id, latest.id))

    row = snapshot.get_row(task.row_id)
    if row is None:
        return Result.failure(RowNotFound(task.row_id))
    if not row.hosts(task.category):
        return Result.failure(RowCategoryMismatch(task.row_id, task.category.value))
    return Result.success(task)
