"""Invertible commands and the undo/redo history.

Every mutation of the schedule is one of the command classes below. Each
command knows how to ``apply`` itself to a snapshot and how to ``revert``
that application, returning a new snapshot in both cases. Reverting restores
the previous snapshot exactly, including the order of tasks and rows.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Union

from tui_cronograma.models import Holiday, Row, ScheduleSnapshot, Task


def _replace_task(snapshot: ScheduleSnapshot, task: Task) -> ScheduleSnapshot:
    return replace(
        snapshot, tasks=tuple(task if t.id == task.id else t for t in snapshot.tasks)
    )


def _insert(items: tuple, index: int, item) -> tuple:
    return (*items[:index], item, *items[index:])


# ── Task commands ──


@dataclass(frozen=True)
class AddTask:
    task: Task
    index: int

    label = "Add task"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(snapshot, tasks=_insert(snapshot.tasks, self.index, self.task))

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(
            snapshot, tasks=tuple(t for t in snapshot.tasks if t.id != self.task.id)
        )


@dataclass(frozen=True)
class TaskShift:
    """One task's placement before and after a move."""

    task_id: str
    old_row_id: str
    old_start: date
    old_end: date
    new_row_id: str
    new_start: date
    new_end: date


@dataclass(frozen=True)
class MoveTask:
    """Move or resize one task, plus any dependents shifted along with it."""

    shift: TaskShift
    cascade: tuple[TaskShift, ...] = ()

    label = "Move task"

    def _shifts(self) -> tuple[TaskShift, ...]:
        return (self.shift, *self.cascade)

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        tasks = snapshot.task_map()
        for s in self._shifts():
            tasks[s.task_id] = tasks[s.task_id].with_dates(s.new_start, s.new_end, s.new_row_id)
        return replace(snapshot, tasks=tuple(tasks[t.id] for t in snapshot.tasks))

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        tasks = snapshot.task_map()
        for s in self._shifts():
            tasks[s.task_id] = tasks[s.task_id].with_dates(s.old_start, s.old_end, s.old_row_id)
        return replace(snapshot, tasks=tuple(tasks[t.id] for t in snapshot.tasks))


@dataclass(frozen=True)
class EditTask:
    """Replace a task's non-placement fields (status, protocol, fields)."""

    before: Task
    after: Task

    label = "Edit task"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return _replace_task(snapshot, self.after)

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return _replace_task(snapshot, self.before)


@dataclass(frozen=True)
class DeleteTask:
    """Remove a task and every edge touching it.

    ``dependents`` keeps the former ``depends_on`` of each task that depended
    on the deleted one, so the edges come back on revert.
    """

    task: Task
    index: int
    dependents: tuple[tuple[str, tuple[str, ...]], ...] = ()

    label = "Delete task"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        tasks = []
        for t in snapshot.tasks:
            if t.id == self.task.id:
                continue
            if self.task.id in t.depends_on:
                t = replace(t, depends_on=tuple(d for d in t.depends_on if d != self.task.id))
            tasks.append(t)
        return replace(snapshot, tasks=tuple(tasks))

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        previous = dict(self.dependents)
        tasks = tuple(
            replace(t, depends_on=previous[t.id]) if t.id in previous else t
            for t in snapshot.tasks
        )
        return replace(snapshot, tasks=_insert(tasks, self.index, self.task))


@dataclass(frozen=True)
class AddDependency:
    from_id: str
    to_id: str

    label = "Add dependency"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        task = snapshot.get_task(self.to_id)
        return _replace_task(snapshot, replace(task, depends_on=(*task.depends_on, self.from_id)))

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        task = snapshot.get_task(self.to_id)
        return _replace_task(snapshot, replace(task, depends_on=task.depends_on[:-1]))


@dataclass(frozen=True)
class RemoveDependency:
    from_id: str
    to_id: str
    position: int  # index within the dependent's depends_on

    label = "Remove dependency"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        task = snapshot.get_task(self.to_id)
        deps = task.depends_on
        return _replace_task(
            snapshot, replace(task, depends_on=deps[: self.position] + deps[self.position + 1:])
        )

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        task = snapshot.get_task(self.to_id)
        return _replace_task(
            snapshot,
            replace(task, depends_on=_insert(task.depends_on, self.position, self.from_id)),
        )


# ── Row commands ──


@dataclass(frozen=True)
class AddRow:
    row: Row
    index: int

    label = "Add row"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(snapshot, rows=_insert(snapshot.rows, self.index, self.row))

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(snapshot, rows=tuple(r for r in snapshot.rows if r.id != self.row.id))


@dataclass(frozen=True)
class RenameRow:
    row_id: str
    old_label: str
    new_label: str

    label = "Rename row"

    def _set(self, snapshot: ScheduleSnapshot, text: str) -> ScheduleSnapshot:
        return replace(
            snapshot,
            rows=tuple(replace(r, label=text) if r.id == self.row_id else r for r in snapshot.rows),
        )

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return self._set(snapshot, self.new_label)

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return self._set(snapshot, self.old_label)


@dataclass(frozen=True)
class DeleteRow:
    row: Row
    index: int

    label = "Delete row"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(snapshot, rows=tuple(r for r in snapshot.rows if r.id != self.row.id))

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(snapshot, rows=_insert(snapshot.rows, self.index, self.row))


# ── Holidays ──


@dataclass(frozen=True)
class AddHoliday:
    holiday: Holiday
    index: int

    label = "Add holiday"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(snapshot, holidays=_insert(snapshot.holidays, self.index, self.holiday))

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(
            snapshot, holidays=tuple(h for h in snapshot.holidays if h.id != self.holiday.id)
        )


@dataclass(frozen=True)
class DeleteHoliday:
    holiday: Holiday
    index: int

    label = "Delete holiday"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(
            snapshot, holidays=tuple(h for h in snapshot.holidays if h.id != self.holiday.id)
        )

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        return replace(snapshot, holidays=_insert(snapshot.holidays, self.index, self.holiday))


@dataclass(frozen=True)
class CompoundCommand:
    """Several commands undone and redone as one step."""

    commands: tuple[Command, ...]
    label: str = "Compound"

    def apply(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        for cmd in self.commands:
            snapshot = cmd.apply(snapshot)
        return snapshot

    def revert(self, snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
        for cmd in reversed(self.commands):
            snapshot = cmd.revert(snapshot)
        return snapshot


Command = Union[
    AddTask,
    MoveTask,
    EditTask,
    DeleteTask,
    AddDependency,
    RemoveDependency,
    AddRow,
    RenameRow,
    DeleteRow,
    AddHoliday,
    DeleteHoliday,
    CompoundCommand,
]


class CommandHistory:
    """Linear command list with a cursor; no depth limit."""

    def __init__(self) -> None:
        self._commands: list[Command] = []
        self._cursor = 0
        self._commit_point: int | None = 0

    def __len__(self) -> int:
        return len(self._commands)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._commands)

    @property
    def commit_point(self) -> int | None:
        """Cursor position of the last commit, None once it was truncated away."""
        return self._commit_point

    @property
    def at_commit_point(self) -> bool:
        return self._cursor == self._commit_point

    def push(self, cmd: Command) -> None:
        del self._commands[self._cursor:]
        if self._commit_point is not None and self._commit_point > self._cursor:
            self._commit_point = None
        self._commands.append(cmd)
        self._cursor += 1

    def undo(self) -> Command | None:
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._commands[self._cursor]

    def redo(self) -> Command | None:
        if not self.can_redo:
            return None
        cmd = self._commands[self._cursor]
        self._cursor += 1
        return cmd

    def peek_undo(self) -> Command | None:
        return self._commands[self._cursor - 1] if self.can_undo else None

    def peek_redo(self) -> Command | None:
        return self._commands[self._cursor] if self.can_redo else None

    def mark_committed(self, position: int | None = None) -> None:
        self._commit_point = self._cursor if position is None else position

    def clear(self) -> None:
        self._commands.clear()
        self._cursor = 0
        self._commit_point = 0
