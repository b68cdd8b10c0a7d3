"""Staged editing session: overlay, history, commit and discard.

A :class:`ScheduleSession` holds two snapshots. ``committed`` is what the
store last accepted; the overlay is what the user sees and edits. Every
accepted mutation becomes one command on the history and is applied to the
overlay only. ``commit()`` hands the overlay to the store, ``discard()``
throws it away.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import date
from enum import Enum
from typing import Any, Callable

from tui_cronograma.errors import (
    CommitInProgress,
    DependencyViolation,
    EdgeNotFound,
    HistoryEmpty,
    HolidayNotFound,
    InvalidDates,
    InvalidTask,
    PermissionDenied,
    Result,
    TaskNotFound,
    TaskRetired,
)
from tui_cronograma.graph import DependencyGraph
from tui_cronograma.history import (
    AddDependency,
    AddHoliday,
    AddTask,
    Command,
    CommandHistory,
    CompoundCommand,
    DeleteHoliday,
    EditTask,
    RemoveDependency,
)
from tui_cronograma.models import (
    DEFAULT_STATUS,
    DependencyPolicy,
    Holiday,
    Role,
    RowCategory,
    ScheduleConfig,
    ScheduleSnapshot,
    Task,
    TaskCategory,
    TaskStatus,
    freeze_fields,
    next_holiday_id,
    next_task_id,
)
from tui_cronograma.placement import (
    propose_move,
    propose_resize,
    validate_new_task,
    validate_status,
)
from tui_cronograma.projection import ScheduleView, holiday_warnings, project_schedule
from tui_cronograma.rows import RowRegistry, plan_task_deletion
from tui_cronograma.store import ScheduleStore, validate_snapshot
from tui_cronograma.workdays import DEFAULT_WEEKEND_DAYS, WorkCalendar

logger = logging.getLogger(__name__)

Listener = Callable[[ScheduleView], None]

TASK_OPERATIONS = frozenset({
    "add task",
    "move task",
    "resize task",
    "edit task",
    "delete task",
    "add dependency",
    "remove dependency",
    "undo",
    "redo",
    "commit",
    "discard",
})
ADMIN_OPERATIONS = TASK_OPERATIONS | {
    "add row",
    "rename row",
    "delete row",
    "add holiday",
    "delete holiday",
}

ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.ADMINISTRATOR: ADMIN_OPERATIONS,
    Role.TECHNICIAN: TASK_OPERATIONS,
    Role.VIEWER: frozenset(),
}


class SessionState(Enum):
    CLEAN = "clean"
    DIRTY = "dirty"


class ScheduleSession:
    """Editing session over one schedule."""

    def __init__(
        self,
        snapshot: ScheduleSnapshot,
        store: ScheduleStore,
        role: Role = Role.ADMINISTRATOR,
        config: ScheduleConfig | None = None,
        weekend_days: tuple[int, ...] = DEFAULT_WEEKEND_DAYS,
    ) -> None:
        validate_snapshot(snapshot)
        self._store = store
        self._committed = snapshot
        self._overlay = snapshot
        self._history = CommandHistory()
        self._registry = RowRegistry()
        self._registry.observe(snapshot)
        self._listeners: list[Listener] = []
        self._commit_in_flight = False
        self.role = role
        self.config = config or ScheduleConfig()
        self.weekend_days = tuple(weekend_days)

    @classmethod
    def load(
        cls,
        store: ScheduleStore,
        role: Role = Role.ADMINISTRATOR,
        config: ScheduleConfig | None = None,
        weekend_days: tuple[int, ...] = DEFAULT_WEEKEND_DAYS,
    ) -> ScheduleSession:
        """Open a session on the store's snapshot. Raises SnapshotCorrupt."""
        snapshot = store.load_snapshot()
        logger.info("Session opened as %s", role.value)
        return cls(snapshot, store, role=role, config=config, weekend_days=weekend_days)

    # ── Queries ──

    @property
    def snapshot(self) -> ScheduleSnapshot:
        """The overlay: committed state plus every staged change."""
        return self._overlay

    @property
    def committed(self) -> ScheduleSnapshot:
        return self._committed

    @property
    def state(self) -> SessionState:
        if self._overlay == self._committed:
            return SessionState.CLEAN
        return SessionState.DIRTY

    @property
    def dirty(self) -> bool:
        return self.state == SessionState.DIRTY

    @property
    def history(self) -> CommandHistory:
        return self._history

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def commit_in_progress(self) -> bool:
        return self._commit_in_flight

    @property
    def read_only(self) -> bool:
        return not ROLE_PERMISSIONS[self.role]

    @property
    def calendar(self) -> WorkCalendar:
        return WorkCalendar(self._overlay.holidays, weekend_days=self.weekend_days)

    def projection(self) -> ScheduleView:
        return project_schedule(self._overlay, self.calendar, dirty=self.dirty)

    def holiday_warnings(self, today: date, within_days: int = 7) -> list[str]:
        return holiday_warnings(self.calendar, today, within_days)

    def propose_move(
        self,
        task_id: str,
        row_id: str,
        start: date,
        policy: DependencyPolicy | None = None,
    ) -> Result:
        """Validate a move without staging it."""
        return propose_move(
            self._overlay,
            task_id,
            row_id,
            start,
            policy or self.config.drag_policy,
            calendar=self.calendar,
        )

    def earliest_start(self, task_id: str) -> date | None:
        return DependencyGraph.from_snapshot(self._overlay).earliest_start(task_id)

    def allowed(self, operation: str) -> bool:
        return operation in ROLE_PERMISSIONS[self.role]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with a fresh projection after every change.

        Returns a function that removes the subscription.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Internals ──

    def _denied(self, operation: str) -> Result | None:
        if self.allowed(operation):
            return None
        return Result.failure(PermissionDenied(self.role.value, operation))

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.projection()
        for listener in list(self._listeners):
            listener(view)

    def _execute(self, cmd: Command, value: Any = None) -> Result:
        self._overlay = cmd.apply(self._overlay)
        self._history.push(cmd)
        logger.debug("%s (history %d)", cmd.label, self._history.cursor)
        self._notify()
        return Result.success(value)

    # ── Tasks ──

    def add_task(self, task: Task) -> Result:
        """Stage a new task. The task keeps the id it was given."""
        denied = self._denied("add task")
        if denied:
            return denied
        check = validate_new_task(self._overlay, task)
        if not check.ok:
            return check
        return self._execute(AddTask(task=task, index=len(self._overlay.tasks)), task)

    def create_task(
        self,
        category: TaskCategory,
        row_id: str,
        start: date,
        end: date,
        status: TaskStatus | None = None,
        protocol: str = "",
        fields: dict[str, str] | None = None,
        depends_on: tuple[str, ...] = (),
    ) -> Result:
        """Stage a new task with the next free id for its category."""
        task = Task(
            id=next_task_id(self._overlay, category),
            category=category,
            row_id=row_id,
            start=start,
            end=end,
            status=status or DEFAULT_STATUS[category],
            protocol=protocol,
            fields=freeze_fields(fields),
            depends_on=tuple(depends_on),
        )
        return self.add_task(task)

    def move_task(
        self,
        task_id: str,
        row_id: str,
        start: date,
        policy: DependencyPolicy | None = None,
    ) -> Result:
        """Drag a task to another row and/or start date, keeping its duration."""
        denied = self._denied("move task")
        if denied:
            return denied
        placement = propose_move(
            self._overlay,
            task_id,
            row_id,
            start,
            policy or self.config.drag_policy,
            calendar=self.calendar,
        )
        if not placement.ok:
            return placement
        task = self._overlay.get_task(task_id)
        return self._execute(placement.value.to_command(task), placement.value)

    def reschedule(
        self, task_id: str, start: date, policy: DependencyPolicy | None = None
    ) -> Result:
        """Move a task to a new start on its own row, cascading by default."""
        denied = self._denied("move task")
        if denied:
            return denied
        task = self._overlay.get_task(task_id)
        if task is None:
            return Result.failure(TaskNotFound(task_id))
        return self.move_task(
            task_id, task.row_id, start, policy or self.config.reschedule_policy
        )

    def resize_task(
        self, task_id: str, end: date, policy: DependencyPolicy | None = None
    ) -> Result:
        denied = self._denied("resize task")
        if denied:
            return denied
        placement = propose_resize(
            self._overlay,
            task_id,
            end,
            policy or self.config.drag_policy,
            calendar=self.calendar,
        )
        if not placement.ok:
            return placement
        task = self._overlay.get_task(task_id)
        return self._execute(placement.value.to_command(task), placement.value)

    def edit_task(
        self,
        task_id: str,
        status: TaskStatus | None = None,
        protocol: str | None = None,
        fields: dict[str, str] | None = None,
    ) -> Result:
        """Change status or descriptive data. Dates and rows go through moves."""
        denied = self._denied("edit task")
        if denied:
            return denied
        before = self._overlay.get_task(task_id)
        if before is None:
            return Result.failure(TaskNotFound(task_id))
        after = before
        if status is not None and status != before.status:
            if before.retired:
                return Result.failure(TaskRetired(task_id))
            check = validate_status(task_id, before.category, status)
            if not check.ok:
                return check
            after = replace(after, status=status)
        if protocol is not None:
            after = replace(after, protocol=protocol.strip())
        if fields is not None:
            after = replace(after, fields=freeze_fields(fields))
        if after == before:
            return Result.success(before)
        return self._execute(EditTask(before=before, after=after), after)

    def set_status(self, task_id: str, status: TaskStatus) -> Result:
        return self.edit_task(task_id, status=status)

    def delete_task(self, task_id: str) -> Result:
        denied = self._denied("delete task")
        if denied:
            return denied
        task = self._overlay.get_task(task_id)
        if task is None:
            return Result.failure(TaskNotFound(task_id))
        return self._execute(plan_task_deletion(self._overlay, task_id), task)

    # ── Dependencies ──

    def add_dependency(
        self, from_id: str, to_id: str, policy: DependencyPolicy | None = None
    ) -> Result:
        """Make *to_id* wait for *from_id*.

        If *to_id* currently starts before *from_id* ends, ``reject`` refuses
        the edge and ``cascade`` pushes *to_id* (and what follows it) forward
        in the same undo step.
        """
        denied = self._denied("add dependency")
        if denied:
            return denied
        graph = DependencyGraph.from_snapshot(self._overlay)
        edge = graph.add_edge(from_id, to_id)
        if not edge.ok:
            return edge

        cmd: Command = AddDependency(from_id=from_id, to_id=to_id)
        prerequisite = self._overlay.get_task(from_id)
        dependent = self._overlay.get_task(to_id)
        if dependent.start < prerequisite.end:
            policy = policy or self.config.drag_policy
            if policy == DependencyPolicy.REJECT:
                return Result.failure(DependencyViolation(to_id, from_id))
            linked = cmd.apply(self._overlay)
            placement = propose_move(
                linked,
                to_id,
                dependent.row_id,
                prerequisite.end,
                DependencyPolicy.CASCADE,
                calendar=self.calendar,
            )
            if not placement.ok:
                return placement
            cmd = CompoundCommand(
                (cmd, placement.value.to_command(dependent)), label="Add dependency"
            )
        return self._execute(cmd, edge.value)

    def remove_dependency(self, from_id: str, to_id: str) -> Result:
        denied = self._denied("remove dependency")
        if denied:
            return denied
        task = self._overlay.get_task(to_id)
        if task is None or from_id not in task.depends_on:
            return Result.failure(EdgeNotFound(from_id, to_id))
        cmd = RemoveDependency(
            from_id=from_id, to_id=to_id, position=task.depends_on.index(from_id)
        )
        return self._execute(cmd, (from_id, to_id))

    # ── Rows ──

    def add_row(self, category: RowCategory, label: str | None = None) -> Result:
        denied = self._denied("add row")
        if denied:
            return denied
        plan = self._registry.plan_add(self._overlay, category, label)
        if not plan.ok:
            return plan
        return self._execute(plan.value, plan.value.row)

    def rename_row(self, row_id: str, label: str) -> Result:
        denied = self._denied("rename row")
        if denied:
            return denied
        plan = self._registry.plan_rename(self._overlay, row_id, label)
        if not plan.ok:
            return plan
        return self._execute(plan.value, plan.value.new_label)

    def delete_row(self, row_id: str, cascade: bool = False) -> Result:
        denied = self._denied("delete row")
        if denied:
            return denied
        plan = self._registry.plan_delete(self._overlay, row_id, cascade)
        if not plan.ok:
            return plan
        return self._execute(plan.value, row_id)

    # ── Holidays ──

    def add_holiday(self, name: str, start: date, end: date) -> Result:
        denied = self._denied("add holiday")
        if denied:
            return denied
        name = name.strip()
        if not name:
            return Result.failure(InvalidTask("Holiday name must not be empty"))
        if end < start:
            return Result.failure(InvalidDates(f"Holiday {name}"))
        holiday = Holiday(id=next_holiday_id(self._overlay), name=name, start=start, end=end)
        cmd = AddHoliday(holiday=holiday, index=len(self._overlay.holidays))
        return self._execute(cmd, holiday)

    def delete_holiday(self, holiday_id: int) -> Result:
        denied = self._denied("delete holiday")
        if denied:
            return denied
        holiday = self._overlay.get_holiday(holiday_id)
        if holiday is None:
            return Result.failure(HolidayNotFound(holiday_id))
        index = self._overlay.holidays.index(holiday)
        return self._execute(DeleteHoliday(holiday=holiday, index=index), holiday)

    # ── History ──

    def undo(self) -> Result:
        denied = self._denied("undo")
        if denied:
            return denied
        cmd = self._history.undo()
        if cmd is None:
            return Result.failure(HistoryEmpty("undo"))
        self._overlay = cmd.revert(self._overlay)
        logger.debug("Undo %s", cmd.label)
        self._notify()
        return Result.success(cmd)

    def redo(self) -> Result:
        denied = self._denied("redo")
        if denied:
            return denied
        cmd = self._history.redo()
        if cmd is None:
            return Result.failure(HistoryEmpty("redo"))
        self._overlay = cmd.apply(self._overlay)
        logger.debug("Redo %s", cmd.label)
        self._notify()
        return Result.success(cmd)

    # ── Transactions ──

    async def commit(self) -> Result:
        """Persist the overlay.

        The write runs on a worker thread. Edits made meanwhile stay staged
        on top of what is being written; another commit or a discard is
        refused until the write finishes.
        """
        denied = self._denied("commit")
        if denied:
            return denied
        if self._commit_in_flight:
            return Result.failure(CommitInProgress())

        sent = self._overlay
        sent_cursor = self._history.cursor
        self._commit_in_flight = True
        try:
            result = await asyncio.to_thread(self._store.save_snapshot, sent)
        finally:
            self._commit_in_flight = False

        if not result.ok:
            logger.warning("Commit failed: %s", result.error.message)
            return result

        self._committed = sent
        if self._overlay == sent:
            self._history.mark_committed()
        else:
            self._history.mark_committed(sent_cursor)
        logger.info("Committed %d task(s)", len(sent.tasks))
        self._notify()
        return Result.success(sent)

    def discard(self) -> Result:
        """Drop every staged change and the history with it."""
        denied = self._denied("discard")
        if denied:
            return denied
        if self._commit_in_flight:
            return Result.failure(CommitInProgress())
        self._overlay = self._committed
        self._history.clear()
        logger.info("Discarded staged changes")
        self._notify()
        return Result.success(self._committed)
