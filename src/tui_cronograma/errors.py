"""Error kinds and the Result type returned by schedule operations.

Mutating operations never raise for expected failures. They return a
:class:`Result` whose ``error`` is one of the classes below, and the schedule
is left exactly as it was. Only :class:`SnapshotCorrupt` is raised, when the
persisted data cannot be trusted and the session refuses to start.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ScheduleError(Exception):
    """Base class for all schedule errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash((type(self), self.message))


# ── Placement ──


class PlacementError(ScheduleError):
    """A proposed placement of a task is not acceptable."""


class DependencyViolation(PlacementError):
    def __init__(self, task_id: str, conflicting_task_id: str) -> None:
        super().__init__(
            f"Task {task_id} conflicts with dependency on {conflicting_task_id}"
        )
        self.task_id = task_id
        self.conflicting_task_id = conflicting_task_id


class RowCategoryMismatch(PlacementError):
    def __init__(self, row_id: str, category: str) -> None:
        super().__init__(f"Row {row_id} cannot host {category} tasks")
        self.row_id = row_id
        self.category = category


class InvalidDates(PlacementError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"{item_id} would end before it starts")
        self.item_id = item_id


class TaskRetired(PlacementError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} is completed and can no longer be moved")
        self.task_id = task_id


# ── Rows ──


class RegistryError(ScheduleError):
    """A row registry operation was refused."""


class RowNotFound(PlacementError, RegistryError):
    def __init__(self, row_id: str) -> None:
        super().__init__(f"Row {row_id} does not exist")
        self.row_id = row_id


class RowInUse(RegistryError):
    def __init__(self, row_id: str, task_ids: tuple[str, ...]) -> None:
        super().__init__(
            f"Row {row_id} still hosts {len(task_ids)} task(s): {', '.join(task_ids)}"
        )
        self.row_id = row_id
        self.task_ids = task_ids


class BuiltinRowProtected(RegistryError):
    def __init__(self, row_id: str) -> None:
        super().__init__(f"Row {row_id} is built in and cannot be deleted")
        self.row_id = row_id


class InvalidLabel(RegistryError):
    def __init__(self, row_id: str) -> None:
        super().__init__(f"Row {row_id} needs a non-empty label")
        self.row_id = row_id


# ── Dependency graph ──


class GraphError(ScheduleError):
    """A dependency edge operation was refused."""


class CycleDetected(GraphError):
    def __init__(self, from_id: str, to_id: str) -> None:
        super().__init__(f"Dependency {from_id} → {to_id} would create a cycle")
        self.from_id = from_id
        self.to_id = to_id


class EdgeNotFound(GraphError):
    def __init__(self, from_id: str, to_id: str) -> None:
        super().__init__(f"No dependency {from_id} → {to_id}")
        self.from_id = from_id
        self.to_id = to_id


class DuplicateEdge(GraphError):
    def __init__(self, from_id: str, to_id: str) -> None:
        super().__init__(f"Dependency {from_id} → {to_id} already exists")
        self.from_id = from_id
        self.to_id = to_id


# ── Tasks, holidays, history ──


class TaskNotFound(ScheduleError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} does not exist")
        self.task_id = task_id


class InvalidTask(ScheduleError):
    """Task data that can never be valid (duplicate id, bad status, ...)."""


class HolidayNotFound(ScheduleError):
    def __init__(self, holiday_id: int) -> None:
        super().__init__(f"Holiday {holiday_id} does not exist")
        self.holiday_id = holiday_id


class HistoryEmpty(ScheduleError):
    def __init__(self, direction: str) -> None:
        super().__init__(f"Nothing to {direction}")
        self.direction = direction


# ── Transactions ──


class TransactionError(ScheduleError):
    """Commit / discard failures."""


class CommitInProgress(TransactionError):
    def __init__(self) -> None:
        super().__init__("A save is already in progress")


class PersistFailed(TransactionError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Saving failed: {reason}")
        self.reason = reason


class PermissionDenied(ScheduleError):
    def __init__(self, role: str, operation: str) -> None:
        super().__init__(f"Role '{role}' may not {operation}")
        self.role = role
        self.operation = operation


class SnapshotCorrupt(ScheduleError):
    """Raised when stored schedule data is unusable."""


@dataclass(frozen=True)
class Result:
    """Outcome of a schedule operation: a value or an error, never both."""

    value: Any = None
    error: ScheduleError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> Result:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ScheduleError) -> Result:
        return cls(error=error)

    def unwrap(self) -> Any:
        """Return the value, raising the error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value
