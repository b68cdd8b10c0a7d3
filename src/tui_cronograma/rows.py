"""Row registry: allocation, renaming and deletion of resource rows."""

from __future__ import annotations

import logging
import string

from tui_cronograma.errors import (
    BuiltinRowProtected,
    InvalidLabel,
    RegistryError,
    Result,
    RowInUse,
    RowNotFound,
)
from tui_cronograma.history import AddRow, CompoundCommand, DeleteRow, DeleteTask, RenameRow
from tui_cronograma.models import Row, RowCategory, ScheduleSnapshot

logger = logging.getLogger(__name__)

DEFAULT_ROW_LABEL = "Linha {id}"


def letters_to_int(text: str) -> int:
    """'A' → 1, 'Z' → 26, 'AA' → 27 (bijective base 26)."""
    value = 0
    for ch in text:
        value = value * 26 + (ord(ch) - ord("A") + 1)
    return value


def int_to_letters(value: int) -> str:
    letters = ""
    while value > 0:
        value, rem = divmod(value - 1, 26)
        letters = string.ascii_uppercase[rem] + letters
    return letters


def _id_value(row_id: str, category: RowCategory) -> int | None:
    """Numeric value of *row_id* in *category*'s id space, None if the shape differs."""
    if category == RowCategory.EFFICIENCY:
        return int(row_id) if row_id.isdigit() else None
    if category == RowCategory.SAFETY:
        if row_id and row_id.isascii() and row_id.isalpha() and row_id.isupper():
            return letters_to_int(row_id)
    return None


def _format_id(value: int, category: RowCategory) -> str:
    if category == RowCategory.EFFICIENCY:
        return str(value)
    return int_to_letters(value)


class RowRegistry:
    """Plans row commands against a snapshot.

    The registry remembers the highest id issued per category during the
    session, so an id freed by deletion (or by undoing an add) is never handed
    out again.
    """

    def __init__(self) -> None:
        self._high_water: dict[RowCategory, int] = {}

    def observe(self, snapshot: ScheduleSnapshot) -> None:
        """Raise the high-water marks to cover every row in *snapshot*."""
        for row in snapshot.rows:
            value = _id_value(row.id, row.category)
            if value is not None:
                current = self._high_water.get(row.category, 0)
                self._high_water[row.category] = max(current, value)

    def next_row_id(self, snapshot: ScheduleSnapshot, category: RowCategory) -> str:
        self.observe(snapshot)
        return _format_id(self._high_water.get(category, 0) + 1, category)

    def plan_add(
        self, snapshot: ScheduleSnapshot, category: RowCategory, label: str | None = None
    ) -> Result:
        if category == RowCategory.SHARED:
            return Result.failure(
                RegistryError("Shared rows are built in; add an efficiency or safety row")
            )
        row_id = self.next_row_id(snapshot, category)
        text = (label or "").strip() or DEFAULT_ROW_LABEL.format(id=row_id)
        row = Row(id=row_id, label=text, category=category)
        # New rows go after the last row of the same category.
        index = len(snapshot.rows)
        for i, existing in enumerate(snapshot.rows):
            if existing.category == category:
                index = i + 1
        self._high_water[category] = _id_value(row_id, category) or 0
        logger.debug("Allocated row %s (%s)", row_id, category.value)
        return Result.success(AddRow(row=row, index=index))

    def plan_rename(self, snapshot: ScheduleSnapshot, row_id: str, label: str) -> Result:
        row = snapshot.get_row(row_id)
        if row is None:
            return Result.failure(RowNotFound(row_id))
        text = label.strip()
        if not text:
            return Result.failure(InvalidLabel(row_id))
        return Result.success(RenameRow(row_id=row_id, old_label=row.label, new_label=text))

    def plan_delete(
        self, snapshot: ScheduleSnapshot, row_id: str, cascade: bool = False
    ) -> Result:
        """Plan a row deletion.

        Without *cascade* a row that still hosts tasks is refused with
        ``RowInUse``. With it, each hosted task is deleted by its own
        ``DeleteTask`` before the row goes, all inside one compound command.
        """
        row = snapshot.get_row(row_id)
        if row is None:
            return Result.failure(RowNotFound(row_id))
        if row.builtin:
            return Result.failure(BuiltinRowProtected(row_id))
        hosted = snapshot.tasks_on_row(row_id)
        delete_row = DeleteRow(row=row, index=snapshot.row_index(row_id))
        if not hosted:
            return Result.success(delete_row)
        if not cascade:
            return Result.failure(RowInUse(row_id, tuple(t.id for t in hosted)))

        commands: list = []
        working = snapshot
        for task in hosted:
            cmd = plan_task_deletion(working, task.id)
            working = cmd.apply(working)
            commands.append(cmd)
        commands.append(delete_row)
        return Result.success(CompoundCommand(tuple(commands), label="Delete row"))


def plan_task_deletion(snapshot: ScheduleSnapshot, task_id: str) -> DeleteTask:
    """Build the DeleteTask for an existing task, capturing its dependents' edges."""
    task = snapshot.get_task(task_id)
    dependents = tuple(
        (t.id, t.depends_on) for t in snapshot.tasks if task_id in t.depends_on
    )
    return DeleteTask(task=task, index=snapshot.task_index(task_id), dependents=dependents)
