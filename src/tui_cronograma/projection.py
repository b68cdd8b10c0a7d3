"""Read-only projection of the overlay handed to the rendering side."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from tui_cronograma.models import (
    FieldPairs,
    Holiday,
    Row,
    ScheduleSnapshot,
    TaskCategory,
    TaskStatus,
)
from tui_cronograma.workdays import WorkCalendar


@dataclass(frozen=True)
class ProjectedTask:
    """A task with its row label resolved and calendar figures computed."""

    id: str
    category: TaskCategory
    status: TaskStatus
    row_id: str
    row_label: str
    start: date
    end: date
    duration_days: int
    working_days: int
    protocol: str = ""
    fields: FieldPairs = ()
    depends_on: tuple[str, ...] = ()
    blocked: bool = False  # a prerequisite is not completed yet
    retired: bool = False


@dataclass(frozen=True)
class ScheduleView:
    rows: tuple[Row, ...]
    tasks: tuple[ProjectedTask, ...]
    holidays: tuple[Holiday, ...]
    dirty: bool = False

    def tasks_on_row(self, row_id: str) -> list[ProjectedTask]:
        return [t for t in self.tasks if t.row_id == row_id]

    def get_task(self, task_id: str) -> ProjectedTask | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


def project_schedule(
    snapshot: ScheduleSnapshot, calendar: WorkCalendar, dirty: bool = False
) -> ScheduleView:
    """Build the view: tasks ordered by row order, then start date."""
    labels = {row.id: row.label for row in snapshot.rows}
    row_order = {row.id: i for i, row in enumerate(snapshot.rows)}
    task_map = snapshot.task_map()

    projected = []
    for task in snapshot.tasks:
        blocked = any(
            dep_id in task_map and task_map[dep_id].status != TaskStatus.COMPLETED
            for dep_id in task.depends_on
        )
        projected.append(
            ProjectedTask(
                id=task.id,
                category=task.category,
                status=task.status,
                row_id=task.row_id,
                row_label=labels.get(task.row_id, task.row_id),
                start=task.start,
                end=task.end,
                duration_days=task.duration_days,
                working_days=calendar.working_days_between(task.start, task.end),
                protocol=task.protocol,
                fields=task.fields,
                depends_on=task.depends_on,
                blocked=blocked,
                retired=task.retired,
            )
        )
    projected.sort(key=lambda t: (row_order.get(t.row_id, len(row_order)), t.start, t.id))
    return ScheduleView(
        rows=snapshot.rows,
        tasks=tuple(projected),
        holidays=calendar.holidays,
        dirty=dirty,
    )


def holiday_warnings(calendar: WorkCalendar, today: date, within_days: int) -> list[str]:
    """Human-readable warnings for holidays starting soon."""
    warnings = []
    for holiday in calendar.upcoming_holidays(today, within_days):
        if holiday.start <= today:
            warnings.append(f"{holiday.name} in progress until {holiday.end.isoformat()}")
        else:
            days = (holiday.start - today).days
            warnings.append(f"{holiday.name} starts in {days} day(s) ({holiday.start.isoformat()})")
    return warnings
