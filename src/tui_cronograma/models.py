"""Data models for the laboratory schedule (Cronograma)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Iterable, Iterator, Mapping


class TaskCategory(Enum):
    """Kind of schedulable activity."""

    EFFICIENCY = "efficiency"
    SAFETY = "safety"
    CALIBRATION = "calibration"
    VACATION = "vacation"


class TaskStatus(Enum):
    """Task status. Not every status is valid for every category."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    REPORT_ISSUED = "report-issued"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    SCHEDULED = "scheduled"


class RowCategory(Enum):
    """Which family of tasks a resource row belongs to."""

    EFFICIENCY = "efficiency"  # terminals, numeric ids
    SAFETY = "safety"  # technicians, letter ids
    SHARED = "shared"  # built-in lanes


class Role(Enum):
    """Role of the current user."""

    ADMINISTRATOR = "administrador"
    TECHNICIAN = "tecnico"
    VIEWER = "visualizador"


class DependencyPolicy(Enum):
    """What to do when a move would break a dependent task."""

    REJECT = "reject"
    CASCADE = "cascade"


STATUSES_BY_CATEGORY: dict[TaskCategory, tuple[TaskStatus, ...]] = {
    TaskCategory.EFFICIENCY: (
        TaskStatus.PENDING,
        TaskStatus.IN_PROGRESS,
        TaskStatus.REPORT_ISSUED,
        TaskStatus.COMPLETED,
        TaskStatus.CANCELLED,
    ),
    TaskCategory.SAFETY: (
        TaskStatus.PENDING,
        TaskStatus.IN_PROGRESS,
        TaskStatus.REPORT_ISSUED,
        TaskStatus.COMPLETED,
    ),
    TaskCategory.CALIBRATION: (
        TaskStatus.PENDING,
        TaskStatus.IN_PROGRESS,
        TaskStatus.COMPLETED,
    ),
    TaskCategory.VACATION: (TaskStatus.SCHEDULED,),
}

DEFAULT_STATUS: dict[TaskCategory, TaskStatus] = {
    category: statuses[0] for category, statuses in STATUSES_BY_CATEGORY.items()
}

TASK_ID_PREFIX: dict[TaskCategory, str] = {
    TaskCategory.EFFICIENCY: "E",
    TaskCategory.SAFETY: "S",
    TaskCategory.CALIBRATION: "C",
    TaskCategory.VACATION: "F",
}

ROW_HOSTS: dict[RowCategory, frozenset[TaskCategory]] = {
    RowCategory.EFFICIENCY: frozenset(
        {TaskCategory.EFFICIENCY, TaskCategory.CALIBRATION, TaskCategory.VACATION}
    ),
    RowCategory.SAFETY: frozenset(
        {TaskCategory.SAFETY, TaskCategory.CALIBRATION, TaskCategory.VACATION}
    ),
    RowCategory.SHARED: frozenset(TaskCategory),
}

STATUS_ICONS = {
    TaskStatus.PENDING: "○",
    TaskStatus.IN_PROGRESS: "◐",
    TaskStatus.REPORT_ISSUED: "◑",
    TaskStatus.COMPLETED: "●",
    TaskStatus.CANCELLED: "✕",
    TaskStatus.SCHEDULED: "◇",
}

LOCK_ICON = "🔒"

DATE_FORMAT_PRESETS: dict[str, str] = {
    "YYYY-MM-DD": "%Y-%m-%d",
    "DD/MM/YYYY": "%d/%m/%Y",
    "MM/DD/YYYY": "%m/%d/%Y",
    "DD.MM.YYYY": "%d.%m.%Y",
    "DD/MM": "%d/%m",
}
DEFAULT_DATE_FORMAT = "DD/MM/YYYY"


FieldPairs = tuple[tuple[str, str], ...]


def freeze_fields(fields: Mapping[str, str] | Iterable[tuple[str, str]] | None) -> FieldPairs:
    """Descriptive fields as an immutable tuple of (key, value) pairs."""
    if not fields:
        return ()
    items = fields.items() if isinstance(fields, Mapping) else fields
    return tuple((str(key), str(value)) for key, value in items)


def format_date(d: date | None, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Format a date for display. Returns empty string for None."""
    if d is None:
        return ""
    fmt = DATE_FORMAT_PRESETS.get(date_format)
    if fmt is None:
        return d.isoformat()
    return d.strftime(fmt)


def parse_date_input(text: str) -> date | None:
    """Accept YYYY-MM-DD or DD/MM/YYYY. None when unparseable."""
    text = text.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    parts = text.split("/")
    if len(parts) == 3:
        try:
            day, month, year = (int(p) for p in parts)
            return date(year, month, day)
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class Task:
    """A time-boxed activity on a resource row. Immutable; edit via commands."""

    id: str
    category: TaskCategory
    row_id: str
    start: date
    end: date
    status: TaskStatus = TaskStatus.PENDING
    protocol: str = ""
    fields: FieldPairs = ()  # opaque to the engine
    depends_on: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", freeze_fields(self.fields))
        object.__setattr__(self, "depends_on", tuple(self.depends_on))

    @property
    def duration_days(self) -> int:
        """Inclusive length in calendar days."""
        return (self.end - self.start).days + 1

    @property
    def retired(self) -> bool:
        """Completed safety assays stay on the board but are frozen."""
        return self.category == TaskCategory.SAFETY and self.status == TaskStatus.COMPLETED

    def field_map(self) -> dict[str, str]:
        """A copy of the fields as a dict."""
        return dict(self.fields)

    @property
    def status_icon(self) -> str:
        return STATUS_ICONS[self.status]

    def with_dates(self, start: date, end: date, row_id: str | None = None) -> Task:
        return replace(
            self, start=start, end=end, row_id=self.row_id if row_id is None else row_id
        )


@dataclass(frozen=True)
class Row:
    """A resource lane (terminal or technician)."""

    id: str
    label: str
    category: RowCategory
    builtin: bool = False

    def hosts(self, category: TaskCategory) -> bool:
        return category in ROW_HOSTS[self.category]


BUILTIN_ROWS: tuple[Row, ...] = (
    Row(id="ferias", label="Férias", category=RowCategory.SHARED, builtin=True),
    Row(id="calibracao", label="Calibrações", category=RowCategory.SHARED, builtin=True),
)


@dataclass(frozen=True)
class Holiday:
    """A holiday or company shutdown, inclusive range."""

    id: int
    name: str
    start: date
    end: date

    def covers(self, d: date) -> bool:
        return self.start <= d <= self.end


@dataclass(frozen=True)
class Dependency:
    """Edge meaning *from_id* must end before *to_id* starts."""

    from_id: str
    to_id: str


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Whole schedule state. Structural equality is state equality."""

    tasks: tuple[Task, ...] = ()
    rows: tuple[Row, ...] = BUILTIN_ROWS
    holidays: tuple[Holiday, ...] = ()

    @property
    def dependencies(self) -> tuple[Dependency, ...]:
        return tuple(
            Dependency(dep_id, task.id) for task in self.tasks for dep_id in task.depends_on
        )

    def task_map(self) -> dict[str, Task]:
        return {t.id: t for t in self.tasks}

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_row(self, row_id: str) -> Row | None:
        for row in self.rows:
            if row.id == row_id:
                return row
        return None

    def get_holiday(self, holiday_id: int) -> Holiday | None:
        for holiday in self.holidays:
            if holiday.id == holiday_id:
                return holiday
        return None

    def tasks_on_row(self, row_id: str) -> list[Task]:
        return [t for t in self.tasks if t.row_id == row_id]

    def rows_of(self, category: RowCategory) -> Iterator[Row]:
        return (r for r in self.rows if r.category == category)

    def task_index(self, task_id: str) -> int:
        for i, task in enumerate(self.tasks):
            if task.id == task_id:
                return i
        return -1

    def row_index(self, row_id: str) -> int:
        for i, row in enumerate(self.rows):
            if row.id == row_id:
                return i
        return -1


@dataclass
class ScheduleConfig:
    """Project-level configuration stored in .cronograma/config.toml."""

    name: str = ""
    schedule_file: str = "cronograma.json"
    date_format: str = DEFAULT_DATE_FORMAT
    drag_policy: DependencyPolicy = DependencyPolicy.REJECT
    reschedule_policy: DependencyPolicy = DependencyPolicy.CASCADE
    default_role: Role = Role.VIEWER
    users: dict[str, Role] = field(default_factory=dict)

    def role_for(self, username: str) -> Role:
        """Registered users get their role; everyone else the default."""
        return self.users.get(username, self.default_role)


def next_task_id(snapshot: ScheduleSnapshot, category: TaskCategory) -> str:
    """Allocate the next id for *category*: prefix + (highest number + 1)."""
    prefix = TASK_ID_PREFIX[category]
    highest = 0
    for task in snapshot.tasks:
        if task.id.startswith(prefix) and task.id[len(prefix):].isdigit():
            highest = max(highest, int(task.id[len(prefix):]))
    return f"{prefix}{highest + 1}"


def next_holiday_id(snapshot: ScheduleSnapshot) -> int:
    return max((h.id for h in snapshot.holidays), default=0) + 1
