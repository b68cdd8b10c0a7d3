"""Schedule table: resource rows as headers, their tasks underneath."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.message import Message
from textual.widgets import DataTable

from rich.text import Text

from tui_cronograma.models import (
    DEFAULT_DATE_FORMAT,
    LOCK_ICON,
    STATUS_ICONS,
    TaskStatus,
    format_date,
)
from tui_cronograma.projection import ProjectedTask, ScheduleView

ROW_KEY_PREFIX = "row:"

STATUS_COLORS = {
    TaskStatus.PENDING: "grey70",
    TaskStatus.IN_PROGRESS: "dark_orange",
    TaskStatus.REPORT_ISSUED: "deep_sky_blue1",
    TaskStatus.COMPLETED: "green3",
    TaskStatus.CANCELLED: "red3",
    TaskStatus.SCHEDULED: "medium_purple1",
}

COLUMNS: list[tuple[str, str, int]] = [
    # (key, label, width)
    ("task", "Task", 24),
    ("category", "Category", 12),
    ("status", "Status", 16),
    ("start", "Start", 12),
    ("end", "End", 12),
    ("days", "Days", 6),
    ("depends", "Depends on", 14),
    ("protocol", "Protocol", 14),
]


def row_key(row_id: str) -> str:
    return f"{ROW_KEY_PREFIX}{row_id}"


class ScheduleTable(Container):
    """Table view of the schedule projection."""

    DEFAULT_CSS = """
    ScheduleTable {
        width: 1fr;
        height: 1fr;
    }
    ScheduleTable DataTable {
        height: 1fr;
    }
    """

    class TaskSelected(Message):
        """Emitted when the cursor lands on a task."""

        def __init__(self, task_id: str) -> None:
            super().__init__()
            self.task_id = task_id

    def __init__(self, view: ScheduleView | None = None, date_format: str = DEFAULT_DATE_FORMAT) -> None:
        super().__init__()
        self._view = view
        self._date_format = date_format
        self._keys: list[str] = []
        self._row_of: dict[str, str] = {}  # table key → resource row id

    def compose(self) -> ComposeResult:
        yield DataTable(id="schedule-data-table", cursor_type="row")

    def on_mount(self) -> None:
        table = self.query_one("#schedule-data-table", DataTable)
        table.zebra_stripes = True
        self._rebuild_table()

    def _rebuild_table(self) -> None:
        try:
            table = self.query_one("#schedule-data-table", DataTable)
        except Exception:
            return

        saved_key = self.highlighted_key
        table.clear(columns=True)
        for key, label, width in COLUMNS:
            table.add_column(label, key=key, width=width)

        self._keys = []
        self._row_of = {}
        if self._view is not None:
            for row in self._view.rows:
                key = row_key(row.id)
                header = Text(f"{row.label} ({row.id})", style="bold")
                table.add_row(header, *[""] * (len(COLUMNS) - 1), key=key)
                self._keys.append(key)
                self._row_of[key] = row.id
                for task in self._view.tasks_on_row(row.id):
                    table.add_row(*self._make_row(task), key=task.id)
                    self._keys.append(task.id)
                    self._row_of[task.id] = row.id

        if saved_key in self._keys:
            table.move_cursor(row=self._keys.index(saved_key), animate=False)

    def _make_row(self, task: ProjectedTask) -> list:
        title = Text(f"  {STATUS_ICONS[task.status]} {task.id}")
        if task.blocked:
            title.append(f" {LOCK_ICON}")
        if task.retired:
            title.stylize("dim")
        status = Text(task.status.value, style=STATUS_COLORS[task.status])
        return [
            title,
            task.category.value,
            status,
            format_date(task.start, self._date_format),
            format_date(task.end, self._date_format),
            str(task.duration_days),
            ", ".join(task.depends_on),
            task.protocol,
        ]

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        key = event.row_key.value if event.row_key else None
        if key and not key.startswith(ROW_KEY_PREFIX):
            self.post_message(self.TaskSelected(key))

    def update_view(self, view: ScheduleView, date_format: str | None = None) -> None:
        self._view = view
        if date_format is not None:
            self._date_format = date_format
        self._rebuild_table()

    def select_key(self, key: str) -> None:
        """Move the cursor to a task id or a ``row:<id>`` header."""
        if key not in self._keys:
            return
        table = self.query_one("#schedule-data-table", DataTable)
        table.move_cursor(row=self._keys.index(key), animate=False)

    @property
    def highlighted_key(self) -> str | None:
        try:
            table = self.query_one("#schedule-data-table", DataTable)
        except Exception:
            return None
        if table.cursor_row is not None and 0 <= table.cursor_row < len(self._keys):
            return self._keys[table.cursor_row]
        return None

    @property
    def highlighted_task_id(self) -> str | None:
        key = self.highlighted_key
        if key is None or key.startswith(ROW_KEY_PREFIX):
            return None
        return key

    @property
    def highlighted_row_id(self) -> str | None:
        """Resource row under the cursor, whether on its header or a task."""
        key = self.highlighted_key
        return self._row_of.get(key) if key else None

