"""Main Textual App for the laboratory schedule."""

from __future__ import annotations

import os
from datetime import date, timedelta
from pathlib import Path

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Static

from tui_cronograma.commands import ScheduleCommandProvider
from tui_cronograma.config import (
    get_warning_days,
    get_weekend_days,
    load_config,
    load_settings,
    resolve_role,
)
from tui_cronograma.demo_data import build_demo_snapshot
from tui_cronograma.errors import DependencyViolation, Result, RowInUse, SnapshotCorrupt
from tui_cronograma.export import export_view
from tui_cronograma.filelock import acquire_lock, release_lock
from tui_cronograma.history import CommandHistory
from tui_cronograma.models import (
    STATUSES_BY_CATEGORY,
    DependencyPolicy,
    Role,
    RowCategory,
    ScheduleConfig,
    Task,
    TaskCategory,
)
from tui_cronograma.projection import ScheduleView
from tui_cronograma.screens.confirm_screen import ConfirmScreen
from tui_cronograma.screens.help_screen import HelpScreen
from tui_cronograma.screens.prompt_screen import DatePromptScreen, PromptScreen
from tui_cronograma.screens.select_screen import SelectScreen
from tui_cronograma.staging import ScheduleSession
from tui_cronograma.store import JsonScheduleStore, MemoryScheduleStore
from tui_cronograma.widgets.schedule_table import ScheduleTable

# Category of a new task, by the row it is created on
ROW_TASK_CATEGORY = {
    RowCategory.EFFICIENCY: TaskCategory.EFFICIENCY,
    RowCategory.SAFETY: TaskCategory.SAFETY,
}
BUILTIN_TASK_CATEGORY = {
    "ferias": TaskCategory.VACATION,
    "calibracao": TaskCategory.CALIBRATION,
}


def history_summary(history: CommandHistory) -> str:
    """Cursor position, the last-commit mark and the next undo/redo labels."""
    text = f"History: {history.cursor}/{len(history)}"
    if history.at_commit_point:
        if len(history):
            text += " ✓"
    elif history.commit_point is not None:
        text += f" (saved at {history.commit_point})"
    undo = history.peek_undo()
    if undo is not None:
        text += f" | Undo: {escape(undo.label)}"
    redo = history.peek_redo()
    if redo is not None:
        text += f" | Redo: {escape(redo.label)}"
    return text


class CronogramaApp(App):
    """Laboratory schedule application."""

    TITLE = "Cronograma"
    CSS = """
    #main-content {
        height: 1fr;
        border: round $surface-lighten-2;
        border-title-align: left;
    }
    #main-content:focus-within {
        border: round $accent;
        border-title-color: $accent;
    }
    #status-bar {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $primary-background;
        color: $text;
    }
    """

    COMMANDS = App.COMMANDS | {ScheduleCommandProvider}

    BINDINGS = [
        Binding("ctrl+s", "commit", "Commit", priority=True),
        Binding("ctrl+r", "discard", "Discard", priority=True),
        Binding("ctrl+z", "undo", "Undo", priority=True),
        Binding("ctrl+y", "redo", "Redo", priority=True),
        Binding("question_mark", "help", "Help"),
        Binding("q", "quit_app", "Quit"),
        # Placement
        Binding("shift+left", "move_earlier", "Earlier", show=False),
        Binding("shift+right", "move_later", "Later", show=False),
        Binding("shift+up", "move_row_up", "Row up", show=False),
        Binding("shift+down", "move_row_down", "Row down", show=False),
        Binding("plus", "extend", "Extend", show=False),
        Binding("minus", "shorten", "Shorten", show=False),
        Binding("g", "reschedule", "Reschedule", show=False),
        # Tasks
        Binding("n", "new_task", "New task", show=False),
        Binding("s", "cycle_status", "Cycle Status", show=False),
        Binding("p", "edit_protocol", "Protocol", show=False),
        Binding("d", "delete_task", "Delete", show=False),
        Binding("l", "add_dependency", "Link", show=False),
        Binding("u", "remove_dependency", "Unlink", show=False),
        # Rows
        Binding("o", "add_row", "Add row", show=False),
        Binding("m", "rename_row", "Rename row", show=False),
        Binding("x", "delete_row", "Delete row", show=False),
        # Holidays
        Binding("h", "add_holiday", "Add holiday", show=False),
        Binding("H", "delete_holiday", "Delete holiday", show=False),
        Binding("w", "holiday_warnings", "Holidays", show=False),
        # Export
        Binding("ctrl+e", "export", "Export", show=False, priority=True),
    ]

    def __init__(
        self,
        project_dir: Path,
        no_color: bool = False,
        demo_mode: bool = False,
        role: Role | None = None,
        today: date | None = None,
    ) -> None:
        if no_color:
            os.environ["NO_COLOR"] = "1"
        super().__init__()
        self.project_dir = project_dir
        self.no_color = no_color
        self.demo_mode = demo_mode
        self.config: ScheduleConfig = ScheduleConfig()
        self.session: ScheduleSession | None = None
        self._role_override = role
        self._today = today
        self._settings: dict = {}
        self._holds_lock = False

    @property
    def today(self) -> date:
        return self._today or date.today()

    def on_mount(self) -> None:
        self.set_timer(0.01, self._load_project)

    def on_unmount(self) -> None:
        self._release_lock()

    def _load_project(self) -> None:
        self._settings = load_settings(None if self.demo_mode else self.project_dir)
        weekend_days = get_weekend_days(self._settings)

        if self.demo_mode:
            self.config = ScheduleConfig(name="Laboratório (Demo)")
            store = MemoryScheduleStore(build_demo_snapshot(self.today))
            role = self._role_override or Role.ADMINISTRATOR
        else:
            self.config = load_config(self.project_dir)
            store = JsonScheduleStore(self.project_dir / self.config.schedule_file)
            role = self._role_override or resolve_role(self.config)
            if role != Role.VIEWER:
                if acquire_lock(self.project_dir):
                    self._holds_lock = True
                else:
                    self.notify(
                        "Schedule is open in another session; opened read-only",
                        severity="warning",
                    )
                    role = Role.VIEWER

        try:
            self.session = ScheduleSession.load(
                store, role=role, config=self.config, weekend_days=weekend_days
            )
        except SnapshotCorrupt as e:
            self._release_lock()
            self.notify(f"Cannot open schedule: {e.message}", severity="error", timeout=30)
            self._update_status_bar()
            return

        self.session.subscribe(self._on_schedule_changed)
        self._on_schedule_changed(self.session.projection())
        self.action_holiday_warnings(quiet=True)

    def _release_lock(self) -> None:
        if self._holds_lock:
            release_lock(self.project_dir)
            self._holds_lock = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-content"):
            yield ScheduleTable(date_format=self.config.date_format)
        yield Static("", id="status-bar")
        yield Footer()

    # ── UI Refresh ──

    def _on_schedule_changed(self, view: ScheduleView) -> None:
        try:
            table = self.query_one(ScheduleTable)
        except Exception:
            return
        table.update_view(view, self.config.date_format)
        self._update_title()
        self._update_status_bar()

    def _update_title(self) -> None:
        project_name = self.config.name or self.project_dir.name
        mod = " [*]" if self.session and self.session.dirty else ""
        demo = " [DEMO]" if self.demo_mode else ""
        self.title = f"Cronograma - {project_name}{mod}{demo}"

    def _update_status_bar(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except Exception:
            return
        if self.session is None:
            bar.update("[bold red]Schedule unavailable[/bold red]")
            return
        parts: list[str] = []
        if self.demo_mode:
            parts.append("[bold magenta]DEMO[/bold magenta]")
        parts.append(f"Role: {self.session.role.value}")
        if self.session.read_only:
            parts.append("[yellow]read-only[/yellow]")
        if self.session.commit_in_progress:
            parts.append("saving…")
        elif self.session.dirty:
            parts.append("[bold yellow]● staged changes[/bold yellow]")
        else:
            parts.append("committed")
        parts.append(history_summary(self.session.history))
        bar.update(" | ".join(parts))

    def _apply(self, result: Result, message: str | None = None) -> bool:
        """Surface a failed result as an error notification."""
        if not result.ok:
            self.notify(result.error.message, severity="error")
            return False
        if message:
            self.notify(message, severity="information")
        return True

    # ── Selection helpers ──

    def _table(self) -> ScheduleTable:
        return self.query_one(ScheduleTable)

    def _current_task(self) -> Task | None:
        if self.session is None:
            return None
        task_id = self._table().highlighted_task_id
        if task_id is None:
            self.notify("Select a task first", severity="warning")
            return None
        return self.session.snapshot.get_task(task_id)

    def _current_row_id(self) -> str | None:
        if self.session is None:
            return None
        row_id = self._table().highlighted_row_id
        if row_id is None:
            self.notify("Select a row first", severity="warning")
        return row_id

    # ── Placement ──

    def action_move_earlier(self) -> None:
        self._shift_task(-1)

    def action_move_later(self) -> None:
        self._shift_task(1)

    def _shift_task(self, days: int) -> None:
        task = self._current_task()
        if task is None:
            return
        self._apply(
            self.session.move_task(task.id, task.row_id, task.start + timedelta(days=days))
        )

    def action_move_row_up(self) -> None:
        self._move_to_adjacent_row(-1)

    def action_move_row_down(self) -> None:
        self._move_to_adjacent_row(1)

    def _move_to_adjacent_row(self, direction: int) -> None:
        task = self._current_task()
        if task is None:
            return
        rows = self.session.snapshot.rows
        index = self.session.snapshot.row_index(task.row_id) + direction
        while 0 <= index < len(rows):
            if rows[index].hosts(task.category):
                self._apply(self.session.move_task(task.id, rows[index].id, task.start))
                return
            index += direction
        self.notify(f"No other row can host {task.category.value} tasks", severity="warning")

    def action_extend(self) -> None:
        self._resize_task(1)

    def action_shorten(self) -> None:
        self._resize_task(-1)

    def _resize_task(self, days: int) -> None:
        task = self._current_task()
        if task is None:
            return
        self._apply(self.session.resize_task(task.id, task.end + timedelta(days=days)))

    def action_reschedule(self) -> None:
        task = self._current_task()
        if task is None:
            return
        self.push_screen(
            DatePromptScreen(f"New start date for {task.id}", task.start, self.session.calendar),
            callback=lambda value: self._on_reschedule_date(task.id, value),
        )

    def _on_reschedule_date(self, task_id: str, start: date | None) -> None:
        if start is None:
            return
        result = self.session.reschedule(task_id, start)
        if self._apply(result) and result.value.cascade:
            self.notify(f"{len(result.value.cascade)} dependent task(s) shifted")

    # ── Tasks ──

    def action_new_task(self) -> None:
        row_id = self._current_row_id()
        if row_id is None:
            return
        row = self.session.snapshot.get_row(row_id)
        category = BUILTIN_TASK_CATEGORY.get(row.id) or ROW_TASK_CATEGORY.get(row.category)
        if category is None:
            self.notify(f"Row {row.label} takes no new tasks", severity="warning")
            return
        calendar = self.session.calendar
        start = self.today
        if not calendar.is_working_day(start):
            start = calendar.add_working_days(start, 1)
        result = self.session.create_task(category, row.id, start, start)
        if self._apply(result):
            self._table().select_key(result.value.id)

    def action_cycle_status(self) -> None:
        task = self._current_task()
        if task is None:
            return
        statuses = STATUSES_BY_CATEGORY[task.category]
        new_status = statuses[(statuses.index(task.status) + 1) % len(statuses)]
        self._apply(self.session.set_status(task.id, new_status))

    def action_edit_protocol(self) -> None:
        task = self._current_task()
        if task is None:
            return
        self.push_screen(
            PromptScreen(f"Protocol for {task.id}", task.protocol),
            callback=lambda value: (
                self._apply(self.session.edit_task(task.id, protocol=value))
                if value is not None
                else None
            ),
        )

    def action_delete_task(self) -> None:
        task = self._current_task()
        if task is None:
            return
        self.push_screen(
            ConfirmScreen(f"Delete task {task.id}?"),
            callback=lambda confirmed: (
                self._apply(self.session.delete_task(task.id)) if confirmed else None
            ),
        )

    # ── Dependencies ──

    def action_add_dependency(self) -> None:
        task = self._current_task()
        if task is None:
            return
        self.push_screen(
            PromptScreen(f"{task.id} must wait for task", placeholder="task id"),
            callback=lambda value: self._on_prerequisite_entered(task.id, value),
        )

    def _on_prerequisite_entered(self, task_id: str, value: str | None) -> None:
        if not value or not value.strip():
            return
        from_id = value.strip()
        result = self.session.add_dependency(from_id, task_id)
        if isinstance(result.error, DependencyViolation):
            self.push_screen(
                ConfirmScreen(
                    f"{task_id} starts before {from_id} ends. "
                    f"Shift {task_id} and its dependents forward?"
                ),
                callback=lambda confirmed: (
                    self._apply(
                        self.session.add_dependency(
                            from_id, task_id, DependencyPolicy.CASCADE
                        )
                    )
                    if confirmed
                    else None
                ),
            )
            return
        self._apply(result)

    def action_remove_dependency(self) -> None:
        task = self._current_task()
        if task is None:
            return
        if not task.depends_on:
            self.notify(f"{task.id} has no prerequisites", severity="warning")
            return
        if len(task.depends_on) == 1:
            self._apply(self.session.remove_dependency(task.depends_on[0], task.id))
            return
        self.push_screen(
            SelectScreen(
                f"Stop {task.id} waiting for",
                [(dep_id, dep_id) for dep_id in task.depends_on],
            ),
            callback=lambda dep_id: (
                self._apply(self.session.remove_dependency(dep_id, task.id))
                if dep_id
                else None
            ),
        )

    # ── Rows ──

    def action_add_row(self) -> None:
        if self.session is None:
            return
        self.push_screen(
            SelectScreen(
                "Row kind",
                [
                    (RowCategory.EFFICIENCY.value, "Terminal (efficiency)"),
                    (RowCategory.SAFETY.value, "Technician (safety)"),
                ],
            ),
            callback=self._on_row_category_selected,
        )

    def _on_row_category_selected(self, value: str | None) -> None:
        if value is None:
            return
        category = RowCategory(value)
        self.push_screen(
            PromptScreen("Row label", placeholder="blank for default"),
            callback=lambda label: (
                self._on_row_label(category, label) if label is not None else None
            ),
        )

    def _on_row_label(self, category: RowCategory, label: str) -> None:
        result = self.session.add_row(category, label)
        if self._apply(result, f"Added row {result.value.id}" if result.ok else None):
            self._table().select_key(f"row:{result.value.id}")

    def action_rename_row(self) -> None:
        row_id = self._current_row_id()
        if row_id is None:
            return
        row = self.session.snapshot.get_row(row_id)
        self.push_screen(
            PromptScreen(f"Label for row {row.id}", row.label),
            callback=lambda label: (
                self._apply(self.session.rename_row(row_id, label))
                if label is not None
                else None
            ),
        )

    def action_delete_row(self) -> None:
        row_id = self._current_row_id()
        if row_id is None:
            return
        self.push_screen(
            ConfirmScreen(f"Delete row {row_id}?"),
            callback=lambda confirmed: self._on_delete_row(row_id) if confirmed else None,
        )

    def _on_delete_row(self, row_id: str) -> None:
        result = self.session.delete_row(row_id)
        if isinstance(result.error, RowInUse):
            task_ids = result.error.task_ids
            self.push_screen(
                ConfirmScreen(
                    f"Row {row_id} hosts {len(task_ids)} task(s). Delete them too?",
                    details=[f"delete {task_id}" for task_id in task_ids],
                ),
                callback=lambda confirmed: (
                    self._apply(self.session.delete_row(row_id, cascade=True))
                    if confirmed
                    else None
                ),
            )
            return
        self._apply(result)

    # ── Holidays ──

    def action_add_holiday(self) -> None:
        if self.session is None:
            return
        self.push_screen(PromptScreen("Holiday name"), callback=self._on_holiday_name)

    def _on_holiday_name(self, name: str | None) -> None:
        if not name or not name.strip():
            return
        self.push_screen(
            DatePromptScreen(f"First day of {name}", self.today, self.session.calendar),
            callback=lambda value: self._on_holiday_start(name, value),
        )

    def _on_holiday_start(self, name: str, start: date | None) -> None:
        if start is None:
            return
        self.push_screen(
            DatePromptScreen(
                f"Last day of {name}", start, self.session.calendar, allow_blank=True
            ),
            callback=lambda end_value: self._on_holiday_end(name, start, end_value),
        )

    def _on_holiday_end(self, name: str, start: date, end: date | None) -> None:
        if end is None:
            return
        self._apply(self.session.add_holiday(name, start, end), f"Added holiday {name}")

    def action_delete_holiday(self) -> None:
        if self.session is None:
            return
        holidays = self.session.snapshot.holidays
        if not holidays:
            self.notify("No holidays", severity="warning")
            return
        self.push_screen(
            SelectScreen(
                "Delete holiday",
                [(str(h.id), f"{h.name} ({h.start.isoformat()})") for h in holidays],
            ),
            callback=lambda value: (
                self._apply(self.session.delete_holiday(int(value))) if value else None
            ),
        )

    def action_holiday_warnings(self, quiet: bool = False) -> None:
        if self.session is None:
            return
        warnings = self.session.holiday_warnings(self.today, get_warning_days(self._settings))
        if not warnings and not quiet:
            self.notify("No holidays coming up")
        for warning in warnings:
            self.notify(warning, severity="warning")

    # ── History & staging ──

    def action_undo(self) -> None:
        if self.session is None:
            return
        result = self.session.undo()
        self._apply(result, f"Undone: {result.value.label}" if result.ok else None)

    def action_redo(self) -> None:
        if self.session is None:
            return
        result = self.session.redo()
        self._apply(result, f"Redone: {result.value.label}" if result.ok else None)

    def action_commit(self) -> None:
        if self.session is None:
            return
        self.run_worker(self._commit(), group="commit")

    async def _commit(self) -> None:
        result = await self.session.commit()
        message = "Committed" if not self.demo_mode else "Committed (demo, kept in memory)"
        self._apply(result, message)
        self._update_status_bar()

    def action_discard(self) -> None:
        if self.session is None:
            return
        if not self.session.dirty and not self.session.can_undo:
            self.notify("Nothing to discard", severity="warning")
            return
        self.push_screen(
            ConfirmScreen(
                "Discard all staged changes?",
                details=[f"{self.session.history.cursor} staged edit(s) will be lost"],
            ),
            callback=lambda confirmed: (
                self._apply(self.session.discard(), "Staged changes discarded")
                if confirmed
                else None
            ),
        )

    # ── Misc ──

    def action_export(self) -> None:
        if self.session is None:
            return
        self.push_screen(
            PromptScreen("Export filename (json/csv/md)", "cronograma.csv"),
            callback=self._on_export_filename,
        )

    def _on_export_filename(self, filename: str | None) -> None:
        if not filename or self.session is None:
            return
        filename = filename.strip()
        base_dir = Path.cwd() if self.demo_mode else self.project_dir
        try:
            export_view(self.session.projection(), base_dir / filename)
        except (ValueError, OSError) as e:
            self.notify(f"Export failed: {e}", severity="error")
            return
        self.notify(f"Exported to {filename}", severity="information")

    def action_help(self) -> None:
        self.push_screen(HelpScreen(), callback=self._on_help_action)

    def _on_help_action(self, action: str) -> None:
        if action:
            self.call_later(self.run_action, action)

    def action_quit_app(self) -> None:
        if self.session is not None and self.session.dirty and not self.demo_mode:
            self.push_screen(
                ConfirmScreen("Staged changes are not committed. Quit anyway?"),
                callback=self._on_quit_confirmed,
            )
        else:
            self._release_lock()
            self.exit()

    def _on_quit_confirmed(self, confirmed: bool) -> None:
        if confirmed:
            self._release_lock()
            self.exit()
