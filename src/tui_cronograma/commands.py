"""Command palette entries, filtered by what the session role may do."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial

from textual.command import Hit, Hits, Provider


@dataclass(frozen=True)
class CommandDef:
    """A single command entry for the palette."""

    display: str
    action: str
    help: str = ""
    category: str = ""
    operation: str | None = None  # permission needed, None for everyone


COMMANDS: list[CommandDef] = [
    # -- Schedule --
    CommandDef("Commit", "commit", "Save staged changes (Ctrl+S)", "Schedule", "commit"),
    CommandDef("Discard", "discard", "Drop staged changes (Ctrl+R)", "Schedule", "discard"),
    CommandDef("Undo", "undo", "Undo last change (Ctrl+Z)", "Schedule", "undo"),
    CommandDef("Redo", "redo", "Redo last change (Ctrl+Y)", "Schedule", "redo"),
    CommandDef("Export", "export", "Export to JSON/CSV/Markdown (Ctrl+E)", "Schedule"),
    CommandDef("Quit", "quit_app", "Quit application (q)", "Schedule"),
    # -- Tasks --
    CommandDef("New Task", "new_task", "Add a task on the current row (n)", "Tasks", "add task"),
    CommandDef("Reschedule Task", "reschedule", "Move task to a date, shifting dependents (g)", "Tasks", "move task"),
    CommandDef("Cycle Status", "cycle_status", "Advance the task status (s)", "Tasks", "edit task"),
    CommandDef("Edit Protocol", "edit_protocol", "Set the protocol number (p)", "Tasks", "edit task"),
    CommandDef("Delete Task", "delete_task", "Delete the selected task (d)", "Tasks", "delete task"),
    CommandDef("Add Dependency", "add_dependency", "Make the task wait for another (l)", "Tasks", "add dependency"),
    CommandDef("Remove Dependency", "remove_dependency", "Drop a prerequisite (u)", "Tasks", "remove dependency"),
    # -- Rows --
    CommandDef("Add Row", "add_row", "Add a terminal or technician row (o)", "Rows", "add row"),
    CommandDef("Rename Row", "rename_row", "Rename the current row (m)", "Rows", "rename row"),
    CommandDef("Delete Row", "delete_row", "Delete the current row (x)", "Rows", "delete row"),
    # -- Holidays --
    CommandDef("Add Holiday", "add_holiday", "Add a holiday or shutdown (h)", "Holidays", "add holiday"),
    CommandDef("Delete Holiday", "delete_holiday", "Remove a holiday (H)", "Holidays", "delete holiday"),
    CommandDef("Upcoming Holidays", "holiday_warnings", "Show holidays coming up (w)", "Holidays"),
    # -- View --
    CommandDef("Help", "help", "Show keybindings (?)", "View"),
]


class ScheduleCommandProvider(Provider):
    """Palette entries for the actions the current role may run."""

    def _available(self) -> list[CommandDef]:
        session = getattr(self.app, "session", None)
        return [
            cmd
            for cmd in COMMANDS
            if cmd.operation is None
            or (session is not None and session.allowed(cmd.operation))
        ]

    def _hit(self, cmd: CommandDef, score: float) -> Hit:
        return Hit(
            score,
            cmd.display,
            partial(self.app.run_action, cmd.action),
            help=f"{cmd.category}: {cmd.help}",
        )

    async def discover(self) -> Hits:
        for cmd in self._available():
            yield self._hit(cmd, 1.0)

    async def search(self, query: str) -> Hits:
        """Fuzzy match on name, description and category."""
        query = query.lower()
        for cmd in self._available():
            haystack = f"{cmd.display} {cmd.help} {cmd.category}".lower()
            if self._fuzzy_match(query, haystack):
                yield self._hit(cmd, self._score(query, cmd.display.lower()))

    @staticmethod
    def _fuzzy_match(query: str, text: str) -> bool:
        """Every character of *query* appears in *text*, in order."""
        remaining = iter(text)
        return all(ch in remaining for ch in query)

    @staticmethod
    def _score(query: str, text: str) -> float:
        if not query:
            return 0.5
        if text == query:
            return 1.0
        if text.startswith(query):
            return 0.9
        return 0.8 if query in text else 0.7
