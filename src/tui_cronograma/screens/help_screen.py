"""Key reference. Selecting an entry runs its action."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Label, OptionList
from textual.widgets.option_list import Option

# (keys, description, action or "" when the entry is informational)
HELP_SECTIONS: list[tuple[str, list[tuple[str, str, str]]]] = [
    (
        "General",
        [
            ("↑ / ↓", "Previous / next line", ""),
            ("Esc", "Close dialog", ""),
            ("?", "This help", ""),
            ("q", "Quit", "quit_app"),
        ],
    ),
    (
        "Tasks",
        [
            ("n", "New task on the current row", "new_task"),
            ("Shift+← / →", "Move task one day earlier / later", ""),
            ("Shift+↑ / ↓", "Move task to the previous / next row", ""),
            ("+ / -", "Extend / shorten task by one day", ""),
            ("g", "Reschedule to a date, shifting dependents", "reschedule"),
            ("s", "Cycle status", "cycle_status"),
            ("p", "Edit protocol", "edit_protocol"),
            ("d", "Delete task", "delete_task"),
            ("l", "Make task wait for another", "add_dependency"),
            ("u", "Drop a prerequisite", "remove_dependency"),
        ],
    ),
    (
        "Rows",
        [
            ("o", "Add terminal or technician row", "add_row"),
            ("m", "Rename row", "rename_row"),
            ("x", "Delete row", "delete_row"),
        ],
    ),
    (
        "Holidays",
        [
            ("h", "Add holiday", "add_holiday"),
            ("H", "Delete holiday", "delete_holiday"),
            ("w", "Upcoming holidays", "holiday_warnings"),
        ],
    ),
    (
        "Staged changes",
        [
            ("Ctrl+Z", "Undo", "undo"),
            ("Ctrl+Y", "Redo", "redo"),
            ("Ctrl+S", "Commit", "commit"),
            ("Ctrl+R", "Discard", "discard"),
            ("Ctrl+E", "Export (JSON/CSV/MD)", "export"),
        ],
    ),
]

HELP_ITEMS: list[tuple[str, str, str]] = [
    item for _, items in HELP_SECTIONS for item in items
]


class HelpScreen(ModalScreen[str]):
    """Dismisses with the chosen action name, or "" when closed."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("question_mark", "close", "Close"),
    ]

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }
    #help {
        width: 72;
        height: auto;
        max-height: 85%;
        background: $panel;
        border: round $primary;
    }
    #help-title {
        width: 100%;
        padding: 0 1;
        background: $primary;
        color: $text;
        text-style: bold;
    }
    #help-keys {
        height: auto;
        max-height: 30;
        border: none;
    }
    """

    def compose(self) -> ComposeResult:
        options: list[Option] = []
        for section, items in HELP_SECTIONS:
            options.append(Option(Text(section, style="bold underline"), disabled=True))
            for keys, description, action in items:
                line = Text.assemble((f"  {keys:<14}", "bold"), description)
                if not action:
                    line.stylize("dim")
                options.append(Option(line, id=action or None))
        with Vertical(id="help"):
            yield Label("Keys  (Enter runs the highlighted command)", id="help-title")
            yield OptionList(*options, id="help-keys")

    def on_mount(self) -> None:
        self.query_one("#help-keys", OptionList).focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        self.dismiss(event.option.id or "")

    def action_close(self) -> None:
        self.dismiss("")
