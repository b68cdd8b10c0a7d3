"""Yes/no dialog for destructive or cascading schedule edits."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static


class ConfirmScreen(ModalScreen[bool]):
    """Ask before an edit. ``y`` accepts, ``n`` or Esc refuses.

    *details* lists what the edit touches (tasks pushed forward, tasks
    deleted with a row) below the question.
    """

    BINDINGS = [
        ("y", "answer(True)", "Yes"),
        ("n", "answer(False)", "No"),
        ("escape", "answer(False)", "Cancel"),
    ]

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }
    #dialog {
        width: 64;
        height: auto;
        padding: 1 2;
        background: $panel;
        border: round $warning;
    }
    #dialog-question {
        text-style: bold;
    }
    .dialog-detail {
        color: $text-muted;
        padding-left: 2;
    }
    #dialog-actions {
        height: 3;
        margin-top: 1;
        align-horizontal: right;
    }
    #dialog-actions Button {
        min-width: 10;
        margin-left: 1;
    }
    """

    def __init__(
        self,
        message: str,
        details: list[str] | None = None,
        yes_label: str = "Yes (y)",
        no_label: str = "No (n)",
    ) -> None:
        super().__init__()
        self.message = message
        self.details = list(details or [])
        self._labels = (yes_label, no_label)

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self.message, id="dialog-question")
            for line in self.details:
                yield Static(f"• {line}", classes="dialog-detail")
            with Horizontal(id="dialog-actions"):
                yield Button(self._labels[0], variant="warning", id="answer-yes")
                yield Button(self._labels[1], id="answer-no")

    def on_mount(self) -> None:
        self.query_one("#answer-no", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.action_answer(event.button.id == "answer-yes")

    def action_answer(self, accepted: bool) -> None:
        self.dismiss(accepted)
