"""Prompts for labels, ids and dates."""

from __future__ import annotations

from datetime import date

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from tui_cronograma.models import format_date, parse_date_input
from tui_cronograma.workdays import WorkCalendar

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class PromptScreen(ModalScreen[str | None]):
    """One-line text prompt. Dismisses with None on cancel."""

    BINDINGS = [("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    PromptScreen {
        align: center middle;
    }
    #prompt {
        width: 60;
        height: auto;
        background: $panel;
        border: round $primary;
        padding: 0 1;
    }
    #prompt-title {
        width: 100%;
        text-style: bold;
        color: $accent;
    }
    #prompt-input {
        margin: 1 0 0 0;
    }
    #prompt-hint {
        height: 1;
        color: $text-muted;
    }
    #prompt-hint.-invalid {
        color: $error;
        text-style: bold;
    }
    #prompt-actions {
        align: right middle;
        height: 3;
    }
    #prompt-actions Button {
        margin: 0 0 0 1;
        min-width: 10;
    }
    """

    def __init__(self, label: str, initial_value: str = "", placeholder: str = "") -> None:
        super().__init__()
        self._label = label
        self._initial_value = initial_value
        self._placeholder = placeholder

    def compose(self) -> ComposeResult:
        with Vertical(id="prompt"):
            yield Label(self._label, id="prompt-title")
            yield Input(
                value=self._initial_value,
                placeholder=self._placeholder,
                id="prompt-input",
            )
            yield Static("", id="prompt-hint")
            with Horizontal(id="prompt-actions"):
                yield Button("OK", variant="primary", id="prompt-ok")
                yield Button("Cancel", id="prompt-cancel")

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()

    def submit(self, text: str) -> None:
        self.dismiss(text)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "prompt-ok":
            self.submit(self.query_one("#prompt-input", Input).value)
        else:
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.submit(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class DatePromptScreen(PromptScreen):
    """Date prompt. Stays open until the text parses.

    The hint line names the weekday and flags weekends and holidays; those
    are advisory and never block submission. With *allow_blank* an empty
    field is accepted and dismisses with the initial date.
    """

    def __init__(
        self,
        label: str,
        initial: date,
        calendar: WorkCalendar | None = None,
        allow_blank: bool = False,
    ) -> None:
        super().__init__(label, initial.isoformat(), placeholder="YYYY-MM-DD or DD/MM/YYYY")
        self._initial = initial
        self._calendar = calendar or WorkCalendar()
        self._allow_blank = allow_blank

    def on_mount(self) -> None:
        super().on_mount()
        self._show_hint(self._initial_value)

    def describe(self, d: date) -> str:
        text = f"{WEEKDAYS[d.weekday()]} {format_date(d)}"
        holiday = self._calendar.holiday_for(d)
        if holiday is not None:
            return f"{text} · holiday: {holiday.name}"
        if self._calendar.is_weekend(d):
            return f"{text} · weekend"
        return text

    def _show_hint(self, text: str) -> date | None:
        hint = self.query_one("#prompt-hint", Static)
        if not text.strip() and self._allow_blank:
            hint.remove_class("-invalid")
            hint.update(self.describe(self._initial))
            return self._initial
        parsed = parse_date_input(text)
        hint.set_class(parsed is None, "-invalid")
        hint.update(self.describe(parsed) if parsed else f"Not a date: {text.strip() or '(empty)'}")
        return parsed

    def on_input_changed(self, event: Input.Changed) -> None:
        event.stop()
        self._show_hint(event.value)

    def submit(self, text: str) -> None:
        parsed = self._show_hint(text)
        if parsed is None:
            self.app.bell()
            return
        self.dismiss(parsed)
