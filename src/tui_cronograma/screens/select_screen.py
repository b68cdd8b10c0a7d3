"""Pick one entry (row kind, prerequisite, holiday) from a short list."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Label, OptionList
from textual.widgets.option_list import Option


class SelectScreen(ModalScreen[str | None]):
    """Dismisses with the chosen value, or None on Esc.

    The first nine entries are numbered and can be picked with their digit.
    """

    BINDINGS = [
        Binding("escape", "pick(None)", "Cancel"),
        *(Binding(str(n), f"pick_number({n})", show=False) for n in range(1, 10)),
    ]

    DEFAULT_CSS = """
    SelectScreen {
        align: center middle;
    }
    #picker {
        width: 56;
        height: auto;
        max-height: 80%;
        padding: 0 1;
        background: $panel;
        border: round $accent;
    }
    #picker-title {
        width: 100%;
        padding: 1 1 0 1;
        text-style: bold;
    }
    #picker-options {
        height: auto;
        max-height: 20;
        margin: 1 0;
        border: none;
    }
    """

    def __init__(
        self, label: str, options: list[tuple[str, str]], initial: str | None = None
    ) -> None:
        """*options* holds ``(value, display)`` pairs in display order."""
        super().__init__()
        self._label = label
        self._values = [value for value, _ in options]
        self._displays = [display for _, display in options]
        self._initial = initial

    def _prompt(self, position: int) -> Text:
        number = f"{position + 1} " if position < 9 else "  "
        return Text.assemble((number, "dim"), self._displays[position])

    def compose(self) -> ComposeResult:
        with Vertical(id="picker"):
            yield Label(self._label, id="picker-title")
            yield OptionList(
                *(Option(self._prompt(i), id=value) for i, value in enumerate(self._values)),
                id="picker-options",
            )

    def on_mount(self) -> None:
        options = self.query_one("#picker-options", OptionList)
        if self._initial in self._values:
            options.highlighted = self._values.index(self._initial)
        options.focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        self.action_pick(event.option.id)

    def action_pick_number(self, number: int) -> None:
        if number <= len(self._values):
            self.action_pick(self._values[number - 1])

    def action_pick(self, value: str | None) -> None:
        self.dismiss(value)
