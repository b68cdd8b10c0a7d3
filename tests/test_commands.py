"""Tests for Command Palette provider."""

from __future__ import annotations

from datetime import date

import pytest

from tui_cronograma.app import CronogramaApp
from tui_cronograma.commands import COMMANDS, CommandDef, ScheduleCommandProvider
from tui_cronograma.models import Role
from tui_cronograma.screens.help_screen import HELP_ITEMS

PAUSE = 0.15


# ── COMMANDS list integrity ──


def test_commands_not_empty():
    assert len(COMMANDS) > 0


def test_commands_all_have_required_fields():
    for cmd in COMMANDS:
        assert isinstance(cmd, CommandDef)
        assert cmd.display, f"Missing display for action={cmd.action}"
        assert cmd.action, f"Missing action for display={cmd.display}"


def test_commands_unique_actions():
    actions = [cmd.action for cmd in COMMANDS]
    assert len(actions) == len(set(actions)), "Duplicate actions found"


def test_commands_categories_present():
    categories = {cmd.category for cmd in COMMANDS}
    assert categories == {"Schedule", "Tasks", "Rows", "Holidays", "View"}


def test_commands_map_to_app_actions():
    for cmd in COMMANDS:
        assert hasattr(CronogramaApp, f"action_{cmd.action}"), cmd.action


def test_help_actions_exist():
    for _, _, action in HELP_ITEMS:
        if action:
            assert hasattr(CronogramaApp, f"action_{action}"), action


# ── Matching ──


def test_fuzzy_match():
    assert ScheduleCommandProvider._fuzzy_match("cmt", "commit")
    assert ScheduleCommandProvider._fuzzy_match("", "anything")
    assert not ScheduleCommandProvider._fuzzy_match("tmc", "commit")


def test_score_ordering():
    score = ScheduleCommandProvider._score
    assert score("undo", "undo") > score("un", "undo") > score("do", "undo") > score("ud", "undo")
    assert score("", "undo") == 0.5


# ── Provider registration ──


def test_provider_registered():
    assert ScheduleCommandProvider in CronogramaApp.COMMANDS


# ── Integration ──


@pytest.mark.asyncio
async def test_command_palette_opens(tmp_path):
    """Ctrl+P should open the command palette."""
    from textual.command import CommandPalette

    app = CronogramaApp(project_dir=tmp_path, demo_mode=True, today=date(2025, 6, 11))
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        await pilot.press("ctrl+p")
        await pilot.pause(delay=PAUSE)
        assert any(
            isinstance(screen, CommandPalette) for screen in app.screen_stack
        ), "Command Palette did not open"


@pytest.mark.asyncio
async def test_read_only_hides_edit_commands(tmp_path):
    app = CronogramaApp(
        project_dir=tmp_path, demo_mode=True, role=Role.VIEWER, today=date(2025, 6, 11)
    )
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        provider = ScheduleCommandProvider(app.screen)
        actions = {cmd.action for cmd in provider._available()}
        assert actions == {"export", "quit_app", "holiday_warnings", "help"}


@pytest.mark.asyncio
async def test_editor_sees_every_command(tmp_path):
    app = CronogramaApp(project_dir=tmp_path, demo_mode=True, today=date(2025, 6, 11))
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        provider = ScheduleCommandProvider(app.screen)
        assert len(provider._available()) == len(COMMANDS)


@pytest.mark.asyncio
async def test_technician_sees_no_row_or_holiday_edits(tmp_path):
    app = CronogramaApp(
        project_dir=tmp_path, demo_mode=True, role=Role.TECHNICIAN, today=date(2025, 6, 11)
    )
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        provider = ScheduleCommandProvider(app.screen)
        actions = {cmd.action for cmd in provider._available()}
        assert "new_task" in actions
        assert "commit" in actions
        assert not actions & {"add_row", "rename_row", "delete_row", "add_holiday", "delete_holiday"}
        assert "holiday_warnings" in actions
