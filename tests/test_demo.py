"""Tests for --demo mode."""

from __future__ import annotations

from datetime import date

import pytest

from tui_cronograma.app import CronogramaApp
from tui_cronograma.demo_data import build_demo_snapshot
from tui_cronograma.models import RowCategory, TaskCategory, TaskStatus
from tui_cronograma.screens.confirm_screen import ConfirmScreen
from tui_cronograma.store import snapshot_from_dict, snapshot_to_dict, validate_snapshot
from tui_cronograma.workdays import WorkCalendar

PAUSE = 0.1
TODAY = date(2025, 6, 11)  # a Wednesday


@pytest.fixture
def demo_app(tmp_path):
    """Create a demo-mode CronogramaApp."""
    return CronogramaApp(project_dir=tmp_path, demo_mode=True, today=TODAY)


# ── Unit tests for demo data ──


def test_demo_snapshot_is_valid():
    snapshot = build_demo_snapshot(TODAY)
    validate_snapshot(snapshot)
    assert snapshot_from_dict(snapshot_to_dict(snapshot)) == snapshot


def test_demo_has_every_category():
    snapshot = build_demo_snapshot(TODAY)
    assert {t.category for t in snapshot.tasks} == set(TaskCategory)
    assert {r.category for r in snapshot.rows} == set(RowCategory)


def test_demo_has_retired_task_and_work_in_progress():
    snapshot = build_demo_snapshot(TODAY)
    assert any(t.retired for t in snapshot.tasks)
    assert any(t.status == TaskStatus.IN_PROGRESS for t in snapshot.tasks)


def test_demo_dependencies_hold():
    snapshot = build_demo_snapshot(TODAY)
    assert len(snapshot.dependencies) >= 3
    for dep in snapshot.dependencies:
        assert snapshot.get_task(dep.to_id).start >= snapshot.get_task(dep.from_id).end


def test_demo_anchored_on_current_week():
    snapshot = build_demo_snapshot(TODAY)
    assert snapshot.get_task("E2").start == date(2025, 6, 9)


def test_demo_always_warns_of_a_holiday():
    snapshot = build_demo_snapshot(TODAY)
    calendar = WorkCalendar(snapshot.holidays)
    assert calendar.upcoming_holidays(TODAY, 7)


# ── Integration tests for demo app ──


@pytest.mark.asyncio
async def test_demo_app_starts_and_loads(demo_app):
    async with demo_app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        assert demo_app.session is not None
        assert len(demo_app.session.snapshot.tasks) == 8


@pytest.mark.asyncio
async def test_demo_app_title_contains_demo(demo_app):
    async with demo_app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        assert "[DEMO]" in demo_app.title


@pytest.mark.asyncio
async def test_demo_app_no_file_lock(tmp_path):
    app = CronogramaApp(project_dir=tmp_path, demo_mode=True, today=TODAY)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        assert not (tmp_path / ".cronograma" / ".lock").exists()


@pytest.mark.asyncio
async def test_demo_app_commit_stays_in_memory(demo_app):
    async with demo_app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        demo_app.session.set_status("E3", TaskStatus.IN_PROGRESS)
        assert demo_app.session.dirty
        await pilot.press("ctrl+s")
        await pilot.pause(delay=PAUSE)
        assert not demo_app.session.dirty
        assert not any(demo_app.project_dir.iterdir())


@pytest.mark.asyncio
async def test_demo_app_quit_no_confirm(demo_app):
    async with demo_app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        demo_app.session.set_status("E3", TaskStatus.IN_PROGRESS)
        assert demo_app.session.dirty
        demo_app.action_quit_app()
        assert not any(isinstance(s, ConfirmScreen) for s in demo_app.screen_stack)
