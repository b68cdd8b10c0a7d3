"""Shared fixtures: a small laboratory schedule."""

from datetime import date

import pytest

from tui_cronograma.models import (
    BUILTIN_ROWS,
    Holiday,
    Row,
    RowCategory,
    ScheduleSnapshot,
    Task,
    TaskCategory,
)
from tui_cronograma.staging import ScheduleSession
from tui_cronograma.store import MemoryScheduleStore

ROWS = (
    Row(id="1", label="Terminal 1", category=RowCategory.EFFICIENCY),
    Row(id="2", label="Terminal 2", category=RowCategory.EFFICIENCY),
    Row(id="A", label="Técnico A", category=RowCategory.SAFETY),
    *BUILTIN_ROWS,
)


@pytest.fixture
def chain_snapshot():
    """T1 (Jan 10-12) -> T2 (Jan 13-15) -> T3 (Jan 16-17), plus an unrelated S1."""
    return ScheduleSnapshot(
        tasks=(
            Task(
                id="T1",
                category=TaskCategory.EFFICIENCY,
                row_id="1",
                start=date(2025, 1, 10),
                end=date(2025, 1, 12),
                protocol="EF-001",
            ),
            Task(
                id="T2",
                category=TaskCategory.EFFICIENCY,
                row_id="1",
                start=date(2025, 1, 13),
                end=date(2025, 1, 15),
                depends_on=("T1",),
            ),
            Task(
                id="T3",
                category=TaskCategory.EFFICIENCY,
                row_id="2",
                start=date(2025, 1, 16),
                end=date(2025, 1, 17),
                depends_on=("T2",),
            ),
            Task(
                id="S1",
                category=TaskCategory.SAFETY,
                row_id="A",
                start=date(2025, 1, 13),
                end=date(2025, 1, 14),
            ),
        ),
        rows=ROWS,
        holidays=(
            Holiday(id=1, name="Aniversário da cidade", start=date(2025, 1, 20), end=date(2025, 1, 20)),
        ),
    )


@pytest.fixture
def store(chain_snapshot):
    return MemoryScheduleStore(chain_snapshot)


@pytest.fixture
def session(chain_snapshot, store):
    return ScheduleSession(chain_snapshot, store)
