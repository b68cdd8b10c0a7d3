"""Demo schedule for --demo mode and ``init --demo``.

Dates are laid out relative to *today* so the demo always shows work in
progress, something upcoming and a holiday warning.
"""

from __future__ import annotations

from datetime import date, timedelta

from tui_cronograma.models import (
    BUILTIN_ROWS,
    Holiday,
    Row,
    RowCategory,
    ScheduleSnapshot,
    Task,
    TaskCategory,
    TaskStatus,
)


def build_demo_snapshot(today: date | None = None) -> ScheduleSnapshot:
    """Return a small but complete schedule anchored on the week of *today*."""
    today = today or date.today()
    monday = today - timedelta(days=today.weekday())

    def day(offset: int) -> date:
        return monday + timedelta(days=offset)

    rows = (
        Row(id="1", label="Terminal 1", category=RowCategory.EFFICIENCY),
        Row(id="2", label="Terminal 2", category=RowCategory.EFFICIENCY),
        Row(id="A", label="Técnico A", category=RowCategory.SAFETY),
        Row(id="B", label="Técnico B", category=RowCategory.SAFETY),
        *BUILTIN_ROWS,
    )
    tasks = (
        Task(
            id="E1",
            category=TaskCategory.EFFICIENCY,
            row_id="1",
            start=day(-7),
            end=day(-3),
            status=TaskStatus.REPORT_ISSUED,
            protocol="EF-2024-001",
            fields={"equipment": "Refrigerador 300L", "client": "Frio Sul"},
        ),
        Task(
            id="E2",
            category=TaskCategory.EFFICIENCY,
            row_id="1",
            start=day(0),
            end=day(4),
            status=TaskStatus.IN_PROGRESS,
            protocol="EF-2024-002",
            fields={"equipment": "Freezer 200L", "client": "Frio Sul"},
            depends_on=("E1",),
        ),
        Task(
            id="E3",
            category=TaskCategory.EFFICIENCY,
            row_id="2",
            start=day(7),
            end=day(11),
            protocol="EF-2024-003",
            fields={"equipment": "Ar condicionado 12k BTU"},
            depends_on=("E2",),
        ),
        Task(
            id="S1",
            category=TaskCategory.SAFETY,
            row_id="A",
            start=day(-14),
            end=day(-10),
            status=TaskStatus.COMPLETED,
            protocol="SG-2024-010",
            fields={"equipment": "Micro-ondas 30L"},
        ),
        Task(
            id="S2",
            category=TaskCategory.SAFETY,
            row_id="A",
            start=day(1),
            end=day(3),
            status=TaskStatus.IN_PROGRESS,
            protocol="SG-2024-011",
            fields={"equipment": "Forno elétrico"},
        ),
        Task(
            id="S3",
            category=TaskCategory.SAFETY,
            row_id="B",
            start=day(8),
            end=day(10),
            protocol="SG-2024-012",
            depends_on=("S2",),
        ),
        Task(
            id="C1",
            category=TaskCategory.CALIBRATION,
            row_id="calibracao",
            start=day(14),
            end=day(15),
            fields={"instrument": "Termopar T-07", "terminals": "1, 2"},
        ),
        Task(
            id="F1",
            category=TaskCategory.VACATION,
            row_id="ferias",
            start=day(21),
            end=day(32),
            status=TaskStatus.SCHEDULED,
            fields={"person": "Técnico B"},
        ),
    )
    holidays = (
        Holiday(
            id=1,
            name="Feriado municipal",
            start=today + timedelta(days=3),
            end=today + timedelta(days=3),
        ),
        Holiday(id=2, name="Recesso de fim de ano", start=day(60), end=day(70)),
    )
    return ScheduleSnapshot(tasks=tasks, rows=rows, holidays=holidays)
