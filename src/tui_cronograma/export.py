"""Export the schedule projection to JSON, CSV and Markdown table formats."""

from __future__ import annotations

import csv
import json
from pathlib import Path

from tui_cronograma.projection import ProjectedTask, ScheduleView

CSV_HEADERS = [
    "id",
    "category",
    "status",
    "row",
    "start",
    "end",
    "duration_days",
    "working_days",
    "protocol",
    "depends_on",
    "blocked",
    "retired",
]

EXPORT_FORMATS = ("json", "csv", "md")


def _task_to_dict(task: ProjectedTask) -> dict:
    d = {
        "id": task.id,
        "category": task.category.value,
        "status": task.status.value,
        "row_id": task.row_id,
        "row": task.row_label,
        "start": task.start.isoformat(),
        "end": task.end.isoformat(),
        "duration_days": task.duration_days,
        "working_days": task.working_days,
        "protocol": task.protocol,
        "depends_on": list(task.depends_on),
        "blocked": task.blocked,
        "retired": task.retired,
    }
    d["fields"] = dict(task.fields)
    return d


def export_json(view: ScheduleView, output_path: Path) -> None:
    """Export the schedule to a JSON file, tasks grouped under their rows."""
    data = {
        "rows": [
            {
                "id": row.id,
                "label": row.label,
                "category": row.category.value,
                "tasks": [_task_to_dict(t) for t in view.tasks_on_row(row.id)],
            }
            for row in view.rows
        ],
        "holidays": [
            {
                "name": h.name,
                "start": h.start.isoformat(),
                "end": h.end.isoformat(),
            }
            for h in view.holidays
        ],
    }
    output_path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8"
    )


def export_csv(view: ScheduleView, output_path: Path) -> None:
    """Export one CSV line per task."""
    rows: list[dict[str, str]] = []
    for task in view.tasks:
        rows.append({
            "id": task.id,
            "category": task.category.value,
            "status": task.status.value,
            "row": task.row_label,
            "start": task.start.isoformat(),
            "end": task.end.isoformat(),
            "duration_days": str(task.duration_days),
            "working_days": str(task.working_days),
            "protocol": task.protocol,
            "depends_on": ",".join(task.depends_on),
            "blocked": str(task.blocked),
            "retired": str(task.retired),
        })

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_HEADERS)
        writer.writeheader()
        writer.writerows(rows)


def export_markdown_table(view: ScheduleView, output_path: Path) -> None:
    """Export the schedule to a Markdown table (.md) file."""
    headers = ["ID", "Row", "Category", "Status", "Start", "End", "Days", "Depends on"]
    sep = ["-" * len(h) for h in headers]

    lines: list[str] = []
    lines.append("| " + " | ".join(headers) + " |")
    lines.append("| " + " | ".join(sep) + " |")

    for task in view.tasks:
        row = [
            task.id,
            task.row_label,
            task.category.value,
            task.status.value,
            task.start.isoformat(),
            task.end.isoformat(),
            str(task.duration_days),
            ", ".join(task.depends_on),
        ]
        lines.append("| " + " | ".join(row) + " |")

    output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def export_view(view: ScheduleView, output_path: Path, fmt: str | None = None) -> str:
    """Export using *fmt*, or the output file's suffix. Returns the format used."""
    fmt = (fmt or output_path.suffix.lstrip(".")).lower()
    if fmt == "json":
        export_json(view, output_path)
    elif fmt == "csv":
        export_csv(view, output_path)
    elif fmt in ("md", "markdown"):
        export_markdown_table(view, output_path)
        fmt = "md"
    else:
        raise ValueError(f"Unknown export format: {fmt or '(none)'}")
    return fmt
