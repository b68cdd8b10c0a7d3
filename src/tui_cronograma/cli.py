"""CLI entry point using Click."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import click

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class _DefaultGroup(click.Group):
    """Insert 'run' when the first arg is not a registered subcommand."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.no_args_is_help = False  # bare `tui-cronograma` opens the current folder

    def invoke(self, ctx):
        if not ctx._protected_args and not ctx.args:
            ctx._protected_args = ["run"]
        return super().invoke(ctx)

    def resolve_command(self, ctx, args):
        cmd_name = args[0] if args else None
        if cmd_name and cmd_name in self.commands:
            return super().resolve_command(ctx, args)
        return super().resolve_command(ctx, ["run"] + list(args))


def _setup_logging(log_file: str | None, verbose: bool, console: bool) -> None:
    """Log to *log_file* if given, to stderr only for non-interactive commands."""
    root = logging.getLogger("tui_cronograma")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    elif console and verbose:
        handler = logging.StreamHandler()
    else:
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def _resolve_project_dir(path: str) -> Path:
    project_dir = Path(path).resolve()
    if not project_dir.is_dir():
        click.echo(f"Error: '{project_dir}' is not a directory.", err=True)
        raise SystemExit(1)
    return project_dir


@click.group(cls=_DefaultGroup)
@click.option("--no-color", is_flag=True, help="Disable color output")
@click.option("--demo", is_flag=True, help="Launch with demo data kept in memory")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Write logs to this file")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.version_option(package_name="tui-cronograma")
@click.pass_context
def main(ctx, no_color: bool, demo: bool, log_file: str | None, verbose: bool) -> None:
    """Cronograma - laboratory schedule in the terminal."""
    ctx.ensure_object(dict)
    ctx.obj["no_color"] = no_color
    ctx.obj["demo"] = demo
    ctx.obj["log_file"] = log_file
    ctx.obj["verbose"] = verbose


@main.command()
@click.argument("path", default=".", type=click.Path())
@click.option(
    "--read-only", is_flag=True, help="Open as viewer regardless of the configured role"
)
@click.pass_context
def run(ctx, path: str, read_only: bool) -> None:
    """Open the schedule of the project in PATH."""
    from tui_cronograma.app import CronogramaApp
    from tui_cronograma.models import Role

    _setup_logging(ctx.obj["log_file"], ctx.obj["verbose"], console=False)
    role = Role.VIEWER if read_only else None

    if ctx.obj["demo"]:
        app = CronogramaApp(
            project_dir=Path.cwd(), no_color=ctx.obj["no_color"], demo_mode=True, role=role
        )
    else:
        project_dir = Path(path).resolve()
        if not project_dir.exists():
            if click.confirm(f"'{project_dir}' does not exist. Create it?"):
                project_dir.mkdir(parents=True, exist_ok=True)
                click.echo(f"Created {project_dir}")
            else:
                raise SystemExit(0)
        elif not project_dir.is_dir():
            click.echo(f"Error: '{project_dir}' is not a directory.", err=True)
            raise SystemExit(1)
        app = CronogramaApp(project_dir=project_dir, no_color=ctx.obj["no_color"], role=role)
    app.run()


@main.command("init")
@click.argument("path", default=".", type=click.Path())
@click.option("--name", prompt="Project name", default="Laboratório", help="Project name")
@click.option("--demo", "with_demo", is_flag=True, help="Fill the schedule with demo data")
@click.pass_context
def init_cmd(ctx, path: str, name: str, with_demo: bool) -> None:
    """Initialize a schedule project (config.toml + schedule file).

    The user running init is registered as administrator.
    """
    from tui_cronograma.config import CONFIG_DIR, CONFIG_FILE, current_username, save_config
    from tui_cronograma.demo_data import build_demo_snapshot
    from tui_cronograma.models import Role, ScheduleConfig, ScheduleSnapshot
    from tui_cronograma.store import JsonScheduleStore

    _setup_logging(ctx.obj["log_file"], ctx.obj["verbose"], console=True)
    project_dir = Path(path).resolve()
    config = ScheduleConfig(name=name)
    config.users[current_username()] = Role.ADMINISTRATOR

    schedule_path = project_dir / config.schedule_file
    if schedule_path.exists():
        click.echo(f"Schedule already exists: {schedule_path}", err=True)
        raise SystemExit(1)

    project_dir.mkdir(parents=True, exist_ok=True)
    save_config(project_dir, config)
    click.echo(f"Created {project_dir / CONFIG_DIR / CONFIG_FILE}")

    snapshot = build_demo_snapshot() if with_demo else ScheduleSnapshot()
    result = JsonScheduleStore(schedule_path).save_snapshot(snapshot)
    if not result.ok:
        click.echo(result.error.message, err=True)
        raise SystemExit(1)
    click.echo(f"Created {schedule_path}")

    click.echo(f"\nProject initialized at {project_dir}")
    click.echo("Run 'tui-cronograma' to open the schedule.")


@main.command("check")
@click.argument("path", default=".", type=click.Path())
@click.pass_context
def check_cmd(ctx, path: str) -> None:
    """Validate the stored schedule and print a summary."""
    from rich.console import Console
    from rich.table import Table

    from tui_cronograma.config import get_warning_days, get_weekend_days, load_config, load_settings
    from tui_cronograma.errors import SnapshotCorrupt
    from tui_cronograma.projection import holiday_warnings, project_schedule
    from tui_cronograma.store import JsonScheduleStore
    from tui_cronograma.workdays import WorkCalendar

    _setup_logging(ctx.obj["log_file"], ctx.obj["verbose"], console=True)
    project_dir = _resolve_project_dir(path)
    config = load_config(project_dir)
    settings = load_settings(project_dir)
    store = JsonScheduleStore(project_dir / config.schedule_file)
    console = Console(no_color=ctx.obj["no_color"])

    try:
        snapshot = store.load_snapshot()
    except SnapshotCorrupt as e:
        console.print(f"[bold red]Schedule is corrupt:[/bold red] {e.message}")
        raise SystemExit(1)

    calendar = WorkCalendar(snapshot.holidays, weekend_days=get_weekend_days(settings))
    view = project_schedule(snapshot, calendar)

    table = Table(title=config.name or project_dir.name)
    table.add_column("Row")
    table.add_column("Kind")
    table.add_column("Tasks", justify="right")
    table.add_column("Working days", justify="right")
    for row in view.rows:
        tasks = view.tasks_on_row(row.id)
        table.add_row(
            f"{row.label} ({row.id})",
            row.category.value,
            str(len(tasks)),
            str(sum(t.working_days for t in tasks)),
        )
    console.print(table)
    console.print(
        f"{len(view.tasks)} task(s), {len(snapshot.dependencies)} dependency(ies), "
        f"{len(snapshot.holidays)} holiday(s): [green]OK[/green]"
    )
    for warning in holiday_warnings(calendar, date.today(), get_warning_days(settings)):
        console.print(f"[yellow]⚠ {warning}[/yellow]")


@main.command("export")
@click.argument("path", default=".", type=click.Path())
@click.argument("output", type=click.Path(dir_okay=False))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "csv", "md"]),
    default=None,
    help="Output format (default: from the OUTPUT suffix)",
)
@click.pass_context
def export_cmd(ctx, path: str, output: str, fmt: str | None) -> None:
    """Export the stored schedule of PATH to OUTPUT."""
    from tui_cronograma.config import get_weekend_days, load_config, load_settings
    from tui_cronograma.errors import SnapshotCorrupt
    from tui_cronograma.export import export_view
    from tui_cronograma.projection import project_schedule
    from tui_cronograma.store import JsonScheduleStore
    from tui_cronograma.workdays import WorkCalendar

    _setup_logging(ctx.obj["log_file"], ctx.obj["verbose"], console=True)
    project_dir = _resolve_project_dir(path)
    config = load_config(project_dir)
    settings = load_settings(project_dir)
    try:
        snapshot = JsonScheduleStore(project_dir / config.schedule_file).load_snapshot()
    except SnapshotCorrupt as e:
        click.echo(f"Schedule is corrupt: {e.message}", err=True)
        raise SystemExit(1)

    calendar = WorkCalendar(snapshot.holidays, weekend_days=get_weekend_days(settings))
    try:
        used = export_view(project_schedule(snapshot, calendar), Path(output), fmt)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Exported {len(snapshot.tasks)} task(s) to {output} ({used})")
