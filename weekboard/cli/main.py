"""
Command-line interface for weekboard.

Every command talks to the REST API through the same client and sync layer a
graphical front end would use, so rollover and toggles behave identically.
"""

import json as jsonlib
import pathlib
from typing import Any, Dict, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table
from typer import Argument, Option
from typing_extensions import Annotated

from weekboard.cli.status import DEFAULT_TIMEOUT_SECONDS, render_results, run_status_checks
from weekboard.client import RolloverPoller, SyncError, TimetableApiClient, TimetableApiError, TimetableSync
from weekboard.config import settings
from weekboard.domain.entities import ActivityDefinition, WeekRecord
from weekboard.domain.errors import DomainError
from weekboard.domain.periods import DAY_NAMES
from weekboard.infrastructure import log_utils

app = typer.Typer(help="Track weekly activities from the terminal.", no_args_is_help=True)

console = Console()

UserOption = Annotated[
    str,
    Option("--user", "-u", envvar="WEEKBOARD_USER_ID", help="User id sent as X-User-Id."),
]
TimetableOption = Annotated[
    Optional[str],
    Option("--timetable", "-t", help="Timetable id (default: the active timetable)."),
]


def _build_client(user_id: str) -> TimetableApiClient:
    return TimetableApiClient(user_id=user_id)


def _build_sync(user_id: str, timetable_id: Optional[str]) -> TimetableSync:
    sync = TimetableSync(_build_client(user_id), notifier=_console_notifier)
    sync.load(timetable_id)
    return sync


def _console_notifier(message: str, level: str = "INFO") -> None:
    style = {"ERROR": "red", "WARN": "yellow"}.get(level.upper(), "green")
    console.print(f"[{style}]{message}[/{style}]")
    log_utils.log_message(message, level)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


def _week_table(week: WeekRecord) -> Table:
    title = (
        f"Week {week.week_start_date.date().isoformat()} to {week.week_end_date.date().isoformat()}"
        f"  ({week.overall_completion_rate:.2f}%)"
    )
    table = Table(title=title, header_style="bold cyan")
    table.add_column("Activity")
    table.add_column("Time")
    table.add_column("Category")
    for name in DAY_NAMES:
        table.add_column(name[:3], justify="center")
    table.add_column("Rate", justify="right")
    for entry in week.activities:
        marks = ["[green]x[/green]" if done else "." for done in entry.daily_status]
        table.add_row(
            entry.activity.name,
            entry.activity.time,
            entry.activity.category,
            *marks,
            f"{entry.completion_rate:.2f}%",
        )
    return table


def _load_activities(path: pathlib.Path) -> List[ActivityDefinition]:
    try:
        payload = jsonlib.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(f"Could not read activities from {path}: {exc}") from exc
    if isinstance(payload, dict):
        payload = payload.get("activities", [])
    if not isinstance(payload, list):
        raise typer.BadParameter("Activities file must contain a JSON list")
    try:
        return [
            ActivityDefinition(
                name=str(item.get("name", "")),
                time=str(item.get("time") or ""),
                category=str(item.get("category") or ""),
            )
            for item in payload
        ]
    except (AttributeError, DomainError) as exc:
        raise typer.BadParameter(f"Invalid activity in {path}: {exc}") from exc


@app.command()
def week(user: UserOption = "local", timetable: TimetableOption = None) -> None:
    """Show the current week, rolling it over first if it has ended."""
    try:
        sync = _build_sync(user, timetable)
    except SyncError as exc:
        _fail(str(exc))
    console.print(_week_table(sync.week))


@app.command()
def toggle(
    activity: Annotated[str, Argument(help="Activity id or name.")],
    day: Annotated[int, Argument(min=0, max=6, help="Day index, 0 = Monday.")],
    user: UserOption = "local",
    timetable: TimetableOption = None,
) -> None:
    """Flip one completion mark."""
    try:
        sync = _build_sync(user, timetable)
        updated = sync.toggle(activity, day)
    except (SyncError, DomainError) as exc:
        _fail(str(exc))
    console.print(_week_table(updated))


@app.command()
def rollover(
    force: Annotated[bool, Option("--force", help="Start a new week even if this one has not ended.")] = False,
    user: UserOption = "local",
    timetable: TimetableOption = None,
) -> None:
    """Archive the current week once it has ended (or immediately with --force)."""
    try:
        sync = _build_sync(user, timetable)
        timetable_id = sync.timetable_id
        if force:
            week_record = sync.client.start_new_week(timetable_id)
        else:
            week_record = sync.client.evaluate_rollover(timetable_id)
    except (SyncError, TimetableApiError) as exc:
        _fail(str(exc))
    console.print(_week_table(week_record))


@app.command()
def history(
    page: Annotated[int, Option(min=1, help="Page number.")] = 1,
    limit: Annotated[Optional[int], Option(min=1, help="Weeks per page.")] = None,
    order: Annotated[Optional[str], Option(help="oldest or newest first.")] = None,
    user: UserOption = "local",
    timetable: TimetableOption = None,
) -> None:
    """List archived weeks."""
    try:
        sync = _build_sync(user, timetable)
        result = sync.client.get_history(sync.timetable_id, page=page, limit=limit, order=order)
    except (SyncError, TimetableApiError) as exc:
        _fail(str(exc))

    if not result.items:
        console.print("[yellow]No archived weeks.[/yellow]")
        return

    table = Table(
        title=f"History page {result.current_page}/{result.total_pages} ({result.total_weeks} weeks)",
        header_style="bold cyan",
    )
    table.add_column("Week start")
    table.add_column("Week end")
    table.add_column("Activities", justify="right")
    table.add_column("Completion", justify="right")
    for item in result.items:
        table.add_row(
            item.week_start_date.date().isoformat(),
            item.week_end_date.date().isoformat(),
            str(len(item.activities)),
            f"{item.overall_completion_rate:.2f}%",
        )
    console.print(table)


@app.command()
def stats(user: UserOption = "local", timetable: TimetableOption = None) -> None:
    """Show completion stats for the current week and overall."""
    try:
        sync = _build_sync(user, timetable)
        data: Dict[str, Any] = sync.client.get_stats(sync.timetable_id)
    except (SyncError, TimetableApiError) as exc:
        _fail(str(exc))

    current = data.get("currentWeek") or {}
    overall = data.get("overall") or {}
    console.print(f"This week: {current.get('completionRate', 0):.2f}%")
    by_category = current.get("byCategory") or {}
    if by_category:
        table = Table(header_style="bold cyan")
        table.add_column("Category")
        table.add_column("Done", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("Rate", justify="right")
        for category, values in sorted(by_category.items()):
            table.add_row(
                category,
                str(values.get("completed", 0)),
                str(values.get("total", 0)),
                f"{values.get('completionRate', 0):.2f}%",
            )
        console.print(table)

    average = overall.get("averageCompletionRate")
    console.print(f"Weeks tracked: {overall.get('totalWeeks', 0)}")
    if average is not None:
        console.print(f"Average completion: {average:.2f}%")


@app.command()
def activities(
    file: Annotated[pathlib.Path, Argument(exists=True, dir_okay=False, help="JSON list of activities.")],
    user: UserOption = "local",
    timetable: TimetableOption = None,
) -> None:
    """Replace the activities used to seed future weeks."""
    definitions = _load_activities(file)
    try:
        sync = _build_sync(user, timetable)
        saved = sync.client.replace_activities(sync.timetable_id, definitions)
    except (SyncError, TimetableApiError) as exc:
        _fail(str(exc))
    console.print(f"[green]Saved {len(saved)} activities. They apply from the next week.[/green]")


@app.command()
def status(
    timeout: Annotated[float, Option("--timeout", help="Override per-dependency timeout in seconds.")] = DEFAULT_TIMEOUT_SECONDS,
) -> None:
    """Quick health check for the database and the API."""
    results = run_status_checks(timeout=timeout)
    typer.echo(render_results(results))
    exit_code = 0 if all(result.ok for result in results) else 1
    raise typer.Exit(code=exit_code)


@app.command(help="View the most recent lines from the weekboard log.")
def logs(
    number: int = Argument(
        50,
        help="Number of log lines to show (default: 50)."
    )
) -> None:
    log_file = settings.log_path
    if not log_file.exists():
        typer.echo(f"Log file not found: {log_file}")
        raise typer.Exit(code=1)

    with log_file.open("r", encoding="utf-8") as f:
        lines = f.readlines()
        for line in lines[-number:]:
            typer.echo(line.rstrip())


@app.command()
def watch(
    interval: Annotated[Optional[float], Option(min=1.0, help="Seconds between rollover checks.")] = None,
    user: UserOption = "local",
    timetable: TimetableOption = None,
) -> None:
    """Keep checking for rollover until interrupted."""
    try:
        sync = _build_sync(user, timetable)
    except SyncError as exc:
        _fail(str(exc))

    sync.on_change = lambda cache: console.print(_week_table(cache.week)) if cache.week else None
    poller = RolloverPoller(sync, interval=interval)
    console.print(f"Watching timetable {sync.timetable_id} (every {poller.interval:.0f}s). Ctrl+C to stop.")
    try:
        poller.run()
    except KeyboardInterrupt:
        poller.stop()
        console.print("Stopped.")


if __name__ == "__main__":
    app()
