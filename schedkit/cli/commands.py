"""CLI commands for schedkit."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from schedkit.config import Config, load_config, resolve_config_path, save_default_config
from schedkit.cron import Frequency, RecurrenceSpec, TimeOfDay, describe, generate, next_runs, parse
from schedkit.errors import SchedkitError
from schedkit.jobs import (
    Job,
    JobNotice,
    JobOrchestrator,
    JobServiceClient,
    JobStore,
    SubmissionOutcome,
    SubmissionResult,
)
from schedkit.scheduler import SchedulerFacade, SchedulerStatus
from schedkit.utils.helpers import parse_key_value
from schedkit.utils.log import setup_logging

T = TypeVar("T")

app = typer.Typer(
    name="schedkit",
    help="schedkit: cron schedules, scheduler tasks and background jobs",
)
cron_app = typer.Typer(help="Translate and inspect cron expressions")
scheduler_app = typer.Typer(help="Start, stop or refresh the remote scheduler")
tasks_app = typer.Typer(help="Manage scheduled tasks")
jobs_app = typer.Typer(help="Submit and inspect background jobs")
app.add_typer(cron_app, name="cron")
app.add_typer(scheduler_app, name="scheduler")
app.add_typer(tasks_app, name="tasks")
app.add_typer(jobs_app, name="jobs")

console = Console()

_NOTICE_STYLES = {"info": "cyan", "success": "green", "warning": "yellow", "error": "red"}


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """schedkit CLI entrypoint."""
    ctx.obj = {"verbose": verbose}
    setup_logging("DEBUG" if verbose else "WARNING")


def _load(ctx: typer.Context, config_path: Optional[Path]) -> Config:
    config = load_config(config_path)
    if not (ctx.obj or {}).get("verbose"):
        setup_logging(config.logging.level)
    return config


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return "Never"
    return value.strftime("%Y-%m-%d %H:%M UTC")


def _schedule_label(cron_expression: str) -> str:
    try:
        text = describe(cron_expression)
    except SchedkitError:
        return f"[red]{cron_expression}[/red]"
    return text if text != "Custom schedule" else f"Cron: {cron_expression}"


def _facade(config: Config) -> SchedulerFacade:
    return SchedulerFacade(
        config.service.api_base,
        token=config.service.token,
        timeout=config.service.timeout,
    )


def _job_client(config: Config) -> JobServiceClient:
    return JobServiceClient(
        config.service.api_base,
        token=config.service.token,
        timeout=config.service.timeout,
        dedup_fields=config.jobs.dedup_fields,
    )


def _with_scheduler(config: Config, action: Callable[[SchedulerFacade], Awaitable[T]]) -> T:
    async def _run() -> T:
        facade = _facade(config)
        try:
            return await action(facade)
        finally:
            await facade.aclose()

    try:
        return asyncio.run(_run())
    except SchedkitError as e:
        _fail(e)


def _print_notice(notice: JobNotice) -> None:
    style = _NOTICE_STYLES.get(notice.level, "white")
    console.print(f"[{style}]{notice.title}:[/{style}] {notice.message}")


# --- top level ---


@app.command()
def onboard(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file"),
) -> None:
    """Write a default configuration file."""
    target = resolve_config_path(config_path)
    overwrite = force
    if target.exists() and not force:
        if not typer.confirm(f"Config already exists at {target}. Overwrite?"):
            console.print("[yellow]Keeping existing config[/yellow]")
            raise typer.Exit()
        overwrite = True
    path = save_default_config(target, overwrite=overwrite)

    console.print(f"[green]Config created at:[/green] {path}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Edit config to set service.api_base and service.token")
    console.print("2. Run: schedkit tasks list")


@app.command()
def status(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Show configuration and scheduler status."""
    config = _load(ctx, config_path)

    table = Table(title="schedkit Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("API Base", config.service.api_base)
    token = config.service.token
    table.add_row("API Token", f"...{token[-4:]}" if token else "[dim]Not configured[/dim]")
    table.add_row("Poll Interval", f"{config.jobs.poll_interval}s")
    table.add_row("Watched Job Types", ", ".join(config.jobs.watched_types) or "all")

    try:
        scheduler_status = asyncio.run(_run_status(config))
    except SchedkitError as e:
        table.add_row("Scheduler", f"[red]Unreachable[/red] ({e})")
    else:
        table.add_row("Scheduler", "Running" if scheduler_status.is_running else "Stopped")
        table.add_row(
            "Tasks",
            f"{scheduler_status.enabled_task_count}/{scheduler_status.task_count} enabled",
        )
        next_task = scheduler_status.next_task
        if next_task:
            table.add_row("Next Task", f"{next_task.get('name')} at {_format_time(next_task.get('nextRun'))}")

    console.print(table)


async def _run_status(config: Config) -> SchedulerStatus:
    facade = _facade(config)
    try:
        return await facade.status()
    finally:
        await facade.aclose()


# --- cron ---


@cron_app.command("describe")
def cron_describe(
    expression: str = typer.Argument(..., help="Five-field cron expression"),
    count: int = typer.Option(0, "--next", "-n", help="Also show the next N run times"),
) -> None:
    """Describe a cron expression in plain English."""
    try:
        console.print(describe(expression))
        if count > 0:
            for run in next_runs(expression, count=count):
                console.print(f"  {_format_time(run)}")
    except SchedkitError as e:
        _fail(e)


@cron_app.command("parse")
def cron_parse(
    expression: str = typer.Argument(..., help="Five-field cron expression"),
) -> None:
    """Show the structured recurrence for a cron expression."""
    try:
        spec = parse(expression)
    except SchedkitError as e:
        _fail(e)

    table = Table(title="Recurrence")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Frequency", spec.frequency.value)

    freq = spec.frequency
    if freq in (Frequency.EVERY_N_MINUTES, Frequency.EVERY_N_HOURS):
        table.add_row("Interval", str(spec.interval))
    if freq in (Frequency.DAILY, Frequency.WEEKLY, Frequency.MONTHLY):
        table.add_row("Time (UTC)", str(spec.time_of_day))
    if freq is Frequency.WEEKLY:
        table.add_row("Day of Week", str(spec.day_of_week))
    if freq is Frequency.MONTHLY:
        table.add_row("Day of Month", str(spec.day_of_month))
    if freq is Frequency.CUSTOM:
        table.add_row("Expression", spec.custom_expression)

    console.print(table)


@cron_app.command("build")
def cron_build(
    frequency: Frequency = typer.Argument(..., help="Recurrence shape"),
    at: str = typer.Option("00:00", "--at", help="Time of day (UTC, HH:MM)"),
    interval: int = typer.Option(1, "--interval", "-i", help="Minutes or hours between runs"),
    day_of_week: int = typer.Option(0, "--day-of-week", help="0 = Sunday"),
    day_of_month: int = typer.Option(1, "--day-of-month", help="1-31"),
    expression: str = typer.Option("", "--expression", "-e", help="Raw cron for 'custom'"),
) -> None:
    """Build a cron expression from a recurrence."""
    try:
        spec = RecurrenceSpec(
            frequency,
            time_of_day=TimeOfDay.parse(at),
            interval=interval,
            day_of_week=day_of_week,
            day_of_month=day_of_month,
            custom_expression=expression,
        )
        console.print(generate(spec))
    except ValueError as e:
        _fail(e)


# --- scheduler ---


@scheduler_app.command("start")
def scheduler_start(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Start the scheduler."""
    config = _load(ctx, config_path)
    _with_scheduler(config, lambda facade: facade.set_running(True))
    console.print("[green]Scheduler started[/green]")


@scheduler_app.command("stop")
def scheduler_stop(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Stop the scheduler."""
    config = _load(ctx, config_path)
    _with_scheduler(config, lambda facade: facade.set_running(False))
    console.print("[yellow]Scheduler stopped[/yellow]")


@scheduler_app.command("refresh")
def scheduler_refresh(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Recompute next-run times for all tasks."""
    config = _load(ctx, config_path)
    _with_scheduler(config, lambda facade: facade.refresh())
    console.print("[green]Schedules refreshed[/green]")


# --- tasks ---


@tasks_app.command("list")
def tasks_list(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """List scheduled tasks."""
    config = _load(ctx, config_path)
    tasks = _with_scheduler(config, lambda facade: facade.list_tasks())

    table = Table(title="Scheduled Tasks")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Schedule")
    table.add_column("Enabled")
    table.add_column("Last Run")
    table.add_column("Next Run")

    for task in tasks:
        enabled = "[green]yes[/green]" if task.enabled else "[dim]no[/dim]"
        if task.is_running:
            enabled += " [yellow](running)[/yellow]"
        table.add_row(
            task.id,
            task.name,
            _schedule_label(task.cron_expression),
            enabled,
            _format_time(task.last_run),
            _format_time(task.next_run),
        )

    console.print(table)


@tasks_app.command("trigger")
def tasks_trigger(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Run a task now."""
    config = _load(ctx, config_path)
    _with_scheduler(config, lambda facade: facade.trigger(task_id))
    console.print(f"[green]Task triggered:[/green] {task_id}")


@tasks_app.command("enable")
def tasks_enable(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Enable a task."""
    config = _load(ctx, config_path)
    _with_scheduler(config, lambda facade: facade.set_enabled(task_id, True))
    console.print(f"[green]Task enabled:[/green] {task_id}")


@tasks_app.command("disable")
def tasks_disable(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Disable a task."""
    config = _load(ctx, config_path)
    _with_scheduler(config, lambda facade: facade.set_enabled(task_id, False))
    console.print(f"[yellow]Task disabled:[/yellow] {task_id}")


@tasks_app.command("set-cron")
def tasks_set_cron(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    expression: str = typer.Argument(..., help="Five-field cron expression"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Change a task's schedule."""
    config = _load(ctx, config_path)
    _with_scheduler(config, lambda facade: facade.update_cron(task_id, expression))
    console.print(f"[green]Schedule updated:[/green] {task_id} -> {_schedule_label(expression)}")


@tasks_app.command("delete")
def tasks_delete(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Delete a task."""
    config = _load(ctx, config_path)
    if not yes and not typer.confirm(f"Delete task {task_id}?"):
        raise typer.Exit(1)
    _with_scheduler(config, lambda facade: facade.delete(task_id))
    console.print(f"[green]Task deleted:[/green] {task_id}")


@tasks_app.command("logs")
def tasks_logs(
    ctx: typer.Context,
    task_id: Optional[str] = typer.Argument(None, help="Task ID (all tasks if omitted)"),
    clear: bool = typer.Option(False, "--clear", help="Clear the task's logs instead"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Show or clear task run logs."""
    config = _load(ctx, config_path)

    if clear:
        if not task_id:
            console.print("[red]Error:[/red] --clear requires a task ID")
            raise typer.Exit(1)
        _with_scheduler(config, lambda facade: facade.clear_logs(task_id))
        console.print(f"[green]Logs cleared:[/green] {task_id}")
        return

    logs = _with_scheduler(config, lambda facade: facade.logs(task_id))
    table = Table(title=f"Task Logs{f' ({task_id})' if task_id else ''}")
    table.add_column("Time", style="dim")
    table.add_column("Level")
    table.add_column("Message")
    for entry in logs:
        style = _NOTICE_STYLES.get(entry.level, "white")
        table.add_row(_format_time(entry.timestamp), f"[{style}]{entry.level}[/{style}]", entry.message)
    console.print(table)


# --- jobs ---


@jobs_app.command("list")
def jobs_list(
    ctx: typer.Context,
    job_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only this job type"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """List jobs known to the job service."""
    config = _load(ctx, config_path)

    async def _run() -> list[Job]:
        client = _job_client(config)
        try:
            return await client.list_jobs(job_type)
        finally:
            await client.aclose()

    try:
        jobs = asyncio.run(_run())
    except SchedkitError as e:
        _fail(e)

    table = Table(title="Jobs")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Subject")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Submitted")

    for job in jobs:
        table.add_row(
            job.id,
            job.type,
            job.dedup_key or "-",
            job.status.value,
            f"{job.progress}%",
            _format_time(job.submitted_at),
        )
    console.print(table)


@jobs_app.command("submit")
def jobs_submit(
    ctx: typer.Context,
    job_type: str = typer.Argument(..., help="Job type, e.g. keyword-generation"),
    subject: str = typer.Argument(..., help="Subject of the work (dedup key), e.g. an industry"),
    data: list[str] = typer.Option([], "--data", "-d", help="Extra payload as key=value"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Poll until the job finishes"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Give up waiting after N seconds"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Submit a background job."""
    config = _load(ctx, config_path)
    try:
        payload = parse_key_value(data)
    except ValueError as e:
        _fail(e)

    dedup_field = config.jobs.dedup_fields.get(job_type)
    if dedup_field:
        payload.setdefault(dedup_field, subject)

    async def _run() -> tuple[SubmissionResult, str]:
        client = _job_client(config)
        orchestrator = JobOrchestrator(
            client,
            store=JobStore(),
            poll_interval=config.jobs.poll_interval,
            watched_types=[job_type],
            notify=_print_notice,
        )
        try:
            result = await orchestrator.submit(job_type, subject, payload)
            if wait and result.outcome is SubmissionOutcome.CREATED:
                try:
                    await orchestrator.join(timeout)
                except asyncio.TimeoutError:
                    console.print(f"[yellow]Still running after {timeout}s[/yellow]")
            return result, orchestrator.status_label(job_type, subject)
        finally:
            await orchestrator.aclose()
            await client.aclose()

    try:
        result, label = asyncio.run(_run())
    except SchedkitError as e:
        _fail(e)

    if result.outcome is SubmissionOutcome.SKIPPED:
        count = result.skipped.existing_count
        suffix = f" ({count} existing results)" if count is not None else ""
        console.print(f"[yellow]Skipped:[/yellow] {result.skipped.message}{suffix}")
        return
    if result.outcome is SubmissionOutcome.DUPLICATE:
        console.print(f"[yellow]Already in progress:[/yellow] {result.job.id}")
        return

    console.print(f"[green]Job {result.job.id}:[/green] {label or result.job.status.value}")


if __name__ == "__main__":
    app()
