"""CLI commands for taskalarm."""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from taskalarm import __logo__, __version__

app = typer.Typer(
    name="taskalarm",
    help=f"{__logo__} taskalarm - reminders for your to-do list",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} taskalarm v{__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """taskalarm - reminders for your to-do list."""
    pass


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Write the default configuration file."""
    from taskalarm.config.loader import get_config_path, save_config
    from taskalarm.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config(), config_path)
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print("\nNext steps:")
    console.print("  1. Export your tasks to [cyan]~/.taskalarm/tasks.json[/cyan]")
    console.print("  2. Preview reminders: [cyan]taskalarm plan[/cyan]")
    console.print("  3. Start reminders: [cyan]taskalarm run[/cyan]")


# ============================================================================
# Reminder Commands
# ============================================================================


def _resolve_tasks_path(tasks: Path | None) -> Path:
    from taskalarm.config.loader import load_config

    return tasks.expanduser() if tasks else load_config().tasks.expanded_path


@app.command()
def plan(
    tasks: Path = typer.Option(None, "--tasks", "-t", help="Task snapshot JSON file"),
    at: str = typer.Option(None, "--at", help="Evaluate at this ISO datetime instead of now"),
):
    """Show which reminders would be scheduled."""
    from taskalarm.engine.candidates import derive, eligible, is_eligible
    from taskalarm.engine.schema import format_offset
    from taskalarm.tasks.source import TaskFileSource

    path = _resolve_tasks_path(tasks)
    try:
        now = datetime.fromisoformat(at) if at else datetime.now()
    except ValueError:
        console.print(f"[red]Error: invalid --at value {at!r}[/red]")
        raise typer.Exit(1)

    try:
        loaded = TaskFileSource(path).load()
    except FileNotFoundError:
        console.print(f"[red]Error: task file not found: {path}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    candidates = derive(loaded, now)

    table = Table(title=f"Reminders at {now.isoformat(timespec='minutes')}")
    table.add_column("Task", style="cyan")
    table.add_column("Title")
    table.add_column("Fires at")
    table.add_column("Offset")
    table.add_column("Status")

    for c in candidates:
        status = "[green]scheduled[/green]" if is_eligible(c, now) else "[dim]passed[/dim]"
        table.add_row(
            c.task_id,
            c.title,
            c.trigger_at.isoformat(sep=" ", timespec="minutes"),
            format_offset(c.offset_minutes),
            status,
        )

    console.print(table)
    eligible_count = len(eligible(candidates, now))
    console.print(f"{len(loaded)} tasks, {len(candidates)} with reminders, {eligible_count} upcoming")


NOTICE_POLL_INTERVAL_S = 1.0


def _print_notice(orchestrator) -> bool:
    """Print the pending one-time notice (denied / unsupported), if any."""
    notice = orchestrator.take_notice()
    if not notice:
        return False
    console.print(f"[yellow]{notice}[/yellow]")
    return True


@app.command()
def run(
    tasks: Path = typer.Option(None, "--tasks", "-t", help="Task snapshot JSON file"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Grant notification permission without asking"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Run reminders for the task file until interrupted."""
    from taskalarm.config.loader import load_config
    from taskalarm.engine.orchestrator import ReminderOrchestrator
    from taskalarm.platform.console import ConsoleNotificationPlatform
    from taskalarm.tasks.source import TaskFileSource

    _setup_logging(verbose)
    config = load_config()
    path = tasks.expanduser() if tasks else config.tasks.expanded_path

    platform = ConsoleNotificationPlatform(console, assume_yes=yes or config.console.assume_yes)
    orchestrator = ReminderOrchestrator(platform, config.reminders)
    source = TaskFileSource(path, orchestrator.update_tasks, interval_s=config.tasks.watch_interval_s)

    console.print(f"{__logo__} Watching [cyan]{path}[/cyan] (Ctrl+C to stop)")

    async def _run():
        await orchestrator.start()
        _print_notice(orchestrator)
        await source.start()
        try:
            while True:
                await asyncio.sleep(NOTICE_POLL_INTERVAL_S)
                _print_notice(orchestrator)
        finally:
            source.stop()
            orchestrator.stop()
            await orchestrator.drain()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# System Commands
# ============================================================================


@app.command()
def status():
    """Show taskalarm configuration."""
    from taskalarm.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()

    console.print(f"{__logo__} [bold]taskalarm status[/bold]")
    console.print(f"Version: {__version__}")
    console.print(
        f"Config: {config_path}" + ("" if config_path.exists() else " [dim](defaults)[/dim]")
    )

    table = Table(title="Configuration Summary")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    r = config.reminders
    table.add_row("Task file", str(config.tasks.expanded_path))
    table.add_row("Watch interval", f"{config.tasks.watch_interval_s:g}s")
    table.add_row("Re-notify window", f"{r.min_renotify_minutes} min")
    table.add_row("Max timer delay", f"{r.max_timer_delay_s:g}s")
    table.add_row("Auto-close", f"{r.notification_timeout_s:g}s" if r.notification_timeout_s else "[dim]off[/dim]")
    table.add_row("Welcome notification", "[green]on[/green]" if r.welcome_notification else "[dim]off[/dim]")

    console.print(table)


if __name__ == "__main__":
    app()
