"""Command-line interface for Timetable CLI."""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.live import Live
from rich.syntax import Syntax

from .config import Config, ConfigError, TimetableConfig, get_config, load_config, save_config
from .editor import TaskEditError, complete_task, interrupt_task
from .render import render_timetable
from .storage import DocumentNotFoundError, DocumentSource, build_timetable, load_timetable
from .utils.datetime import floor_minutes, now_local, parse_reference_time


console = Console()
logger = logging.getLogger(__name__)


def fail(message: str) -> None:
    """Print an error and exit with status 1."""
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def get_source(ctx: click.Context) -> DocumentSource:
    """Resolve the task document from the command line or config."""
    try:
        return DocumentSource.from_config(ctx.obj['config'], ctx.obj['file'])
    except DocumentNotFoundError as e:
        fail(str(e))


def current_time(ctx: click.Context) -> datetime:
    """The --at reference time if one was given, otherwise now."""
    return ctx.obj['at'] or now_local()


@click.group(invoke_without_command=True)
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Path to config file")
@click.option("--file", "-f", "file_path", type=click.Path(dir_okay=False), help="Markdown file with the task list")
@click.option("--at", "at", help="Reference time instead of now (e.g. '2024-05-01T09:00', '9am')")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, config_path, file_path, at, verbose):
    """Timetable CLI - a live schedule from a markdown task list."""
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if config_path:
        config = load_config(Path(config_path))
    else:
        config = get_config()

    reference = None
    if at:
        reference = parse_reference_time(at)
        if reference is None:
            fail(f"Could not understand reference time '{at}'")

    ctx.obj.update({
        'config': config,
        'config_path': Path(config_path) if config_path else None,
        'file': file_path,
        'at': reference,
        'verbose': verbose,
    })

    # If no command provided, show the timetable
    if ctx.invoked_subcommand is None:
        ctx.invoke(show)


@main.command()
@click.pass_context
def show(ctx):
    """Print the timetable once."""
    config = ctx.obj['config']
    source = get_source(ctx)
    try:
        timetable = load_timetable(source, config, current_time(ctx))
    except DocumentNotFoundError as e:
        fail(str(e))
    console.print(render_timetable(timetable, config))


@main.command()
@click.option("--max-ticks", type=int, default=None, hidden=True,
              help="Stop after this many refreshes")
@click.pass_context
def watch(ctx, max_ticks):
    """Keep the timetable on screen, refreshing progress every interval."""
    config = ctx.obj['config']
    source = get_source(ctx)
    try:
        timetable = load_timetable(source, config, current_time(ctx))
    except DocumentNotFoundError as e:
        fail(str(e))

    ticks = 0
    with Live(render_timetable(timetable, config), console=console, auto_refresh=False) as live:
        try:
            while max_ticks is None or ticks < max_ticks:
                now = current_time(ctx)
                if source.has_changed():
                    logger.debug(f"{source.path} changed, rescanning")
                    timetable = load_timetable(source, config, now)
                else:
                    timetable.refresh_progress(now)
                live.update(render_timetable(timetable, config), refresh=True)

                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                time.sleep(config.interval_time)
        except KeyboardInterrupt:
            pass
        except DocumentNotFoundError as e:
            live.stop()
            fail(str(e))


def _edit_active_task(ctx: click.Context, interrupt: bool) -> None:
    config = ctx.obj['config']
    source = get_source(ctx)
    now = current_time(ctx)
    try:
        text = source.read()
        timetable = build_timetable(text, config, now, anchor=source.modified_at())
    except DocumentNotFoundError as e:
        fail(str(e))

    active = timetable.active
    if active is None:
        console.print("[yellow]No uncompleted task to update.[/yellow]")
        return

    elapsed = floor_minutes(now - active.effective_start)
    edit = interrupt_task if interrupt else complete_task
    try:
        new_text = edit(text, active.task, elapsed, now, config)
    except TaskEditError as e:
        fail(str(e))

    source.write(new_text)
    verb = "Interrupted" if interrupt else "Completed"
    console.print(f"[green]✓[/green] {verb}: {active.name} ({elapsed}m)")


@main.command()
@click.pass_context
def complete(ctx):
    """Check off the active task with the minutes spent on it."""
    _edit_active_task(ctx, interrupt=False)


@main.command()
@click.pass_context
def interrupt(ctx):
    """Check off the work done on the active task and queue the rest."""
    _edit_active_task(ctx, interrupt=True)


@main.group(name="config")
def config_group():
    """Show or create the configuration file."""


@config_group.command(name="show")
@click.pass_context
def config_show(ctx):
    """Print the active configuration as YAML."""
    config = ctx.obj['config']
    console.print(Syntax(config.to_yaml(), "yaml"))


@config_group.command(name="init")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def config_init(ctx, force):
    """Write a default configuration file."""
    path: Optional[Path] = ctx.obj['config_path']
    config = TimetableConfig()
    if path is None:
        path = config.get_config_path()
    if path.exists() and not force:
        fail(f"{path} already exists (use --force to overwrite)")

    try:
        save_config(config, path)
    except (OSError, ConfigError) as e:
        fail(str(e))
    Config.reload(path)
    console.print(f"[green]✓[/green] Wrote default configuration to {path}")


if __name__ == "__main__":
    main()
