"""Polling commands: refresh (one manual cycle), watch (foreground scheduler), interval."""

from __future__ import annotations

import time

import click
from rich.console import Console

from prinbox_cli.commands.common import command_errors, get_service
from prinbox_core.models import Column

console = Console()


def _summarise(state) -> str:
    counts = {col: 0 for col in Column.ALL}
    for pr in state.prs:
        counts[pr.column] += 1
    return " · ".join(f"{col}: {counts[col]}" for col in Column.ALL)


def _scheduler(ctx):
    from prinbox_core.factory import build_scheduler

    return build_scheduler(get_service(ctx), ctx.obj["config"])


@click.command("refresh")
@click.pass_context
def refresh_cmd(ctx):
    """Poll every enabled source now, ignoring any rate-limit backoff."""
    scheduler = _scheduler(ctx)
    result = scheduler.trigger_poll_now()

    for message in result.errors:
        console.print(f"[yellow]{message}[/yellow]")
    if result.state is None:
        raise click.ClickException("Poll did not complete.")
    console.print(f"[green]Poll complete.[/green] {_summarise(result.state)}")


@click.command("watch")
@click.pass_context
def watch_cmd(ctx):
    """Keep polling in the foreground until interrupted (Ctrl-C)."""
    service = get_service(ctx)
    scheduler = _scheduler(ctx)

    service.events.on_state(lambda state: console.print(f"[dim]{time.strftime('%X')}[/dim] {_summarise(state)}"))
    service.events.on_error(lambda message: console.print(f"[yellow]{message}[/yellow]"))

    with command_errors():
        interval = scheduler.interval()
    console.print(f"[bold]Watching inbox[/bold] — polling every {int(interval.total_seconds())}s. Ctrl-C to stop.")

    with command_errors():
        scheduler.start()
    try:
        while scheduler.running:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\nStopping…")
    finally:
        scheduler.stop(timeout=5)


@click.command("interval")
@click.argument("seconds", type=click.IntRange(min=1))
@click.pass_context
def interval_cmd(ctx, seconds: int):
    """Set the poll interval in seconds (the scheduler never polls faster than every 60s)."""
    service = get_service(ctx)
    with command_errors():
        service.set_poll_interval(seconds * 1000)
    note = " (60s minimum applies)" if seconds < 60 else ""
    console.print(f"[green]Poll interval set to {seconds}s{note}.[/green]")
