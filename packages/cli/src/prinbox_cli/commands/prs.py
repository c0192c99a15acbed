"""Commands that act on a single pull request: add, move, ignore."""

from __future__ import annotations

import click
from rich.console import Console

from prinbox_cli.commands.common import command_errors, get_service
from prinbox_core.models import Column

console = Console()


def _require_pr(state, pr_id: str) -> None:
    if state.get_pr(pr_id) is None:
        raise click.ClickException(f"PR {pr_id} is not in the inbox.")


@click.command("add")
@click.argument("reference")
@click.pass_context
def add_cmd(ctx, reference: str):
    """Track a PR by hand (owner/repo#123 or a GitHub PR URL).

    Details are filled in by the next poll.
    """
    service = get_service(ctx)
    with command_errors():
        service.add_pr(reference)
    console.print(f"[green]Added {reference} to the inbox.[/green]")


@click.command("move")
@click.argument("pr_id")
@click.argument("column", type=click.Choice(list(Column.ALL)))
@click.pass_context
def move_cmd(ctx, pr_id: str, column: str):
    """Move PR_ID (owner/repo#123) to COLUMN."""
    service = get_service(ctx)
    with command_errors():
        _require_pr(service.load_state(), pr_id)
        service.move_pr(pr_id, column)
    console.print(f"[green]Moved {pr_id} to {column}.[/green]")


@click.command("ignore")
@click.argument("pr_id")
@click.pass_context
def ignore_cmd(ctx, pr_id: str):
    """Remove PR_ID from the inbox and hide it from sources for 7 days."""
    service = get_service(ctx)
    with command_errors():
        service.ignore_pr(pr_id)
    console.print(f"[green]Ignoring {pr_id} for 7 days.[/green]")
