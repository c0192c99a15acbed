"""board command: render the inbox as a kanban table."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prinbox_cli.commands.common import command_errors, get_service, short_time
from prinbox_core.models import Column

console = Console()

_COLUMN_STYLE = {
    Column.INBOX: "cyan",
    Column.NEEDS_ATTENTION: "yellow",
    Column.REVIEWED: "green",
    Column.DONE: "dim",
}


@click.command("board")
@click.option(
    "--column",
    type=click.Choice(list(Column.ALL)),
    default=None,
    help="Only show PRs in this column.",
)
@click.pass_context
def board_cmd(ctx, column: str | None):
    """Show tracked pull requests grouped by column."""
    service = get_service(ctx)
    with command_errors():
        state = service.load_state()

    columns = [column] if column else list(Column.ALL)
    sources = {s.id: s.name for s in state.sources}

    if not any(pr.column in columns for pr in state.prs):
        console.print("[yellow]No pull requests in the inbox.[/yellow]")
        console.print(f"[dim]Last poll: {short_time(state.last_poll_at)}[/dim]")
        return

    for col in columns:
        prs = [pr for pr in state.prs if pr.column == col]
        if not prs:
            continue
        style = _COLUMN_STYLE[col]
        table = Table(title=f"[{style}]{col}[/{style}] ({len(prs)})", show_header=True, header_style="bold")
        table.add_column("PR", style="bold", no_wrap=True)
        table.add_column("Title", max_width=50)
        table.add_column("Author", width=16)
        table.add_column("Source", width=16)
        table.add_column("Added", width=20)
        for pr in prs:
            table.add_row(
                pr.id,
                pr.title,
                pr.author,
                sources.get(pr.source_id, pr.source_id),
                short_time(pr.added_at),
            )
        console.print(table)

    console.print(f"[dim]Last poll: {short_time(state.last_poll_at)}[/dim]")
