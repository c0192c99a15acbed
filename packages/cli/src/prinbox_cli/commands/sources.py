"""source commands: manage the ordered list of configured sources."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prinbox_cli.commands.common import command_errors, get_service
from prinbox_core.models import QuerySource

console = Console()


def _require_source(service, source_id: str):
    source = service.load_state().get_source(source_id)
    if source is None:
        raise click.ClickException(f"No source with id {source_id}.")
    return source


@click.group("source")
def source_group():
    """Manage PR sources (GitHub searches and Slack channels)."""


@source_group.command("list")
@click.pass_context
def list_cmd(ctx):
    """List configured sources in polling order."""
    service = get_service(ctx)
    with command_errors():
        state = service.load_state()

    if not state.sources:
        console.print("[yellow]No sources configured. Add one with `prinbox source add-query`.[/yellow]")
        return

    counts: dict[str, int] = {}
    for pr in state.prs:
        counts[pr.source_id] = counts.get(pr.source_id, 0) + 1

    table = Table(title="Sources", show_header=True, header_style="bold cyan")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Target", max_width=50)
    table.add_column("Enabled", justify="center")
    table.add_column("PRs", justify="right")
    for s in state.sources:
        target = s.query if isinstance(s, QuerySource) else f"#{s.channel_name}"
        table.add_row(
            s.id,
            s.name,
            s.kind,
            target,
            "[green]yes[/green]" if s.enabled else "[dim]no[/dim]",
            str(counts.get(s.id, 0)),
        )
    console.print(table)


@source_group.command("add-query")
@click.option("--name", required=True, help="Display name for the source.")
@click.option("--query", required=True, help="GitHub search query, e.g. 'is:open review-requested:@me'.")
@click.pass_context
def add_query_cmd(ctx, name: str, query: str):
    """Add a GitHub search source."""
    service = get_service(ctx)
    with command_errors():
        source = service.add_query_source(name, query)
    console.print(f"[green]Added source {source.name} ({source.id}).[/green]")


@source_group.command("add-channel")
@click.option("--name", required=True, help="Display name for the source.")
@click.option("--channel", "channel_name", required=True, help="Slack channel name, with or without '#'.")
@click.pass_context
def add_channel_cmd(ctx, name: str, channel_name: str):
    """Add a Slack channel source that is scanned for PR links."""
    service = get_service(ctx)
    with command_errors():
        source = service.add_channel_source(name, channel_name)
    console.print(f"[green]Added source {source.name} ({source.id}).[/green]")


@source_group.command("remove")
@click.argument("source_id")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def remove_cmd(ctx, source_id: str, yes: bool):
    """Remove a source and every PR it discovered."""
    service = get_service(ctx)
    with command_errors():
        source = _require_source(service, source_id)
        if not yes:
            click.confirm(f"Remove {source.name} and all of its PRs?", abort=True)
        service.remove_source(source_id)
    console.print(f"[green]Removed source {source.name}.[/green]")


@source_group.command("enable")
@click.argument("source_id")
@click.pass_context
def enable_cmd(ctx, source_id: str):
    """Resume polling a source."""
    service = get_service(ctx)
    with command_errors():
        _require_source(service, source_id)
        service.update_source(source_id, {"enabled": True})
    console.print(f"[green]Enabled {source_id}.[/green]")


@source_group.command("disable")
@click.argument("source_id")
@click.pass_context
def disable_cmd(ctx, source_id: str):
    """Stop polling a source without deleting its PRs."""
    service = get_service(ctx)
    with command_errors():
        _require_source(service, source_id)
        service.update_source(source_id, {"enabled": False})
    console.print(f"[green]Disabled {source_id}.[/green]")


@source_group.command("update")
@click.argument("source_id")
@click.option("--name", default=None, help="New display name.")
@click.option("--query", default=None, help="New search query (GitHub search sources).")
@click.option("--channel", "channel_name", default=None, help="New channel name (Slack sources).")
@click.pass_context
def update_cmd(ctx, source_id: str, name: str | None, query: str | None, channel_name: str | None):
    """Change a source's name, query or channel."""
    patch = {k: v for k, v in {"name": name, "query": query, "channel_name": channel_name}.items() if v is not None}
    if not patch:
        raise click.UsageError("Nothing to update. Pass --name, --query or --channel.")
    if "channel_name" in patch:
        patch["channel_name"] = patch["channel_name"].lstrip("#")

    service = get_service(ctx)
    with command_errors():
        _require_source(service, source_id)
        service.update_source(source_id, patch)
    console.print(f"[green]Updated {source_id}.[/green]")
