"""init command: interactive setup wizard.

Writes .prinbox.yml, optionally creates a private Gist so the inbox can be
shared between machines, and seeds the inbox with a first GitHub search so
the very first `prinbox refresh` has something to do.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from pathlib import Path

import click
import yaml
from rich.console import Console

from prinbox_cli.commands.common import command_errors
from prinbox_core.config import DEFAULT_STATE_PATH
from prinbox_store.gist import GIST_FILENAME

console = Console()
logger = logging.getLogger(__name__)

_DEFAULT_QUERY = "is:open review-requested:@me"


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up prinbox: choose a store and add a first source."""
    console.print("\n[bold cyan]prinbox init[/bold cyan] — setup wizard\n")

    console.print("Inbox store:")
    console.print("  [bold]file[/bold]    — local JSON file (default)")
    console.print("  [bold]gist[/bold]    — private GitHub Gist, shared between machines")
    console.print("  [bold]memory[/bold]  — nothing persisted (try-out mode)")
    store_type = click.prompt(
        "Store backend",
        type=click.Choice(["file", "gist", "memory"]),
        default="file",
    )

    config: dict = {"store": store_type}

    if store_type == "file":
        state_path = click.prompt("State file path", default=DEFAULT_STATE_PATH)
        if state_path != DEFAULT_STATE_PATH:
            config["state_path"] = state_path

    elif store_type == "gist":
        console.print("\n[yellow]Note:[/yellow] the Gist store needs a token with [bold]gist[/bold] scope.")
        gist_id = _create_inbox_gist()
        if gist_id:
            console.print(f"[green]Created inbox Gist: {gist_id}[/green]")
            config["gist_id"] = gist_id
        else:
            console.print("[yellow]Gist creation failed — add gist_id manually to .prinbox.yml[/yellow]")

    _write_config(config)
    console.print("[green]Created .prinbox.yml[/green]")

    if click.confirm("\nAdd a GitHub search source for PRs awaiting your review?", default=True):
        query = click.prompt("Search query", default=_DEFAULT_QUERY)
        with command_errors():
            _add_first_source(ctx.obj["config"], query)
        console.print("[green]Added source: Review requests[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Poll now with: [bold]prinbox refresh[/bold], or keep polling with [bold]prinbox watch[/bold]")


def _add_first_source(previous_config: dict, query: str) -> None:
    """Add the source to the store described by the freshly written config."""
    from prinbox_cli.cli import _build_store
    from prinbox_core.config import load_config
    from prinbox_core.service import InboxService

    config = load_config(".prinbox.yml")
    config["github_token"] = previous_config.get("github_token")
    store = _build_store(config)
    try:
        InboxService(store).add_query_source("Review requests", query)
    finally:
        store.close()


def _create_inbox_gist() -> str | None:
    """Create a private Gist holding an empty inbox and return its ID."""
    try:
        # gh names gist files after their path, so write under the final name.
        tmp_dir = tempfile.mkdtemp(prefix="prinbox-")
        named_path = os.path.join(tmp_dir, GIST_FILENAME)
        with open(named_path, "w") as f:
            f.write("{}")

        try:
            result = subprocess.run(
                ["gh", "gist", "create", "--public=false", "--desc", "prinbox inbox state", named_path],
                capture_output=True,
                text=True,
                timeout=15,
            )
        finally:
            os.unlink(named_path)
            os.rmdir(tmp_dir)

        if result.returncode == 0:
            gist_url = result.stdout.strip()
            return gist_url.rstrip("/").split("/")[-1]
        logger.warning("gh gist create failed: %s", result.stderr.strip())
    except (FileNotFoundError, subprocess.TimeoutExpired):
        pass
    return None


def _write_config(config: dict) -> None:
    """Write or update .prinbox.yml, preserving any existing keys."""
    path = Path(".prinbox.yml")
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
