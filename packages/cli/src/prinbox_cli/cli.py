"""CLI entry point for prinbox.

Commands:
  init      interactive setup wizard
  board     show the kanban board
  add       track a PR by hand
  move      move a PR to another column
  ignore    hide a PR for 7 days
  source    manage configured sources
  interval  change the poll interval
  refresh   run one poll cycle now
  watch     keep polling in the foreground until interrupted
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prinbox_cli.commands.board import board_cmd
from prinbox_cli.commands.init import init_cmd
from prinbox_cli.commands.poll import interval_cmd, refresh_cmd, watch_cmd
from prinbox_cli.commands.prs import add_cmd, ignore_cmd, move_cmd
from prinbox_cli.commands.sources import source_group

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .prinbox.yml settings.

    Store selection hierarchy:
      store: gist   → GistStore      (requires gist_id and github_token)
      store: memory → MemoryStore    (nothing persisted between runs)
      (default)     → JSONFileStore  (state_path, ~/.prinbox/inbox-state.json)
    """
    from prinbox_store.json_file import JSONFileStore

    store_type = config.get("store", "file")

    if store_type == "gist":
        from prinbox_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            console.print("[yellow]GistStore requires gist_id and a GitHub token. Falling back to the local file.[/yellow]")
        else:
            return GistStore(gist_id=gist_id, token=token)

    if store_type == "memory":
        from prinbox_store.memory import MemoryStore

        return MemoryStore()

    return JSONFileStore(config["state_path"])


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("prinbox"),
    prog_name="prinbox",
)
@click.option(
    "--config",
    "config_path",
    default=".prinbox.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRINBOX_CONFIG",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str):
    """Pull request inbox: collect PRs from GitHub searches and Slack channels."""
    from prinbox_cli.auth import resolve_github_token
    from prinbox_core.config import load_config
    from prinbox_core.service import InboxService

    _configure_logging(log_level)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve the GitHub token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.obj["config"] = config
    ctx.obj["store"] = store
    ctx.obj["service"] = InboxService(store)
    ctx.call_on_close(store.close)


main.add_command(init_cmd)
main.add_command(board_cmd)
main.add_command(add_cmd)
main.add_command(move_cmd)
main.add_command(ignore_cmd)
main.add_command(source_group)
main.add_command(interval_cmd)
main.add_command(refresh_cmd)
main.add_command(watch_cmd)
