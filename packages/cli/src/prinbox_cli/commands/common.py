from __future__ import annotations

from contextlib import contextmanager

import click

from prinbox_core.errors import PrinboxError


def get_service(ctx: click.Context):
    service = ctx.obj.get("service") if ctx.obj else None
    if service is None:
        raise click.UsageError("prinbox was not initialised. Run commands through the `prinbox` entry point.")
    return service


@contextmanager
def command_errors():
    """Turn expected failures (bad input, persistence errors) into a clean CLI error."""
    try:
        yield
    except (PrinboxError, ValueError, OSError) as e:
        raise click.ClickException(str(e))


def short_time(iso: str | None) -> str:
    return iso[:19].replace("T", " ") if iso else "—"
