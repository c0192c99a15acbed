"""Retention sweeper: prunes terminal records before anyone else sees the state.

Runs on every load so an expired ignore entry can never suppress rediscovery
and finished PRs do not linger on the board.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta

from prinbox_core.inbox import IGNORE_DURATION
from prinbox_core.models import Column, InboxPR, InboxState
from prinbox_core.utils.time import parse_iso

logger = logging.getLogger(__name__)

DONE_RETENTION = timedelta(hours=24)


def _timestamp(value) -> datetime | None:
    try:
        return parse_iso(value)
    except (AttributeError, TypeError, ValueError):
        return None


def sweep_done_prs(prs: tuple[InboxPR, ...], now: str) -> tuple[InboxPR, ...]:
    cutoff = parse_iso(now) - DONE_RETENTION
    kept = []
    for pr in prs:
        # A done PR without a readable timestamp cannot age out; keep it.
        done_at = _timestamp(pr.done_at) if pr.column == Column.DONE else None
        if done_at is not None and done_at <= cutoff:
            logger.debug("Retention: dropping %s (done at %s)", pr.id, pr.done_at)
            continue
        kept.append(pr)
    return tuple(kept)


def sweep_ignores(ignored: dict[str, str], now: str) -> dict[str, str]:
    cutoff = parse_iso(now) - IGNORE_DURATION
    kept = {}
    for prid, at in ignored.items():
        # An unreadable ignore time counts as expired.
        when = _timestamp(at)
        if when is None:
            logger.warning("Retention: dropping ignore of %s with invalid time %r", prid, at)
        elif when > cutoff:
            kept[prid] = at
    return kept


def sweep(state: InboxState, now: str) -> InboxState:
    """Drop done PRs older than 24 hours and ignore entries older than 7 days."""
    prs = sweep_done_prs(state.prs, now)
    ignored = sweep_ignores(state.ignored_pr_ids, now)
    dropped = (len(state.prs) - len(prs), len(state.ignored_pr_ids) - len(ignored))
    if any(dropped):
        logger.info("Retention sweep removed %d done PR(s) and %d expired ignore(s)", *dropped)
    return replace(state, prs=prs, ignored_pr_ids=ignored)
