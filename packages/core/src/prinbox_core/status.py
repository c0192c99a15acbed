"""Status checker: re-validates every active PR against the hosting service.

Lookups are independent per PR and run on a bounded thread pool; the results
are then folded into the state sequentially so transitions are applied in a
deterministic order. A failed lookup only affects its own PR.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Callable

from prinbox_core.inbox import observe_head_sha
from prinbox_core.models import Column, InboxPR, InboxState, PRState, PRStatus

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5

StatusFn = Callable[[str, str, int], PRStatus]


@dataclass
class StatusCheckReport:
    state: InboxState
    checked: int = 0
    failures: list[tuple[str, Exception]] = field(default_factory=list)


def apply_status(pr: InboxPR, status: PRStatus, now: str) -> InboxPR:
    """Apply one status lookup to ``pr`` according to the column state machine.

    ``done`` is terminal. Merged/closed wins over any head change. A blank
    title or author (PRs added by reference) is filled from the lookup.
    """
    if pr.column == Column.DONE:
        return pr
    pr = _backfill(pr, status)
    if status.state in PRState.TERMINAL:
        logger.info("%s is %s; moving to done", pr.id, status.state)
        return replace(pr, column=Column.DONE, done_at=now, last_checked_at=now)
    return observe_head_sha(pr, status.head_sha, now)


def _backfill(pr: InboxPR, status: PRStatus) -> InboxPR:
    changes = {}
    if not pr.title and status.title:
        changes["title"] = status.title
    if not pr.author and status.author:
        changes["author"] = status.author
    return replace(pr, **changes) if changes else pr


def _lookup(get_status: StatusFn, pr: InboxPR) -> PRStatus | Exception:
    try:
        return get_status(pr.owner, pr.repo, pr.number)
    except Exception as e:
        return e


def check_statuses(
    state: InboxState,
    get_status: StatusFn,
    now: str,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> StatusCheckReport:
    """Query the status of every non-``done`` PR and apply the transitions."""
    active = state.active_prs
    if not active:
        return StatusCheckReport(state=state)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(lambda pr: _lookup(get_status, pr), active))

    updates: dict[str, InboxPR] = {}
    failures: list[tuple[str, Exception]] = []
    for pr, result in zip(active, results):
        if isinstance(result, Exception):
            # Deleted or inaccessible PRs are skipped, not fatal.
            logger.warning("Failed to check PR status for %s: %s", pr.id, result)
            failures.append((pr.id, result))
            continue
        updated = apply_status(pr, result, now)
        if updated != pr:
            updates[pr.id] = updated

    prs = tuple(updates.get(pr.id, pr) for pr in state.prs)
    return StatusCheckReport(state=replace(state, prs=prs), checked=len(active), failures=failures)
