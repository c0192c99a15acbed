"""Reconciliation engine.

Pure functions over InboxState: each takes the current document and returns
a new one, never mutating its input. Callers own persistence and timing;
``now`` is always passed in as an ISO-8601 string so the same inputs always
produce the same output.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import timedelta
from typing import Iterable

from prinbox_core.models import (
    MANUAL_SOURCE_ID,
    ChannelSource,
    Column,
    DiscoveredPR,
    InboxPR,
    InboxState,
    PRSource,
    QuerySource,
    pr_id,
)
from prinbox_core.utils.time import parse_iso

logger = logging.getLogger(__name__)

IGNORE_DURATION = timedelta(days=7)

_PR_URL_RE = re.compile(r"github\.com/([^/\s]+)/([^/\s]+)/pull/(\d+)")
_PR_SHORT_RE = re.compile(r"^([^/\s]+)/([^#\s]+)#(\d+)$")

# Fields a patch may touch, per source variant.
_SOURCE_PATCHABLE = {
    QuerySource: {"name", "enabled", "query"},
    ChannelSource: {"name", "enabled", "channel_name"},
}


def parse_pr_reference(text: str) -> tuple[str, str, int]:
    """Parse ``owner/repo#123`` or a GitHub PR URL into its components."""
    text = text.strip()
    match = _PR_URL_RE.search(text) or _PR_SHORT_RE.match(text)
    if not match:
        raise ValueError(f"Invalid PR reference {text!r}. Use owner/repo#123 or a GitHub PR URL.")
    return match.group(1), match.group(2), int(match.group(3))


def is_recently_ignored(state: InboxState, prid: str, now: str) -> bool:
    """Return True if ``prid`` has a live (non-expired) ignore entry."""
    ignored_at = state.ignored_pr_ids.get(prid)
    if not ignored_at:
        return False
    return parse_iso(ignored_at) > parse_iso(now) - IGNORE_DURATION


def observe_head_sha(pr: InboxPR, head_sha: str, now: str) -> InboxPR:
    """Apply a freshly observed head commit to ``pr``.

    An empty stored SHA (manual addition) is populated without being diffed.
    A change on a ``reviewed`` PR moves it to ``needs-attention``; no other
    column reacts to new commits. An empty observed SHA never clears the
    stored one.
    """
    if not head_sha or head_sha == pr.head_sha:
        return pr
    if not pr.head_sha:
        return replace(pr, head_sha=head_sha, last_checked_at=now)
    column = Column.NEEDS_ATTENTION if pr.column == Column.REVIEWED else pr.column
    if column != pr.column:
        logger.info("%s has new commits since review; moving to %s", pr.id, column)
    return replace(pr, head_sha=head_sha, column=column, last_checked_at=now)


def upsert(state: InboxState, discovered: Iterable[DiscoveredPR], source: PRSource, now: str) -> InboxState:
    """Fold a batch of discovered PRs from ``source`` into ``state``.

    Existing entries get their title, head SHA and last-checked time
    refreshed; their column and lifecycle timestamps are preserved. Unknown
    entries are added to the ``inbox`` column unless a live ignore entry
    suppresses them. Applying the same batch twice is a no-op the second time.
    """
    prs = list(state.prs)
    index = {pr.id: i for i, pr in enumerate(prs)}

    for found in discovered:
        key = found.id
        if key in index:
            i = index[key]
            refreshed = observe_head_sha(prs[i], found.head_sha, now)
            prs[i] = replace(refreshed, title=found.title or refreshed.title, last_checked_at=now)
            continue

        if is_recently_ignored(state, key, now):
            logger.debug("Suppressing ignored PR %s from source %s", key, source.name)
            continue

        index[key] = len(prs)
        prs.append(
            InboxPR(
                id=key,
                owner=found.owner,
                repo=found.repo,
                number=found.number,
                title=found.title,
                author=found.author,
                url=found.url,
                head_sha=found.head_sha,
                column=Column.INBOX,
                source=source.kind,
                source_id=source.id,
                added_at=now,
                last_checked_at=now,
            )
        )
        logger.debug("Added %s from source %s", key, source.name)

    return replace(state, prs=tuple(prs))


def add_pr(state: InboxState, reference: str, now: str) -> InboxState:
    """Manually add a PR by reference, outside of any configured source.

    Head SHA, title and author start empty and are populated by the next
    status check.
    Any ignore entry for the PR is dropped since the user asked for it explicitly.
    """
    owner, repo, number = parse_pr_reference(reference)
    key = pr_id(owner, repo, number)
    if state.get_pr(key) is not None:
        return state

    ignored = {k: v for k, v in state.ignored_pr_ids.items() if k != key}
    pr = InboxPR(
        id=key,
        owner=owner,
        repo=repo,
        number=number,
        title="",
        author="",
        url=f"https://github.com/{owner}/{repo}/pull/{number}",
        head_sha="",
        column=Column.INBOX,
        source=MANUAL_SOURCE_ID,
        source_id=MANUAL_SOURCE_ID,
        added_at=now,
        last_checked_at=now,
    )
    return replace(state, prs=state.prs + (pr,), ignored_pr_ids=ignored)


def move_pr(state: InboxState, prid: str, column: str, now: str) -> InboxState:
    """Move a PR to ``column``, stamping ``reviewed_at`` / ``done_at`` as appropriate."""
    if column not in Column.ALL:
        raise ValueError(f"Unknown column {column!r}. Choose one of: {', '.join(Column.ALL)}.")

    def _move(pr: InboxPR) -> InboxPR:
        if pr.id != prid:
            return pr
        if column == Column.REVIEWED:
            return replace(pr, column=column, reviewed_at=now)
        if column == Column.DONE:
            return replace(pr, column=column, done_at=now)
        return replace(pr, column=column)

    return replace(state, prs=tuple(_move(pr) for pr in state.prs))


def ignore_pr(state: InboxState, prid: str, now: str) -> InboxState:
    """Drop a PR from the active set and record it in the ignore ledger.

    Both changes land in the same returned document so they are persisted by
    a single write.
    """
    return replace(
        state,
        prs=tuple(pr for pr in state.prs if pr.id != prid),
        ignored_pr_ids={**state.ignored_pr_ids, prid: now},
    )


# ---------------------------------------------------------------------------
# Source registry
# ---------------------------------------------------------------------------


def add_source(state: InboxState, source: PRSource) -> InboxState:
    if state.get_source(source.id) is not None:
        return state
    return replace(state, sources=state.sources + (source,))


def remove_source(state: InboxState, source_id: str) -> InboxState:
    """Remove a source and cascade-delete every PR it discovered."""
    return replace(
        state,
        sources=tuple(s for s in state.sources if s.id != source_id),
        prs=tuple(pr for pr in state.prs if pr.source_id != source_id),
    )


def update_source(state: InboxState, source_id: str, patch: dict) -> InboxState:
    source = state.get_source(source_id)
    if source is None:
        return state

    unknown = set(patch) - _SOURCE_PATCHABLE[type(source)]
    if unknown:
        raise ValueError(f"Cannot update field(s) {', '.join(sorted(unknown))} on a {source.kind} source.")

    updated = replace(source, **patch)
    return replace(state, sources=tuple(updated if s.id == source_id else s for s in state.sources))


def set_poll_interval(state: InboxState, interval_ms: int) -> InboxState:
    if interval_ms <= 0:
        raise ValueError("Poll interval must be positive.")
    return replace(state, poll_interval_ms=int(interval_ms))

