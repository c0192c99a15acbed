"""Inbox data models.

The whole inbox is one document (InboxState) that is read, transformed and
written back as a unit. Every field here maps 1:1 onto the persisted JSON
layout produced by prinbox_store.codec.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Union

DEFAULT_POLL_INTERVAL_MS = 300_000  # 5 minutes
MANUAL_SOURCE_ID = "manual"


class Column:
    """Kanban lifecycle stages of a tracked PR."""

    INBOX = "inbox"
    NEEDS_ATTENTION = "needs-attention"
    REVIEWED = "reviewed"
    DONE = "done"

    ALL = (INBOX, NEEDS_ATTENTION, REVIEWED, DONE)


class PRState:
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"

    TERMINAL = (CLOSED, MERGED)


def pr_id(owner: str, repo: str, number: int) -> str:
    """Return the dedup key for a PR: ``owner/repo#number``."""
    return f"{owner}/{repo}#{number}"


def new_source_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class DiscoveredPR:
    """A raw PR record returned by a source adapter, before reconciliation."""

    owner: str
    repo: str
    number: int
    title: str = ""
    author: str = ""
    url: str = ""
    head_sha: str = ""
    state: str = PRState.OPEN

    @property
    def id(self) -> str:
        return pr_id(self.owner, self.repo, self.number)


@dataclass(frozen=True)
class PRStatus:
    """Current head commit and lifecycle state reported by the hosting service.

    ``title`` and ``author`` ride along so PRs added by reference, which start
    without them, are filled in by the next status check.
    """

    head_sha: str
    state: str = PRState.OPEN
    title: str = ""
    author: str = ""


@dataclass(frozen=True)
class InboxPR:
    """One tracked pull request.

    ``column``, ``added_at``, ``reviewed_at`` and ``done_at`` are owned by the
    reconciliation engine and are never overwritten by rediscovery.
    """

    id: str
    owner: str
    repo: str
    number: int
    title: str
    author: str
    url: str
    head_sha: str
    column: str
    source: str
    source_id: str
    added_at: str
    last_checked_at: str
    reviewed_at: str | None = None
    done_at: str | None = None


@dataclass(frozen=True)
class QuerySource:
    """A saved GitHub search, e.g. ``is:open review-requested:@me``."""

    id: str
    name: str
    query: str
    enabled: bool = True

    kind = "github-search"


@dataclass(frozen=True)
class ChannelSource:
    """A Slack channel scanned for GitHub PR links (name without ``#``)."""

    id: str
    name: str
    channel_name: str
    enabled: bool = True

    kind = "slack"


PRSource = Union[QuerySource, ChannelSource]


@dataclass(frozen=True)
class InboxState:
    """Aggregate root persisted as a single atomic unit."""

    prs: tuple[InboxPR, ...] = ()
    sources: tuple[PRSource, ...] = ()
    last_poll_at: str | None = None
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    ignored_pr_ids: dict[str, str] = field(default_factory=dict)

    def get_pr(self, pr_id: str) -> InboxPR | None:
        for pr in self.prs:
            if pr.id == pr_id:
                return pr
        return None

    def get_source(self, source_id: str) -> PRSource | None:
        for source in self.sources:
            if source.id == source_id:
                return source
        return None

    @property
    def enabled_sources(self) -> list[PRSource]:
        return [s for s in self.sources if s.enabled]

    @property
    def active_prs(self) -> list[InboxPR]:
        """PRs still subject to status checks (everything not ``done``)."""
        return [p for p in self.prs if p.column != Column.DONE]
