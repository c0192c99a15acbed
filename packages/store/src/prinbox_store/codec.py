"""InboxState <-> JSON-compatible dict.

The on-disk layout is camelCase and tags each source with ``type`` so the
same file can be read by any prinbox frontend.
"""

from __future__ import annotations

from prinbox_core.models import (
    DEFAULT_POLL_INTERVAL_MS,
    ChannelSource,
    Column,
    InboxPR,
    InboxState,
    PRSource,
    QuerySource,
)


def pr_to_dict(pr: InboxPR) -> dict:
    d = {
        "id": pr.id,
        "owner": pr.owner,
        "repo": pr.repo,
        "number": pr.number,
        "title": pr.title,
        "author": pr.author,
        "url": pr.url,
        "headSha": pr.head_sha,
        "column": pr.column,
        "source": pr.source,
        "sourceId": pr.source_id,
        "addedAt": pr.added_at,
        "lastCheckedAt": pr.last_checked_at,
    }
    if pr.reviewed_at:
        d["reviewedAt"] = pr.reviewed_at
    if pr.done_at:
        d["doneAt"] = pr.done_at
    return d


def pr_from_dict(d: dict) -> InboxPR:
    column = d.get("column", Column.INBOX)
    return InboxPR(
        id=d["id"],
        owner=d.get("owner", ""),
        repo=d.get("repo", ""),
        number=int(d.get("number", 0)),
        title=d.get("title", ""),
        author=d.get("author", ""),
        url=d.get("url", ""),
        head_sha=d.get("headSha") or "",
        column=column if column in Column.ALL else Column.INBOX,
        source=d.get("source", ""),
        source_id=d.get("sourceId", ""),
        added_at=d.get("addedAt", ""),
        last_checked_at=d.get("lastCheckedAt", ""),
        reviewed_at=d.get("reviewedAt"),
        done_at=d.get("doneAt"),
    )


def source_to_dict(source: PRSource) -> dict:
    d = {"id": source.id, "type": source.kind, "name": source.name, "enabled": source.enabled}
    if isinstance(source, QuerySource):
        d["query"] = source.query
    else:
        d["channelName"] = source.channel_name
    return d


def source_from_dict(d: dict) -> PRSource:
    kind = d.get("type")
    if kind == QuerySource.kind:
        return QuerySource(id=d["id"], name=d.get("name", ""), query=d.get("query", ""), enabled=d.get("enabled", True))
    if kind == ChannelSource.kind:
        return ChannelSource(
            id=d["id"],
            name=d.get("name", ""),
            channel_name=d.get("channelName", ""),
            enabled=d.get("enabled", True),
        )
    raise ValueError(f"Unknown source type: {kind!r}")


def state_to_dict(state: InboxState) -> dict:
    return {
        "prs": [pr_to_dict(pr) for pr in state.prs],
        "sources": [source_to_dict(s) for s in state.sources],
        "lastPollAt": state.last_poll_at,
        "pollIntervalMs": state.poll_interval_ms,
        "ignoredPRIds": dict(state.ignored_pr_ids),
    }


def state_from_dict(d: dict) -> InboxState:
    return InboxState(
        prs=tuple(pr_from_dict(p) for p in d.get("prs") or []),
        sources=tuple(source_from_dict(s) for s in d.get("sources") or []),
        last_poll_at=d.get("lastPollAt"),
        poll_interval_ms=int(d.get("pollIntervalMs") or DEFAULT_POLL_INTERVAL_MS),
        # Older state files predate the ignore ledger.
        ignored_pr_ids=dict(d.get("ignoredPRIds") or {}),
    )
