"""Channel adapter: finds PR links posted in a Slack channel.

Steps per fetch:
  1. resolve the channel name to its id (cached for the adapter's lifetime;
     channel ids never change)
  2. read messages posted after ``since`` (or the lookback window on a
     source's first poll)
  3. extract github.com/<owner>/<repo>/pull/<n> links and deduplicate them
  4. resolve each link to full PR metadata on a bounded thread pool

A link that cannot be resolved (deleted PR, no access) is logged and
dropped; one inaccessible PR must not hide the others. Rate limiting is
the exception: it aborts the fetch so the scheduler can back off.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from prinbox_core.adapters.base import SourceAdapter
from prinbox_core.errors import is_rate_limit_error
from prinbox_core.models import ChannelSource, DiscoveredPR
from prinbox_core.slack.client import DEFAULT_LOOKBACK_DAYS

logger = logging.getLogger(__name__)

_PR_LINK_RE = re.compile(r"https?://github\.com/([\w.-]+)/([\w.-]+)/pull/(\d+)")

DetailsFn = Callable[[str, str, int], DiscoveredPR]


def extract_pr_refs(text: str) -> list[tuple[str, str, int]]:
    """Return ``(owner, repo, number)`` for every PR link in ``text``."""
    return [(m.group(1), m.group(2), int(m.group(3))) for m in _PR_LINK_RE.finditer(text)]


class ChannelAdapter(SourceAdapter):
    kind = ChannelSource.kind

    def __init__(
        self,
        slack,
        fetch_details: DetailsFn,
        max_workers: int = 5,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ):
        self._slack = slack
        self._fetch_details = fetch_details
        self._max_workers = max_workers
        self._lookback_days = lookback_days
        self._channel_ids: dict[str, str] = {}

    def channel_id(self, name: str) -> str:
        key = name.lstrip("#").lower()
        if key not in self._channel_ids:
            self._channel_ids[key] = self._slack.resolve_channel_id(name)
        return self._channel_ids[key]

    def _fetch(self, source: ChannelSource, since: str | None) -> list[DiscoveredPR]:
        channel_id = self.channel_id(source.channel_name)
        messages = self._slack.fetch_messages_since(channel_id, since, lookback_days=self._lookback_days)

        refs: list[tuple[str, str, int]] = []
        seen: set[tuple[str, str, int]] = set()
        for message in messages:
            for ref in extract_pr_refs(message.text):
                if ref not in seen:
                    seen.add(ref)
                    refs.append(ref)

        if not refs:
            return []

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            results = list(pool.map(self._resolve, refs))

        found = [pr for pr in results if pr is not None]
        logger.debug(
            "Channel %s: %d link(s), %d resolved, %d dropped",
            source.channel_name,
            len(refs),
            len(found),
            len(refs) - len(found),
        )
        return found

    def _resolve(self, ref: tuple[str, str, int]) -> DiscoveredPR | None:
        owner, repo, number = ref
        try:
            return self._fetch_details(owner, repo, number)
        except Exception as e:
            if is_rate_limit_error(e):
                raise
            logger.warning("Could not fetch details for %s/%s#%d: %s", owner, repo, number, e)
            return None
