"""Base source adapter implementing the Template Method pattern.

Every adapter shares the same outer contract:
    fetch(source, since) → _fetch()   ← only this differs per source kind
                         → FetchResult

Configuration-level failures (SourceError: unknown channel, missing token)
are turned into soft error strings here, once, so a misconfigured source
never aborts the rest of the poll cycle. Anything else, notably rate
limiting, propagates so the scheduler can classify it and back off.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from prinbox_core.errors import SourceError
from prinbox_core.models import DiscoveredPR, PRSource

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    prs: list[DiscoveredPR] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class SourceAdapter(ABC):
    kind: str = ""

    def fetch(self, source: PRSource, since: str | None = None) -> FetchResult:
        """Fetch candidate PRs for ``source``, posted after ``since`` where supported."""
        try:
            prs = self._fetch(source, since)
        except SourceError as e:
            logger.warning("%s: source %r failed: %s", self.__class__.__name__, source.name, e)
            return FetchResult(errors=[f"Error polling {source.name}: {e}"])
        return FetchResult(prs=prs)

    @abstractmethod
    def _fetch(self, source: PRSource, since: str | None) -> list[DiscoveredPR]:
        """Perform the source-specific fetch. Raise on failure."""
