from __future__ import annotations

from typing import Callable

from prinbox_core.adapters.base import SourceAdapter
from prinbox_core.models import DiscoveredPR, QuerySource


class QueryAdapter(SourceAdapter):
    """Delegates to a PR search; the search service caps the result count."""

    kind = QuerySource.kind

    def __init__(self, search: Callable[[str], list[DiscoveredPR]]):
        self._search = search

    def _fetch(self, source: QuerySource, since: str | None) -> list[DiscoveredPR]:
        # Search queries always return the full current match set.
        return self._search(source.query)
