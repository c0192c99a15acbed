"""In-memory store. Nothing touches disk.

Useful for one-off runs (`store: memory` in .prinbox.yml) and as a test
double. The document is kept serialized so callers can never mutate stored
state through a shared reference.
"""

from __future__ import annotations

import copy

from prinbox_store.base import BaseStore


class MemoryStore(BaseStore):
    def __init__(self, initial: dict | None = None):
        self._data = copy.deepcopy(initial)
        self.writes = 0

    def _read(self) -> dict | None:
        return copy.deepcopy(self._data)

    def _write(self, data: dict) -> None:
        self._data = copy.deepcopy(data)
        self.writes += 1
