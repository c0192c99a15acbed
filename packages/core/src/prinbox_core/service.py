"""Command surface consumed by the UI / CLI layer.

Every command is a full read-modify-write of the inbox document under one
writer lock that poll cycles share, so a user action and a poll tick can
never overwrite each other's changes. The lock is the service's own RLock
plus the store's locked() context, which reaches other processes sharing the
same document.

State is persisted before listeners are notified; if the write fails the
caller gets the exception and nobody observes the unsaved state.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator

from prinbox_core import inbox
from prinbox_core.events import EventBus
from prinbox_core.models import ChannelSource, InboxState, PRSource, QuerySource, new_source_id
from prinbox_core.utils.time import to_iso, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from prinbox_store.base import BaseStore

logger = logging.getLogger(__name__)


class InboxService:
    def __init__(self, store: BaseStore, events: EventBus | None = None, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.events = events or EventBus()
        self.clock = clock
        self._lock = threading.RLock()

    def now(self) -> str:
        return to_iso(self.clock())

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the writer lock for a multi-step read-modify-write."""
        with self._lock, self.store.locked():
            yield

    def load_state(self) -> InboxState:
        return self.store.load(now=self.now())

    def save_state(self, state: InboxState) -> InboxState:
        with self.locked():
            self.store.save(state)
        self.events.emit_state(state)
        return state

    def mutate(self, change: Callable[[InboxState], InboxState]) -> InboxState:
        with self.locked():
            state = self.store.load(now=self.now())
            updated = change(state)
            if updated is not state:
                self.store.save(updated)
        if updated is not state:
            self.events.emit_state(updated)
        return updated

    # ------------------------------------------------------------------ #
    # Sources                                                              #
    # ------------------------------------------------------------------ #

    def add_source(self, source: PRSource) -> InboxState:
        logger.info("Adding %s source %r", source.kind, source.name)
        return self.mutate(lambda s: inbox.add_source(s, source))

    def add_query_source(self, name: str, query: str) -> QuerySource:
        source = QuerySource(id=new_source_id(), name=name, query=query)
        self.add_source(source)
        return source

    def add_channel_source(self, name: str, channel_name: str) -> ChannelSource:
        source = ChannelSource(id=new_source_id(), name=name, channel_name=channel_name.lstrip("#"))
        self.add_source(source)
        return source

    def remove_source(self, source_id: str) -> InboxState:
        logger.info("Removing source %s and its PRs", source_id)
        return self.mutate(lambda s: inbox.remove_source(s, source_id))

    def update_source(self, source_id: str, patch: dict) -> InboxState:
        return self.mutate(lambda s: inbox.update_source(s, source_id, patch))

    # ------------------------------------------------------------------ #
    # PRs                                                                  #
    # ------------------------------------------------------------------ #

    def ignore_pr(self, pr_id: str) -> InboxState:
        return self.mutate(lambda s: inbox.ignore_pr(s, pr_id, self.now()))

    def move_pr(self, pr_id: str, column: str) -> InboxState:
        return self.mutate(lambda s: inbox.move_pr(s, pr_id, column, self.now()))

    def add_pr(self, reference: str) -> InboxState:
        return self.mutate(lambda s: inbox.add_pr(s, reference, self.now()))

    def set_poll_interval(self, interval_ms: int) -> InboxState:
        return self.mutate(lambda s: inbox.set_poll_interval(s, interval_ms))
