"""Abstract store interface.

The inbox is one JSON document. Backends only move that document in and out
(_read / _write); decoding, defaulting and the retention sweep happen here so
every backend hands the engine an identically cleaned state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager, nullcontext

from prinbox_core.models import InboxState
from prinbox_core.retention import sweep
from prinbox_core.utils.time import to_iso, utcnow
from prinbox_store.codec import state_from_dict, state_to_dict

logger = logging.getLogger(__name__)


class BaseStore(ABC):
    """Durable key-value persistence for the whole InboxState document.

    save() must replace the stored document atomically: a reader sees either
    the previous document or the new one, never a mix.
    """

    def load(self, now: str | None = None) -> InboxState:
        """Return the stored state with the retention sweep applied.

        Missing or undecodable documents yield a fresh default state.
        """
        raw = self._read()
        if raw is None:
            return InboxState()
        try:
            return sweep(state_from_dict(raw), now or to_iso(utcnow()))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("%s: stored inbox state is invalid, starting fresh: %s", self.__class__.__name__, e)
            return InboxState()

    def save(self, state: InboxState) -> None:
        """Persist the full state. Raises on failure."""
        self._write(state_to_dict(state))

    def locked(self) -> AbstractContextManager:
        """Exclusive access to the document across processes sharing it.

        Held around every load-modify-save. Backends without a shared lock
        return a no-op context; callers in one process are still serialised
        by the service lock.
        """
        return nullcontext()

    @abstractmethod
    def _read(self) -> dict | None:
        """Return the stored document, or None if nothing has been stored yet."""

    @abstractmethod
    def _write(self, data: dict) -> None:
        """Replace the stored document with ``data``."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional. Subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
