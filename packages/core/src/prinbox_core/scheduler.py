"""Poll scheduler: owns the polling cadence and the poll cycle itself.

A cycle, in order:
  1. load the persisted state (retention sweep runs inside the store)
  2. fast path: no enabled sources → stamp last_poll_at, persist, notify
  3. fetch each enabled source in registry order and fold the results in
  4. status-check every non-done PR
  5. stamp last_poll_at with the cycle start time, persist, notify state,
     then notify soft errors

Only one cycle runs at a time (busy flag). Rate limiting seen during an
automatic cycle pushes out an absolute backoff deadline; automatic cycles
before the deadline are skipped. A manual refresh ignores the deadline and
resets the backoff to zero, but still waits its turn behind a running cycle.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Iterable

from prinbox_core.adapters.base import SourceAdapter
from prinbox_core.errors import SourceError, is_rate_limit_error
from prinbox_core.inbox import upsert
from prinbox_core.models import InboxState, PRSource
from prinbox_core.service import InboxService
from prinbox_core.status import DEFAULT_MAX_WORKERS, StatusFn, check_statuses

logger = logging.getLogger(__name__)

MIN_INTERVAL = timedelta(seconds=60)
BACKOFF_BASE = timedelta(minutes=1)
BACKOFF_MAX = timedelta(minutes=30)


@dataclass
class PollResult:
    state: InboxState | None = None
    errors: list[str] = field(default_factory=list)
    skipped: bool = False
    rate_limited: bool = False


class PollScheduler:
    def __init__(
        self,
        service: InboxService,
        adapters: Iterable[SourceAdapter],
        get_status: StatusFn,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self._service = service
        self._adapters = {adapter.kind: adapter for adapter in adapters}
        self._get_status = get_status
        self._max_workers = max_workers

        self._busy = threading.Lock()
        self._backoff = timedelta(0)
        self._backoff_until: datetime | None = None

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------ #
    # Timer                                                                #
    # ------------------------------------------------------------------ #

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def interval(self) -> timedelta:
        state = self._service.load_state()
        return max(timedelta(milliseconds=state.poll_interval_ms), MIN_INTERVAL)

    def start(self) -> None:
        """Run one cycle immediately, then one per interval, on a daemon thread."""
        if self.running:
            return
        interval = self.interval()
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, args=(interval.total_seconds(),), name="prinbox-poller", daemon=True
        )
        self._thread.start()
        logger.info("Polling every %d second(s)", int(interval.total_seconds()))

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self, interval_seconds: float) -> None:
        self.run_automatic()
        while not self._stop.wait(interval_seconds):
            self.run_automatic()

    # ------------------------------------------------------------------ #
    # Backoff                                                              #
    # ------------------------------------------------------------------ #

    @property
    def backoff_until(self) -> datetime | None:
        return self._backoff_until

    def _enter_backoff(self) -> timedelta:
        self._backoff = min(self._backoff * 2 if self._backoff else BACKOFF_BASE, BACKOFF_MAX)
        self._backoff_until = self._service.clock() + self._backoff
        return self._backoff

    def _reset_backoff(self) -> None:
        self._backoff = timedelta(0)
        self._backoff_until = None

    # ------------------------------------------------------------------ #
    # Triggers                                                             #
    # ------------------------------------------------------------------ #

    def run_automatic(self) -> PollResult:
        """Timer-driven cycle: skipped while busy or backing off."""
        if self._backoff_until is not None:
            remaining = self._backoff_until - self._service.clock()
            if remaining > timedelta(0):
                minutes = math.ceil(remaining.total_seconds() / 60)
                message = f"Rate limited, retrying in {minutes} minute(s)"
                logger.info(message)
                self._service.events.emit_error(message)
                return PollResult(errors=[message], skipped=True)
        return self._run(manual=False)

    def trigger_poll_now(self) -> PollResult:
        """Manual refresh: bypasses and resets backoff, respects the busy flag."""
        return self._run(manual=True)

    def _run(self, manual: bool) -> PollResult:
        if not self._busy.acquire(blocking=False):
            logger.debug("Poll already in progress; skipping %s trigger", "manual" if manual else "automatic")
            errors = ["A poll is already in progress"] if manual else []
            for message in errors:
                self._service.events.emit_error(message)
            return PollResult(errors=errors, skipped=True)

        try:
            if manual:
                self._reset_backoff()
            return self._cycle(manual)
        except Exception as e:
            logger.exception("Polling error")
            message = str(e) or type(e).__name__
            self._service.events.emit_error(message)
            return PollResult(errors=[message])
        finally:
            self._busy.release()

    # ------------------------------------------------------------------ #
    # Cycle                                                                #
    # ------------------------------------------------------------------ #

    def _cycle(self, manual: bool) -> PollResult:
        errors: list[str] = []
        rate_limited = False
        store = self._service.store

        with self._service.locked():
            # The watermark is taken before any fetch so messages posted while
            # this cycle runs fall inside the next cycle's window.
            started = self._service.now()
            state = store.load(now=started)
            enabled = state.enabled_sources

            if enabled:
                for source in enabled:
                    try:
                        state = self._poll_source(state, source, errors)
                    except Exception as e:
                        if is_rate_limit_error(e):
                            rate_limited = True
                            message = f"Rate limited while polling {source.name}"
                        else:
                            message = f"Error polling {source.name}: {e}"
                        logger.warning(message)
                        errors.append(message)

                report = check_statuses(state, self._get_status, self._service.now(), self._max_workers)
                state = report.state
                if any(is_rate_limit_error(exc) for _, exc in report.failures):
                    rate_limited = True
                    errors.append("Rate limited while checking PR status")
                logger.debug("Status-checked %d PR(s), %d failure(s)", report.checked, len(report.failures))

            state = replace(state, last_poll_at=started)
            store.save(state)

        if rate_limited and not manual:
            backoff = self._enter_backoff()
            errors.append(f"Backing off for {math.ceil(backoff.total_seconds() / 60)} minute(s)")

        self._service.events.emit_state(state)
        for message in errors:
            self._service.events.emit_error(message)
        return PollResult(state=state, errors=errors, rate_limited=rate_limited)

    def _poll_source(self, state: InboxState, source: PRSource, errors: list[str]) -> InboxState:
        adapter = self._adapters.get(source.kind)
        if adapter is None:
            raise SourceError(f"no adapter registered for {source.kind} sources")

        # Only sources that have already produced PRs get an incremental window;
        # a new source looks back over its full default range.
        has_prs = any(pr.source_id == source.id for pr in state.prs)
        since = state.last_poll_at if has_prs else None

        result = adapter.fetch(source, since)
        errors.extend(result.errors)
        logger.debug("Source %r returned %d PR(s)", source.name, len(result.prs))
        return upsert(state, result.prs, source, self._service.now())
