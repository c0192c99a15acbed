"""JSONFileStore: the default local store.

The inbox document lives in a single pretty-printed JSON file. Writes go to a
sibling temp file that is then renamed over the target, so a crash mid-write
leaves the previous document intact.

Every process that shares the file (a running `prinbox watch`, a one-off CLI
command) takes an advisory flock on a sibling ".lock" file around its
load-modify-save, so a command issued mid-cycle waits for the cycle to save
instead of being overwritten by it.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from prinbox_store.base import BaseStore

logger = logging.getLogger(__name__)


class FileLock:
    """Re-entrant exclusive flock on a lock file.

    Threads in this process queue on an RLock; the flock itself is taken once
    by the outermost holder and released when it exits.
    """

    def __init__(self, path: Path):
        self.path = path
        self._guard = threading.RLock()
        self._depth = 0
        self._fd = None

    def __enter__(self) -> FileLock:
        self._guard.acquire()
        if self._depth == 0:
            try:
                self._acquire()
            except BaseException:
                self._guard.release()
                raise
        self._depth += 1
        return self

    def __exit__(self, *exc) -> None:
        self._depth -= 1
        try:
            if self._depth == 0:
                self._release()
        finally:
            self._guard.release()

    def _acquire(self) -> None:
        import fcntl

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fd = open(self.path, "w")
        try:
            fcntl.flock(self._fd, fcntl.LOCK_EX)
        except BaseException:
            self._fd.close()
            self._fd = None
            raise

    def _release(self) -> None:
        import fcntl

        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            self._fd.close()
            self._fd = None


class JSONFileStore(BaseStore):
    def __init__(self, path: str):
        self._path = Path(path)
        self._lock = FileLock(self._path.with_name(self._path.name + ".lock"))

    @property
    def path(self) -> Path:
        return self._path

    def locked(self) -> FileLock:
        return self._lock

    def _read(self) -> dict | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("Could not parse %s, starting fresh: %s", self._path, e)
            return None
        return data if isinstance(data, dict) else None

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".inbox-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
