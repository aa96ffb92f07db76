"""Advisory single-flight lock for popups.

The lock is a small JSON file per notification group.  Its presence means a
popup for that group is on screen and further notifications for the group
should be dropped.  A helper that is killed cannot clean up after itself, so
a lock only counts while it is younger than twice its popup timeout and the
process that owns it is still alive.
"""

from __future__ import annotations

import json
import os
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path

import psutil

from codex_notify.config import DEFAULT_APPROVAL_TIMEOUT_SECONDS
from codex_notify.logger import logger
from codex_notify.utils import write_file_atomic

STALE_FACTOR = 2


@dataclass(frozen=True)
class LockRecord:
    pid: int
    created_at: float
    timeout_seconds: int
    group: str = ""


class InteractionLock:
    """One lock file, keyed by notification group."""

    def __init__(self, path: Path, *, clock: Callable[[], float] = time.time) -> None:
        self.path = path
        self._clock = clock

    @classmethod
    def for_group(
        cls, lock_dir: Path, group: str, *, clock: Callable[[], float] = time.time
    ) -> InteractionLock:
        return cls(lock_dir / f"{group}.lock", clock=clock)

    def claim(self, timeout_seconds: int, group: str = "", pid: int | None = None) -> bool:
        """Create the lock only when no live lock exists.

        The file is created exclusively, so of two hooks racing for the same
        group exactly one wins.  A stale lock is removed and the create retried
        once.  The owner defaults to this process; :meth:`acquire` rewrites it
        with the helper's pid once the helper is running.
        """
        record = LockRecord(
            pid=pid or os.getpid(),
            created_at=self._clock(),
            timeout_seconds=timeout_seconds,
            group=group,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(2):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                if self.is_held():
                    return False
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(json.dumps(asdict(record)) + "\n")
            return True
        return False

    def acquire(self, pid: int, timeout_seconds: int, group: str = "") -> LockRecord:
        record = LockRecord(
            pid=pid,
            created_at=self._clock(),
            timeout_seconds=timeout_seconds,
            group=group,
        )
        write_file_atomic(self.path, json.dumps(asdict(record)) + "\n")
        return record

    def read(self) -> LockRecord | None:
        """Return the current record, or ``None`` when there is no lock.

        A marker that is not valid JSON is still a lock; its age comes from
        the file's mtime and it has no owner pid.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        try:
            data = json.loads(text)
            return LockRecord(
                pid=int(data.get("pid") or 0),
                created_at=float(data.get("created_at") or mtime),
                timeout_seconds=int(
                    data.get("timeout_seconds") or DEFAULT_APPROVAL_TIMEOUT_SECONDS
                ),
                group=str(data.get("group") or ""),
            )
        except (ValueError, TypeError, AttributeError):
            return LockRecord(
                pid=0, created_at=mtime, timeout_seconds=DEFAULT_APPROVAL_TIMEOUT_SECONDS
            )

    def is_stale(self, record: LockRecord) -> bool:
        age = self._clock() - record.created_at
        if age > record.timeout_seconds * STALE_FACTOR:
            return True
        return bool(record.pid) and not psutil.pid_exists(record.pid)

    def is_held(self) -> bool:
        """Advisory check; stale locks are removed and reported as free."""
        record = self.read()
        if record is None:
            return False
        if self.is_stale(record):
            logger.info("removing stale interaction lock %s (pid %s)", self.path, record.pid)
            self.release()
            return False
        return True

    def release(self) -> None:
        self.path.unlink(missing_ok=True)
