"""Exclusive lock — a lease file serializing submissions to one target.

The marker `<lock_dir>/<key>.lock` is created with exclusive-create
semantics and holds a JSON lease naming its owner and expiry. A lease
past its expiry, or an unreadable marker older than one lease period,
belongs to a process that died without releasing it and is reclaimed.

Failing to acquire is fatal for the caller: held() raises LockContention
before any ledger call is made.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from dataproof.errors import LockContention

logger = logging.getLogger(__name__)

_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LockHandle:
    """A held lease."""
    key: str
    path: Path
    owner: str
    acquired_utc: datetime
    expires_utc: datetime


class ExclusiveLock:
    """Crash-safe, filesystem-visible mutual exclusion for one key.

    Usage:
        lock = ExclusiveLock("4200", lock_dir=Path("locks"))
        with lock.held() as handle:
            ...  # submit
    """

    def __init__(
        self,
        key: str,
        lock_dir: Path,
        lease_seconds: float = 6 * 3600.0,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        if lease_seconds <= 0:
            raise ValueError("Lease duration must be positive")
        self.key = key
        self.path = lock_dir / f"{key}.lock"
        self._lease = timedelta(seconds=lease_seconds)
        self._now = now
        self._owner = f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"
        self._handle: Optional[LockHandle] = None

    @property
    def handle(self) -> Optional[LockHandle]:
        return self._handle

    def acquire(self) -> bool:
        """Create the marker. True iff this call now holds the lease."""
        if self._handle is not None:
            raise RuntimeError(f"Lock {self.key} is already held by this handle")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        for attempt in range(2):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                if attempt == 0 and self._reclaim_if_abandoned():
                    continue
                return False
            except OSError as exc:
                logger.warning("Cannot create lock %s: %s", self.path, exc)
                return False

            acquired = self._now()
            handle = LockHandle(
                key=self.key,
                path=self.path,
                owner=self._owner,
                acquired_utc=acquired,
                expires_utc=acquired + self._lease,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._lease_record(handle), f, sort_keys=True)
            self._handle = handle
            return True
        return False

    def release(self) -> None:
        """Remove the marker if this handle still owns it.

        The handle is cleared only once the marker is gone or owned by
        someone else; an OSError from the removal propagates and leaves
        it set.
        """
        handle = self._handle
        if handle is None:
            return

        lease = self.holder()
        if lease is not None and lease.get("owner") != handle.owner:
            logger.warning(
                "Lock %s was reclaimed by %s before release; leaving it in place",
                self.key, lease.get("owner"),
            )
        else:
            try:
                self.path.unlink()
            except FileNotFoundError:
                logger.warning("Lock %s vanished before release", self.key)
        self._handle = None

    def renew(self) -> None:
        """Push the lease expiry one lease period past now."""
        handle = self._handle
        if handle is None:
            raise RuntimeError(f"Lock {self.key} is not held")
        lease = self.holder()
        if lease is None or lease.get("owner") != handle.owner:
            raise LockContention(self.key, lease)

        handle.expires_utc = self._now() + self._lease
        tmp = self.path.with_name(f"{self.path.name}.{uuid.uuid4().hex[:8]}.tmp")
        tmp.write_text(json.dumps(self._lease_record(handle), sort_keys=True), encoding="utf-8")
        os.replace(tmp, self.path)

    def holder(self) -> Optional[dict[str, Any]]:
        """Return the current lease on disk, or None if absent or unreadable."""
        return _read_lease(self.path)

    @contextmanager
    def held(self) -> Iterator[LockHandle]:
        """Hold the lock for the duration of the block.

        Raises LockContention if another owner holds a live lease.
        Release is guaranteed on every exit path.
        """
        if not self.acquire():
            raise LockContention(self.key, self.holder())
        try:
            yield self._handle
        finally:
            self.release()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _lease_record(self, handle: LockHandle) -> dict[str, Any]:
        return {
            "key": handle.key,
            "owner": handle.owner,
            "pid": os.getpid(),
            "host": socket.gethostname(),
            "acquired_utc": handle.acquired_utc.strftime(_TIME_FORMAT),
            "expires_utc": handle.expires_utc.strftime(_TIME_FORMAT),
        }

    def _is_abandoned(self, lease: Optional[dict[str, Any]], path: Path) -> bool:
        now = self._now()
        if lease is None:
            try:
                modified = datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)
            except FileNotFoundError:
                return True
            return now - modified > self._lease
        try:
            expires = datetime.strptime(lease["expires_utc"], _TIME_FORMAT).replace(
                tzinfo=timezone.utc,
            )
        except (KeyError, TypeError, ValueError):
            return True
        return now >= expires

    def _reclaim_if_abandoned(self) -> bool:
        """Move an abandoned marker aside. True if the path is now free."""
        if not self._is_abandoned(self.holder(), self.path):
            return False

        # Rename first so that a lease written between our read and our
        # removal is detected and put back rather than deleted.
        tombstone = self.path.with_name(f"{self.path.name}.{uuid.uuid4().hex[:8]}.stale")
        try:
            os.rename(self.path, tombstone)
        except FileNotFoundError:
            return True

        if not self._is_abandoned(_read_lease(tombstone), tombstone):
            try:
                os.link(tombstone, self.path)
            except FileExistsError:
                pass
            tombstone.unlink()
            return False

        logger.warning("Reclaiming abandoned lock %s", self.path)
        tombstone.unlink()
        return True


def _read_lease(path: Path) -> Optional[dict[str, Any]]:
    try:
        lease = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return lease if isinstance(lease, dict) else None
