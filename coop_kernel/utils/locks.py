"""
Per-unit mutual exclusion.

An ingestion unit is (cooperative, year, month, module).  At most one
idempotency-check / replace / insert sequence may be in flight per unit.
Two layers provide that guarantee:

* ``UnitLockRegistry`` serializes attempts inside one process.
* ``advisory_lock_key`` derives the 64-bit key for a PostgreSQL
  ``pg_advisory_xact_lock`` so that attempts from different processes
  serialize on the database as well.  The lock is released when the
  transaction ends.
"""

import hashlib
import threading
from collections.abc import Iterator
from contextlib import contextmanager


def unit_token(cooperative_id: str, year: int, month: int, module: str) -> str:
    """Canonical string form of an ingestion unit."""
    return f"{cooperative_id}:{year:04d}-{month:02d}:{module}"


def advisory_lock_key(token: str) -> int:
    """Signed 64-bit key for ``pg_advisory_xact_lock``."""
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


class UnitLockRegistry:
    """In-process lock per unit token.

    Locks are created lazily and kept for the life of the registry; the set
    of units is bounded by cooperatives x months x modules.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, token: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(token)
            if lock is None:
                lock = threading.Lock()
                self._locks[token] = lock
            return lock

    @contextmanager
    def hold(self, token: str) -> Iterator[None]:
        lock = self._lock_for(token)
        with lock:
            yield

    def is_held(self, token: str) -> bool:
        return self._lock_for(token).locked()
