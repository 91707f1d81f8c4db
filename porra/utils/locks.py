"""
Process-local keyed locks.

Serializes read-modify-write sections that share a composite identity, e.g.
``("vote", player_id, race_id)`` or ``("score", race_id, session_id)``.
These locks do not synchronize multiple worker processes; the vote update is
additionally guarded by a compare-and-swap and scoring by a row lock at the
database level.

A key's lock is dropped once nobody holds or waits for it.
"""

import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)

# key -> [lock, number of holders and waiters]
_locks = {}
_master_lock = threading.Lock()


def _checkout(key):
    with _master_lock:
        entry = _locks.get(key)
        if entry is None:
            entry = _locks[key] = [threading.Lock(), 0]
        entry[1] += 1
        return entry[0]


def _checkin(key):
    with _master_lock:
        entry = _locks[key]
        entry[1] -= 1
        if entry[1] == 0:
            del _locks[key]


def active_lock_count():
    """Number of keys currently held or waited on"""
    with _master_lock:
        return len(_locks)


@contextmanager
def keyed_lock(*key, timeout=None):
    """
    Hold an exclusive lock for ``key`` for the duration of the block.

    Raises:
        TimeoutError: the lock could not be acquired within ``timeout`` seconds
    """
    key = tuple(key)
    lock = _checkout(key)

    try:
        if timeout is None:
            acquired = lock.acquire()
        else:
            acquired = lock.acquire(timeout=max(float(timeout), 0.0))

        if not acquired:
            raise TimeoutError(f"Could not acquire lock for {key} within {timeout}s")

        try:
            yield
        finally:
            lock.release()
    finally:
        _checkin(key)
