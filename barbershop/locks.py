"""Per-key serialization for booking writes.

Writes for one (professional, date) run one at a time; different keys
proceed in parallel. hold_all() takes every key, for bulk operations such
as wiping the store.

A key's lock lives only while someone holds or waits for it, so a
long-running server does not keep one lock per day ever booked.

Good for: one process with several request-handler threads.
NOT for: several processes or servers (use the SQL store's unique index).
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        # Holders plus waiters
        self.users = 0


class KeyedLock:
    """Mutex per key, created on first use and dropped when idle."""

    def __init__(self, timeout: float = 30):
        """
        Args:
            timeout: Seconds to wait for a key before giving up
        """
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, _Entry] = {}

    @contextmanager
    def hold(self, key: Hashable):
        """
        Hold the lock for key.

        Raises:
            TimeoutError: If the key stays busy longer than timeout
        """
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1

        try:
            if not entry.lock.acquire(timeout=self.timeout):
                raise TimeoutError(f"Timed out waiting for booking lock {key!r}")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._leave(key, entry)

    @contextmanager
    def hold_all(self):
        """Hold every key (existing ones, and block creation of new ones)."""
        with self._guard:
            acquired = []
            try:
                for key, entry in list(self._entries.items()):
                    if not entry.lock.acquire(timeout=self.timeout):
                        raise TimeoutError(f"Timed out waiting for booking lock {key!r}")
                    acquired.append(entry.lock)
                yield
            finally:
                for lock in acquired:
                    lock.release()

    def _leave(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._entries)
