"""Per-record locks for read-modify-write commands on a single order."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLock:
    """A lock per key, created on demand and discarded when no longer held.

    All commands that mutate the same order serialize on that order's lock;
    commands on different orders never contend.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        key = str(key)
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._holders[key] = self._holders.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[key] -= 1
                if self._holders[key] == 0:
                    del self._holders[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every process-local command path that touches an order record.
order_locks = KeyedLock()
