"""Per-ticket locks for the check-then-create step of issue mirroring"""

import threading
from contextlib import contextmanager


class TicketLocks:
    """Keyed locks, one per Linear ticket id, held only while creating.

    This only serializes deliveries handled by the same process; across
    workers the unique constraint on synced_issues is the last line.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}
        self._holders = {}

    @contextmanager
    def hold(self, key: str):
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
                    self._holders.pop(key, None)
                    self._locks.pop(key, None)
