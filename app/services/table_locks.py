import threading
from contextlib import contextmanager
from typing import Iterator


class TableLockRegistry:
    """
    One mutex per table id, created on first use.

    Held across the availability re-check and the insert/commit, so two
    requests for the same table cannot both pass the check. Requests for
    different tables never wait on each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, table_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(table_id)
            if lock is None:
                lock = self._locks[table_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *table_ids: int) -> Iterator[None]:
        # Sorted acquisition so a move between two tables cannot deadlock
        locks = [self._lock_for(table_id) for table_id in sorted(set(table_ids))]
        acquired = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


table_locks = TableLockRegistry()
