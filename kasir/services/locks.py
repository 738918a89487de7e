"""Process-local mutual exclusion for read-modify-write sequences on stored records."""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from threading import Lock


class KeyLockRegistry:
    def __init__(self):
        self._locks: dict[str, Lock] = {}
        self._guard = Lock()

    def _lock_for(self, record_id: str) -> Lock:
        with self._guard:
            lock = self._locks.get(record_id)
            if lock is None:
                lock = Lock()
                self._locks[record_id] = lock
            return lock

    @contextmanager
    def hold(self, record_ids: Iterable[str]) -> Iterator[list[str]]:
        """
        Acquire the lock of every id in ``record_ids``.

        Locks are always taken in sorted id order, so two carts that share
        products cannot wait on each other.
        """
        ordered = sorted(set(record_ids))
        acquired: list[Lock] = []
        try:
            for record_id in ordered:
                lock = self._lock_for(record_id)
                lock.acquire()
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()

    def clear(self) -> None:
        with self._guard:
            self._locks.clear()


# Lock order when both are needed: order first, then its products.
order_locks = KeyLockRegistry()
product_locks = KeyLockRegistry()
