import threading
from contextlib import contextmanager


class KeyedLock:
    """
    One mutex per key, created on demand.

    Serializes writers of the same key inside a process; the database row lock
    does the same across processes.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}
        self._users = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    @contextmanager
    def hold_many(self, keys):
        """Acquire several keys in sorted order to avoid lock-order deadlocks."""
        ordered = sorted(set(keys))
        with _nested(self, ordered):
            yield


@contextmanager
def _nested(keyed, keys):
    if not keys:
        yield
        return
    with keyed.hold(keys[0]):
        with _nested(keyed, keys[1:]):
            yield
