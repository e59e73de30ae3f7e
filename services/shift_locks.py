import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class ShiftLockRegistry:
    """
    One mutex per shift id, so check-and-write for a shift is serialized
    while different shifts never wait on each other.

    Entries are reference counted and dropped once nobody holds or waits on
    them. Build one per application (see main.lifespan) and pass it in.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, _KeyLock] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._locks[key] = entry
            entry.holders += 1

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
