"""Per-key mutual exclusion inside one process."""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLock:
    """Hand out one ``threading.Lock`` per key.

    Holders of different keys never block each other.  Locks are kept in a
    ``WeakValueDictionary`` so keys nobody is waiting on are released.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[Hashable, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._guard = threading.Lock()

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield
