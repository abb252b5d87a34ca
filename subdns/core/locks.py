"""Keyed in-process locks for check-then-act sequences."""

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLock:
    """Hands out one lock per key, so unrelated keys never contend."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield


# Shared by every engine instance in the process.
label_locks = KeyedLock()
zone_locks = KeyedLock()
workload_locks = KeyedLock()
