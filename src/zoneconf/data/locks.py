"""Per-zone mutual exclusion for read-modify-write cycles."""

import threading
from contextlib import contextmanager
from typing import Dict

class ZoneLockRegistry:
    """One lock per zone id; distinct zones never contend."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def lock_for(self, zone_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(zone_id)
            if lock is None:
                lock = self._locks[zone_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, zone_id: str):
        lock = self.lock_for(zone_id)
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
