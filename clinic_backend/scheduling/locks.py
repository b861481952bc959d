from contextlib import contextmanager
from datetime import date
from threading import Lock


class _SlotLock:
    __slots__ = ('lock', 'holders')

    def __init__(self):
        self.lock = Lock()
        self.holders = 0


class SlotLockRegistry:
    """Per-process locks keyed by (provider, date).

    Booking and rescheduling hold the lock for the calendar day they write to
    while they re-check availability and insert. Callers must hold at most one
    of these locks at a time. A key's lock is dropped once nobody holds or
    waits on it.
    """

    def __init__(self):
        self._registry_lock = Lock()
        self._locks: dict[tuple[str, date], _SlotLock] = {}

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    def _acquire_entry(self, key: tuple[str, date]) -> _SlotLock:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = _SlotLock()
                self._locks[key] = entry
            entry.holders += 1
            return entry

    def _release_entry(self, key: tuple[str, date], entry: _SlotLock) -> None:
        with self._registry_lock:
            entry.holders -= 1
            if entry.holders == 0 and self._locks.get(key) is entry:
                del self._locks[key]

    @contextmanager
    def hold(self, provider_id: str, day: date):
        key = (provider_id, day)
        entry = self._acquire_entry(key)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(key, entry)


slot_locks = SlotLockRegistry()
