import threading
from contextlib import contextmanager
from typing import Hashable, Iterator

from trainer_booking.core.deadline import Deadline, lock_timeout
from trainer_booking.core.errors import OperationCancelledError


class ReadWriteLock:
    """Many readers or one writer. Writers wait for active readers to drain."""

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self, deadline: Deadline | None = None) -> Iterator[None]:
        with self._condition:
            acquired = self._condition.wait_for(
                lambda: not self._writer and self._waiting_writers == 0,
                timeout=_wait_timeout(deadline),
            )
            if not acquired:
                raise OperationCancelledError('waiting for read access cancelled')
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self, deadline: Deadline | None = None) -> Iterator[None]:
        with self._condition:
            self._waiting_writers += 1
            try:
                acquired = self._condition.wait_for(
                    lambda: not self._writer and self._readers == 0,
                    timeout=_wait_timeout(deadline),
                )
            finally:
                self._waiting_writers -= 1
            if not acquired:
                self._condition.notify_all()
                raise OperationCancelledError('waiting for write access cancelled')
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()


class _KeyedLock:
    __slots__ = ('lock', 'users')

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLocks:
    """One mutex per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, _KeyedLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: Hashable) -> _KeyedLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyedLock()
            entry.users += 1
            return entry

    def _checkin(self, key: Hashable, entry: _KeyedLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, keys: list[tuple[str, int]], deadline: Deadline | None = None) -> Iterator[None]:
        # Sorted acquisition keeps two callers from deadlocking on the same pair.
        held: list[tuple[Hashable, _KeyedLock]] = []
        try:
            for key in sorted(set(keys)):
                entry = self._checkout(key)
                if not entry.lock.acquire(timeout=lock_timeout(deadline)):
                    self._checkin(key, entry)
                    raise OperationCancelledError(f'waiting for booking lock {key[0]} {key[1]} cancelled')
                held.append((key, entry))
            yield
        finally:
            for key, entry in reversed(held):
                entry.lock.release()
                self._checkin(key, entry)


def booking_keys(trainer_id: int, user_id: int) -> list[tuple[str, int]]:
    return [('trainer', trainer_id), ('user', user_id)]


def _wait_timeout(deadline: Deadline | None) -> float | None:
    timeout = lock_timeout(deadline)
    return None if timeout < 0 else timeout
