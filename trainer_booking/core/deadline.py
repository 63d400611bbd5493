import threading
import time

from trainer_booking.core.errors import OperationCancelledError


class Deadline:
    """Cancellation signal passed to every persistence call."""

    def __init__(self, timeout: float | None = None) -> None:
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.remaining() == 0.0

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def check(self, operation: str) -> None:
        if self.cancelled:
            raise OperationCancelledError(f'{operation} cancelled')


def lock_timeout(deadline: 'Deadline | None') -> float:
    """Timeout argument for ``Lock.acquire``; -1 blocks without limit."""
    if deadline is None:
        return -1
    remaining = deadline.remaining()
    return -1 if remaining is None else remaining
