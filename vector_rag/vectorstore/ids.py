"""Point id allocation."""

import threading
import time
from collections.abc import Callable

MAX_POINT_ID = 2**64 - 1


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class TimestampIdGenerator:
    """Millisecond-timestamp ids that never repeat within a process.

    When the clock has not advanced since the last id (several writes in
    the same millisecond, or the clock stepping back), the previous id
    plus one is returned instead. Two processes writing to the same
    collection can still collide.
    """

    def __init__(self, clock: Callable[[], int] = _epoch_millis) -> None:
        self._clock = clock
        self._last = -1
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = self._clock() & MAX_POINT_ID
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate
