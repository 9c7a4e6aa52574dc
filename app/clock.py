import threading
from datetime import datetime, timedelta, timezone


class MonotonicClock:
    """Naive-UTC clock whose readings strictly increase within the process.

    Message ordering relies on ``created_at``; two sends landing in the same
    microsecond (or a wall clock stepping backwards) must still sort in the
    order they were stamped.
    """

    _tick = timedelta(microseconds=1)

    def __init__(self):
        self._lock = threading.Lock()
        self._last = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc).replace(tzinfo=None)
        with self._lock:
            if self._last is not None and current <= self._last:
                current = self._last + self._tick
            self._last = current
            return current


clock = MonotonicClock()


def utcnow() -> datetime:
    return clock.now()
