import threading
import time


class EditThrottle:
    """Token-bucket limiter spacing edits ``average_time_per_edit`` seconds apart.

    A non-positive average disables throttling.
    """

    def __init__(self, average_time_per_edit, sleep=time.sleep, clock=time.monotonic):
        self.average_time_per_edit = average_time_per_edit or 0
        self._sleep = sleep
        self._clock = clock
        self._tokens = 1.0
        self._last_check = clock()
        self._lock = threading.Lock()

    @property
    def rate(self):
        if self.average_time_per_edit <= 0:
            return 0
        return 1.0 / self.average_time_per_edit

    def acquire(self):
        rate = self.rate
        if rate <= 0:
            return
        with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._last_check)
            self._tokens = min(1.0, self._tokens + elapsed * rate)
            self._last_check = now
            if self._tokens >= 1:
                self._tokens -= 1
                return
            sleep_for = (1 - self._tokens) / rate
            # the wait pays for this edit's token
            self._tokens = 0.0
            self._last_check = now + sleep_for
        self._sleep(sleep_for)
