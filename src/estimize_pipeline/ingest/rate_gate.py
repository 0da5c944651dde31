"""Process-wide gate bounding how often requests may be issued.

`RateGate(occurrences, time_unit)` lets at most `occurrences` callers through
in any window of `time_unit` seconds. Callers reserve a slot under a lock and
then sleep outside it until their slot arrives, so slots are handed out in
arrival order and a sleeping caller never holds up later reservations.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable


class RateGate:
    """Sliding-window request gate shared by all fetch threads.

    Args:
        occurrences: Number of permits granted per window.
        time_unit: Window length in seconds.
        clock: Monotonic time source, injectable for tests.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        occurrences: int,
        time_unit: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if occurrences <= 0:
            raise ValueError("occurrences must be positive")
        if time_unit <= 0:
            raise ValueError("time_unit must be positive")
        self.occurrences = occurrences
        self.time_unit = time_unit
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        # Slot times of the most recent `occurrences` permits, oldest first.
        self._granted: deque[float] = deque()

    def _reserve(self) -> float:
        with self._lock:
            now = self._clock()
            slot = now
            if len(self._granted) == self.occurrences:
                slot = max(now, self._granted[0] + self.time_unit)
                self._granted.popleft()
            if self._granted:
                slot = max(slot, self._granted[-1])
            self._granted.append(slot)
            return slot

    def wait_to_proceed(self) -> float:
        """Block until the caller may issue one request.

        Returns:
            The clock time of the slot that was granted.
        """
        slot = self._reserve()
        delay = slot - self._clock()
        if delay > 0:
            self._sleep(delay)
        return slot
