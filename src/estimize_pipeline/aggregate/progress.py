"""Thread-safe coarse progress logging."""

from __future__ import annotations

import logging
import math
import threading

log = logging.getLogger(__name__)


class ProgressReporter:
    """Counts finished tasks and logs each time another `step` fraction completes.

    Args:
        total: Number of tasks expected.
        step: Fraction between log lines (0.05 logs every 5%).
    """

    def __init__(self, total: int, step: float = 0.05) -> None:
        self.total = total
        self.step = step
        self._done = 0
        self._logged_steps = 0
        self._lock = threading.Lock()

    @property
    def done(self) -> int:
        with self._lock:
            return self._done

    def advance(self) -> None:
        with self._lock:
            self._done += 1
            done = self._done
            if self.total <= 0:
                return
            steps = math.floor(done / self.total / self.step + 1e-9)
            if steps <= self._logged_steps:
                return
            self._logged_steps = steps
        log.info("%.2f%% complete (%d/%d)", done / self.total * 100, done, self.total)
