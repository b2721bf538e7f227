"""Run progress counters and the single-flight run guard."""

import threading
import time

from models import PRProcessResult, ProgressSnapshot


class ProgressTracker:
    """Counters for the active run, written by the scheduler and polled over HTTP."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._processed = 0
        self._found = 0
        self._current_pr = 0

    def _clear(self, total: int) -> None:
        self._total = total
        self._processed = 0
        self._found = 0
        self._current_pr = 0

    def reset(self) -> None:
        with self._lock:
            self._clear(0)

    def begin_fetch(self) -> None:
        """Reset and mark the PR list as being fetched (total = -1)."""
        with self._lock:
            self._clear(-1)

    def set_total(self, total: int) -> None:
        with self._lock:
            self._total = total

    def record(self, result: PRProcessResult) -> None:
        with self._lock:
            self._processed += 1
            self._current_pr = result.pull_request_id
            if result.has_content:
                self._found += 1

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                total=self._total,
                processed=self._processed,
                found=self._found,
                current_pr=self._current_pr,
            )


class RunGuard:
    """Allows at most one run at a time and remembers when the last one started."""

    def __init__(self, clock=time.monotonic) -> None:
        self._lock = threading.Lock()
        self._running = False
        self._last_started: float | None = None
        self._clock = clock

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._running

    def try_acquire(self) -> bool:
        with self._lock:
            if self._running:
                return False
            self._running = True
            self._last_started = self._clock()
            return True

    def release(self) -> None:
        with self._lock:
            self._running = False

    def refresh_due(self, window: float) -> bool:
        """True if no run is active and none has started within the last ``window`` seconds."""
        with self._lock:
            if self._running:
                return False
            if self._last_started is None:
                return True
            return self._clock() - self._last_started >= window
