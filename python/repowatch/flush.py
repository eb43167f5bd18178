"""
Flush Scheduler - Debounced persistence of the known repository paths.

A single countdown is cancelled and restarted on every schedule() call, so
a burst of discoveries produces one write once the burst goes quiet.
"""

import logging
import threading
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class FlushScheduler:
    """
    Cancel-and-restart delayed action.

    There is never more than one pending timer, and the callback never runs
    concurrently with itself.
    """

    def __init__(self, callback: Callable[[], None], delay_ms: int = 5000):
        self._callback = callback
        self.delay_ms = delay_ms
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._run_lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._timer_lock:
            return self._timer is not None

    def schedule(self) -> None:
        """(Re)arm the countdown."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.delay_ms / 1000.0, self._fire)
            timer.daemon = True
            timer.name = "repo-store-flush"
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush_now(self) -> None:
        """Disarm any pending countdown and run the callback immediately."""
        self.cancel()
        self._run()

    def _fire(self) -> None:
        with self._timer_lock:
            # A newer schedule() replaced this timer after it started firing
            if self._timer is None or self._timer is not threading.current_thread():
                return
            self._timer = None
        self._run()

    def _run(self) -> None:
        with self._run_lock:
            logger.debug("Flushing repository store")
            self._callback()
