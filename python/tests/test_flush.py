"""
Flush Scheduler Tests - Verify debounce behavior.

Tests:
- Re-arming collapses a burst into one callback
- flush_now runs immediately and disarms the countdown
- cancel drops a pending callback
"""

import threading
import time

from repowatch.flush import FlushScheduler


class CallbackRecorder:
    def __init__(self):
        self.calls = 0
        self.called = threading.Event()

    def __call__(self):
        self.calls += 1
        self.called.set()


class TestFlushScheduler:
    """Tests for the FlushScheduler class."""

    def test_single_schedule_fires_once(self):
        recorder = CallbackRecorder()
        scheduler = FlushScheduler(recorder, delay_ms=50)

        scheduler.schedule()

        assert recorder.called.wait(timeout=5)
        assert recorder.calls == 1
        assert scheduler.pending is False

    def test_rearming_collapses_burst(self):
        """Repeated schedule() calls inside the window fire once."""
        recorder = CallbackRecorder()
        scheduler = FlushScheduler(recorder, delay_ms=150)

        for _ in range(10):
            scheduler.schedule()
            time.sleep(0.01)

        assert recorder.calls == 0
        assert recorder.called.wait(timeout=5)
        time.sleep(0.3)
        assert recorder.calls == 1

    def test_flush_now(self):
        """flush_now runs synchronously and cancels the countdown."""
        recorder = CallbackRecorder()
        scheduler = FlushScheduler(recorder, delay_ms=100)
        scheduler.schedule()

        scheduler.flush_now()

        assert recorder.calls == 1
        assert scheduler.pending is False
        time.sleep(0.25)
        assert recorder.calls == 1

    def test_cancel(self):
        recorder = CallbackRecorder()
        scheduler = FlushScheduler(recorder, delay_ms=50)
        scheduler.schedule()

        scheduler.cancel()

        time.sleep(0.2)
        assert recorder.calls == 0

    def test_callback_never_overlaps(self):
        """A slow flush blocks a concurrent flush_now until it finishes."""
        running = threading.Event()
        release = threading.Event()
        active = []
        overlaps = []

        def slow():
            if active:
                overlaps.append(True)
            active.append(True)
            running.set()
            release.wait(timeout=5)
            active.pop()

        scheduler = FlushScheduler(slow, delay_ms=10)
        scheduler.schedule()
        assert running.wait(timeout=5)

        flusher = threading.Thread(target=scheduler.flush_now)
        flusher.start()
        time.sleep(0.05)
        release.set()
        flusher.join(timeout=5)

        assert overlaps == []
