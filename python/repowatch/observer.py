"""
Observer - Real-time change detection inside one known repository.

Uses watchdog with debouncing: any relevant event inside the working tree
(re)arms a single settle timer, and the change callback fires once the
repository has been quiet for the configured delay.
"""

import logging
import os
import threading
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import handle_error
from .interfaces import RepositoryObserver
from .models import Repository
from .reader import GIT_DIR


logger = logging.getLogger(__name__)

# Churn inside .git that never changes what the reader reports
_IGNORED_GIT_SUBDIRS = {"objects", "logs", "lfs", "hooks"}


class _ChangeEventHandler(FileSystemEventHandler):
    def __init__(self, observer: "FileSystemRepositoryObserver"):
        self.observer = observer

    def on_any_event(self, event: FileSystemEvent):
        if event.event_type in ("opened", "closed_no_write"):
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        if any(p and not self.observer._should_skip(os.fsdecode(p)) for p in paths):
            self.observer._queue_change()


class FileSystemRepositoryObserver(RepositoryObserver):
    """
    watchdog-backed observer for one repository working tree.

    stop() halts the watchdog thread and drops a pending settle timer;
    start() may be called again afterwards.
    """

    def __init__(self):
        self.on_change = None
        self.repository: Optional[Repository] = None
        self.detection_delay_ms: int = 0

        self._observer = None
        self._handler = _ChangeEventHandler(self)
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._running = False

    def setup(self, repository: Repository, detection_delay_ms: int) -> None:
        self.repository = repository
        self.detection_delay_ms = detection_delay_ms

    def start(self) -> None:
        if self._running:
            return
        if self.repository is None:
            raise RuntimeError("Observer started before setup()")

        observer = Observer()
        try:
            observer.schedule(self._handler, self.repository.path, recursive=True)
            observer.start()
        except OSError as e:
            # Repository gone or watch limit reached: stay inert
            handle_error(e, self.repository.path, "watch")
            return

        with self._lock:
            self._observer = observer
            self._running = True
        logger.debug(f"Observing repository: {self.repository.path}")

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        if self._observer:
            self._observer.stop()
            if self._observer is not threading.current_thread():
                self._observer.join()
            self._observer = None

    @property
    def running(self) -> bool:
        return self._running

    def _should_skip(self, path: str) -> bool:
        """Check if an event path can be ignored."""
        if path.endswith(".lock"):
            return True

        parts = path.split(os.sep)
        if GIT_DIR in parts:
            index = parts.index(GIT_DIR)
            if len(parts) > index + 1 and parts[index + 1] in _IGNORED_GIT_SUBDIRS:
                return True
        return False

    def _queue_change(self):
        """(Re)arm the settle timer."""
        with self._lock:
            if not self._running:
                return
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.detection_delay_ms / 1000.0, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self):
        with self._lock:
            if not self._running or self._timer is not threading.current_thread():
                return
            self._timer = None
            callback = self.on_change

        if callback:
            callback(self.repository)


def observer_factory() -> Callable[[], RepositoryObserver]:
    """Factory producing watchdog repository observers."""
    return FileSystemRepositoryObserver
