"""
Detector - Watches one root directory for repositories appearing or vanishing.

Uses watchdog for cross-platform monitoring. A `.git` directory (or its
HEAD marker) showing up schedules a read of the working tree after the
creation settle delay; one disappearing schedules a deletion report. Events
for the same working tree are coalesced, and the last one wins.
"""

import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .interfaces import RepositoryDetector, RepositoryReader
from .models import normalize_path
from .reader import GIT_DIR, HEAD_FILE


logger = logging.getLogger(__name__)


class MarkerChange(Enum):
    """What happened to a repository marker."""
    APPEARED = "appeared"
    VANISHED = "vanished"


@dataclass
class PendingChange:
    """A settle timer waiting to report a working tree."""
    path: str
    change: MarkerChange
    timer: threading.Timer


def marker_working_tree(path: str) -> Optional[str]:
    """
    Working tree path if `path` is a repository marker, else None.

    Markers are a `.git` entry or the `HEAD` file directly inside `.git`.
    """
    path = normalize_path(path)
    name = os.path.basename(path)
    parent = os.path.dirname(path)
    if name == GIT_DIR:
        return parent
    if name == HEAD_FILE and os.path.basename(parent) == GIT_DIR:
        return os.path.dirname(parent)
    return None


class _MarkerEventHandler(FileSystemEventHandler):
    """Translates watchdog events into marker changes for the detector."""

    def __init__(self, detector: "FileSystemRepositoryDetector"):
        self.detector = detector

    def on_created(self, event: FileSystemEvent):
        self._queue(event.src_path, MarkerChange.APPEARED)

    def on_deleted(self, event: FileSystemEvent):
        self._queue(event.src_path, MarkerChange.VANISHED)

    def on_moved(self, event: FileSystemEvent):
        self._queue(event.src_path, MarkerChange.VANISHED)
        self._queue(event.dest_path, MarkerChange.APPEARED)

    def _queue(self, raw_path, change: MarkerChange):
        if not raw_path:
            return
        working_tree = marker_working_tree(os.fsdecode(raw_path))
        if working_tree:
            self.detector._queue_change(working_tree, change)


class FileSystemRepositoryDetector(RepositoryDetector):
    """
    watchdog-backed detector for one root.

    The watchdog thread only arms timers; callbacks fire from the timer
    threads. start() may be called again after stop().
    """

    def __init__(self, reader: RepositoryReader):
        self._reader = reader
        self.on_add_or_change = None
        self.on_delete = None

        self.path: str = ""
        self.detection_delay_ms: int = 0
        self._observer = None
        self._handler = _MarkerEventHandler(self)
        self._pending: Dict[str, PendingChange] = {}
        self._in_flight: Set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._running = False

    def setup(self, path: str, detection_delay_ms: int) -> None:
        self.path = normalize_path(path)
        self.detection_delay_ms = detection_delay_ms

    def start(self) -> None:
        if self._running:
            return
        if not self.path:
            raise RuntimeError("Detector started before setup()")

        # watchdog observers are threads and cannot be restarted
        self._observer = Observer()
        self._observer.schedule(self._handler, self.path, recursive=True)

        with self._lock:
            self._running = True
        self._observer.start()
        logger.info(f"Watching root: {self.path}")

    def stop(self) -> None:
        with self._lock:
            self._running = False
            timers = [item.timer for item in self._pending.values()]
            timers.extend(self._in_flight)
            self._pending.clear()

        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

        # Timers already running a callback are joined so nothing fires after stop()
        current = threading.current_thread()
        for timer in timers:
            timer.cancel()
            if timer is not current and timer.is_alive():
                timer.join()

        logger.debug(f"Stopped watching root: {self.path}")

    @property
    def running(self) -> bool:
        return self._running

    def get_pending_count(self) -> int:
        """Number of working trees waiting for their settle delay."""
        with self._lock:
            return len(self._pending)

    def _queue_change(self, working_tree: str, change: MarkerChange):
        """Coalesce a marker change and (re)arm its settle timer."""
        with self._lock:
            if not self._running:
                return

            existing = self._pending.get(working_tree)
            if existing:
                existing.timer.cancel()

            timer = threading.Timer(
                self.detection_delay_ms / 1000.0,
                self._fire,
                args=(working_tree,),
            )
            timer.daemon = True
            self._pending[working_tree] = PendingChange(working_tree, change, timer)
            timer.start()

    def _fire(self, working_tree: str):
        current = threading.current_thread()
        with self._lock:
            item = self._pending.get(working_tree)
            if not self._running or item is None or item.timer is not current:
                return
            del self._pending[working_tree]
            self._in_flight.add(current)

        try:
            if item.change is MarkerChange.APPEARED:
                repo = self._reader.read_repository(working_tree)
                if repo.was_found and self.on_add_or_change:
                    self.on_add_or_change(repo)
            else:
                if self.on_delete and not os.path.exists(os.path.join(working_tree, GIT_DIR)):
                    self.on_delete(working_tree)
        finally:
            with self._lock:
                self._in_flight.discard(current)


def detector_factory(reader: RepositoryReader) -> Callable[[], RepositoryDetector]:
    """Factory producing detectors that share one reader."""
    def create() -> RepositoryDetector:
        return FileSystemRepositoryDetector(reader)
    return create
