"""
Auto Fetch - Background `git fetch` of known repositories.

A daemon thread walks the known repositories round robin, fetching one per
interval while the handler is active. The monitor only flips `active`;
nothing else is shared with it.
"""

import logging
import shutil
import subprocess
import threading
from typing import Callable, List, Optional

from .config import get_config, AutoFetchMode, MonitorConfig
from .interfaces import AutoFetchHandler


logger = logging.getLogger(__name__)


class GitAutoFetchHandler(AutoFetchHandler):
    """
    Round-robin fetcher gated by an on/off flag.

    Args:
        paths: Callable returning the currently known repository paths
        config: Supplies the fetch mode and git timeout
    """

    def __init__(
        self,
        paths: Callable[[], List[str]],
        config: MonitorConfig | None = None,
        mode: AutoFetchMode | None = None,
    ):
        self.config = config or get_config()
        self.mode = mode or self.config.auto_fetch_mode
        self._paths = paths
        self._git = shutil.which("git")
        self._active = False
        self._position = 0
        self._wake = threading.Event()
        self._closed = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    @active.setter
    def active(self, value: bool) -> None:
        with self._lock:
            self._active = bool(value)
            if self._active and self.mode is not AutoFetchMode.OFF:
                self._ensure_thread()
        self._wake.set()

    def _ensure_thread(self):
        if self._thread is None or not self._thread.is_alive():
            self._closed.clear()
            self._thread = threading.Thread(
                target=self._run, name="repo-auto-fetch", daemon=True
            )
            self._thread.start()

    def _run(self):
        while not self._closed.is_set():
            self._wake.wait(timeout=self.mode.interval_seconds or None)
            self._wake.clear()
            if self._closed.is_set():
                break
            if self._active and self.mode is not AutoFetchMode.OFF:
                self.fetch_next()

    def fetch_next(self) -> Optional[str]:
        """Fetch the next repository in round-robin order; return its path."""
        paths = self._paths()
        if not paths:
            return None

        path = paths[self._position % len(paths)]
        self._position = (self._position + 1) % len(paths)
        self._fetch(path)
        return path

    def _fetch(self, path: str) -> bool:
        if self._git is None:
            logger.warning("git not found; auto fetch disabled")
            return False
        try:
            result = subprocess.run(
                [self._git, "-C", path, "fetch", "--all", "--prune", "--quiet"],
                capture_output=True,
                text=True,
                timeout=max(self.config.git_timeout_s, 60),
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"git fetch timeout for {path}")
            return False
        except OSError as e:
            logger.warning(f"git fetch error for {path}: {e}")
            return False

        if result.returncode != 0:
            logger.warning(f"git fetch failed for {path}: {result.stderr.strip()}")
            return False

        logger.debug(f"Fetched {path}")
        return True

    def close(self):
        """Stop the background thread."""
        with self._lock:
            self._active = False
        self._closed.set()
        self._wake.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)
        self._thread = None
