"""
Crawler - File system traversal that finds git working trees.

Walks a root with os.scandir (cached DirEntry stat), reporting every
directory that holds a `.git` entry. Nested repositories are reported too;
the crawler never descends into `.git` itself.
"""

import logging
import os
from collections import deque
from pathlib import Path
from typing import Callable, List

from .config import get_config, MonitorConfig
from .errors import handle_error
from .interfaces import PathCrawler


logger = logging.getLogger(__name__)

GIT_DIR = ".git"


class RepositoryCrawler(PathCrawler):
    """
    Breadth-first crawler for repository working trees.

    Skips configured directories (node_modules, build outputs, caches) and
    does not follow symlinked directories.
    """

    def __init__(self, config: MonitorConfig | None = None):
        self.config = config or get_config()

    def find(self, root: str, on_found: Callable[[str], None]) -> None:
        if not os.path.isdir(root):
            logger.warning(f"Root directory not found: {root}")
            return

        found = 0
        queue = deque([root])

        while queue:
            directory = queue.popleft()
            subdirs, is_repository = self._scan_directory(directory)

            if is_repository:
                found += 1
                on_found(directory)

            queue.extend(subdirs)

        logger.debug(f"Crawled {root}: {found} repositories")

    def find_all(self, root: str) -> List[str]:
        """Convenience wrapper collecting every repository under root."""
        found: List[str] = []
        self.find(root, found.append)
        return found

    def _scan_directory(self, directory: str) -> tuple[List[str], bool]:
        """List one directory; return (subdirectories to visit, is repository)."""
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except (PermissionError, OSError) as e:
            handle_error(e, Path(directory), "crawl")
            return [], False

        subdirs: List[str] = []
        is_repository = False

        for entry in entries:
            if entry.name == GIT_DIR:
                # `.git` is a directory for normal clones, a file for worktrees
                is_repository = True
                continue

            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError as e:
                handle_error(e, Path(entry.path), "crawl_entry")
                continue

            if self._should_skip_dir(entry.name):
                continue
            subdirs.append(entry.path)

        return subdirs, is_repository

    def _should_skip_dir(self, name: str) -> bool:
        """Check if a directory should be skipped."""
        return name in self.config.skip_dirs
