"""
Aggregator - Authoritative in-memory table of known repositories.

Also holds the observer registry: the one live per-repository watcher per
known path. Both tolerate concurrent writers from detector/observer threads
and concurrent readers such as the flush callback.
"""

import threading
from typing import Dict, List, Optional

from .interfaces import RepositoryObserver
from .models import Repository, normalize_path


class RepositoryAggregator:
    """
    Mapping of normalized path to the latest found snapshot.

    Listing order is the order in which paths were first added; upserting a
    known path keeps its position.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._repositories: Dict[str, Repository] = {}

    def has_repository(self, path: str) -> bool:
        with self._lock:
            return normalize_path(path) in self._repositories

    def get(self, path: str) -> Optional[Repository]:
        with self._lock:
            return self._repositories.get(normalize_path(path))

    def add(self, repository: Repository) -> None:
        """Insert or replace the snapshot stored under its path."""
        if not repository.path:
            return
        with self._lock:
            self._repositories[repository.path] = repository

    def remove_by_path(self, path: str) -> bool:
        with self._lock:
            return self._repositories.pop(normalize_path(path), None) is not None

    def reset(self) -> None:
        with self._lock:
            self._repositories.clear()

    @property
    def repositories(self) -> List[Repository]:
        """Copy of all current snapshots."""
        with self._lock:
            return list(self._repositories.values())

    @property
    def paths(self) -> List[str]:
        with self._lock:
            return list(self._repositories.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._repositories)

    def __contains__(self, path: str) -> bool:
        return self.has_repository(path)


class ObserverRegistry:
    """Mapping of normalized path to its live RepositoryObserver."""

    def __init__(self):
        self._lock = threading.RLock()
        self._observers: Dict[str, RepositoryObserver] = {}

    def contains(self, path: str) -> bool:
        with self._lock:
            return normalize_path(path) in self._observers

    def get(self, path: str) -> Optional[RepositoryObserver]:
        with self._lock:
            return self._observers.get(normalize_path(path))

    def add(self, path: str, observer: RepositoryObserver) -> None:
        key = normalize_path(path)
        with self._lock:
            if key in self._observers:
                raise KeyError(f"Observer already registered for {key}")
            self._observers[key] = observer

    def pop(self, path: str) -> Optional[RepositoryObserver]:
        with self._lock:
            return self._observers.pop(normalize_path(path), None)

    def drain(self) -> List[RepositoryObserver]:
        """Remove and return every registered observer."""
        with self._lock:
            observers = list(self._observers.values())
            self._observers.clear()
            return observers

    @property
    def paths(self) -> List[str]:
        with self._lock:
            return list(self._observers.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)
