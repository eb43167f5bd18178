"""
Base classes for the collaborators the monitor consumes.

The monitor only talks to these contracts. Default implementations live in
their own modules (paths, crawler, reader, detector, observer, store,
autofetch); tests substitute in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from .models import Repository


class PathProvider(ABC):
    """Supplies the root directories to scan and watch."""

    @abstractmethod
    def get_paths(self) -> List[str]:
        """Ordered list of root directories."""
        pass


class PathCrawler(ABC):
    """Walks one root and reports every candidate repository path."""

    @abstractmethod
    def find(self, root: str, on_found: Callable[[str], None]) -> None:
        """
        Crawl `root` synchronously, calling `on_found(path)` per candidate.

        Runs on a worker thread; returns once the whole tree is crawled.
        """
        pass


class RepositoryReader(ABC):
    """Resolves a path to a Repository snapshot."""

    @abstractmethod
    def read_repository(self, path: str) -> Repository:
        """
        Read the repository at (or containing the marker at) `path`.

        Must be safe to call concurrently from any thread. Failures are
        returned as `Repository.not_found(path)`, never raised.
        """
        pass


class RepositoryDetector(ABC):
    """
    Watches one root for repositories appearing or disappearing.

    `on_delete` means a repository marker vanished under the root, not the
    root itself being removed.
    """

    on_add_or_change: Optional[Callable[[Repository], None]] = None
    on_delete: Optional[Callable[[str], None]] = None

    @abstractmethod
    def setup(self, path: str, detection_delay_ms: int) -> None:
        pass

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop watching. No callback fires after this returns."""
        pass


class RepositoryObserver(ABC):
    """Watches one known repository for changes inside it."""

    on_change: Optional[Callable[[Repository], None]] = None

    @abstractmethod
    def setup(self, repository: Repository, detection_delay_ms: int) -> None:
        pass

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop watching. No callback fires after this returns."""
        pass

    def dispose(self) -> None:
        """Release watch resources; the observer is not restarted afterwards."""
        self.stop()
        self.on_change = None


class RepositoryStore(ABC):
    """Persists the ordered list of known repository paths."""

    @abstractmethod
    def get(self) -> List[str]:
        pass

    @abstractmethod
    def set(self, paths: Sequence[str]) -> None:
        """Overwrite the persisted list."""
        pass


class AutoFetchHandler(ABC):
    """On/off switch for background fetching of known repositories."""

    @property
    @abstractmethod
    def active(self) -> bool:
        pass

    @active.setter
    @abstractmethod
    def active(self, value: bool) -> None:
        pass


DetectorFactory = Callable[[], RepositoryDetector]
ObserverFactory = Callable[[], RepositoryObserver]
CrawlerFactory = Callable[[], PathCrawler]
