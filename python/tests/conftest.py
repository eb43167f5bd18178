"""
Test Configuration - Shared fixtures for repository monitor tests.

Uses pytest fixtures to create isolated test environments and in-memory
stand-ins for every collaborator the monitor consumes.
"""

import shutil
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Generator, List, Sequence

import pytest

from repowatch.aggregator import RepositoryAggregator
from repowatch.config import MonitorConfig, set_config
from repowatch.interfaces import (
    AutoFetchHandler,
    PathCrawler,
    PathProvider,
    RepositoryDetector,
    RepositoryObserver,
    RepositoryReader,
    RepositoryStore,
)
from repowatch.models import Repository, normalize_path
from repowatch.monitor import RepositoryMonitor


class FakePathProvider(PathProvider):
    def __init__(self, roots: Sequence[str]):
        self.roots = list(roots)

    def get_paths(self) -> List[str]:
        return list(self.roots)


class FakeReader(RepositoryReader):
    """Reports found=True for paths in `found`; thread-safe."""

    def __init__(self, found: Sequence[str] = ()):
        self._lock = threading.Lock()
        self.found = {normalize_path(p) for p in found}
        self.calls: List[str] = []

    def set_found(self, path: str, found: bool):
        with self._lock:
            if found:
                self.found.add(normalize_path(path))
            else:
                self.found.discard(normalize_path(path))

    def read_repository(self, path: str) -> Repository:
        path = normalize_path(path)
        with self._lock:
            self.calls.append(path)
            found = path in self.found
        if found:
            return Repository(path=path, current_branch="main", branches=("main",))
        return Repository.not_found(path)


class FakeCrawler(PathCrawler):
    def __init__(self, candidates: Dict[str, List[str]]):
        self.candidates = candidates

    def find(self, root, on_found):
        for path in self.candidates.get(root, []):
            on_found(path)


class FakeDetector(RepositoryDetector):
    def __init__(self):
        self.on_add_or_change = None
        self.on_delete = None
        self.path = None
        self.delay_ms = None
        self.start_count = 0
        self.stop_count = 0

    def setup(self, path, detection_delay_ms):
        self.path = path
        self.delay_ms = detection_delay_ms

    def start(self):
        self.start_count += 1

    def stop(self):
        self.stop_count += 1

    def fire_add(self, repo: Repository):
        self.on_add_or_change(repo)

    def fire_delete(self, path: str):
        self.on_delete(path)


class FakeObserver(RepositoryObserver):
    def __init__(self):
        self.on_change = None
        self.repository = None
        self.delay_ms = None
        self.started = False
        self.stopped = False
        self.disposed = False

    def setup(self, repository, detection_delay_ms):
        self.repository = repository
        self.delay_ms = detection_delay_ms

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def dispose(self):
        self.stop()
        self.disposed = True

    def trigger(self):
        """Simulate a change inside the repository."""
        if self.on_change:
            self.on_change(self.repository)


class InMemoryStore(RepositoryStore):
    def __init__(self, paths: Sequence[str] = ()):
        self.paths = list(paths)
        self.writes: List[List[str]] = []
        self.written = threading.Event()

    def get(self) -> List[str]:
        return list(self.paths)

    def set(self, paths):
        self.paths = list(paths)
        self.writes.append(list(paths))
        self.written.set()


class FakeAutoFetch(AutoFetchHandler):
    def __init__(self):
        self._active = False
        self.history: List[bool] = []

    @property
    def active(self) -> bool:
        return self._active

    @active.setter
    def active(self, value: bool) -> None:
        self._active = value
        self.history.append(value)


@dataclass
class MonitorHarness:
    """A monitor wired to fakes, plus everything it emitted."""
    monitor: RepositoryMonitor
    reader: FakeReader
    store: InMemoryStore
    crawler: FakeCrawler
    provider: FakePathProvider
    auto_fetch: FakeAutoFetch
    detectors: List[FakeDetector] = field(default_factory=list)
    observers: List[FakeObserver] = field(default_factory=list)
    changes: List[Repository] = field(default_factory=list)
    deletions: List[str] = field(default_factory=list)
    scan_states: List[bool] = field(default_factory=list)

    def observer_for(self, path: str) -> FakeObserver:
        return self.monitor._observers.get(path)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="repowatch_test_")
    # Resolve to handle macOS /var -> /private/var symlink
    resolved = Path(tmp).resolve()
    yield resolved
    shutil.rmtree(str(resolved), ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> MonitorConfig:
    """Create an isolated test configuration."""
    config = MonitorConfig(
        roots=[temp_dir],
        store_path=temp_dir / "store" / "test.db",
        creation_delay_ms=0,
        change_delay_ms=0,
        flush_delay_ms=100,
        scanner_concurrency=4,
        git_timeout_s=10,
    )
    set_config(config)
    return config


@pytest.fixture
def make_harness(test_config):
    """Factory building monitors over fake collaborators; closes them afterwards."""
    created: List[MonitorHarness] = []

    def make(
        roots: Sequence[str] = (),
        found: Sequence[str] = (),
        candidates: Dict[str, List[str]] | None = None,
        stored: Sequence[str] = (),
        store: InMemoryStore | None = None,
        observer_factory: Callable[[], RepositoryObserver] | None = None,
    ) -> MonitorHarness:
        reader = FakeReader(found)
        crawler = FakeCrawler(candidates or {})
        provider = FakePathProvider(roots)
        auto_fetch = FakeAutoFetch()
        store = store or InMemoryStore(stored)
        detectors: List[FakeDetector] = []
        observers: List[FakeObserver] = []

        def create_detector():
            detector = FakeDetector()
            detectors.append(detector)
            return detector

        def create_observer():
            observer = FakeObserver()
            observers.append(observer)
            return observer

        monitor = RepositoryMonitor(
            path_provider=provider,
            repository_reader=reader,
            detector_factory=create_detector,
            observer_factory=observer_factory or create_observer,
            crawler_factory=lambda: crawler,
            repository_store=store,
            aggregator=RepositoryAggregator(),
            auto_fetch_handler=auto_fetch,
            config=test_config,
        )

        harness = MonitorHarness(
            monitor=monitor,
            reader=reader,
            store=store,
            crawler=crawler,
            provider=provider,
            auto_fetch=auto_fetch,
            detectors=detectors,
            observers=observers,
        )
        monitor.on_change_detected.subscribe(harness.changes.append)
        monitor.on_deletion_detected.subscribe(harness.deletions.append)
        monitor.on_scan_state_changed.subscribe(harness.scan_states.append)

        created.append(harness)
        return harness

    yield make

    for harness in created:
        harness.monitor.close()


@pytest.fixture
def git_repo_tree(temp_dir: Path) -> dict[str, Path]:
    """Directory tree with repository markers (no real git needed)."""
    tree = {}

    for name in ("alpha", "nested/beta", "alpha/vendor/gamma"):
        repo = temp_dir / name
        (repo / ".git").mkdir(parents=True)
        (repo / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        tree[name] = repo

    # Worktrees carry a .git file instead of a directory
    worktree = temp_dir / "worktree"
    worktree.mkdir()
    (worktree / ".git").write_text("gitdir: /elsewhere/.git/worktrees/wt\n")
    tree["worktree"] = worktree

    # Skipped directory
    hidden = temp_dir / "node_modules" / "pkg"
    (hidden / ".git").mkdir(parents=True)
    tree["node_modules"] = hidden

    # Plain directory
    plain = temp_dir / "plain" / "docs"
    plain.mkdir(parents=True)
    tree["plain"] = plain

    return tree
