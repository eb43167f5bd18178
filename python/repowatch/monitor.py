"""
Monitor - Main entry point for repository monitoring.

Keeps a live view of every git repository below the configured roots:
- Scan: crawl all roots in parallel, reading each candidate
- Observe: replay the persisted paths, then watch each root for
  repositories appearing/vanishing and each known repository for changes
- Persist: write the known paths once a discovery burst goes quiet

All repository state (aggregator, observer registry, flush timer) is owned
by one RepositoryMonitor and mutated under its lock.
"""

import asyncio
import functools
import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional

from .aggregator import ObserverRegistry, RepositoryAggregator
from .config import get_config, MonitorConfig, AutoFetchMode
from .errors import MissingCollaboratorError
from .events import Event
from .interfaces import (
    AutoFetchHandler,
    CrawlerFactory,
    DetectorFactory,
    ObserverFactory,
    PathProvider,
    RepositoryDetector,
    RepositoryObserver,
    RepositoryReader,
    RepositoryStore,
)
from .models import MonitorState, Notification, Repository, ScanResult, normalize_path
from .flush import FlushScheduler


logger = logging.getLogger(__name__)


class RepositoryMonitor:
    """
    Orchestrates scanning, watching, aggregation and persistence.

    Notifications fire synchronously on the thread that triggered them:
    - on_change_detected(repository): before the aggregator is updated
    - on_deletion_detected(path): after the observer is destroyed, before
      the aggregator entry is removed
    - on_scan_state_changed(is_scanning): only when the flag flips

    Handlers must not block.
    """

    def __init__(
        self,
        path_provider: PathProvider,
        repository_reader: RepositoryReader,
        detector_factory: DetectorFactory,
        observer_factory: ObserverFactory,
        crawler_factory: CrawlerFactory,
        repository_store: RepositoryStore,
        aggregator: RepositoryAggregator,
        auto_fetch_handler: AutoFetchHandler,
        config: Optional[MonitorConfig] = None,
    ):
        collaborators = {
            "path_provider": path_provider,
            "repository_reader": repository_reader,
            "detector_factory": detector_factory,
            "observer_factory": observer_factory,
            "crawler_factory": crawler_factory,
            "repository_store": repository_store,
            "aggregator": aggregator,
            "auto_fetch_handler": auto_fetch_handler,
        }
        for name, value in collaborators.items():
            if value is None:
                raise MissingCollaboratorError(name)

        self.config = config or get_config()
        self._path_provider = path_provider
        self._reader = repository_reader
        self._detector_factory = detector_factory
        self._observer_factory = observer_factory
        self._crawler_factory = crawler_factory
        self._store = repository_store
        self._aggregator = aggregator
        self._auto_fetch = auto_fetch_handler

        # Read when detectors/observers are set up
        self.creation_delay_ms = self.config.creation_delay_ms
        self.change_delay_ms = self.config.change_delay_ms

        self.on_change_detected: Event[Repository] = Event("change_detected")
        self.on_deletion_detected: Event[str] = Event("deletion_detected")
        self.on_scan_state_changed: Event[bool] = Event("scan_state_changed")

        self._observers = ObserverRegistry()
        self._flush = FlushScheduler(self._flush_store, self.config.flush_delay_ms)
        self._detectors: Optional[List[RepositoryDetector]] = None
        self._store_replay: Optional[Future] = None
        # Bumped by reset(); replays from an older generation are dropped
        self._generation = 0
        self._executor: Optional[ThreadPoolExecutor] = None

        # Guards aggregator + registry + flush timer as one unit
        self._lock = threading.RLock()
        # Serializes observe/stop/reset/close
        self._lifecycle_lock = threading.RLock()
        self._scan_lock = threading.Lock()
        self._pending_scans = 0
        self._scanning = False
        self._state = MonitorState.IDLE

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def scanning(self) -> bool:
        return self._scanning

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def auto_fetch(self) -> AutoFetchHandler:
        return self._auto_fetch

    @property
    def aggregator(self) -> RepositoryAggregator:
        return self._aggregator

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.scanner_concurrency,
                thread_name_prefix="repo-scan"
            )
        return self._executor

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan_for_repositories(self) -> ScanResult:
        """
        Crawl every configured root in parallel.

        Each root is an independent unit of work on the scan pool. The
        scanning flag stays true while any root scan (from this or an
        overlapping call) is outstanding.
        """
        roots = self._path_provider.get_paths()
        start_time = time.monotonic()
        result = ScanResult(roots_scanned=len(roots))

        if not roots:
            return result

        logger.info(f"Scanning {len(roots)} roots for repositories...")

        found_lock = threading.Lock()

        def on_found(path: str):
            repo = self._reader.read_repository(path)
            if repo.was_found:
                with found_lock:
                    result.repositories_found += 1
                self._on_repository_change_detected(repo)

        loop = asyncio.get_running_loop()
        executor = self._get_executor()

        async def scan_root(root: str):
            try:
                await loop.run_in_executor(executor, self._crawl_root, root, on_found)
            finally:
                self._complete_scan()

        self._begin_scans(len(roots))
        await asyncio.gather(*(scan_root(root) for root in roots))

        result.duration_seconds = time.monotonic() - start_time
        logger.info(f"Scan complete: {result}")
        return result

    def _crawl_root(self, root: str, on_found) -> None:
        crawler = self._crawler_factory()
        crawler.find(root, on_found)

    def _begin_scans(self, count: int) -> None:
        with self._scan_lock:
            self._pending_scans += count
            self._update_scanning()

    def _complete_scan(self) -> None:
        with self._scan_lock:
            self._pending_scans -= 1
            self._update_scanning()

    def _update_scanning(self) -> None:
        """Recompute the flag; caller holds the scan lock."""
        scanning = self._pending_scans > 0
        if scanning == self._scanning:
            return
        self._scanning = scanning
        self.on_scan_state_changed.emit(scanning)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def observe(self) -> None:
        """
        Start (or resume) watching.

        The first call replays the persisted paths in the background and
        creates one detector per existing root. Later calls only restart
        those detectors.
        """
        with self._lifecycle_lock:
            if self._detectors is None:
                self._store_replay = self._get_executor().submit(
                    self._scan_repositories_from_store, self._generation
                )
                self._store_replay.add_done_callback(_log_replay_failure)
                self._detectors = self._create_detectors()

            for detector in self._detectors:
                detector.start()

            self._auto_fetch.active = True
            self._state = MonitorState.OBSERVING
            logger.info(f"Observing {len(self._detectors)} roots")

    def stop(self) -> None:
        """Halt root watching and fetching; repository observers stay alive."""
        with self._lifecycle_lock:
            self._auto_fetch.active = False
            for detector in self._detectors or []:
                detector.stop()

            if self._state is MonitorState.OBSERVING:
                self._state = MonitorState.STOPPED
            logger.info("Stopped observing")

    def reset(self) -> None:
        """
        Drop all known repositories and start observing from scratch.

        Detectors are recreated so roots added or created since the first
        observe() are picked up.
        """
        with self._lifecycle_lock:
            self.stop()
            self._detectors = None

            with self._lock:
                for observer in self._observers.drain():
                    observer.stop()
                    observer.dispose()
                self._aggregator.reset()
                self._generation += 1

            self._flush.flush_now()
            logger.info("Monitor reset")

            self.observe()

    def close(self) -> None:
        """Stop everything and release threads; persist a pending flush."""
        with self._lifecycle_lock:
            self.stop()

            with self._lock:
                for observer in self._observers.drain():
                    observer.stop()
                    observer.dispose()

            if self._flush.pending:
                self._flush.flush_now()

            if self._executor:
                self._executor.shutdown(wait=True, cancel_futures=True)
                self._executor = None

            for collaborator in (self._auto_fetch, self._store):
                close = getattr(collaborator, "close", None)
                if close:
                    close()

    def wait_for_store_replay(self, timeout: Optional[float] = None) -> None:
        """Block until the startup replay of persisted paths has finished."""
        if self._store_replay is not None:
            self._store_replay.result(timeout=timeout)

    def _create_detectors(self) -> List[RepositoryDetector]:
        detectors = []
        for path in self._path_provider.get_paths():
            if not os.path.isdir(path):
                logger.debug(f"Root does not exist, not watching: {path}")
                continue

            detector = self._detector_factory()
            detector.on_add_or_change = self._on_repository_change_detected
            detector.on_delete = self._on_repository_deletion_detected
            detector.setup(path, self.creation_delay_ms)
            detectors.append(detector)
        return detectors

    # ------------------------------------------------------------------
    # Resolution and routing
    # ------------------------------------------------------------------

    def _scan_repositories_from_store(self, generation: int) -> None:
        paths = self._store.get()
        logger.info(f"Re-checking {len(paths)} stored repositories")
        for path in paths:
            if generation != self._generation:
                logger.debug("Store replay superseded by reset")
                return
            self._check_known_repository(path, Notification.FOUND_ONLY, generation=generation)

    def _check_known_repository(
        self,
        path: str,
        notification: Notification,
        source: Optional[RepositoryObserver] = None,
        generation: Optional[int] = None,
    ) -> None:
        """
        Read `path` and route the outcome according to `notification`.

        When `source` is given the outcome is dropped unless that observer
        is still the registered one for the path, and when `generation` is
        given it is dropped if a reset happened since.
        """
        repo = self._reader.read_repository(path)

        with self._lock:
            if source is not None and self._observers.get(repo.path or path) is not source:
                return
            if generation is not None and generation != self._generation:
                return

            if repo.was_found:
                if notification.when_found:
                    self._on_repository_change_detected(repo)
            elif notification.when_not_found:
                self._on_repository_deletion_detected(repo.path or path)

    def _on_repository_change_detected(self, repo: Repository) -> None:
        path = repo.path if repo else ""
        if not path:
            return

        with self._lock:
            if not self._observers.contains(path):
                self._create_repository_observer(repo)
                # one write after a burst of discoveries, not one per repository
                self._flush.schedule()
                logger.debug(f"Discovered repository: {path}")

            # A failing subscriber must not leave an observer without its entry
            try:
                self.on_change_detected.emit(repo)
            finally:
                self._aggregator.add(repo)

    def _on_repository_deletion_detected(self, repo_path: str) -> None:
        path = normalize_path(repo_path)
        if not path:
            return

        with self._lock:
            self._destroy_repository_observer(path)
            self.on_deletion_detected.emit(path)
            self._aggregator.remove_by_path(path)
            logger.debug(f"Repository gone: {path}")

    def _on_repository_observer_change(self, observer: RepositoryObserver, repository: Repository) -> None:
        self._check_known_repository(repository.path, Notification.BOTH, source=observer)

    def _create_repository_observer(self, repo: Repository) -> None:
        observer = self._observer_factory()
        observer.setup(repo, self.change_delay_ms)
        observer.on_change = functools.partial(self._on_repository_observer_change, observer)
        self._observers.add(repo.path, observer)
        observer.start()

    def _destroy_repository_observer(self, path: str) -> None:
        observer = self._observers.pop(path)
        if observer is not None:
            observer.stop()
            observer.dispose()

    def _flush_store(self) -> None:
        paths = [repo.path for repo in self._aggregator.repositories]
        self._store.set(paths)


def _log_replay_failure(future: Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("Replaying stored repositories failed", exc_info=error)


def create_monitor(config: Optional[MonitorConfig] = None) -> RepositoryMonitor:
    """
    Build a monitor wired to the default collaborators.

    Usage:
        monitor = create_monitor()
        await monitor.scan_for_repositories()
        monitor.observe()
    """
    from .autofetch import GitAutoFetchHandler
    from .crawler import RepositoryCrawler
    from .detector import detector_factory
    from .observer import observer_factory
    from .paths import ConfigPathProvider
    from .reader import GitRepositoryReader
    from .store import SqliteRepositoryStore

    config = config or get_config()
    reader = GitRepositoryReader(config)
    aggregator = RepositoryAggregator()

    return RepositoryMonitor(
        path_provider=ConfigPathProvider(config),
        repository_reader=reader,
        detector_factory=detector_factory(reader),
        observer_factory=observer_factory(),
        crawler_factory=lambda: RepositoryCrawler(config),
        repository_store=SqliteRepositoryStore(config),
        aggregator=aggregator,
        auto_fetch_handler=GitAutoFetchHandler(lambda: aggregator.paths, config),
        config=config,
    )


def main():
    """CLI entry point."""
    import argparse
    from pathlib import Path

    from .config import set_config

    parser = argparse.ArgumentParser(description="Watch git repositories below root directories")
    parser.add_argument("--roots", nargs="+", help="Root directories to scan and watch")
    parser.add_argument("--store", help="Path to the SQLite store")
    parser.add_argument("--no-watch", action="store_true", help="Scan once and exit")
    parser.add_argument(
        "--auto-fetch",
        choices=[mode.value for mode in AutoFetchMode],
        help="Background fetch mode",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s"
    )

    config = MonitorConfig.from_env()
    if args.roots:
        config.roots = [Path(r) for r in args.roots]
    if args.store:
        config.store_path = Path(args.store)
    if args.auto_fetch:
        config.auto_fetch_mode = AutoFetchMode(args.auto_fetch)
    config.__post_init__()
    set_config(config)

    monitor = create_monitor(config)
    monitor.on_change_detected.subscribe(lambda repo: logger.info(f"Changed: {repo}"))
    monitor.on_deletion_detected.subscribe(lambda path: logger.info(f"Deleted: {path}"))
    monitor.on_scan_state_changed.subscribe(
        lambda scanning: logger.info("Scanning..." if scanning else "Scan finished")
    )

    async def _main():
        try:
            if not args.no_watch:
                monitor.observe()

            stats = await monitor.scan_for_repositories()
            print(f"\n{stats}")

            if not args.no_watch:
                print("\nWatching for changes (Ctrl+C to stop)...")
                while True:
                    await asyncio.sleep(3600)
        finally:
            monitor.close()

    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == "__main__":
    main()
