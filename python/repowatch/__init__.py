"""
repowatch - Live view of the git repositories below a set of root directories.

Modules:
    - config: Centralized configuration
    - models: Repository snapshots and shared enums
    - crawler: Parallel-friendly root traversal
    - reader: git CLI repository reader
    - detector: watchdog root watcher (repositories appearing/vanishing)
    - observer: watchdog repository watcher (changes inside a repository)
    - aggregator: In-memory repository table and observer registry
    - flush: Debounced persistence scheduling
    - store: SQLite path store
    - autofetch: Background git fetch
    - monitor: Main entry point

Flow:
    Crawl/Detect → Read → Aggregate + Observe → Notify → Persist (debounced)

Usage:
    from repowatch import create_monitor

    monitor = create_monitor()
    monitor.observe()
    await monitor.scan_for_repositories()
"""

from .models import Repository
from .monitor import RepositoryMonitor, create_monitor

__all__ = ["Repository", "RepositoryMonitor", "create_monitor"]
