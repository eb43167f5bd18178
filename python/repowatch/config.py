"""
Monitor Configuration - Centralized settings for repository monitoring.

Uses environment variables with sensible defaults. All paths are resolved
to absolute paths for reliability.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Set, List


class AutoFetchMode(Enum):
    """How often known repositories are fetched in the background."""
    OFF = "off"
    ADEQUATE = "adequate"       # One repository every 5 minutes
    AGGRESSIVE = "aggressive"   # One repository every minute

    @property
    def interval_seconds(self) -> float:
        return {
            AutoFetchMode.OFF: 0.0,
            AutoFetchMode.ADEQUATE: 300.0,
            AutoFetchMode.AGGRESSIVE: 60.0,
        }[self]


@dataclass
class MonitorConfig:
    """
    Configuration for the repository monitor.

    The store defaults to ~/.repowatch. Delays are in milliseconds and are
    handed to detectors/observers when they are set up.
    """

    # --- Paths ---
    roots: List[Path] = field(default_factory=lambda: [
        Path.home() / "source",
        Path.home() / "projects",
        Path.home() / "src",
    ])
    store_path: Path = field(
        default_factory=lambda: Path.home() / ".repowatch" / "repositories.db"
    )

    # --- Settle Delays ---
    creation_delay_ms: int = 5000   # Wait after a repository appears before reading it
    change_delay_ms: int = 500      # Quiet period before an observer re-triggers
    flush_delay_ms: int = 5000      # Quiet period after the last discovery before persisting

    # --- Concurrency ---
    scanner_concurrency: int = 8    # Roots crawled in parallel
    git_timeout_s: float = 15.0     # Per git invocation

    # --- Background Fetch ---
    auto_fetch_mode: AutoFetchMode = AutoFetchMode.OFF

    # --- Skip Patterns ---
    skip_dirs: Set[str] = field(default_factory=lambda: {
        # Dependencies
        "node_modules", "__pycache__", ".venv", "venv", "bower_components",
        # Build outputs
        "build", "dist", "target", "obj", ".next",
        # IDE/Editor
        ".idea", ".vscode",
        # macOS/iOS
        "Pods", "DerivedData", ".Trash", "Library",
        # Cache
        ".cache", ".npm", ".yarn", ".tox", ".mypy_cache",
    })

    def __post_init__(self):
        """Ensure all paths are absolute and the store directory exists."""
        self.roots = [Path(p).expanduser().resolve() for p in self.roots]
        self.store_path = Path(self.store_path).expanduser().resolve()

        self.store_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """
        Create config from environment variables.

        Supported env vars:
            REPOWATCH_ROOTS: Comma-separated list of root directories
            REPOWATCH_STORE_PATH: Path to the SQLite store
            REPOWATCH_CREATION_DELAY_MS: Settle delay for new repositories
            REPOWATCH_CHANGE_DELAY_MS: Settle delay for repository changes
            REPOWATCH_FLUSH_DELAY_MS: Debounce for persisting the path list
            REPOWATCH_SCANNER_CONCURRENCY: Roots crawled in parallel
            REPOWATCH_AUTO_FETCH: off | adequate | aggressive
        """
        config = cls()

        if roots := os.environ.get("REPOWATCH_ROOTS"):
            config.roots = [Path(p.strip()) for p in roots.split(",") if p.strip()]

        if store_path := os.environ.get("REPOWATCH_STORE_PATH"):
            config.store_path = Path(store_path)

        if creation := os.environ.get("REPOWATCH_CREATION_DELAY_MS"):
            config.creation_delay_ms = int(creation)

        if change := os.environ.get("REPOWATCH_CHANGE_DELAY_MS"):
            config.change_delay_ms = int(change)

        if flush := os.environ.get("REPOWATCH_FLUSH_DELAY_MS"):
            config.flush_delay_ms = int(flush)

        if scanner := os.environ.get("REPOWATCH_SCANNER_CONCURRENCY"):
            config.scanner_concurrency = int(scanner)

        if fetch := os.environ.get("REPOWATCH_AUTO_FETCH"):
            config.auto_fetch_mode = AutoFetchMode(fetch.strip().lower())

        config.__post_init__()
        return config


# Singleton default config
_default_config: MonitorConfig | None = None


def get_config() -> MonitorConfig:
    """Get the default configuration (singleton)."""
    global _default_config
    if _default_config is None:
        _default_config = MonitorConfig.from_env()
    return _default_config


def set_config(config: MonitorConfig) -> None:
    """Override the default configuration (for testing)."""
    global _default_config
    _default_config = config
