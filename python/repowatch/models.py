"""
Data Models - Type definitions shared by the monitor and its collaborators.

A Repository is an immutable snapshot. A changed repository is represented
by a brand-new snapshot replacing the old one, never by mutation.
"""

import os
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Tuple


def normalize_path(path: str | Path) -> str:
    """
    Canonical key for a repository path.

    Absolute, user-expanded and normalized, without a trailing separator.
    Symlinks are not resolved so the key matches what watchers report.
    """
    if not path:
        return ""
    normalized = os.path.normpath(os.path.abspath(os.path.expanduser(str(path))))
    if len(normalized) > 1:
        normalized = normalized.rstrip(os.sep)
    return normalized


class Notification(Enum):
    """Which resolution outcomes a re-check should report."""
    FOUND_ONLY = auto()
    NOT_FOUND_ONLY = auto()
    BOTH = auto()

    @property
    def when_found(self) -> bool:
        return self in (Notification.FOUND_ONLY, Notification.BOTH)

    @property
    def when_not_found(self) -> bool:
        return self in (Notification.NOT_FOUND_ONLY, Notification.BOTH)


class MonitorState(Enum):
    """Lifecycle of the repository monitor."""
    IDLE = "idle"
    OBSERVING = "observing"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Repository:
    """
    Point-in-time description of one repository.

    `path` is the normalized working tree path. A snapshot with
    `was_found=False` only carries the path it was asked about.
    """
    path: str
    was_found: bool = True
    name: str = ""
    current_branch: str = ""
    ahead_by: int | None = None     # None when there is no upstream
    behind_by: int | None = None
    local_untracked: int = 0
    local_modified: int = 0
    local_missing: int = 0
    local_added: int = 0
    local_staged: int = 0
    local_ignored: int = 0
    local_conflicted: int = 0
    stash_count: int = 0
    branches: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "path", normalize_path(self.path))
        if not self.name and self.path:
            object.__setattr__(self, "name", os.path.basename(self.path))
        object.__setattr__(self, "branches", tuple(self.branches))

    @classmethod
    def not_found(cls, path: str | Path) -> "Repository":
        """Snapshot for a path that does not (or no longer) hold a repository."""
        return cls(path=str(path), was_found=False)

    @property
    def has_upstream(self) -> bool:
        return self.ahead_by is not None and self.behind_by is not None

    @property
    def local_changes(self) -> int:
        """Total number of working tree entries that differ from HEAD."""
        return (
            self.local_untracked
            + self.local_modified
            + self.local_missing
            + self.local_added
            + self.local_staged
            + self.local_conflicted
        )

    def __str__(self) -> str:
        if not self.was_found:
            return f"{self.path} (not found)"
        return f"{self.name} @{self.path} [{self.current_branch}]"


@dataclass
class ScanResult:
    """Result of scanning the configured roots."""
    roots_scanned: int = 0
    repositories_found: int = 0
    duration_seconds: float = 0.0

    def __str__(self) -> str:
        return (
            f"Found {self.repositories_found} repositories "
            f"in {self.roots_scanned} roots "
            f"in {self.duration_seconds:.1f}s"
        )
