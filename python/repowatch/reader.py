"""
Reader - Resolve a path to a Repository snapshot using the git CLI.

Accepts a working tree, its `.git` directory, or the `.git/HEAD` marker the
detectors report. Runs `git status --porcelain=v2 --branch`, lists local
branches and stashes, and builds an immutable Repository. Every failure is
encoded as a not-found snapshot; nothing is raised to the caller.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import replace
from typing import List, Optional

from .config import get_config, MonitorConfig
from .errors import handle_error, GitNotAvailableError
from .interfaces import RepositoryReader
from .models import Repository, normalize_path


logger = logging.getLogger(__name__)

GIT_DIR = ".git"
HEAD_FILE = "HEAD"


def working_tree_of(path: str) -> str:
    """Map a `.git/HEAD` file or `.git` directory to its working tree."""
    path = normalize_path(path)
    if os.path.basename(path) == HEAD_FILE and os.path.basename(os.path.dirname(path)) == GIT_DIR:
        return os.path.dirname(os.path.dirname(path))
    if os.path.basename(path) == GIT_DIR:
        return os.path.dirname(path)
    return path


class GitRepositoryReader(RepositoryReader):
    """
    Repository reader backed by the `git` executable.

    Safe to call from many threads at once; each call spawns its own
    subprocesses and shares no state.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        include_ignored: bool = False,
    ):
        self.config = config or get_config()
        self.include_ignored = include_ignored
        self._git = shutil.which("git")
        if self._git is None:
            raise GitNotAvailableError("git executable not found on PATH")

        # Keep git status from refreshing .git/index, which would wake the
        # repository's own observer and loop forever.
        self._env = dict(os.environ, GIT_OPTIONAL_LOCKS="0", LC_ALL="C")

    def read_repository(self, path: str) -> Repository:
        root = working_tree_of(path)
        if not root:
            return Repository.not_found(path)

        if not os.path.exists(os.path.join(root, GIT_DIR)):
            return Repository.not_found(root)

        try:
            status = self._run(root, *self._status_args())
            branches = self._run(root, "for-each-ref", "--format=%(refname:short)", "refs/heads")
            stashes = self._run(root, "stash", "list")
        except (OSError, subprocess.SubprocessError) as e:
            handle_error(e, root, "read_repository")
            return Repository.not_found(root)

        repo = parse_status(root, status)
        return replace(
            repo,
            stash_count=len([line for line in stashes.splitlines() if line.strip()]),
            branches=tuple(sorted(b.strip() for b in branches.splitlines() if b.strip())),
        )

    def _status_args(self) -> List[str]:
        args = ["status", "--porcelain=v2", "--branch", "--untracked-files=normal"]
        if self.include_ignored:
            args.append("--ignored=matching")
        return args

    def _run(self, root: str, *args: str) -> str:
        result = subprocess.run(
            [self._git, "-C", root, *args],
            capture_output=True,
            text=True,
            timeout=self.config.git_timeout_s,
            env=self._env,
            check=True,
        )
        return result.stdout


def parse_status(path: str, output: str) -> Repository:
    """
    Build a Repository from `git status --porcelain=v2 --branch` output.

    Header lines carry the branch and upstream divergence; entry lines
    are counted by their XY (index, worktree) status letters.
    """
    branch = ""
    ahead: Optional[int] = None
    behind: Optional[int] = None
    oid = ""
    counts = dict(untracked=0, modified=0, missing=0, added=0, staged=0, ignored=0, conflicted=0)

    for line in output.splitlines():
        if line.startswith("# branch.head "):
            branch = line[len("# branch.head "):].strip()
        elif line.startswith("# branch.oid "):
            oid = line[len("# branch.oid "):].strip()
        elif line.startswith("# branch.ab "):
            parts = line[len("# branch.ab "):].split()
            if len(parts) == 2:
                ahead = abs(int(parts[0]))
                behind = abs(int(parts[1]))
        elif line.startswith("? "):
            counts["untracked"] += 1
        elif line.startswith("! "):
            counts["ignored"] += 1
        elif line.startswith("u "):
            counts["conflicted"] += 1
        elif line.startswith(("1 ", "2 ")):
            xy = line[2:4]
            if len(xy) < 2:
                continue
            index, worktree = xy[0], xy[1]

            if index == "A":
                counts["added"] += 1
            elif index != ".":
                counts["staged"] += 1

            if worktree == "D":
                counts["missing"] += 1
            elif worktree == "A":
                counts["added"] += 1
            elif worktree != ".":
                counts["modified"] += 1

    if branch == "(detached)":
        branch = f"({oid[:7]})" if oid and oid != "(initial)" else "(detached)"

    return Repository(
        path=path,
        current_branch=branch,
        ahead_by=ahead,
        behind_by=behind,
        local_untracked=counts["untracked"],
        local_modified=counts["modified"],
        local_missing=counts["missing"],
        local_added=counts["added"],
        local_staged=counts["staged"],
        local_ignored=counts["ignored"],
        local_conflicted=counts["conflicted"],
    )
