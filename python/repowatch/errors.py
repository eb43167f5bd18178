"""
Error Handling - Centralized error policies and custom exceptions.

Defines how filesystem and git failures are handled while crawling roots
and reading repositories. Resolution failures never propagate: they are
logged according to a policy and encoded as a "not found" snapshot.
"""

import logging
import subprocess
from enum import Enum, auto
from dataclasses import dataclass
from typing import Optional
from pathlib import Path


logger = logging.getLogger(__name__)


class ErrorAction(Enum):
    """What to do when an error occurs."""
    SKIP = auto()           # Skip this entry, keep crawling
    NOT_FOUND = auto()      # Report the repository as not found


@dataclass
class ErrorPolicy:
    """Policy for handling a specific error type."""
    action: ErrorAction
    log_level: int
    message_template: str = "{path}: {error}"


# Error type to policy mapping (checked in order, first isinstance match wins)
ERROR_POLICIES: dict[type, ErrorPolicy] = {
    PermissionError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="Permission denied: {path}"
    ),
    FileNotFoundError: ErrorPolicy(
        action=ErrorAction.NOT_FOUND,
        log_level=logging.DEBUG,
        message_template="Path vanished (possibly deleted): {path}"
    ),
    NotADirectoryError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.DEBUG,
        message_template="Expected directory, got file: {path}"
    ),
    subprocess.TimeoutExpired: ErrorPolicy(
        action=ErrorAction.NOT_FOUND,
        log_level=logging.WARNING,
        message_template="git timed out reading {path}"
    ),
    subprocess.CalledProcessError: ErrorPolicy(
        action=ErrorAction.NOT_FOUND,
        log_level=logging.DEBUG,
        message_template="git failed for {path}: {error}"
    ),
    OSError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="OS error at {path} - {error}"
    ),
}


class MonitorError(Exception):
    """Base exception for repository monitoring errors."""
    pass


class MissingCollaboratorError(MonitorError, ValueError):
    """A required collaborator was not supplied to the monitor."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing required collaborator: {name}")


class GitNotAvailableError(MonitorError):
    """The git executable could not be located."""
    pass


def handle_error(
    error: Exception,
    path: Optional[Path | str] = None,
    context: str = ""
) -> ErrorAction:
    """
    Handle an error according to the defined policies.

    Args:
        error: The exception that occurred
        path: Path being crawled or read (if applicable)
        context: Additional context for logging

    Returns:
        The action to take (SKIP or NOT_FOUND)
    """
    policy = None
    for error_type, p in ERROR_POLICIES.items():
        if isinstance(error, error_type):
            policy = p
            break

    # Default policy for unknown errors
    if policy is None:
        policy = ErrorPolicy(
            action=ErrorAction.NOT_FOUND,
            log_level=logging.ERROR,
            message_template="Unexpected error: {path} - {error}"
        )

    path_str = str(path) if path else "<unknown>"
    message = policy.message_template.format(path=path_str, error=str(error))
    if context:
        message = f"[{context}] {message}"

    logger.log(policy.log_level, message)

    return policy.action
