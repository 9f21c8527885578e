"""Exceptions raised by PyMirror."""

from typing import Optional


class MirrorError(Exception):
    """Base exception for all PyMirror errors."""

    kind: str = "error"
    """Error kind used by callers to branch without inspecting the class"""


class MirrorConfigError(MirrorError):
    """Raised when a configuration value is invalid."""

    kind = "config"


class MirrorPreconditionError(MirrorError, FileNotFoundError):
    """Raised when a directory required by a sync mode does not exist.

    These failures are never retried: the path is definitionally absent.
    """

    kind = "precondition"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class MirrorSourceNotFoundError(MirrorPreconditionError):
    """Raised when a source directory does not exist."""


class MirrorTargetNotFoundError(MirrorPreconditionError):
    """Raised when a target directory to delete does not exist."""


class MirrorTransientIOError(MirrorError):
    """Raised when a filesystem mutation keeps failing after all retries."""

    kind = "transient"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        action: Optional[str] = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.path = path
        self.action = action
        self.attempts = attempts
