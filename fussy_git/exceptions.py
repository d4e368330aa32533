"""Custom error hierarchy for fussy-git."""

from __future__ import annotations

from typing import Any, Sequence


class FussyGitError(RuntimeError):
    """Base error for the CLI."""


class ParseError(FussyGitError):
    """Raised when a remote URL is malformed or ambiguous."""

    def __init__(self, url: str, reason: str, *, fields: Sequence[str] = ()):
        self.url = url
        self.fields = tuple(fields)
        message = f"cannot parse URL '{url}': {reason}"
        if self.fields:
            message = f"{message} (unresolved: {', '.join(self.fields)})"
        super().__init__(message)


class ConflictError(FussyGitError):
    """Raised when a path is already occupied or tracked under another URL."""


class NotFoundError(FussyGitError):
    """Raised when a path is not tracked in the registry."""


class RegistryIOError(FussyGitError):
    """Raised when the filesystem or the state file cannot be read or written."""


class CorruptStateError(FussyGitError):
    """Raised when the state file exists but does not parse."""

    def __init__(self, path: Any, reason: str):
        self.path = path
        super().__init__(
            f"state file {path} is corrupt: {reason}. "
            "Consider backing it up and deleting it to start fresh."
        )


class GitCommandError(FussyGitError):
    """Raised when an underlying git command fails."""

    def __init__(
        self,
        command: list[str],
        returncode: int,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        message = f"git command failed (exit {returncode}): {' '.join(command)}"
        details = "\n".join(
            section
            for section in (self.stdout.strip(), self.stderr.strip())
            if section
        )
        if details:
            message = f"{message}\n{details}"
        super().__init__(message)


class RemoteInspectionError(FussyGitError):
    """Raised when the live origin remote of a repository cannot be read."""


class PersistenceError(FussyGitError):
    """Raised when in-memory changes are correct but could not be saved."""

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result


class ConfigError(FussyGitError):
    """Raised when configuration cannot be loaded."""


class ValidationError(FussyGitError):
    """Raised when user input fails validation."""


class UserAbort(FussyGitError):
    """Raised when the user cancels an interactive flow."""


__all__ = [
    "FussyGitError",
    "ParseError",
    "ConflictError",
    "NotFoundError",
    "RegistryIOError",
    "CorruptStateError",
    "GitCommandError",
    "RemoteInspectionError",
    "PersistenceError",
    "ConfigError",
    "ValidationError",
    "UserAbort",
]
