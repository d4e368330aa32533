"""Thin wrappers around git CLI commands."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Protocol, Sequence

from .exceptions import GitCommandError, RemoteInspectionError

logger = logging.getLogger(__name__)


def _git_env() -> dict[str, str]:
    # Never block on a credential prompt.
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def run_git(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a git command and optionally raise on failure."""

    command = ["git", *args]
    logger.debug("Running: %s", " ".join(command))
    result = subprocess.run(
        command,
        cwd=str(cwd) if cwd else None,
        env=_git_env(),
        text=True,
        capture_output=True,
        stdin=subprocess.DEVNULL,
    )
    if check and result.returncode != 0:
        raise GitCommandError(command, result.returncode, stdout=result.stdout, stderr=result.stderr)
    return result


def run_git_passthrough(args: Sequence[str], *, cwd: Path) -> int:
    """Run ``git <args>`` in ``cwd`` attached to the caller's terminal and return its exit code."""

    command = ["git", *args]
    logger.debug("Passthrough: %s (in %s)", " ".join(command), cwd)
    try:
        result = subprocess.run(command, cwd=str(cwd))
    except OSError as exc:
        raise GitCommandError(command, 127, stderr=str(exc)) from exc
    return result.returncode


def find_repo_root(start: Path) -> Path | None:
    """Walk up from ``start`` to the nearest directory holding a ``.git`` directory."""

    current = Path(start).absolute()
    for candidate in (current, *current.parents):
        if (candidate / ".git").is_dir():
            return candidate
    return None


class RemoteInspector(Protocol):
    """What the reconciler and workflows need from git."""

    def origin_url(self, path: Path) -> str:
        """Return the configured ``origin`` URL of the repository at ``path``.

        Raises:
            RemoteInspectionError: If git cannot report a non-empty URL.
        """
        ...

    def is_repository(self, path: Path) -> bool:
        ...

    def clone(self, url: str, target: Path) -> str:
        ...

    def set_origin_url(self, path: Path, url: str) -> None:
        ...


class GitInspector:
    """:class:`RemoteInspector` backed by the ``git`` binary."""

    def origin_url(self, path: Path) -> str:
        try:
            proc = run_git(["-C", str(path), "remote", "get-url", "origin"])
        except GitCommandError as exc:
            raise RemoteInspectionError(f"failed to get remote origin URL for {path}: {exc}") from exc
        except OSError as exc:
            raise RemoteInspectionError(f"failed to run git for {path}: {exc}") from exc
        url = proc.stdout.strip()
        if not url:
            raise RemoteInspectionError(f"origin URL is empty for repository at {path}")
        return url

    def is_repository(self, path: Path) -> bool:
        if (Path(path) / ".git").is_dir():
            return True
        try:
            proc = run_git(["-C", str(path), "rev-parse", "--is-inside-work-tree"], check=False)
        except OSError:
            return False
        return proc.returncode == 0

    def clone(self, url: str, target: Path) -> str:
        proc = run_git(["clone", url, str(target)])
        return (proc.stdout + proc.stderr).strip()

    def set_origin_url(self, path: Path, url: str) -> None:
        run_git(["-C", str(path), "remote", "set-url", "origin", url])


__all__ = ["run_git", "run_git_passthrough", "find_repo_root", "RemoteInspector", "GitInspector"]
