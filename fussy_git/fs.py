"""Filesystem helpers for fussy-git."""

from __future__ import annotations

import os
from pathlib import Path


def same_location(left: str | Path, right: str | Path) -> bool:
    return os.path.normpath(str(left)) == os.path.normpath(str(right))


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def occupied(path: Path) -> bool:
    """True when anything, even a dangling symlink, sits at ``path``."""

    return os.path.lexists(path)


def move_directory(source: str | Path, target: Path) -> None:
    """Rename ``source`` to ``target``, creating the parent directories first."""

    ensure_directory(target.parent)
    os.rename(source, target)
