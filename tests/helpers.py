"""Shared fixtures for the test-suite."""

from __future__ import annotations

from pathlib import Path

from fussy_git.exceptions import RemoteInspectionError

ORIGIN_FILE = "fake-origin"


def make_repo(path: Path, origin: str | None = None) -> Path:
    """Create a directory that looks like a clone, with ``origin`` as its remote."""

    git_dir = path / ".git"
    git_dir.mkdir(parents=True, exist_ok=True)
    if origin is not None:
        (git_dir / ORIGIN_FILE).write_text(origin)
    return path


class FakeInspector:
    """Keeps the origin URL inside the fake ``.git`` so it follows moved directories."""

    def __init__(self) -> None:
        self.cloned: list[tuple[str, Path]] = []
        self.remote_changes: list[tuple[Path, str]] = []

    def origin_url(self, path: Path) -> str:
        origin = Path(path) / ".git" / ORIGIN_FILE
        if not origin.is_file():
            raise RemoteInspectionError(f"no origin remote configured for {path}")
        return origin.read_text()

    def is_repository(self, path: Path) -> bool:
        return (Path(path) / ".git").is_dir()

    def clone(self, url: str, target: Path) -> str:
        make_repo(Path(target), url)
        self.cloned.append((url, Path(target)))
        return f"Cloning into '{target}'..."

    def set_origin_url(self, path: Path, url: str) -> None:
        (Path(path) / ".git" / ORIGIN_FILE).write_text(url)
        self.remote_changes.append((Path(path), url))
