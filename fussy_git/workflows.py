"""High-level orchestration for clone, adopt, remove and remote switching."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .exceptions import (
    ConflictError,
    FussyGitError,
    NotFoundError,
    PersistenceError,
    RegistryIOError,
    ValidationError,
)
from .fs import ensure_directory, occupied
from .git import RemoteInspector, find_repo_root
from .models import RepositoryEntry
from .registry import RegistryStore
from .urls import canonical_path, parse_url, to_https, to_ssh

logger = logging.getLogger(__name__)


class Scheme(str, Enum):
    SSH = "ssh"
    HTTPS = "https"


@dataclass
class RepositoryService:
    store: RegistryStore
    inspector: RemoteInspector
    home: Path

    def canonical_path_for(self, url: str) -> Path:
        return canonical_path(parse_url(url), self.home)

    def clone(self, url: str) -> tuple[RepositoryEntry, bool]:
        """Clone ``url`` into its canonical path and track it.

        Returns the entry and whether a clone happened; an existing clone of the
        same URL at the canonical path is returned as is.
        """

        parsed = parse_url(url)
        target = canonical_path(parsed, self.home)
        existing = self.store.find_by_path(target)
        if existing is not None:
            if url in (existing.original_url, existing.current_url):
                return existing, False
            raise ConflictError(
                f"{target} is already tracked with a different URL ({existing.current_url}). "
                "Remove or reorganize it first."
            )
        if occupied(target):
            raise ConflictError(
                f"{target} already exists on disk but is not tracked. "
                f"Remove it, or run 'fussy-git add {target}' to track it where it is."
            )
        ensure_directory(target.parent)
        output = self.inspector.clone(url, target)
        logger.debug("git clone output: %s", output)
        try:
            entry = self.store.upsert(RepositoryEntry.from_parsed(parsed, str(target)))
        except FussyGitError:
            self._discard_clone(target)
            raise
        self._save(f"{parsed.repo_name} was cloned to {target}")
        return entry, True

    def adopt(self, path: Path) -> tuple[RepositoryEntry, bool]:
        """Track an existing local repository where it currently lives."""

        repo_path = Path(path).expanduser().resolve()
        if not self.inspector.is_repository(repo_path):
            raise ValidationError(f"Path '{repo_path}' is not a valid git repository.")
        existing = self.store.find_by_path(repo_path)
        if existing is not None:
            return existing, False
        url = self.inspector.origin_url(repo_path)
        parsed = parse_url(url)
        entry = self.store.upsert(RepositoryEntry.from_parsed(parsed, str(repo_path), manually_added=True))
        self._save(f"{repo_path} was added")
        return entry, True

    def resolve_tracked(self, path: Path | str) -> RepositoryEntry:
        candidates = [str(path), str(Path(path).expanduser().resolve())]
        for candidate in candidates:
            entry = self.store.find_by_path(candidate)
            if entry is not None:
                return entry
        raise NotFoundError(f"{path} is not tracked by fussy-git.")

    def remove(self, path: Path | str) -> RepositoryEntry:
        """Stop tracking a repository. Files on disk are left alone."""

        entry = self.resolve_tracked(path)
        self.store.remove_by_path(entry.path)
        self._save(f"{entry.path} was removed")
        return entry

    def missing_entries(self) -> list[RepositoryEntry]:
        return [entry for entry in self.store.entries() if not occupied(Path(entry.path))]

    def prune(self, entries: list[RepositoryEntry]) -> int:
        removed = sum(1 for entry in entries if self.store.remove_by_path(entry.path))
        if removed:
            self._save(f"{removed} entries were pruned")
        return removed

    def switch_remote_scheme(self, path: Path | str, scheme: Scheme) -> tuple[str, str]:
        """Point origin at the other transport form of the same repository."""

        entry = self.resolve_tracked(path)
        live = self.inspector.origin_url(Path(entry.path))
        parsed = parse_url(live)
        new_url = to_ssh(parsed) if scheme is Scheme.SSH else to_https(parsed)
        if new_url == live and entry.current_url == live:
            return live, new_url
        if new_url != live:
            self.inspector.set_origin_url(Path(entry.path), new_url)
        entry.current_url = new_url
        self.store.update(entry)
        self._save(f"origin of {entry.path} was switched to {new_url}")
        return live, new_url

    def passthrough_directory(self, cwd: Path) -> Path:
        """Pick where a passed-through git command runs.

        A tracked repository containing ``cwd`` wins, then the nearest enclosing
        repository, then ``cwd`` itself.
        """

        for entry in self.store.entries():
            if Path(cwd).is_relative_to(entry.path):
                logger.debug("Running git in tracked repository %s", entry.path)
                return Path(entry.path)
        return find_repo_root(cwd) or Path(cwd)

    def _save(self, done: str) -> None:
        try:
            self.store.save()
        except RegistryIOError as exc:
            raise PersistenceError(f"{done}, but the state could not be saved: {exc}") from exc

    @staticmethod
    def _discard_clone(target: Path) -> None:
        logger.warning("Cleaning up cloned directory %s", target)
        try:
            shutil.rmtree(target)
        except OSError as exc:
            logger.warning("Failed to clean up %s: %s", target, exc)


__all__ = ["RepositoryService", "Scheme"]
