"""Durable, deduplicated collection of tracked repositories."""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Iterator

from .exceptions import ConflictError, CorruptStateError, NotFoundError, RegistryIOError, ValidationError
from .models import RepositoryEntry, utcnow

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer, within a single process."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def shared(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _carry_forward(incoming: RepositoryEntry, previous: RepositoryEntry) -> None:
    """Fill provenance fields the incoming record left unset."""

    if not incoming.original_url:
        incoming.original_url = previous.original_url
    if incoming.cloned_at is None:
        incoming.cloned_at = previous.cloned_at


class RegistryStore:
    """Owns every :class:`RepositoryEntry` and the state file they persist to.

    Entries handed out are copies; all changes go through :meth:`upsert`,
    :meth:`update` and :meth:`remove_by_path` so the unique-path rule holds.
    """

    def __init__(self, location: Path | None = None, entries: list[RepositoryEntry] | None = None):
        self.location = Path(location) if location else None
        self._entries: list[RepositoryEntry] = list(entries or [])
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        with self._lock.shared():
            return len(self._entries)

    @classmethod
    def load(cls, location: Path) -> "RegistryStore":
        location = Path(location).expanduser()
        store = cls(location)
        if not location.exists():
            logger.debug("State file %s does not exist, creating it", location)
            store.save()
            return store
        try:
            raw = location.read_text(encoding="utf-8")
        except OSError as exc:
            raise RegistryIOError(f"failed to read state file {location}: {exc}") from exc
        if not raw.strip():
            return store
        try:
            data = json.loads(raw)
            items = data.get("repositories") or []
            store._entries = [RepositoryEntry.from_dict(item) for item in items]
        except json.JSONDecodeError as exc:
            raise CorruptStateError(location, f"invalid JSON ({exc})") from exc
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise CorruptStateError(location, f"unexpected content ({exc!r})") from exc
        seen: set[str] = set()
        for entry in store._entries:
            if entry.path in seen:
                raise CorruptStateError(location, f"duplicate path {entry.path}")
            seen.add(entry.path)
        logger.debug("Loaded %d repositories from %s", len(store._entries), location)
        return store

    def save(self, location: Path | None = None) -> Path:
        target = Path(location).expanduser() if location else self.location
        if target is None:
            raise RegistryIOError("cannot save state: file path is not set")
        with self._lock.shared():
            payload = {"repositories": [entry.to_dict() for entry in self._entries]}
        data = json.dumps(payload, indent=2) + "\n"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            handle = NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=target.parent,
                prefix=f".{target.name}.",
                suffix=".tmp",
                delete=False,
            )
        except OSError as exc:
            raise RegistryIOError(f"failed to create a temporary file in {target.parent}: {exc}") from exc
        tmp_path = Path(handle.name)
        try:
            with handle:
                handle.write(data)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise RegistryIOError(f"failed to write state to temporary file {tmp_path}: {exc}") from exc
        try:
            os.replace(tmp_path, target)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise RegistryIOError(f"failed to rename {tmp_path} to {target}: {exc}") from exc
        logger.debug("Saved %d repositories to %s", len(payload["repositories"]), target)
        return target

    def entries(self) -> list[RepositoryEntry]:
        with self._lock.shared():
            return [entry.copy() for entry in self._entries]

    def find_by_path(self, path: str | Path) -> RepositoryEntry | None:
        key = str(path)
        with self._lock.shared():
            for entry in self._entries:
                if entry.path == key:
                    return entry.copy()
        return None

    def find_by_original_url(self, url: str) -> RepositoryEntry | None:
        with self._lock.shared():
            for entry in self._entries:
                if entry.original_url == url:
                    return entry.copy()
        return None

    def duplicates_by_original_url(self) -> dict[str, list[str]]:
        """Return original URLs tracked at more than one path."""

        seen: dict[str, list[str]] = {}
        with self._lock.shared():
            for entry in self._entries:
                seen.setdefault(entry.original_url, []).append(entry.path)
        return {url: paths for url, paths in seen.items() if len(paths) > 1}

    def upsert(self, entry: RepositoryEntry) -> RepositoryEntry:
        if not entry.path:
            raise ValidationError("cannot add repository: path is empty")
        if not entry.original_url:
            raise ValidationError(f"cannot add repository '{entry.name}': original URL is empty")
        incoming = entry.copy()
        now = utcnow()
        incoming.last_modified = now
        if incoming.last_checked is None:
            incoming.last_checked = now
        with self._lock.exclusive():
            for index, existing in enumerate(self._entries):
                if existing.path == incoming.path:
                    _carry_forward(incoming, existing)
                    if incoming.cloned_at is None:
                        incoming.cloned_at = now
                    self._entries[index] = incoming
                    return incoming.copy()
            for existing in self._entries:
                if existing.original_url == incoming.original_url:
                    logger.warning(
                        "%s is already tracked at %s; also tracking it at %s",
                        incoming.original_url,
                        existing.path,
                        incoming.path,
                    )
                    break
            if incoming.cloned_at is None:
                incoming.cloned_at = now
            self._entries.append(incoming)
            return incoming.copy()

    def update(self, entry: RepositoryEntry, *, previous_path: str | None = None) -> RepositoryEntry:
        """Replace the entry stored at ``previous_path`` (default ``entry.path``).

        Passing ``previous_path`` relocates the entry; the new path must not be
        tracked by another entry.
        """

        if not entry.path:
            raise ValidationError("cannot update repository: path is empty")
        lookup = previous_path or entry.path
        incoming = entry.copy()
        with self._lock.exclusive():
            index = next((i for i, e in enumerate(self._entries) if e.path == lookup), None)
            if index is None:
                raise NotFoundError(f"repository with path {lookup} not found in state, cannot update")
            if incoming.path != lookup and any(e.path == incoming.path for e in self._entries):
                raise ConflictError(f"{incoming.path} is already tracked by another repository")
            _carry_forward(incoming, self._entries[index])
            incoming.last_modified = utcnow()
            self._entries[index] = incoming
            return incoming.copy()

    def remove_by_path(self, path: str | Path) -> bool:
        key = str(path)
        with self._lock.exclusive():
            for index, entry in enumerate(self._entries):
                if entry.path == key:
                    del self._entries[index]
                    return True
        return False


__all__ = ["RegistryStore", "ReadWriteLock"]
