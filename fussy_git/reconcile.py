"""Bring registry entries back in line with the filesystem and their live remotes.

Each entry is evaluated on its own:

1. skip it when its path is missing, not a repository, or its origin cannot be
   read or parsed;
2. compare the stored and live origin URLs across transport schemes and adopt the
   live one when they differ;
3. move the repository to its canonical path unless something already occupies it;
4. re-derive the short name from the URL.

A dry run evaluates the same steps against a scratch copy of each entry and
touches neither the filesystem nor the state file. An applied run updates the
store entry by entry and saves once at the end.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .exceptions import FussyGitError, ParseError, PersistenceError, RegistryIOError, RemoteInspectionError
from .fs import move_directory, occupied, same_location
from .git import RemoteInspector
from .models import RepositoryEntry
from .registry import RegistryStore
from .urls import ParsedURL, canonical_path, normalized_identity, parse_url, same_remote

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    UPDATE_URL = "update-url"
    MOVE = "move"
    RENAME = "rename"


class EntryStatus(str, Enum):
    OK = "ok"
    DRIFT = "drift"
    SKIPPED = "skipped"


@dataclass
class Action:
    kind: ActionKind
    old: str
    new: str
    applied: bool = False
    conflict: bool = False
    error: str | None = None
    note: str | None = None

    @property
    def cosmetic(self) -> bool:
        return self.kind is ActionKind.RENAME


@dataclass
class EntryReport:
    name: str
    path: str
    status: EntryStatus = EntryStatus.OK
    actions: list[Action] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    dirty: bool = False

    def skip(self, issue: str) -> "EntryReport":
        self.status = EntryStatus.SKIPPED
        self.issues.append(issue)
        logger.warning("Skipping %s: %s", self.path, issue)
        return self


@dataclass
class ReconcileResult:
    dry_run: bool
    reports: list[EntryReport] = field(default_factory=list)
    persisted: bool = False

    def _actions(self, kind: ActionKind | None = None) -> list[Action]:
        return [
            action
            for report in self.reports
            for action in report.actions
            if not action.cosmetic and (kind is None or action.kind is kind)
        ]

    @property
    def proposed(self) -> int:
        return len(self._actions())

    @property
    def taken(self) -> int:
        return sum(1 for action in self._actions() if action.applied)

    @property
    def url_updates(self) -> list[Action]:
        return self._actions(ActionKind.UPDATE_URL)

    @property
    def moves(self) -> list[Action]:
        return self._actions(ActionKind.MOVE)

    @property
    def conflicts(self) -> list[Action]:
        return [action for action in self.moves if action.conflict]

    @property
    def moved(self) -> int:
        return sum(1 for action in self.moves if action.applied)

    @property
    def skipped(self) -> list[EntryReport]:
        return [report for report in self.reports if report.status is EntryStatus.SKIPPED]

    @property
    def changed(self) -> bool:
        return any(report.dirty for report in self.reports)


@dataclass
class Reconciler:
    store: RegistryStore
    inspector: RemoteInspector
    root: Path

    def run(self, *, dry_run: bool = False) -> ReconcileResult:
        result = ReconcileResult(dry_run=dry_run)
        for entry in self.store.entries():
            result.reports.append(self._reconcile(entry, dry_run=dry_run))
        if dry_run or not result.changed:
            return result
        try:
            self.store.save()
        except RegistryIOError as exc:
            raise PersistenceError(
                f"reconciliation finished in memory but the state could not be saved: {exc}",
                result,
            ) from exc
        result.persisted = True
        return result

    def _reconcile(self, entry: RepositoryEntry, *, dry_run: bool) -> EntryReport:
        report = EntryReport(name=entry.name, path=entry.path)
        path = Path(entry.path)
        try:
            path.stat()
        except FileNotFoundError:
            return report.skip(f"path does not exist: {path}. Consider removing it from the registry.")
        except OSError as exc:
            return report.skip(f"error accessing path {path}: {exc}. Manual check required.")
        if not self.inspector.is_repository(path):
            return report.skip(f"path is not a git repository: {path}. Manual check required.")
        try:
            live_url = self.inspector.origin_url(path)
        except RemoteInspectionError as exc:
            return report.skip(f"failed to read live origin URL: {exc}")
        try:
            live = parse_url(live_url)
        except ParseError as exc:
            return report.skip(f"failed to parse live origin URL: {exc}")

        working = entry.copy()
        current = self._check_url(entry, working, live, report, dry_run=dry_run)
        self._check_path(entry, working, current, report, dry_run=dry_run)
        self._check_name(working, current, report, dry_run=dry_run)

        working.domain = current.domain
        working.normalized_path = normalized_identity(current)
        if report.actions:
            report.status = EntryStatus.DRIFT
        if dry_run:
            return report
        if any(action.applied for action in report.actions) or (
            working.domain != entry.domain or working.normalized_path != entry.normalized_path
        ):
            try:
                self.store.update(working, previous_path=entry.path)
            except FussyGitError as exc:
                report.issues.append(f"failed to record changes in the registry: {exc}")
            else:
                report.dirty = True
        return report

    def _check_url(
        self,
        entry: RepositoryEntry,
        working: RepositoryEntry,
        live: ParsedURL,
        report: EntryReport,
        *,
        dry_run: bool,
    ) -> ParsedURL:
        try:
            stored = parse_url(entry.current_url)
        except ParseError:
            stored = None
        if stored is not None and same_remote(stored, live):
            return stored
        action = Action(ActionKind.UPDATE_URL, old=entry.current_url, new=live.original, applied=not dry_run)
        working.current_url = live.original
        if entry.original_url == entry.current_url:
            working.original_url = live.original
            action.note = "original URL follows"
        report.actions.append(action)
        return live

    def _check_path(
        self,
        entry: RepositoryEntry,
        working: RepositoryEntry,
        current: ParsedURL,
        report: EntryReport,
        *,
        dry_run: bool,
    ) -> None:
        target = canonical_path(current, self.root)
        if same_location(entry.path, target):
            return
        action = Action(ActionKind.MOVE, old=entry.path, new=str(target))
        report.actions.append(action)
        holder = self.store.find_by_path(target)
        if holder is not None and holder.path != entry.path:
            action.conflict = True
            report.issues.append(f"canonical path {target} is already tracked for {holder.current_url}")
            return
        if occupied(target):
            action.conflict = True
            report.issues.append(f"canonical path {target} already exists. Manual intervention required.")
            return
        if dry_run:
            return
        try:
            move_directory(entry.path, target)
        except OSError as exc:
            action.error = str(exc)
            report.issues.append(f"failed to move {entry.path} to {target}: {exc}")
            return
        action.applied = True
        working.path = str(target)

    @staticmethod
    def _check_name(working: RepositoryEntry, current: ParsedURL, report: EntryReport, *, dry_run: bool) -> None:
        if working.name == current.repo_name:
            return
        report.actions.append(Action(ActionKind.RENAME, old=working.name, new=current.repo_name, applied=not dry_run))
        working.name = current.repo_name


__all__ = [
    "ActionKind",
    "EntryStatus",
    "Action",
    "EntryReport",
    "ReconcileResult",
    "Reconciler",
]
