"""Read-only health checks for tracked repositories."""

from __future__ import annotations

from pathlib import Path

from .exceptions import ParseError, RemoteInspectionError
from .fs import same_location
from .git import RemoteInspector
from .models import HealthReport
from .registry import RegistryStore
from .urls import canonical_path, parse_url, same_remote


def diagnose(store: RegistryStore, inspector: RemoteInspector, root: Path) -> list[HealthReport]:
    """Inspect every entry without changing anything."""

    duplicates = store.duplicates_by_original_url()
    reports: list[HealthReport] = []
    for entry in store.entries():
        issues: list[str] = []
        path = Path(entry.path)
        others = [p for p in duplicates.get(entry.original_url, []) if p != entry.path]
        if others:
            issues.append(f"original URL is also tracked at: {', '.join(others)}")
        try:
            path.stat()
        except FileNotFoundError:
            issues.append(f"path does not exist: {path}")
            reports.append(HealthReport(entry=entry, issues=issues))
            continue
        except OSError as exc:
            issues.append(f"error accessing path {path}: {exc}")
            reports.append(HealthReport(entry=entry, issues=issues))
            continue
        if not inspector.is_repository(path):
            issues.append(f"path is not a git repository: {path}")
            reports.append(HealthReport(entry=entry, issues=issues))
            continue
        try:
            live_url = inspector.origin_url(path)
        except RemoteInspectionError as exc:
            issues.append(f"failed to get live origin URL: {exc}")
            reports.append(HealthReport(entry=entry, issues=issues))
            continue

        stored = live = None
        try:
            stored = parse_url(entry.current_url)
        except ParseError as exc:
            issues.append(f"could not parse stored current URL: {exc}")
        try:
            live = parse_url(live_url)
        except ParseError as exc:
            issues.append(f"could not parse live origin URL: {exc}")

        if stored is not None and live is not None:
            if not same_remote(stored, live):
                issues.append(f"remote URL mismatch: stored '{entry.current_url}', live '{live_url}'")
        elif entry.current_url != live_url:
            issues.append(f"remote URL mismatch (direct string): stored '{entry.current_url}', live '{live_url}'")

        if live is not None:
            expected = canonical_path(live, root)
            if not same_location(path, expected):
                message = f"not in canonical location: actual '{path}', expected '{expected}'"
                if entry.manually_added:
                    message += " (manually added)"
                issues.append(message)
        reports.append(HealthReport(entry=entry, issues=issues))
    return reports


__all__ = ["diagnose"]
