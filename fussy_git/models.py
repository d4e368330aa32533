"""Dataclasses shared across modules."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .urls import ParsedURL, normalized_identity

# Written by older state files for unset timestamps.
_ZERO_TIMESTAMPS = {"0001-01-01T00:00:00Z", "0001-01-01T00:00:00+00:00"}
_FRACTION_RE = re.compile(r"(\.\d+)")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dump_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _load_time(value: Any) -> datetime | None:
    if not value or value in _ZERO_TIMESTAMPS:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # fromisoformat accepts at most microseconds
    text = _FRACTION_RE.sub(lambda m: m.group(1)[:7], text)
    parsed = datetime.fromisoformat(text)
    if parsed.year == 1:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class RepositoryEntry:
    """A single repository tracked in the registry."""

    name: str
    path: str
    original_url: str
    current_url: str
    domain: str = ""
    normalized_path: str = ""
    last_checked: datetime | None = None
    last_modified: datetime | None = None
    cloned_at: datetime | None = None
    manually_added: bool = False
    notes: str = ""

    @classmethod
    def from_parsed(
        cls,
        parsed: ParsedURL,
        path: str,
        *,
        manually_added: bool = False,
    ) -> "RepositoryEntry":
        return cls(
            name=parsed.repo_name,
            path=path,
            original_url=parsed.original,
            current_url=parsed.original,
            domain=parsed.domain,
            normalized_path=normalized_identity(parsed),
            manually_added=manually_added,
        )

    def copy(self) -> "RepositoryEntry":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "original_url": self.original_url,
            "current_url": self.current_url,
            "domain": self.domain,
            "normalized_fs": self.normalized_path,
            "last_checked": _dump_time(self.last_checked),
            "last_modified": _dump_time(self.last_modified),
            "cloned_at": _dump_time(self.cloned_at),
            "manually_added": self.manually_added,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepositoryEntry":
        return cls(
            name=data.get("name") or "",
            path=data["path"],
            original_url=data.get("original_url") or "",
            current_url=data.get("current_url") or "",
            domain=data.get("domain") or "",
            normalized_path=data.get("normalized_fs") or data.get("normalized_path") or "",
            last_checked=_load_time(data.get("last_checked")),
            last_modified=_load_time(data.get("last_modified")),
            cloned_at=_load_time(data.get("cloned_at")),
            manually_added=bool(data.get("manually_added", False)),
            notes=data.get("notes") or "",
        )


@dataclass(frozen=True)
class HealthReport:
    """Read-only diagnosis of one entry."""

    entry: RepositoryEntry
    issues: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues
