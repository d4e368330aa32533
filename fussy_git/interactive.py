"""Interactive prompt helpers built on InquirerPy."""

from __future__ import annotations

import sys
from typing import Any, Sequence

from InquirerPy import inquirer
from InquirerPy.base.control import Choice

from .exceptions import UserAbort, ValidationError
from .models import RepositoryEntry


def _ensure_tty() -> None:
    if not sys.stdin.isatty():
        raise ValidationError(
            "Interactive mode requires a TTY. Provide the missing arguments to run non-interactively."
        )


def fuzzy_select(message: str, choices: Sequence[Choice | str]) -> Any:
    _ensure_tty()
    try:
        return inquirer.fuzzy(message=message, choices=choices).execute()
    except KeyboardInterrupt as exc:
        raise UserAbort("Selection cancelled.") from exc


def confirm(message: str, default: bool = False) -> bool:
    _ensure_tty()
    try:
        return bool(inquirer.confirm(message=message, default=default).execute())
    except KeyboardInterrupt as exc:
        raise UserAbort("Cancelled.") from exc


def build_repository_choices(entries: Sequence[RepositoryEntry]) -> tuple[list[Choice], dict[str, RepositoryEntry]]:
    """Return the choice list used for prompts plus a lookup keyed by path."""

    lookup: dict[str, RepositoryEntry] = {}
    choices: list[Choice] = []
    for entry in entries:
        if entry.path in lookup:
            raise ValidationError(f"Duplicate repository path detected: {entry.path}")
        lookup[entry.path] = entry
        choices.append(Choice(value=entry.path, name=f"{entry.name} · {entry.path}"))
    return choices, lookup


def select_repository(entries: Sequence[RepositoryEntry]) -> RepositoryEntry:
    choices, lookup = build_repository_choices(entries)
    selection = fuzzy_select("Select repository", choices)
    try:
        return lookup[str(selection)]
    except KeyError as exc:
        raise ValidationError("Selected repository could not be resolved.") from exc
