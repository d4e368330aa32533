"""Rich UI helpers for terminal output."""

from __future__ import annotations

import json
from typing import Sequence

from rich.console import Console
from rich.table import Table

from .models import HealthReport, RepositoryEntry
from .reconcile import Action, ActionKind, EntryReport, EntryStatus, ReconcileResult

console = Console()
err_console = Console(stderr=True)


def info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def error(message: str) -> None:
    err_console.print(f"[red]✗[/red] {message}", style="red", markup=False, highlight=False)


def repositories_table(entries: Sequence[RepositoryEntry]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Path")
    table.add_column("Current URL")
    table.add_column("Original URL")
    table.add_column("Domain")
    for entry in entries:
        table.add_row(entry.name, entry.path, entry.current_url, entry.original_url, entry.domain)
    return table


def repositories_json(entries: Sequence[RepositoryEntry]) -> str:
    return json.dumps([entry.to_dict() for entry in entries], indent=2)


def _describe(action: Action, dry_run: bool) -> str:
    if action.kind is ActionKind.UPDATE_URL:
        text = f"Remote URL changed: was '{action.old}', now '{action.new}'"
        if action.note:
            text += f" ({action.note})"
    elif action.kind is ActionKind.MOVE:
        if action.applied:
            text = f"Moved '{action.old}' -> '{action.new}'"
        elif dry_run and not action.conflict:
            text = f"Would move '{action.old}' -> '{action.new}'"
        else:
            text = f"Path mismatch: actual '{action.old}', canonical '{action.new}'"
    else:
        text = f"Name updated from '{action.old}' to '{action.new}'"
    return text


def entry_report_lines(report: EntryReport, dry_run: bool) -> list[str]:
    if report.status is EntryStatus.SKIPPED:
        return [f"[SKIP] {issue}" for issue in report.issues]
    lines = [_describe(action, dry_run) for action in report.actions]
    lines.extend(f"[FAIL] {issue}" for issue in report.issues)
    return lines or ["No issues or changes needed."]


def show_reconcile_result(result: ReconcileResult) -> None:
    if result.dry_run:
        info("DRY RUN: no changes will be made to the filesystem or state file.")
    for report in result.reports:
        console.print(f"[bold]{report.name}[/bold] ({report.path})", highlight=False)
        for line in entry_report_lines(report, result.dry_run):
            console.print(f"  {line}", markup=False, highlight=False)
    console.print()
    console.print("[bold]Reorganization summary[/bold]")
    if result.dry_run:
        console.print(f"  Actions proposed: {result.proposed}")
        console.print(f"  Moves that would conflict: {len(result.conflicts)}")
    else:
        console.print(f"  Actions taken:    {result.taken}")
        console.print(f"  Move conflicts:   {len(result.conflicts)}")
    console.print(f"  Skipped entries:  {len(result.skipped)}")
    if result.persisted:
        success("State saved.")
    elif not result.dry_run and not result.proposed:
        success("No changes were necessary. All repositories are organized.")


def show_health(reports: Sequence[HealthReport]) -> None:
    for index, report in enumerate(reports, start=1):
        status = "[green]OK[/green]" if report.ok else "[red]ISSUES FOUND[/red]"
        console.print(f"#{index} [bold]{report.entry.name}[/bold] ({report.entry.path}): {status}", highlight=False)
        for issue in report.issues:
            console.print(f"    - {issue}", markup=False, highlight=False)
    healthy = sum(1 for report in reports if report.ok)
    console.print()
    console.print("[bold]Doctor summary[/bold]")
    console.print(f"  Repositories checked:     {len(reports)}")
    console.print(f"  Repositories OK:          {healthy}")
    console.print(f"  Repositories with issues: {len(reports) - healthy}")
