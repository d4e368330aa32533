"""Typer CLI entrypoint for fussy-git."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import click
import typer
from typer.core import TyperGroup

from . import __version__, render
from .config import Config, load_config
from .doctor import diagnose
from .exceptions import FussyGitError, PersistenceError, UserAbort
from .git import GitInspector, run_git_passthrough
from .interactive import confirm, select_repository
from .reconcile import Reconciler
from .registry import RegistryStore
from .workflows import RepositoryService, Scheme

PASSTHROUGH_COMMAND = "git"


class PassthroughGroup(TyperGroup):
    """Routes subcommands fussy-git does not define to the hidden ``git`` command."""

    def resolve_command(self, ctx: click.Context, args: list[str]):
        if args and not args[0].startswith("-") and self.get_command(ctx, args[0]) is None:
            return PASSTHROUGH_COMMAND, self.get_command(ctx, PASSTHROUGH_COMMAND), args
        return super().resolve_command(ctx, args)


app = typer.Typer(
    cls=PassthroughGroup,
    add_completion=False,
    no_args_is_help=True,
    help=(
        "Keep cloned git repositories organized under $FUSSY_GIT_HOME/<domain>/<path>. "
        "Any other command is passed through to git."
    ),
)


@dataclass
class AppState:
    config: Config
    store: RegistryStore
    service: RepositoryService
    verbose: bool = False


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fussy-git {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Config file (default is ~/.fussy-git/config.yaml).",
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the fussy-git version and exit.",
    ),
) -> None:
    _ = version  # handled via callback
    configure_logging(verbose)
    try:
        config = load_config(config_file)
        store = RegistryStore.load(config.state_file)
    except FussyGitError as exc:
        _fail(f"Failed to initialize: {exc}")
    service = RepositoryService(store=store, inspector=GitInspector(), home=config.home)
    ctx.obj = AppState(config=config, store=store, service=service, verbose=verbose)


def _require_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if not isinstance(state, AppState):  # pragma: no cover
        raise typer.Exit(1)
    return state


@app.command()
def clone(ctx: typer.Context, url: str = typer.Argument(..., help="Remote URL to clone.")) -> None:
    """Clone a repository into $FUSSY_GIT_HOME/<domain>/<path>."""

    state = _require_state(ctx)
    try:
        render.info(f"Cloning {url}...")
        entry, created = state.service.clone(url)
    except FussyGitError as exc:
        _fail(str(exc))
    if created:
        render.success(f"Repository {entry.name} cloned to {entry.path} and tracked.")
    else:
        render.info(f"Repository {entry.name} is already cloned at {entry.path} with a matching URL.")


@app.command()
def add(ctx: typer.Context, path: Path = typer.Argument(..., help="Path to an existing local repository.")) -> None:
    """Track an existing local repository where it currently lives."""

    state = _require_state(ctx)
    try:
        entry, created = state.service.adopt(path)
        canonical = state.service.canonical_path_for(entry.current_url)
    except FussyGitError as exc:
        _fail(str(exc))
    if not created:
        render.info(f"{entry.path} is already tracked (name: {entry.name}, URL: {entry.current_url}).")
        return
    if str(canonical) != entry.path:
        render.warning(f"{entry.path} is not in its canonical location: {canonical}")
        render.warning("Run 'fussy-git reorganize' to move it.")
    render.success(f"Added {entry.name} ({entry.path}).")


@app.command("list")
def list_(
    ctx: typer.Context,
    json_: bool = typer.Option(False, "--json", help="Output JSON instead of a table."),
) -> None:
    """List tracked repositories."""

    state = _require_state(ctx)
    entries = state.store.entries()
    if json_:
        typer.echo(render.repositories_json(entries))
        return
    if not entries:
        render.console.print("No repositories are currently managed by fussy-git.")
        render.console.print("Try cloning one with: fussy-git clone <repo_url>")
        return
    render.console.print(render.repositories_table(entries))


@app.command()
def rm(
    ctx: typer.Context,
    path: Optional[Path] = typer.Argument(None, help="Tracked path. If omitted, an interactive picker is shown."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Stop tracking a repository. Files on disk are left untouched."""

    state = _require_state(ctx)
    try:
        if path is None:
            entries = state.store.entries()
            if not entries:
                render.console.print("No repositories are currently managed by fussy-git.")
                raise typer.Exit(0)
            target = select_repository(entries).path
        else:
            target = state.service.resolve_tracked(path).path
        if not yes and not confirm(f"Stop tracking {target}?"):
            raise UserAbort("Nothing removed.")
        entry = state.service.remove(target)
    except UserAbort as exc:
        render.console.print(str(exc))
        raise typer.Exit(1) from exc
    except FussyGitError as exc:
        _fail(str(exc))
    render.success(f"Removed {entry.name} ({entry.path}) from the registry.")


@app.command()
def prune(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Untrack repositories whose path no longer exists."""

    state = _require_state(ctx)
    missing = state.service.missing_entries()
    if not missing:
        render.success("Every tracked path exists. Nothing to prune.")
        return
    for entry in missing:
        render.warning(f"Missing: {entry.name} ({entry.path})")
    try:
        if not yes and not confirm(f"Remove {len(missing)} missing entries from the registry?"):
            raise UserAbort("Nothing pruned.")
        removed = state.service.prune(missing)
    except UserAbort as exc:
        render.console.print(str(exc))
        raise typer.Exit(1) from exc
    except FussyGitError as exc:
        _fail(str(exc))
    render.success(f"Pruned {removed} entries.")


@app.command()
def remote(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Tracked repository path."),
    ssh: bool = typer.Option(False, "--ssh", help="Switch origin to the SSH form."),
    https: bool = typer.Option(False, "--https", help="Switch origin to the HTTPS form."),
) -> None:
    """Switch a repository's origin between its SSH and HTTPS forms."""

    state = _require_state(ctx)
    if ssh == https:
        _fail("Pass exactly one of --ssh or --https.")
    scheme = Scheme.SSH if ssh else Scheme.HTTPS
    try:
        old, new = state.service.switch_remote_scheme(path, scheme)
    except FussyGitError as exc:
        _fail(str(exc))
    if old == new:
        render.info(f"Origin already uses {scheme.value}: {new}")
    else:
        render.success(f"Origin changed from {old} to {new}")


@app.command()
def doctor(ctx: typer.Context) -> None:
    """Check tracked repositories for drift without changing anything."""

    state = _require_state(ctx)
    if not len(state.store):
        render.console.print("No repositories are currently managed by fussy-git. Nothing to check.")
        return
    reports = diagnose(state.store, state.service.inspector, state.config.home)
    render.show_health(reports)
    unhealthy = sum(1 for report in reports if not report.ok)
    if unhealthy:
        _fail(f"{unhealthy} repositories reported issues.")
    render.success("All checks passed.")


@app.command()
def reorganize(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change without applying it."),
) -> None:
    """Move repositories to their canonical paths and record remote changes."""

    state = _require_state(ctx)
    if not len(state.store):
        render.console.print("No repositories are currently managed by fussy-git. Nothing to reorganize.")
        return
    reconciler = Reconciler(store=state.store, inspector=state.service.inspector, root=state.config.home)
    try:
        result = reconciler.run(dry_run=dry_run)
    except PersistenceError as exc:
        if exc.result is not None:
            render.show_reconcile_result(exc.result)
        _fail(f"{exc}\nPlease check the state file manually: {state.config.state_file}")
    render.show_reconcile_result(result)


@app.command(
    PASSTHROUGH_COMMAND,
    hidden=True,
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True, "help_option_names": []},
)
def git_passthrough(ctx: typer.Context) -> None:
    """Run git in the tracked repository containing the current directory."""

    state = _require_state(ctx)
    cwd = Path.cwd()
    try:
        code = run_git_passthrough(ctx.args, cwd=state.service.passthrough_directory(cwd))
    except FussyGitError as exc:
        _fail(str(exc))
    raise typer.Exit(code)


def _fail(message: str, code: int = 1) -> NoReturn:
    render.error(message)
    raise typer.Exit(code)


__all__ = ["app"]
