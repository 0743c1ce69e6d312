"""Command line interface for the HQ Admin end-to-end suite."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import ConfigError, SuiteConfig, load_config
from .factory import build_session_cache, build_session_manager
from .runner import RunOptions, run_pytest
from .session.manager import SetupError

app = typer.Typer(help="HQ Admin end-to-end suite")
console = Console()

ConfigPathOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to YAML configuration."),
]
EnvFileOption = Annotated[
    Optional[Path],
    typer.Option("--env-file", help="Path to an .env file with the suite variables."),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("hq-admin-e2e"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def run(
    targets: Annotated[
        Optional[list[str]],
        typer.Argument(help="Test files or node ids; defaults to tests/e2e."),
    ] = None,
    keyword: Annotated[
        Optional[str],
        typer.Option("--grep", "-k", help="Only run scenarios matching this pytest -k expression."),
    ] = None,
    headed: Annotated[
        bool,
        typer.Option("--headed", help="Show the browser window."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Open the Playwright inspector (headed, single worker)."),
    ] = False,
    workers: Annotated[
        Optional[int],
        typer.Option("--workers", "-n", min=1, help="Number of parallel workers."),
    ] = None,
    retries: Annotated[
        Optional[int],
        typer.Option("--retries", min=0, help="Re-run a failed scenario up to N times."),
    ] = None,
    skip_setup: Annotated[
        bool,
        typer.Option("--skip-setup", help="Do not run the authentication phase first."),
    ] = False,
    config_path: ConfigPathOption = None,
    env_file: EnvFileOption = None,
) -> None:
    """Authenticate once, then run the browser scenarios through pytest."""

    overrides: dict[str, Any] = {}
    if headed or debug:
        overrides["browser"] = {"headless": False}
    config = _load(config_path, env_file, **overrides)
    typer.echo(f"Target: {config.base_url} ({config.app_env.value})")

    if not skip_setup and not _authenticate(config):
        console.print("Scenarios were not started because setup failed.", style="red")
        raise typer.Exit(code=1)

    options = RunOptions(
        targets=tuple(targets or ()),
        keyword=keyword,
        headed=headed,
        debug=debug,
        workers=workers,
        retries=retries,
        env_file=env_file,
        config_path=config_path,
    )
    code = run_pytest(config, options)
    if code != 0:
        raise typer.Exit(code=code)
    console.print("All scenarios passed.", style="green")


@app.command()
def setup(
    force: Annotated[
        bool,
        typer.Option("--force", help="Log in even if the stored session is still usable."),
    ] = False,
    headed: Annotated[
        bool,
        typer.Option("--headed", help="Show the browser window during login."),
    ] = False,
    config_path: ConfigPathOption = None,
    env_file: EnvFileOption = None,
) -> None:
    """Run only the authentication phase."""

    overrides: dict[str, Any] = {"browser": {"headless": False}} if headed else {}
    config = _load(config_path, env_file, **overrides)
    if not _authenticate(config, force=force):
        raise typer.Exit(code=1)
    console.print("Session is ready.", style="green")


@app.command()
def session(
    config_path: ConfigPathOption = None,
    env_file: EnvFileOption = None,
) -> None:
    """Show the stored session for the configured environment."""

    config = _load(config_path, env_file)
    cache = build_session_cache(config)
    snapshot = cache.acquire()

    table = Table(title=f"HQ Admin session ({config.app_env.value})")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("File", str(cache.path))
    if snapshot is None:
        table.add_row("Status", "[yellow]missing or unreadable[/yellow]")
        console.print(table)
        raise typer.Exit(code=1)

    usable = cache.is_usable(snapshot)
    table.add_row("Modified", snapshot.modified_at.isoformat() if snapshot.modified_at else "-")
    table.add_row("Origins", str(len(snapshot.origins)))
    table.add_row("Cookies", str(len(snapshot.cookies)))
    if snapshot.has_entries:
        table.add_row("Validity", cache.validity(snapshot).reason)
    else:
        table.add_row("Validity", "no storage entries")
    table.add_row("Status", "[green]usable[/green]" if usable else "[red]login required[/red]")
    console.print(table)
    if not usable:
        raise typer.Exit(code=1)


def _load(config_path: Optional[Path], env_file: Optional[Path], **overrides: object) -> SuiteConfig:
    try:
        return load_config(config_path, env_file=env_file, **overrides)
    except ConfigError as exc:
        console.print(str(exc), style="red", markup=False)
        raise typer.Exit(code=2) from exc


def _authenticate(config: SuiteConfig, *, force: bool = False) -> bool:
    manager = build_session_manager(config)
    try:
        manager.ensure_session(force=force)
    except SetupError as exc:
        console.print(f"Setup failed: {exc}", style="bold red", markup=False)
        return False
    return True


if __name__ == "__main__":
    app()
