"""
sftpsync run - Long-running sync service.

Connects to the SFTP server, reconciles immediately and then on a fixed
interval, reconnecting after any connection failure until stopped.
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from sftpsync.config.loader import build_settings, load_config
from sftpsync.exceptions import ConfigurationError
from sftpsync.sync.engine import SyncEngine
from sftpsync.utils.logging import setup_logging_from_config

app = typer.Typer(name="run", help="Run the sync service until interrupted", invoke_without_command=True)

console = Console(stderr=True)


def load_engine(project_dir: Path, env: str | None, verbose: bool) -> SyncEngine:
    """Load config, set up logging and build the engine; exits with code 2 on bad config."""
    try:
        config = load_config(project_dir, env=env)
        if verbose:
            config.data.setdefault("logging", {})["level"] = "DEBUG"
        setup_logging_from_config(config.data, project_dir=project_dir)
        settings = build_settings(config, project_path=project_dir)
        return SyncEngine(settings)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(2) from None


@app.callback()
def run(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment overlay (sftpsync.<env>.yaml)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Keep the local directory synchronized with the remote SFTP directory.
    """
    if ctx.invoked_subcommand is None:
        engine = load_engine(project_dir, env, verbose)
        try:
            asyncio.run(engine.run_forever())
        except KeyboardInterrupt:
            pass
