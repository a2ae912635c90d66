"""
sftpsync once - Run a single reconciliation cycle and exit.
"""

import asyncio
import json
from pathlib import Path

import typer

from sftpsync.cli.run import console, load_engine
from sftpsync.exceptions import RemoteConnectionError

app = typer.Typer(name="once", help="Run one reconciliation cycle and exit", invoke_without_command=True)


@app.callback()
def once(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment overlay (sftpsync.<env>.yaml)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Connect, download and ingest whatever is missing locally, then disconnect.

    Exits with code 1 when the connection fails or an ingestion step fails.
    """
    if ctx.invoked_subcommand is not None:
        return

    engine = load_engine(project_dir, env, verbose)
    try:
        summary = asyncio.run(engine.run_once())
    except RemoteConnectionError as e:
        console.print(f"[red]Connection failed:[/red] {e.message}")
        raise typer.Exit(1) from None

    typer.echo(json.dumps(summary.as_dict(), indent=2))
    if summary.aborted or summary.ingestion_failures:
        raise typer.Exit(1)
