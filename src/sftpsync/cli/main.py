"""
Main CLI entry point.
"""

import typer

from sftpsync import __version__
from sftpsync.cli import config, once, run


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"sftpsync version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="sftpsync",
    help="sftpsync - keep a local directory in sync with an SFTP server and ingest new files",
    add_completion=True,
)

# Register subcommands
app.add_typer(run.app, name="run")
app.add_typer(once.app, name="once")
app.add_typer(config.app, name="config")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    sftpsync - keep a local directory in sync with an SFTP server.

    Run 'sftpsync <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        if not version:
            typer.echo(ctx.get_help())
            raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
