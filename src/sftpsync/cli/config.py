"""
sftpsync config - Show the resolved configuration.
"""

from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.syntax import Syntax

from sftpsync.config.loader import load_config
from sftpsync.exceptions import ConfigurationError

app = typer.Typer(name="config", help="Show the resolved configuration", invoke_without_command=True)

console = Console()

SECRET_KEYS = {"password", "private_key_passphrase"}


@app.callback()
def config(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment overlay (sftpsync.<env>.yaml)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    check: bool = typer.Option(False, "--check", help="Validate and exit non-zero on errors"),
):
    """
    Print the configuration after .env, YAML and environment variables are merged.
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        cfg = load_config(project_dir, env=env)
    except ConfigurationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(2) from None
    content = yaml.safe_dump(mask_secrets(cfg.data), sort_keys=False)
    console.print(Syntax(content, "yaml", theme="monokai"))

    if check:
        try:
            cfg.validate()
        except ConfigurationError as e:
            console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(1) from None
        console.print("[green]Configuration is valid[/green]")


def mask_secrets(data):
    if isinstance(data, dict):
        return {k: ("****" if k in SECRET_KEYS and v else mask_secrets(v)) for k, v in data.items()}
    if isinstance(data, list):
        return [mask_secrets(v) for v in data]
    return data
