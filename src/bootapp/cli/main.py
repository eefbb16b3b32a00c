"""Main CLI implementation using Typer."""

from typing import Any, Callable

import typer
from rich.console import Console

from bootapp.cli.commands import down_project, list_project, up_project
from bootapp.engine import BootappEngine
from bootapp.errors import BootappError
from bootapp.models.config import BootappSettings
from bootapp.prompt import InteractivePrompter, PolicyPrompter, Prompter
from bootapp.utils.logging import setup_logging


app = typer.Typer(
    name="bootapp",
    help="Bootapp - isolated docker projects with their own subnet, routes and domains",
    add_completion=False,
)

console = Console()


def _prompter(yes: bool, no_input: bool) -> Prompter:
    if yes:
        return PolicyPrompter(allow=True)
    if no_input:
        return PolicyPrompter(allow=False)
    return InteractivePrompter()


def _run_cli_command(
    handler: Callable[..., Any],
    yes: bool = False,
    no_input: bool = False,
    **kwargs: Any,
):
    """Helper to run a CLI command with an engine and error handling."""
    try:
        settings = BootappSettings()
        engine = BootappEngine(settings=settings, prompter=_prompter(yes, no_input), console=console)
        handler(engine, **kwargs)
    except BootappError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ValueError as e:
        console.print(f"[red]Error:[/red] Invalid settings: {e}")
        raise typer.Exit(1) from e


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
):
    """Configure logging before any command runs."""
    if verbose:
        setup_logging("DEBUG")
        return
    try:
        setup_logging(BootappSettings().log_level)
    except ValueError:
        setup_logging("INFO")


@app.command("up")
def up_command(
    attach: bool = typer.Option(False, "--attach", "-a", help="Stream container output until interrupted"),
    pull: bool = typer.Option(False, "--pull", "-p", help="Pull images before creating containers"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Answer yes to every confirmation"),
    no_input: bool = typer.Option(False, "--no-input", help="Answer no to every confirmation"),
):
    """Create the project's network and containers."""
    if yes and no_input:
        console.print("[red]Error:[/red] --yes and --no-input are mutually exclusive")
        raise typer.Exit(1)
    _run_cli_command(up_project, yes=yes, no_input=no_input, attach=attach, pull=pull)


@app.command("ls")
def ls_command(
    all: bool = typer.Option(False, "--all", help="Show every field of each container"),
):
    """List the project's running containers."""
    _run_cli_command(list_project, show_all=all)


@app.command("down")
def down_command():
    """Remove the project's containers and hosts entries."""
    _run_cli_command(down_project)


def main():
    """Main entry point for CLI."""
    app()
