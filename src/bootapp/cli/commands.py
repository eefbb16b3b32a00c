"""Command implementations for CLI."""

import asyncio
from typing import Dict, List

from rich.console import Console
from rich.table import Table

from bootapp.compose.translator import ATTACH, DETACH
from bootapp.engine import LS_COLUMNS, BootappEngine


console = Console()


def up_project(engine: BootappEngine, attach: bool = False, pull: bool = False):
    """Bring the project up and summarize what is running."""
    mode = ATTACH if attach else DETACH
    views = asyncio.run(engine.up(mode=mode, pull=pull))

    if mode == DETACH:
        console.print(f"[green]✓[/green] {len(views)} containers running")


def list_project(engine: BootappEngine, show_all: bool = False):
    """List the project's running containers."""
    rows = asyncio.run(engine.ls(show_all=show_all))

    if not rows:
        console.print("[yellow]No containers running[/yellow]")
        return

    if show_all:
        console.print(details_table(rows))
    else:
        console.print(containers_table(rows))


def down_project(engine: BootappEngine):
    """Remove the project's containers and hosts entries."""
    ids = asyncio.run(engine.down())
    console.print(f"[green]✓[/green] Removed {len(ids)} containers")


def containers_table(rows: List[Dict[str, str]]) -> Table:
    table = Table()
    styles = {"service": "cyan", "status": "green", "domain": "magenta"}
    for column in LS_COLUMNS:
        table.add_column(column.upper(), style=styles.get(column))
    for row in rows:
        table.add_row(*(row.get(column, "") for column in LS_COLUMNS))
    return table


def details_table(rows: List[Dict[str, str]]) -> Table:
    """Key/value listing, one block per container."""
    table = Table(show_header=True)
    table.add_column("KEY", style="cyan")
    table.add_column("VALUE")
    for index, row in enumerate(rows):
        if index:
            table.add_section()
        for key, value in row.items():
            table.add_row(key, value)
    return table
