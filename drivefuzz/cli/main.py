#!/usr/bin/env python3
"""
drivefuzz CLI

Main entrypoint for the drivefuzz command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from .commands import run

app = typer.Typer(
    name="drivefuzz",
    help="Seeded fuzzing for content-addressed drives",
    add_completion=False,
)

console = Console()

app.command(name="run")(run.run_command)


@app.command()
def version():
    """Show version information."""
    from .. import __version__
    from ..fuzz.operations import DEFAULT_REGISTRY

    table = Table(show_header=False, box=None)
    table.add_row("[bold]drivefuzz[/bold]", f"v{__version__}")
    table.add_row("Operations", str(len(DEFAULT_REGISTRY.kinds)))
    table.add_row("Total weight", str(DEFAULT_REGISTRY.total_weight))

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
