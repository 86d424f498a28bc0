"""
Run command: execute one fuzz scenario and report the outcome
"""

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ...config import FuzzConfig
from ...core.canonical import canonical_json_str
from ...core.errors import FuzzRunError
from ...fuzz.engine import run_scenario
from ...logging_config import setup_logging

console = Console()


def run_command(
    seed: Optional[str] = typer.Option(None, "--seed", "-s", help="Seed string (default: $DRIVEFUZZ_SEED)"),
    iterations: Optional[int] = typer.Option(
        None, "--iterations", "-n", min=0, help="Number of operations (default: $DRIVEFUZZ_ITERATIONS)"
    ),
    replicate: bool = typer.Option(False, "--replicate", "-r", help="Validate through a live replica"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Log every operation"),
    no_listings: bool = typer.Option(False, "--no-listings", help="Skip directory listing checks"),
    show_log: int = typer.Option(0, "--show-log", help="Show the last N run log entries"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Run a seeded fuzz scenario against the reference drive.

    Examples:
        drivefuzz run --seed hyperdrive --iterations 20000
        drivefuzz run --seed hyperdrive2 --replicate
        drivefuzz run --seed demo -n 500 --json --show-log 5
    """
    env = FuzzConfig.from_env()
    config = FuzzConfig(
        seed=seed if seed is not None else env.seed,
        debugging=debug or env.debugging,
        iteration_count=iterations if iterations is not None else env.iteration_count,
        replicate=replicate or env.replicate,
        check_listings=env.check_listings and not no_listings,
    )
    setup_logging(level="DEBUG" if config.debugging else None)

    try:
        fuzzer = asyncio.run(run_scenario(config))
    except FuzzRunError as e:
        cause = e.__cause__
        if json_output:
            print(
                json.dumps(
                    {
                        "success": False,
                        "seed": e.seed,
                        "iteration": e.iteration,
                        "operation": e.operation,
                        "error": f"{type(cause).__name__}: {cause}" if cause else str(e),
                        "log_tail": [r.to_dict() for r in e.log[-show_log:]] if show_log else [],
                    },
                    indent=2,
                )
            )
        else:
            console.print(f"[red]✗ {e}[/red]")
            if cause is not None:
                console.print(f"  [red]{type(cause).__name__}:[/red] {cause}")
            for result in e.log[-show_log:] if show_log else []:
                console.print(f"  [dim]{canonical_json_str(result.to_dict())}[/dim]")
        raise typer.Exit(2)

    report = fuzzer.last_report
    counts = fuzzer.operation_counts()
    tail = [r.to_dict() for r in fuzzer.log[-show_log:]] if show_log else []

    if json_output:
        print(
            json.dumps(
                {
                    "success": True,
                    "seed": config.seed,
                    "iterations": fuzzer.iterations,
                    "replicate": config.replicate,
                    "files": report.files,
                    "directories": report.directories,
                    "listings": report.listings,
                    "digest": report.digest,
                    "operation_counts": counts,
                    "log_tail": tail,
                },
                indent=2,
            )
        )
        raise typer.Exit(0)

    console.print(f"[green]✓ {fuzzer.iterations} operations with seed {config.seed!r} validated[/green]")
    console.print(f"  Files: [cyan]{report.files}[/cyan]  Directories: [cyan]{report.directories}[/cyan]")
    console.print(f"  Digest: [yellow]{report.digest}[/yellow]")

    table = Table(title="Operation Counts")
    table.add_column("Operation", style="green")
    table.add_column("Count", style="cyan", justify="right")
    for op_type in sorted(counts):
        table.add_row(op_type, str(counts[op_type]))
    console.print(table)

    for entry in tail:
        console.print(f"  [dim]{canonical_json_str(entry)}[/dim]")
    raise typer.Exit(0)
