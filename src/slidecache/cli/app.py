# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Typer CLI application root."""

from __future__ import annotations

from typing import Annotated

import typer

from slidecache.cli.commands import keys
from slidecache.cli.commands import policy as policy_cmd

app = typer.Typer(
    name="slidecache",
    help="Redis-style cache with sliding expiration",
    no_args_is_help=True,
)

app.add_typer(policy_cmd.app, name="policy", help="Inspect the sliding expiration policy")

app.command(name="get")(keys.get_command)
app.command(name="set")(keys.set_command)
app.command(name="ttl")(keys.ttl_command)
app.command(name="persist")(keys.persist_command)
app.command(name="rename")(keys.rename_command)
app.command(name="delete")(keys.delete_command)
app.command(name="inspect")(keys.inspect_command)


@app.callback()
def main(
    sliding: Annotated[
        bool | None,
        typer.Option(
            "--sliding/--no-sliding",
            help="Enable or disable sliding expiration for this run",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override SLIDECACHE_LOG_LEVEL"),
    ] = None,
) -> None:
    """Configure logging and the expiration policy before any command runs."""
    from slidecache.core.config import get_settings
    from slidecache.core.logging import setup_logging
    from slidecache.expiration.policy import (
        disable_sliding_expiration,
        enable_sliding_expiration,
    )

    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_format)

    if sliding is True:
        enable_sliding_expiration()
    elif sliding is False:
        disable_sliding_expiration()


@app.command()
def stats() -> None:
    """Show refresh outcome counters for this process."""
    from rich.console import Console
    from rich.table import Table

    from slidecache.provider import get_provider

    st = get_provider().stats

    console = Console()
    table = Table(title="Refresh Statistics")
    table.add_column("Outcome", style="bold")
    table.add_column("Count", justify="right")

    for name, count in st.to_dict().items():
        table.add_row(name.replace("_", " ").title(), str(count))

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from slidecache import __version__

    typer.echo(f"slidecache v{__version__}")
