# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Sliding expiration policy CLI commands."""

from __future__ import annotations

import typer

app = typer.Typer()


@app.command()
def show() -> None:
    """Show whether sliding expiration is in effect."""
    from rich.console import Console
    from rich.table import Table

    from slidecache.core.config import get_settings
    from slidecache.expiration.policy import get_default_policy

    settings = get_settings()
    policy = get_default_policy()

    console = Console()
    table = Table(title="Expiration Policy")
    table.add_column("Setting", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Sliding Expiration", "enabled" if policy.enabled else "disabled")
    table.add_row("Configured Default", "enabled" if settings.sliding_expiration else "disabled")
    table.add_row("Backend", str(settings.backend))
    table.add_row("Server", settings.server_name)
    table.add_row("Database", str(settings.database))

    console.print(table)
