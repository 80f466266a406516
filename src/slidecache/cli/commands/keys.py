# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Key-level CLI commands: read, write and inspect cached values."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Annotated, Any

import typer

from slidecache.core.exceptions import SlideCacheError


def _run(action: Callable[[Any], Awaitable[None]]) -> None:
    """Run *action* against the configured provider, then release its connections."""

    async def _main() -> None:
        from slidecache.provider import get_provider

        provider = get_provider()
        try:
            await action(provider)
        finally:
            await provider.close()

    try:
        asyncio.run(_main())
    except SlideCacheError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from None


def _format_ttl(ttl: timedelta | None) -> str:
    return "-" if ttl is None else f"{int(ttl.total_seconds())}s"


def get_command(
    key: Annotated[str, typer.Argument(help="Key to read")],
) -> None:
    """Print the value stored at KEY (continues its sliding lifetime)."""

    async def action(provider) -> None:
        value = await provider.string_get(key)
        if value is None:
            typer.echo(f"Key {key} not found.", err=True)
            raise typer.Exit(1)
        typer.echo(value)

    _run(action)


def set_command(
    key: Annotated[str, typer.Argument(help="Key to write")],
    value: Annotated[str, typer.Argument(help="Value to store")],
    slide: Annotated[
        int | None,
        typer.Option("--slide", help="Sliding lifetime in seconds"),
    ] = None,
    expire_at: Annotated[
        datetime | None,
        typer.Option("--expire-at", help="Absolute deadline (ISO 8601, UTC if naive)"),
    ] = None,
    ttl: Annotated[
        int | None,
        typer.Option("--ttl", help="Fixed lifetime in seconds"),
    ] = None,
) -> None:
    """Store VALUE at KEY with an optional lifetime."""
    from slidecache.expiration.models import ExpirationDescriptor

    chosen = [opt for opt in (slide, expire_at, ttl) if opt is not None]
    if len(chosen) > 1:
        typer.echo("Use only one of --slide, --expire-at and --ttl.", err=True)
        raise typer.Exit(2)

    expiration = None
    if slide is not None:
        expiration = ExpirationDescriptor.slide(slide)
    elif expire_at is not None:
        expiration = ExpirationDescriptor.until(expire_at)
    elif ttl is not None:
        expiration = ExpirationDescriptor.after(ttl)

    async def action(provider) -> None:
        written = await provider.string_set(key, value, expiration)
        typer.echo(f"Stored {key}." if written else f"Key {key} not written.")

    _run(action)


def ttl_command(
    key: Annotated[str, typer.Argument(help="Key to query")],
) -> None:
    """Print the remaining lifetime of KEY after refreshing it."""

    async def action(provider) -> None:
        remaining = await provider.key_time_to_live(key)
        typer.echo("no expiry" if remaining is None else _format_ttl(remaining))

    _run(action)


def persist_command(
    key: Annotated[str, typer.Argument(help="Key to make permanent")],
) -> None:
    """Remove the lifetime of KEY and forget its sliding duration."""

    async def action(provider) -> None:
        changed = await provider.key_persist(key)
        typer.echo(f"Persisted {key}." if changed else f"Key {key} had no lifetime.")

    _run(action)


def rename_command(
    key: Annotated[str, typer.Argument(help="Existing key")],
    new_key: Annotated[str, typer.Argument(help="New name")],
    nx: Annotated[
        bool, typer.Option("--nx", help="Only rename if NEW does not exist")
    ] = False,
) -> None:
    """Rename KEY to NEW, carrying its sliding duration."""

    async def action(provider) -> None:
        renamed = await provider.key_rename(key, new_key, when_not_exists=nx)
        typer.echo(f"Renamed {key} -> {new_key}." if renamed else f"{new_key} already exists.")

    _run(action)


def delete_command(
    keys: Annotated[list[str], typer.Argument(help="Keys to delete")],
) -> None:
    """Delete KEYS together with their shadow keys."""

    async def action(provider) -> None:
        removed = await provider.key_delete(keys)
        typer.echo(f"Deleted {removed} key(s).")

    _run(action)


def inspect_command(
    key: Annotated[str, typer.Argument(help="Key to inspect")],
) -> None:
    """Show KEY's lifetime and shadow key without refreshing them."""

    async def action(provider) -> None:
        from rich.console import Console
        from rich.table import Table

        detail = await provider.key_detail(key)

        console = Console()
        table = Table(title=f"Key {key}")
        table.add_column("Field", style="bold")
        table.add_column("Value", justify="right")

        table.add_row("Exists", "yes" if detail.exists else "no")
        table.add_row("TTL", _format_ttl(detail.ttl))
        table.add_row("Shadow Key", detail.shadow_key)
        table.add_row("Slide Duration", _format_ttl(detail.slide_duration))
        table.add_row("Shadow TTL", _format_ttl(detail.shadow_ttl))

        console.print(table)

    _run(action)
