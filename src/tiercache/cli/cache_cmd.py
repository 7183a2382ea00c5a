"""CLI commands operating on the shared cache.

A CLI process starts with an empty local tier, so these commands mostly
inspect and manage what other processes have written to Redis.

Usage:
    tiercache ping
    tiercache keys user:session: --format json
    tiercache get threat:analysis:evil.example
    tiercache invalidate region:threats:
    tiercache clear --yes
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.table import Table

from tiercache.cache.keys import CacheKeys
from tiercache.cache.manager import CacheManager

T = TypeVar("T")

console = Console()


def build_manager() -> CacheManager:
    """Create the manager used by CLI commands."""
    return CacheManager.from_settings()


def run_with_manager(action: Callable[[CacheManager], Awaitable[T]]) -> T:
    """Connect a manager, run ``action`` against it and disconnect."""

    async def runner() -> T:
        manager = build_manager()
        await manager.connect()
        try:
            return await action(manager)
        finally:
            await manager.disconnect()

    return asyncio.run(runner())


def _require_shared(manager: CacheManager) -> None:
    if not manager.is_shared_ready():
        console.print("[red]Shared cache is not reachable[/red]")
        raise typer.Exit(code=1)


def ping() -> None:
    """Check that the shared tier (Redis) is reachable."""

    async def action(manager: CacheManager) -> bool:
        return manager.is_shared_ready()

    if run_with_manager(action):
        console.print("[green]Shared cache is reachable[/green]")
    else:
        console.print("[red]Shared cache is not reachable[/red]")
        raise typer.Exit(code=1)


def stats() -> None:
    """Show key counts per namespace."""

    async def action(manager: CacheManager) -> dict[str, int]:
        _require_shared(manager)
        all_keys = await manager.get_keys("")
        counts = {ns: sum(1 for k in all_keys if k.startswith(ns)) for ns in CacheKeys.NAMESPACES}
        counts["(other)"] = len(all_keys) - sum(counts.values())
        return counts

    counts = run_with_manager(action)

    table = Table(title="Cached keys")
    table.add_column("Namespace")
    table.add_column("Keys", justify="right")
    for namespace, count in counts.items():
        table.add_row(namespace, str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{sum(counts.values())}[/bold]")
    console.print(table)


def keys(
    pattern: str = typer.Argument("", help="Substring to match against keys"),
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """List cached keys containing PATTERN."""

    async def action(manager: CacheManager) -> set[str]:
        _require_shared(manager)
        return await manager.get_keys(pattern)

    found = sorted(run_with_manager(action))

    if output_format == "json":
        typer.echo(json.dumps(found))
        return

    for key in found:
        typer.echo(key)
    console.print(f"[dim]{len(found)} key(s)[/dim]")


def get(key: str = typer.Argument(..., help="Cache key")) -> None:
    """Print the cached value for KEY as JSON."""

    async def action(manager: CacheManager) -> object:
        _require_shared(manager)
        return await manager.get(key)

    value = run_with_manager(action)
    if value is None:
        console.print(f"[yellow]Not cached:[/yellow] {key}")
        raise typer.Exit(code=1)

    typer.echo(json.dumps(value, indent=2, default=str))


def invalidate(
    pattern: str = typer.Argument(..., help="Substring of the keys to remove"),
) -> None:
    """Remove every cached key containing PATTERN."""
    if not pattern:
        console.print("[red]Refusing to invalidate with an empty pattern; use clear[/red]")
        raise typer.Exit(code=2)

    async def action(manager: CacheManager) -> int:
        _require_shared(manager)
        return await manager.invalidate(pattern)

    removed = run_with_manager(action)
    console.print(f"Invalidated {removed} key(s) matching '{pattern}'")


def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Flush the shared tier."""
    if not yes:
        typer.confirm("Flush every key in the shared cache?", abort=True)

    async def action(manager: CacheManager) -> None:
        _require_shared(manager)
        await manager.clear()

    run_with_manager(action)
    console.print("Shared cache flushed")
