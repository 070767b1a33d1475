"""CLI commands for inspecting and managing cache entries.

Keys are given as segments and joined with ":" (``product 42`` -> ``product:42``).

Usage:
    cacheaside cache get product 42
    cacheaside cache put product 42 --value '{"id": "42"}' --ttl 60
    cacheaside cache scan 'session:*' --field user=alice
    cacheaside cache delete-pattern 'product:*'
    cacheaside cache load 42
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console

from cacheaside.cache.keys import CacheKeys, compose_key
from cacheaside.cache.redis import RedisStore, close_redis, get_redis
from cacheaside.cache.scan import ScanFilter
from cacheaside.config import settings
from cacheaside.errors import CacheAsideError

app = typer.Typer(help="Inspect and manage cache entries")
console = Console()

T = TypeVar("T")


def _run(action: Callable[[RedisStore], Awaitable[T]]) -> T:
    """Run an async store action with a fresh connection, exiting 1 on store errors."""

    async def runner() -> T:
        try:
            return await action(RedisStore(await get_redis()))
        finally:
            await close_redis()

    try:
        return asyncio.run(runner())
    except CacheAsideError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


def _parse_fields(fields: list[str]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for item in fields:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected FIELD=VALUE, got {item!r}")
        parsed[name] = value
    return parsed


@app.command("get")
def get(segments: list[str] = typer.Argument(..., help="Key segments")) -> None:
    """Print a string value."""
    value = _run(lambda store: store.get_string(segments))
    if value is None:
        console.print(f"[yellow]No value at[/yellow] {compose_key(segments)}")
        raise typer.Exit(code=1)
    typer.echo(value)


@app.command("put")
def put(
    segments: list[str] = typer.Argument(..., help="Key segments"),
    value: str = typer.Option(..., "--value", "-v", help="Value to store"),
    ttl: int | None = typer.Option(None, "--ttl", "-t", help="Expiry in seconds"),
) -> None:
    """Store a string value."""
    _run(lambda store: store.put_string(segments, value, ttl=ttl))
    console.print(f"[green]Stored[/green] {compose_key(segments)}")


@app.command("scan")
def scan(
    segments: list[str] = typer.Argument(..., help="Glob pattern segments"),
    field: list[str] = typer.Option(
        [],
        "--field",
        "-f",
        help="Only show hashes where FIELD equals VALUE (repeatable)",
    ),
) -> None:
    """List hash entries whose key matches a glob."""
    wanted = _parse_fields(field)

    def matches(record: dict[str, str], key: str) -> bool:
        return all(record.get(name) == expected for name, expected in wanted.items())

    async def action(store: RedisStore) -> list[dict[str, str]]:
        scanner: ScanFilter[dict[str, str]] = ScanFilter(store)
        return await scanner.scan(segments, predicate=matches if wanted else None)

    records = _run(action)
    for record in records:
        typer.echo(record)
    console.print(f"[blue]{len(records)} match(es)[/blue]")


@app.command("delete-pattern")
def delete_pattern(
    segments: list[str] = typer.Argument(..., help="Glob pattern segments"),
) -> None:
    """Delete every key matching a glob."""
    deleted = _run(lambda store: store.delete_pattern(segments))
    console.print(f"[green]Deleted {deleted} key(s)[/green]")


@app.command("load")
def load(identifier: str = typer.Argument(..., help="Product identifier")) -> None:
    """Load a product through the cache-aside loader."""
    from cacheaside.api.deps import build_loader
    from cacheaside.cache.loader import LoadStatus
    from cacheaside.persistence.db import close_db, session_context
    from cacheaside.persistence.repositories import ProductRepository

    async def action(store: RedisStore) -> None:
        try:
            async with session_context() as session:
                loader = build_loader(store, ProductRepository(session))
                result = await loader.load(
                    identifier, CacheKeys.product(identifier), settings.cache_ttl
                )
        finally:
            await close_db()

        if result.status is LoadStatus.NOT_FOUND:
            console.print(f"[yellow]No product with id[/yellow] {identifier}")
            raise typer.Exit(code=1)
        source = "cache" if result.from_cache else "database"
        typer.echo(result.unwrap())
        console.print(f"[blue](from {source})[/blue]")

    _run(action)
