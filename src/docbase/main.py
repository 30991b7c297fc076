"""
Docbase - CLI Entry Point.

Usage:
    docbase health                                 Check configuration and backend
    docbase get recipes alice 3f2a...              Print one document
    docbase search recipes --match cuisine=thai    Search a collection
    docbase delete recipes alice 3f2a...           Delete one document
    docbase --help                                 Show help
"""

import asyncio
import json
import logging
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from docbase.database.filters import AndFilter, Filter, KeywordFilter, MapFilter, ValueFilter
from docbase.database.query import Query
from docbase.database.sorters import MultiSorter, PropertySorter, Sorter
from docbase.errors import DatabaseError

app = typer.Typer(
    name="docbase",
    help="Docbase - Document database client for memory, Supabase and Cosmos DB backends.",
    add_completion=False,
)
console = Console()


def _configure_logging() -> None:
    from docbase.config import settings

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Argument Parsing
# =============================================================================


def parse_value(raw: str) -> Any:
    """JSON scalars (numbers, true/false/null) or a plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def parse_match(items: list[str]) -> MapFilter | None:
    """Turn ["field=value", ...] into a MapFilter of exact matches."""
    if not items:
        return None
    fields = {}
    for item in items:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected field=value, got {item!r}")
        fields[name] = ValueFilter(parse_value(raw))
    return MapFilter(fields)


def parse_sorter(value: str | None) -> Sorter | None:
    """'a,-b' -> a ascending, then b descending."""
    if not value:
        return None
    sorters = [
        PropertySorter(name[1:], ascending=False) if name.startswith("-") else PropertySorter(name)
        for name in (part.strip() for part in value.split(","))
        if name
    ]
    if not sorters:
        return None
    return sorters[0] if len(sorters) == 1 else MultiSorter(tuple(sorters))


def build_query(
    matches: list[str] | None,
    keyword: str | None,
    sort: str | None,
    skip: int,
    take: int | None,
) -> Query:
    filters: list[Filter] = []
    map_filter = parse_match(matches or [])
    if map_filter is not None:
        filters.append(map_filter)
    if keyword:
        filters.append(KeywordFilter(keyword))

    match filters:
        case []:
            filter = None
        case [single]:
            filter = single
        case _:
            filter = AndFilter(tuple(filters))

    return Query(filter=filter, sorter=parse_sorter(sort), skip=skip, take=take)


def _run(coro):
    try:
        return asyncio.run(coro)
    except (ValueError, DatabaseError) as e:
        console.print(f"\n[red]❌ {type(e).__name__}: {e}[/red]")
        raise typer.Exit(1)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def health() -> None:
    """Check configuration and probe the backend with a schema read."""
    from docbase.config import get_settings
    from docbase.factory import open_database

    _configure_logging()
    console.print("\n[bold]Docbase Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Backend: {settings.backend}")
        console.print(f"   Log level: {settings.log_level}")
        if settings.default_reach is not None:
            console.print(f"   Default reach: {settings.default_reach.name}")
        console.print(f"   Cache: {'enabled' if settings.cache_enabled else 'disabled'}")
        console.print(f"   Search promotion: {'enabled' if settings.promote_search else 'disabled'}")

        async def probe() -> int:
            async with open_database(settings) as database:
                return len(await database.schemas())

        count = asyncio.run(probe())
        console.print(f"✅ Backend reachable ({count} managed collections)")
        console.print("\n[green]All checks passed![/green]")

    except (ValueError, DatabaseError) as e:
        console.print(f"\n[red]❌ Health check failed: {e}[/red]")
        console.print("[dim]Check your DOCBASE_* environment variables or .env file.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from docbase import __version__

    console.print(f"Docbase version {__version__}")


@app.command()
def get(
    collection: str = typer.Argument(..., help="Collection id"),
    partition: str = typer.Argument(..., help="Partition id"),
    document_id: str = typer.Argument(..., help="Document id"),
) -> None:
    """Print one document as JSON."""
    from docbase.factory import open_database

    _configure_logging()

    async def read():
        async with open_database() as database:
            return await database.collection(collection).partition(partition).document(document_id).read()

    snapshot = _run(read())
    if snapshot is None:
        console.print(f"[yellow]Not found: {collection}/{partition}/{document_id}[/yellow]")
        raise typer.Exit(1)
    console.print_json(json.dumps(snapshot.to_dict(), default=str))


@app.command()
def search(
    collection: str = typer.Argument(..., help="Collection id"),
    partition: str | None = typer.Option(None, "--partition", "-p", help="Limit to one partition"),
    match: list[str] | None = typer.Option(None, "--match", "-m", help="field=value (repeatable)"),
    keyword: str | None = typer.Option(None, "--keyword", "-k", help="Full-text keyword"),
    sort: str | None = typer.Option(None, "--sort", "-s", help="Sort fields, e.g. 'name,-created_at'"),
    skip: int = typer.Option(0, "--skip", min=0),
    take: int | None = typer.Option(None, "--take", min=0),
) -> None:
    """Search a collection and print the matches as a table."""
    from docbase.factory import open_database

    _configure_logging()
    query = build_query(match, keyword, sort, skip, take)

    async def run_search():
        async with open_database() as database:
            target = database.collection(collection)
            scope = target.partition(partition) if partition else target
            return await scope.search(query)

    result = _run(run_search())

    table = Table(title=f"{collection} ({len(result)} documents)")
    table.add_column("Partition", style="dim")
    table.add_column("Id", style="cyan")
    table.add_column("Data")
    for snapshot in result:
        table.add_row(
            snapshot.document.partition_id,
            snapshot.document.document_id,
            json.dumps(snapshot.to_dict(), default=str),
        )
    console.print(table)


@app.command()
def delete(
    collection: str = typer.Argument(..., help="Collection id"),
    partition: str = typer.Argument(..., help="Partition id"),
    document_id: str = typer.Argument(..., help="Document id"),
) -> None:
    """Delete one document."""
    from docbase.factory import open_database

    _configure_logging()

    async def remove():
        async with open_database() as database:
            await database.collection(collection).partition(partition).document(document_id).delete()

    _run(remove())
    console.print(f"✅ Deleted {collection}/{partition}/{document_id}")


if __name__ == "__main__":
    app()
