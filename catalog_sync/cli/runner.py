# catalog_sync/cli/runner.py

"""Headless CLI runner: one-shot views, live watch and health checks."""

import asyncio
import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from catalog_sync.config.settings import Settings
from catalog_sync.filters.projections import (
    CatalogProjection,
    CatalogQuery,
    QueryResult,
)
from catalog_sync.models.product import Product
from catalog_sync.services.catalog_engine import CatalogEngine

logger = logging.getLogger("catalog_sync.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

VIEWS: list[str] = ["listing", "featured", "trending"]


def _products_to_dicts(products: list[Product]) -> list[dict[str, object]]:
    """Serialise a product list to plain dicts for JSON output."""
    return [p.to_dict() for p in products]


def _print_table(products: list[Product], title: str) -> None:
    """Render a Rich table of products to stdout."""
    table = Table(
        title=title,
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", max_width=40)
    table.add_column("Brand", style="magenta")
    table.add_column("Category")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Flags", justify="center")
    table.add_column("Image", overflow="fold", style="dim")

    for idx, p in enumerate(products, 1):
        flags = " ".join(
            label
            for label, on in (("★", p.featured), ("↑", p.trending))
            if on
        )
        table.add_row(
            str(idx),
            p.name[:40],
            p.brand or "—",
            p.category or "—",
            f"₹ {p.price:,.2f}",
            flags or "—",
            CatalogProjection.primary_image(p) or "—",
        )

    Console().print(table)


def build_view(
    engine: CatalogEngine, view: str, query: CatalogQuery,
) -> QueryResult:
    """Compute the requested projection over the engine's snapshot."""
    if view == "featured":
        products = engine.featured()
        return QueryResult(products=products, total=len(products))
    if view == "trending":
        products = engine.trending()
        return QueryResult(products=products, total=len(products))
    return engine.query(query)


def emit_view(
    engine: CatalogEngine,
    view: str,
    query: CatalogQuery,
    output_format: str,
) -> QueryResult:
    """Print a view as JSON (stdout) or a table, with a stderr summary."""
    result = build_view(engine, view, query)
    snapshot = engine.snapshot()
    _err.print(
        f"[dim]version={snapshot.version} source={snapshot.source.value} "
        f"showing {len(result.products)} of {result.total}"
        f"{' (more available)' if result.has_more else ''}[/dim]"
    )
    if output_format == "table":
        _print_table(result.products, f"Catalog: {view}")
    else:
        json.dump(
            _products_to_dicts(result.products),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return result


async def cli_show(
    view: str,
    query: CatalogQuery,
    output_format: str,
) -> int:
    """Load the catalog once and print a view; exit code 1 when empty."""
    engine = CatalogEngine()
    try:
        snapshot = await engine.resolver.load()
        engine.store.replace(snapshot)
        if not snapshot.products:
            _err.print("[yellow]No products found.[/yellow]")
            return 1
        emit_view(engine, view, query, output_format)
        return 0
    finally:
        engine.cache.close()


async def cli_watch(
    view: str,
    query: CatalogQuery,
    output_format: str,
    duration: float | None,
) -> int:
    """Run a live context and re-print the view after every update."""
    engine = CatalogEngine()
    changed = asyncio.Event()
    engine.on_change(changed.set)

    snapshot = await engine.start()
    _err.print(
        f"[bold]Watching catalog[/bold] [dim]context={engine.context_id} "
        f"source={snapshot.source.value}[/dim]"
    )
    if snapshot.products:
        emit_view(engine, view, query, output_format)
    else:
        _err.print("[yellow]No products found.[/yellow]")
    changed.clear()

    loop = asyncio.get_running_loop()
    deadline = None if duration is None else loop.time() + duration
    try:
        while deadline is None or loop.time() < deadline:
            timeout = None if deadline is None else deadline - loop.time()
            try:
                await asyncio.wait_for(changed.wait(), timeout)
            except asyncio.TimeoutError:
                break
            changed.clear()
            emit_view(engine, view, query, output_format)
    finally:
        await engine.stop()
        _err.print(f"[dim]Bus stats: {engine.bus.stats}[/dim]")
    return 0


async def run_health_check() -> int:
    """Run a connectivity health check against the catalog API."""
    from catalog_sync.services.health_checker import HealthChecker

    _err.print(
        f"[bold]Checking catalog API at {Settings.API_BASE_URL}...[/bold]"
    )
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="Catalog API Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Endpoint", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = (
            f"{r.latency_ms:.0f}ms"
            if r.latency_ms > 0
            else "—"
        )
        table.add_row(
            r.endpoint, status, latency, r.message,
        )

    Console().print(table)
    return 1 if any_down else 0
