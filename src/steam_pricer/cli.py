"""Click-based CLI for steam-pricer.

Thin wrapper around the pricing service. Every command builds a
``PricingService`` from config, delegates, and renders the result.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from steam_pricer.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


async def _create_service_async(config):
    """Create the pricing service with loaded stores."""
    from steam_pricer.service import PricingService

    return await PricingService.create(config)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=verbose)],
        force=True,
    )


def _fmt_price(value: float | None) -> str:
    return f"{value:.2f}" if value is not None else "-"


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="STEAM_PRICER_CONFIG",
    default=None,
    help="Path to steam-pricer.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="steam-pricer")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Steam Pricer: rate-limited market pricing for inventories."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# quote
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def quote(ctx: click.Context, names: tuple[str, ...], output_format: str) -> None:
    """Fetch live prices for one or more market hash names."""
    async def _run():
        config = _load_config(ctx)
        service = await _create_service_async(config)
        try:
            quotes = await service.quote(names)
        finally:
            await service.close()

        if output_format == "json":
            payload = [q.model_dump(mode="json") for q in quotes.values()]
            click.echo(json.dumps(payload, indent=2))
            return

        table = Table(title="Live Quotes")
        table.add_column("Item", style="bold")
        table.add_column("Price", justify="right")
        table.add_column("Source")
        for q in quotes.values():
            table.add_row(
                q.asset_name,
                _fmt_price(q.price),
                q.source.value if q.source else "unpriced",
            )
        console.print(table)

    _run_async(_run())


# ---------------------------------------------------------------------------
# inventory
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("identity")
@click.option("--limit", "-n", type=int, default=None, help="Show at most N items.")
@click.option(
    "--update-prices",
    is_flag=True,
    default=False,
    help="Resolve prices now (subject to the manual refresh cooldown).",
)
@click.pass_context
def inventory(
    ctx: click.Context,
    identity: str,
    limit: int | None,
    update_prices: bool,
) -> None:
    """Show an inventory with stored prices and totals."""
    from steam_pricer.core import InventoryError

    async def _run():
        config = _load_config(ctx)
        service = await _create_service_async(config)
        try:
            result = await service.priced_inventory(
                identity, manual_refresh=update_prices, result_limit=limit
            )
            if result.queued_count:
                console.print(f"Resolving {result.queued_count} prices...")
        finally:
            await service.close(wait_for_queue=update_prices)

        table = Table(title=f"Inventory {identity}")
        table.add_column("Item", style="bold")
        table.add_column("Price", justify="right")
        table.add_column("Prev", justify="right")
        table.add_column("Paid", justify="right")
        table.add_column("Watched")
        for item in result.items:
            table.add_row(
                item.name,
                _fmt_price(item.price),
                _fmt_price(item.previous_price),
                _fmt_price(item.purchase_price),
                "yes" if item.watched else "",
            )
        console.print(table)
        console.print(
            f"Total value: [bold]{result.total_value:.2f}[/bold]  "
            f"Paid: {result.total_purchase_value:.2f}  "
            f"Profit: {result.profit:+.2f}"
        )

    try:
        _run_async(_run())
    except InventoryError as exc:
        console.print(f"[red]Inventory fetch failed: {exc}[/red]")
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--item", "item_name", type=str, default=None, help="Show one item's history.")
@click.pass_context
def history(ctx: click.Context, item_name: str | None) -> None:
    """Show total-value history, or one item's price history."""
    async def _run():
        config = _load_config(ctx)
        service = await _create_service_async(config)
        try:
            if item_name:
                rows = [(p.observed_at, p.price) for p in service.item_history(item_name)]
                title = f"Price history: {item_name}"
            else:
                rows = [(s.observed_at, s.value) for s in service.total_value_history()]
                title = "Total value history"
        finally:
            await service.close()

        if not rows:
            console.print("[yellow]No history recorded yet.[/yellow]")
            return

        table = Table(title=title)
        table.add_column("Observed", style="dim")
        table.add_column("Value", justify="right")
        for observed_at, value in rows:
            table.add_row(observed_at.isoformat(timespec="seconds"), f"{value:.2f}")
        console.print(table)

    _run_async(_run())


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address.")
@click.option("--port", "-p", type=int, default=None, help="Port number.")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the REST API server."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]uvicorn not installed. Install with: "
            "pip install steam-pricer[api][/red]"
        )
        raise SystemExit(1)

    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port

    # The factory reloads config in the server process
    if ctx.obj.get("config_path"):
        os.environ["STEAM_PRICER_CONFIG"] = ctx.obj["config_path"]

    console.print(f"Starting steam-pricer API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "steam_pricer.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show storage status and record counts."""
    async def _run():
        config = _load_config(ctx)
        service = await _create_service_async(config)
        try:
            stats = service.statistics()

            table = Table(title="Steam Pricer Status")
            table.add_column("Metric", style="bold")
            table.add_column("Value", justify="right")

            table.add_row("Storage backend", config.storage.backend.value)
            if config.storage.backend.value == "sqlite":
                table.add_row("Database path", config.storage.sqlite_path)
            else:
                table.add_row("Data directory", config.storage.data_dir)
            table.add_section()
            table.add_row("Price records", str(stats["price_records"]))
            table.add_row("Portfolio entries", str(stats["portfolio_entries"]))
            table.add_row("Tracked items", str(stats["tracked_items"]))
            table.add_row("Total value samples", str(stats["total_value_samples"]))
            table.add_section()
            table.add_row("Last price refresh", stats["last_price_refresh"] or "N/A")

            console.print(table)
        finally:
            await service.close()

    _run_async(_run())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
