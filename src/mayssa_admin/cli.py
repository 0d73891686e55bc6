"""Command line interface for the packaged service."""

from __future__ import annotations

from typing import Optional

import typer
import uvicorn

from .config import Settings, get_settings
from .database import SessionLocal, init_database
from .errors import MayssaError
from .models import OrderStatus
from .orders import OrderManager
from .stock import StockLedger

app = typer.Typer(help="Manage and run the Maison Mayssa order service.")


def _print_header(title: str) -> None:
    typer.secho(title, bold=True, fg=typer.colors.CYAN)


def _resolve_settings() -> Settings:
    settings = get_settings()
    init_database()
    return settings


@app.command()
def run(
    host: Optional[str] = typer.Option(None, help="Hostname to bind"),
    port: Optional[int] = typer.Option(None, help="Port to expose"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
    log_level: Optional[str] = typer.Option(None, help="Uvicorn log level"),
) -> None:
    """Start the FastAPI service using Uvicorn."""

    settings = _resolve_settings()

    uvicorn.run(
        "mayssa_admin.app:create_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.reload if reload is None else reload,
        log_level=log_level or settings.log_level,
        factory=True,
    )


@app.command()
def init_db() -> None:
    """Create the SQLite database and tables."""

    settings = _resolve_settings()
    typer.echo(f"Database initialised at {settings.database_path}")


@app.command()
def show_paths() -> None:
    """Print out important filesystem paths."""

    settings = _resolve_settings()
    typer.echo(f"Database: {settings.database_path}")
    typer.echo(f"Data directory: {settings.database_path.parent}")
    typer.echo(f"Catalog: {settings.catalog_path or 'built-in'}")


@app.command("stock-set")
def stock_set(
    item_id: str = typer.Argument(..., help="Catalog item id"),
    quantity: int = typer.Argument(..., min=0, help="Units available"),
) -> None:
    """Track an item's stock or overwrite its remaining quantity."""

    _resolve_settings()
    with SessionLocal() as session:
        ledger = StockLedger(session)
        ledger.set_absolute(item_id, quantity)
        ledger.commit()
    typer.secho(f"{item_id}: {quantity} in stock", fg=typer.colors.GREEN)


@app.command("stock-adjust")
def stock_adjust(
    item_id: str = typer.Argument(..., help="Catalog item id"),
    delta: int = typer.Argument(..., help="Units to add (negative to remove)"),
) -> None:
    """Correct a tracked counter by a relative amount, never below zero."""

    _resolve_settings()
    with SessionLocal() as session:
        ledger = StockLedger(session)
        level = ledger.adjust(item_id, delta)
        ledger.commit()
    if not level.tracked:
        typer.secho(f"{item_id} is not tracked", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    typer.secho(f"{item_id}: {level.quantity} in stock", fg=typer.colors.GREEN)


@app.command("stock-untrack")
def stock_untrack(item_id: str = typer.Argument(..., help="Catalog item id")) -> None:
    """Stop tracking an item; it becomes available without limit."""

    _resolve_settings()
    with SessionLocal() as session:
        ledger = StockLedger(session)
        ledger.disable_tracking(item_id)
        ledger.commit()
    typer.secho(f"{item_id}: no longer tracked", fg=typer.colors.GREEN)


@app.command("stock-list")
def stock_list() -> None:
    """Display tracked stock counters."""

    _resolve_settings()
    with SessionLocal() as session:
        levels = StockLedger(session).snapshot()
    if not levels:
        typer.echo("No tracked items.")
        return
    _print_header("Tracked stock")
    for item_id, quantity in levels.items():
        colour = typer.colors.RED if quantity <= 0 else None
        typer.secho(f"- {item_id}: {quantity}", fg=colour)


@app.command("list-orders")
def list_orders_cmd(
    status: Optional[OrderStatus] = typer.Option(None, help="Only show orders in this state"),
    limit: int = typer.Option(20, help="Maximum number of orders"),
) -> None:
    """Display the most recent orders."""

    _resolve_settings()
    with SessionLocal() as session:
        orders = OrderManager(session).list_orders(status, limit=limit)
        if not orders:
            typer.echo("No orders found.")
            return
        _print_header("Orders")
        for order in orders:
            fee = "à définir" if order.delivery_fee is None else f"{order.delivery_fee:.2f}"
            typer.echo(
                f"- {order.id} | {order.status} | {order.source} | {order.first_name} {order.last_name} "
                f"| total={order.total:.2f} fee={fee}"
            )


@app.command("reject-order")
def reject_order(order_id: str = typer.Argument(..., help="Order id")) -> None:
    """Reject an order and give its stock back."""

    _resolve_settings()
    with SessionLocal() as session:
        try:
            OrderManager(session).reject(order_id)
        except MayssaError as exc:
            typer.secho(str(exc), fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc
    typer.secho(f"Order {order_id} rejected", fg=typer.colors.GREEN)


def main() -> None:
    """Entry-point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
