from __future__ import annotations

from typing import Collection, Dict, Iterable, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from sheetdesk.domain.models import (
    DailyRevenue,
    DailyStat,
    DashboardMetrics,
    Order,
    Role,
    Store,
    StoreGrowth,
    StoreHistoryItem,
    User,
)
from sheetdesk.domain.months import format_date_display
from sheetdesk.views.references import ReferenceResolver, store_resolver

STATUS_STYLES: Dict[str, str] = {
    "Pending": "yellow",
    "Fulfilled": "green",
    "Cancelled": "red",
    "Refund": "magenta",
    "Resend": "blue",
}


def format_money(amount: float) -> str:
    """Whole-unit amount with thousands separators (VND has no minor unit)."""
    return f"{amount:,.0f}"


def format_signed(value: float) -> str:
    return f"+{value:,.0f}" if value > 0 else f"{value:,.0f}"


def _status(status: str) -> str:
    style = STATUS_STYLES.get(status)
    return f"[{style}]{status}[/{style}]" if style else status


def orders_table(
    orders: Sequence[Order],
    *,
    title: str,
    stores: Optional[ReferenceResolver[Store]] = None,
    pending: Collection[str] = (),
    caption: Optional[str] = None,
) -> Table:
    """
    Render a month of orders.

    Store references are shown through `stores` (id, then name, then the raw
    value); orders with a write in flight are marked in the first column.
    """
    resolve = stores or store_resolver(())
    table = Table(title=title, box=box.ROUNDED, caption=caption)
    table.add_column("", width=1)
    table.add_column("Date", style="dim", no_wrap=True)
    table.add_column("Order", style="cyan", no_wrap=True)
    table.add_column("Store")
    table.add_column("Unit")
    table.add_column("SKU", style="bold")
    table.add_column("Qty", justify="right", style="magenta")
    table.add_column("Status")
    table.add_column("Tracking", style="dim")
    table.add_column("Handler")
    table.add_column("Assigned")
    table.add_column("✓", justify="center")

    for order in orders:
        table.add_row(
            "…" if order.id in pending else "",
            format_date_display(order.date),
            order.id,
            resolve(order.store_id) if order.store_id else "",
            order.type,
            order.sku,
            str(order.quantity),
            _status(order.status),
            order.tracking,
            order.handler,
            order.action_role,
            "x" if order.is_checked else "",
        )
    return table


def stores_table(stores: Iterable[Store], title: str = "Stores") -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Region")
    table.add_column("Status")
    table.add_column("Listing", justify="right", style="magenta")
    table.add_column("Sale", justify="right", style="green")
    table.add_column("URL", style="dim")
    for store in stores:
        status = f"[green]{store.status}[/green]" if store.is_live else f"[red]{store.status}[/red]"
        table.add_row(store.id, store.name, store.region, status, store.listing, store.sale, store.url)
    return table


def dashboard_table(
    metrics: DashboardMetrics,
    growth: StoreGrowth,
    daily_revenue: Sequence[DailyRevenue] = (),
) -> Table:
    table = Table(title="Dashboard", box=box.ROUNDED, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="bold green")
    table.add_row("Revenue", format_money(metrics.revenue))
    table.add_row("Net income", format_money(metrics.net_income))
    table.add_row("Inventory value", format_money(metrics.inventory_value))
    table.add_row("Debt", format_money(metrics.debt))
    table.add_row("Listing (now)", f"{growth.total_listing_now:,.0f} ({format_signed(growth.listing)})")
    table.add_row("Sale (now)", f"{growth.total_sale_now:,.0f} ({format_signed(growth.sale)})")
    for point in daily_revenue[-7:]:
        table.add_row(f"Revenue {format_date_display(point.date[:10])}", format_money(point.amount))
    return table


def daily_stats_table(stats: Iterable[DailyStat]) -> Table:
    table = Table(title="Daily snapshots", box=box.SIMPLE)
    table.add_column("Date", style="dim")
    table.add_column("Listing", justify="right", style="magenta")
    table.add_column("Sale", justify="right", style="green")
    for stat in stats:
        table.add_row(stat.date, f"{stat.total_listing:,.0f}", f"{stat.total_sale:,.0f}")
    return table


def history_table(store: Store, history: Iterable[StoreHistoryItem]) -> Table:
    table = Table(title=f"History of {store.name or store.id}", box=box.ROUNDED)
    table.add_column("Date", style="dim")
    table.add_column("Listing", justify="right", style="magenta")
    table.add_column("Sale", justify="right", style="green")
    for item in history:
        table.add_row(item.date, f"{item.listing:,.0f}", f"{item.sale:,.0f}")
    return table


def users_table(users: Iterable[User]) -> Table:
    table = Table(title="Users", box=box.ROUNDED)
    table.add_column("Username", style="cyan", no_wrap=True)
    table.add_column("Full name")
    table.add_column("Role", style="bold")
    table.add_column("Email", style="dim")
    table.add_column("Phone", style="dim")
    table.add_column("Status")
    for user in users:
        status = user.status if user.status == "Active" else f"[red]{user.status}[/red]"
        table.add_row(user.username, user.full_name, user.role, user.email, user.phone, status)
    return table


def roles_table(levels: Dict[int, List[Role]]) -> Table:
    table = Table(title="Roles by level", box=box.SIMPLE)
    table.add_column("Level", justify="right", style="cyan")
    table.add_column("Roles")
    for level, roles in sorted(levels.items()):
        table.add_row(str(level), ", ".join(r.name for r in roles) or "[dim]-[/dim]")
    return table


def print_table(table: Table, console: Optional[Console] = None) -> None:
    (console or Console()).print(table)
