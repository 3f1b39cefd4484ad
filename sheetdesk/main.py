from __future__ import annotations

import asyncio
import contextlib
import json
import sys
from typing import AsyncIterator, List, Optional, Tuple

import typer
from rich.console import Console

from sheetdesk.config import get_settings
from sheetdesk.domain.models import OrderItem, OrderStatus, Store
from sheetdesk.errors import ValidationFailed
from sheetdesk.infrastructure.gateway import RemoteGateway
from sheetdesk.orchestrator import BackgroundTasks
from sheetdesk.reporter import (
    daily_stats_table,
    dashboard_table,
    history_table,
    orders_table,
    print_table,
    roles_table,
    stores_table,
    users_table,
)
from sheetdesk.services.sheet_service import SheetService
from sheetdesk.utils.logging import configure_logging
from sheetdesk.views.abstract import ProcessCoordinator
from sheetdesk.views.screens import (
    DesignerQueueScreen,
    OrderListScreen,
    StoreDashboard,
    StoreDetailScreen,
    UserManagementScreen,
)
from sheetdesk.views.sort_filter import SortKey

app = typer.Typer(help="Order dashboard client for the sheet backend.")
console = Console()


class ConsoleNotifier:
    """Notifier printing to the terminal."""

    def __init__(self, target: Console) -> None:
        self.console = target

    def info(self, message: str) -> None:
        self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]{message}[/bold red]")


notifier = ConsoleNotifier(console)


def _setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


@contextlib.asynccontextmanager
async def _session() -> AsyncIterator[Tuple[SheetService, BackgroundTasks]]:
    background = BackgroundTasks()
    gateway = RemoteGateway(background=background)
    try:
        yield SheetService(gateway), background
    finally:
        await background.join()
        await gateway.aclose()


def _fail(message: str) -> None:
    notifier.error(message)
    raise typer.Exit(code=1)


def _run(coro) -> None:
    asyncio.run(coro)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"API={settings.api_url or '<unset>'} | env={settings.app_env} "
        f"timeout={settings.request_timeout or 'none'} refresh={settings.refresh_interval_seconds}s "
        f"unit={settings.default_unit} user={settings.current_user or '-'}"
    )


@app.command()
def login(
    username: str = typer.Option(..., "--username", "-u"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Check credentials and print the account."""
    _setup()

    async def _login() -> None:
        async with _session() as (service, _):
            result = await service.login(username, password)
        if not result.success or result.data is None:
            _fail(result.error or "Login failed.")
        typer.echo(json.dumps(result.data.model_dump(by_alias=True), indent=2))

    _run(_login())


@app.command()
def orders(
    month: Optional[str] = typer.Option(None, "--month", "-m", help="YYYY-MM; defaults to this month."),
    search: str = typer.Option("", "--search", "-q", help="Filter text."),
    ascending: bool = typer.Option(False, "--asc", help="Oldest first."),
) -> None:
    """List the orders of a month."""
    _setup()

    async def _orders() -> None:
        async with _session() as (service, background):
            screen = OrderListScreen(service, background, month=month, notifier=notifier)
            await screen.mount()
        if screen.orders.last_error:
            _fail(screen.orders.last_error)
        screen.filter_text = search
        screen.sort_key = SortKey("date", "asc" if ascending else "desc")
        rows = screen.visible()
        print_table(
            orders_table(
                rows,
                title=f"Orders {screen.month}",
                stores=screen.store_names,
                caption=f"{len(rows)} of {len(screen.orders)} orders",
            ),
            console,
        )

    _run(_orders())


@app.command()
def designer(
    month: Optional[str] = typer.Option(None, "--month", "-m"),
    search: str = typer.Option("", "--search", "-q"),
) -> None:
    """List the month's orders assigned to designers."""
    _setup()

    async def _designer() -> None:
        async with _session() as (service, _):
            screen = DesignerQueueScreen(service, month=month, notifier=notifier)
            await screen.mount()
        if screen.orders.last_error:
            _fail(screen.orders.last_error)
        screen.filter_text = search
        print_table(
            orders_table(screen.visible(), title=f"Designer queue {screen.month}", stores=screen.store_names),
            console,
        )

    _run(_designer())


@app.command()
def stores() -> None:
    """Show the store registry with dashboard figures."""
    _setup()

    async def _stores() -> None:
        async with _session() as (service, _):
            dashboard = StoreDashboard(service, notifier=notifier)
            await dashboard.load()
        if dashboard.stores.last_error:
            _fail(dashboard.stores.last_error)
        print_table(dashboard_table(dashboard.metrics, dashboard.growth, dashboard.daily_revenue), console)
        print_table(stores_table(dashboard.stores.records), console)
        print_table(daily_stats_table(dashboard.daily_stats), console)

    _run(_stores())


@app.command("store-history")
def store_history(store_id: str = typer.Argument(..., help="Store id, e.g. ST-123456.")) -> None:
    """Show the snapshot history of one store."""
    _setup()

    async def _history() -> None:
        async with _session() as (service, _):
            listed = await service.get_stores()
            store = next((s for s in listed.data or [] if s.id == store_id), None) or Store(id=store_id)
            detail = StoreDetailScreen(service, store)
            result = await detail.mount()
        if not result.success:
            _fail(result.error or "Could not load history.")
        print_table(history_table(store, detail.history.records), console)

    _run(_history())


@app.command()
def users() -> None:
    """List accounts and roles."""
    _setup()

    async def _users() -> None:
        async with _session() as (service, _):
            screen = UserManagementScreen(service, notifier=notifier)
            await screen.load()
        if screen.users.last_error:
            _fail(screen.users.last_error)
        print_table(users_table(screen.users.records), console)
        print_table(roles_table(screen.roles_by_level()), console)

    _run(_users())


@app.command("add-order")
def add_order(
    order_id: str = typer.Option(..., "--id", help="Order code."),
    store: str = typer.Option(..., "--store", "-s", help="Store id or name."),
    sku: List[str] = typer.Option(..., "--sku", help="SKU of a product line; repeat for more lines."),
    unit: Optional[str] = typer.Option(None, "--unit", help="Fulfilment unit for every line."),
    quantity: int = typer.Option(1, "--qty"),
    order_date: Optional[str] = typer.Option(None, "--date", help="YYYY-MM-DD; defaults to today."),
    tracking: str = typer.Option("", "--tracking"),
    link: str = typer.Option("", "--link"),
    assign: str = typer.Option("", "--assign", help="Username to assign the order to."),
) -> None:
    """Create an order; it is shown at once and confirmed in the background."""
    _setup()

    async def _add() -> None:
        coordinator = ProcessCoordinator()
        async with _session() as (service, background):
            screen = OrderListScreen(service, background, notifier=notifier, observer=coordinator)
            await screen.mount()
            draft = screen.controller.new_draft()
            draft.id = order_id
            draft.store_id = store
            draft.tracking = tracking
            draft.link = link
            draft.action_role = assign
            if order_date:
                draft.date = order_date
            draft.items = [
                OrderItem(sku=s, type=unit or screen.controller.default_unit, quantity=quantity) for s in sku
            ]
            try:
                task = screen.controller.submit_create(draft)
            except ValidationFailed as exc:
                _fail(str(exc))
            result = await task
        if result.success:
            notifier.info(f"Order {order_id} saved.")
        else:
            raise typer.Exit(code=1)

    _run(_add())


@app.command("edit-order")
def edit_order(
    order_id: str = typer.Argument(..., help="Order code."),
    month: Optional[str] = typer.Option(None, "--month", "-m"),
    status: Optional[OrderStatus] = typer.Option(None, "--status"),
    tracking: Optional[str] = typer.Option(None, "--tracking"),
    link: Optional[str] = typer.Option(None, "--link"),
    sku: Optional[str] = typer.Option(None, "--sku"),
    note: Optional[str] = typer.Option(None, "--note"),
    assign: Optional[str] = typer.Option(None, "--assign"),
    checked: Optional[bool] = typer.Option(None, "--checked/--unchecked"),
) -> None:
    """Edit an order of the month; unspecified fields keep their values."""
    _setup()

    async def _edit() -> None:
        async with _session() as (service, background):
            screen = OrderListScreen(service, background, month=month, notifier=notifier)
            await screen.mount()
            form = screen.controller.begin_edit(order_id)
            if form is None:
                _fail(f"Order {order_id} is not in {screen.month}.")
            if status is not None:
                form.status = status.value
            if tracking is not None:
                form.tracking = tracking
            if link is not None:
                form.link = link
            if assign is not None:
                form.action_role = assign
            if checked is not None:
                form.is_checked = checked
            if sku is not None or note is not None:
                form.item = form.item.model_copy(
                    update={k: v for k, v in (("sku", sku), ("note", note)) if v is not None}
                )
            try:
                task = screen.controller.submit_edit(form)
            except ValidationFailed as exc:
                _fail(str(exc))
            if task is None:
                _fail(f"Order {order_id} has a write in flight.")
            result = await task
        if result.success:
            notifier.info(f"Order {order_id} updated.")
        else:
            raise typer.Exit(code=1)

    _run(_edit())


@app.command("add-store")
def add_store(
    name: str = typer.Argument(...),
    url: str = typer.Option("", "--url"),
    region: str = typer.Option("", "--region"),
) -> None:
    """Register a store."""
    _setup()

    async def _add() -> None:
        async with _session() as (service, _):
            dashboard = StoreDashboard(service, notifier=notifier)
            try:
                result = await dashboard.add_store(name, url, region)
            except ValidationFailed as exc:
                _fail(str(exc))
        if not result.success or result.data is None:
            raise typer.Exit(code=1)
        notifier.info(f"Store {result.data.name} added as {result.data.id}.")

    _run(_add())


@app.command()
def snapshot() -> None:
    """Ask the backend for a synthetic daily snapshot."""
    _setup()

    async def _snapshot() -> None:
        async with _session() as (service, _):
            result = await StoreDashboard(service, notifier=notifier).debug_snapshot()
        if not result.success:
            raise typer.Exit(code=1)

    _run(_snapshot())


@app.command()
def watch(
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help="Seconds between refreshes."),
) -> None:
    """Keep the dashboard on screen, refreshing it until Ctrl+C."""
    _setup()

    async def _watch() -> None:
        async with _session() as (service, _):
            dashboard = StoreDashboard(service, notifier=notifier, interval=interval)
            last_tick = -1
            dashboard.mount()
            try:
                while True:
                    await asyncio.sleep(0.5)
                    if dashboard.stores.loaded and dashboard.refresh_loop.ticks != last_tick:
                        last_tick = dashboard.refresh_loop.ticks
                        console.clear()
                        print_table(
                            dashboard_table(dashboard.metrics, dashboard.growth, dashboard.daily_revenue),
                            console,
                        )
                        print_table(stores_table(dashboard.stores.records), console)
            finally:
                await dashboard.unmount()

    _run(_watch())


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
