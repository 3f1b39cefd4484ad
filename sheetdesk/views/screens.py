"""
Screens of the order dashboard.

Each screen owns its remote collection(s), its filter/sort state and, where
the dashboard has one, its refresh loop. Screens never share collections;
every screen fetches and holds its own copy.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sheetdesk.config import Settings, get_settings
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
from sheetdesk.domain.months import current_local_month, shift_month
from sheetdesk.errors import ValidationFailed
from sheetdesk.infrastructure.gateway import Result
from sheetdesk.orchestrator import BackgroundTasks
from sheetdesk.services.sheet_service import SheetService
from sheetdesk.utils.logging import get_logger
from sheetdesk.views.abstract import LoggingNotifier, Notifier, Page, ProcessObserver
from sheetdesk.views.collection import RemoteCollection
from sheetdesk.views.mutations import OrderMutationController
from sheetdesk.views.references import ReferenceResolver, store_resolver
from sheetdesk.views.refresh import RefreshLoop
from sheetdesk.views.roles import RoleHierarchy, group_roles_by_level
from sheetdesk.views.sort_filter import FieldGetter, SortKey, view
from sheetdesk.views.stats import compute_daily_revenue, compute_growth, compute_metrics

log = get_logger(__name__)


def _order_page(result: Result[Any]) -> Result[Page[Order]]:
    return result.map(lambda page: Page(records=list(page.orders), scope_ref=page.file_id))


class _OrderScreen:
    """Month-scoped order table: store lookup, filtering, sorting, month navigation."""

    name = "orders"

    def __init__(
        self,
        service: SheetService,
        *,
        month: Optional[str] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.service = service
        self.notifier = notifier or LoggingNotifier()
        self.orders: RemoteCollection[Order] = RemoteCollection(
            self._load_orders,
            id_of=lambda order: order.id,
            scope_key=month or current_local_month(),
            name=self.name,
        )
        self.stores: List[Store] = []
        self.filter_text = ""
        self.sort_key = SortKey()

    async def _load_orders(self, month: Optional[str]) -> Result[Page[Order]]:
        return _order_page(await self.service.get_orders(month))

    @property
    def month(self) -> str:
        return self.orders.scope_key or current_local_month()

    @property
    def file_id(self) -> Optional[str]:
        return self.orders.scope_ref

    @property
    def store_names(self) -> ReferenceResolver[Store]:
        return store_resolver(self.stores)

    def filter_fields(self) -> Sequence[FieldGetter[Order]]:
        resolve = self.store_names
        return (
            lambda o: o.id,
            lambda o: o.sku,
            lambda o: o.tracking,
            lambda o: resolve(o.store_id) if o.store_id else "",
            lambda o: o.handler,
        )

    def visible(self) -> List[Order]:
        """Rows to display: filtered by `filter_text`, ordered by `sort_key`."""
        return view(self.orders.records, self.filter_text, self.sort_key, fields=self.filter_fields())

    def sort_by(self, field: str) -> SortKey:
        self.sort_key = self.sort_key.toggled(field)
        return self.sort_key

    async def reload(self) -> Result[List[Order]]:
        return await self.orders.load()

    async def select_month(self, month: str) -> Result[List[Order]]:
        shift_month(month, 0)  # validates the scope key
        return await self.orders.load(month)

    async def change_month(self, step: int) -> Result[List[Order]]:
        return await self.select_month(shift_month(self.month, step))


class OrderListScreen(_OrderScreen):
    """
    The main order table with create/edit.

    Reference lists (stores, units, users) are fetched concurrently once at
    mount; the month's orders are fetched alongside and again on every month
    change.
    """

    def __init__(
        self,
        service: SheetService,
        background: BackgroundTasks,
        *,
        month: Optional[str] = None,
        user: Optional[User] = None,
        notifier: Optional[Notifier] = None,
        observer: Optional[ProcessObserver] = None,
        hierarchy: Optional[RoleHierarchy] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        super().__init__(service, month=month, notifier=notifier)
        settings = settings or get_settings()
        self.user = user
        self.units: List[str] = []
        self.users: List[User] = []
        self.hierarchy = hierarchy or RoleHierarchy(settings.role_ranks)
        self.controller = OrderMutationController(
            service,
            self.orders,
            background,
            stores=lambda: self.stores,
            notifier=self.notifier,
            observer=observer,
            current_user=user.username if user else (settings.current_user or None),
            default_unit=settings.default_unit,
        )

    @property
    def pending(self):
        return self.controller.pending

    async def load_metadata(self) -> None:
        stores, units, users = await asyncio.gather(
            self.service.get_stores(), self.service.get_units(), self.service.get_users()
        )
        if stores.success:
            self.stores = stores.data or []
        if units.success:
            self.units = units.data or []
        if users.success:
            self.users = users.data or []
        for result in (stores, units, users):
            if not result.success:
                log.warning("Metadata load failed: %s", result.error)

    async def mount(self) -> None:
        await asyncio.gather(self.load_metadata(), self.orders.load(background=False))

    def unit_options(self) -> List[str]:
        """Units for the line picker; the default unit is always offered."""
        options = list(self.units)
        default_unit = self.controller.default_unit
        if default_unit not in options:
            options.append(default_unit)
        return options

    def assignable_users(self) -> List[User]:
        return self.hierarchy.assignable(self.users, self.user.role if self.user else None)

    async def add_unit(self, unit: str) -> Result[Any]:
        name = unit.strip()
        if not name:
            raise ValidationFailed("Unit name is required.")
        result = await self.service.add_unit(name)
        if not result.success:
            self.notifier.error(f"Could not add unit: {result.error}")
            return result
        units = await self.service.get_units()
        if units.success:
            self.units = units.data or []
        return result

    async def create_month_file(self) -> Result[Any]:
        result = await self.service.create_month_file(self.month)
        if result.success:
            await self.orders.load(background=True)
        else:
            self.notifier.error(f"Could not create the file for {self.month}: {result.error}")
        return result


class DesignerQueueScreen(_OrderScreen):
    """Orders of the month assigned (via actionRole) to a designer account."""

    name = "designer-orders"

    def __init__(
        self, service: SheetService, *, month: Optional[str] = None, notifier: Optional[Notifier] = None
    ) -> None:
        super().__init__(service, month=month, notifier=notifier)
        self.designers: List[str] = []

    async def _load_orders(self, month: Optional[str]) -> Result[Page[Order]]:
        orders, stores, users = await asyncio.gather(
            self.service.get_orders(month), self.service.get_stores(), self.service.get_users()
        )
        if stores.success:
            self.stores = stores.data or []
        if users.success:
            self.designers = [u.username for u in users.data or [] if "designer" in u.role.lower()]
        designers = set(self.designers)
        return _order_page(orders).map(
            lambda page: Page(
                records=[o for o in page.records if o.action_role and o.action_role in designers],
                scope_ref=page.scope_ref,
            )
        )

    def filter_fields(self) -> Sequence[FieldGetter[Order]]:
        return (*super().filter_fields(), lambda o: o.action_role)

    async def mount(self) -> None:
        await self.orders.load(background=False)


class StoreDashboard:
    """
    Store registry with sales figures, refreshed every few minutes.
    """

    def __init__(
        self,
        service: SheetService,
        *,
        notifier: Optional[Notifier] = None,
        interval: Optional[float] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.service = service
        self.notifier = notifier or LoggingNotifier()
        self.average_order_value = settings.average_order_value
        self.stores: RemoteCollection[Store] = RemoteCollection(
            self._load_stores, id_of=lambda store: store.id, name="stores"
        )
        self.daily_stats: List[DailyStat] = []
        self.metrics = DashboardMetrics()
        self.growth = StoreGrowth()
        self.daily_revenue: List[DailyRevenue] = []
        self.deleting_id: Optional[str] = None
        self.refresh_loop = RefreshLoop(self.load, interval=interval, name="dashboard")

    async def _load_stores(self, _scope: Optional[str]) -> Result[Page[Store]]:
        result = await self.service.get_stores()
        return result.map(lambda stores: Page(records=list(stores)))

    @property
    def loading(self) -> bool:
        return self.stores.loading

    @property
    def refreshing(self) -> bool:
        return self.stores.refreshing

    async def load(self, background: bool = False) -> None:
        _, stats = await asyncio.gather(
            self.stores.load(background=background), self.service.get_daily_stats()
        )
        if stats.success:
            history = stats.data or []
            # newest first for display
            self.daily_stats = list(reversed(history))
            self.daily_revenue = compute_daily_revenue(history, self.average_order_value)
            self.growth = compute_growth(self.stores.records, history)
        else:
            self.growth = compute_growth(self.stores.records, [])
        self.metrics = compute_metrics(self.stores.records, self.average_order_value)

    def mount(self) -> "asyncio.Task[None]":
        return self.refresh_loop.start()

    async def unmount(self) -> None:
        await self.refresh_loop.stop()

    def refresh(self) -> "asyncio.Task[Any]":
        return self.refresh_loop.trigger()

    async def add_store(self, name: str, url: str = "", region: str = "") -> Result[Store]:
        if not name.strip():
            raise ValidationFailed("Store name is required.")
        result = await self.service.add_store(name.strip(), url, region)
        if result.success:
            await self.load(background=True)
        else:
            self.notifier.error(f"Could not add store: {result.error}")
        return result

    async def delete_store(self, store_id: str) -> Result[Any]:
        self.deleting_id = store_id
        try:
            result = await self.service.delete_store(store_id)
        finally:
            self.deleting_id = None
        if result.success:
            self.notifier.info("Store deleted.")
            await self.load(background=True)
        else:
            self.notifier.error(f"Could not delete store: {result.error}")
        return result

    async def debug_snapshot(self) -> Result[Any]:
        result = await self.service.trigger_debug_snapshot()
        if result.success:
            self.notifier.info("Synthetic snapshot created; reloading.")
            await self.load(background=True)
        else:
            self.notifier.error(result.error or "Snapshot request failed.")
        return result


class StoreDetailScreen:
    """Snapshot history of one store."""

    def __init__(self, service: SheetService, store: Store) -> None:
        self.service = service
        self.store = store
        self.history: RemoteCollection[StoreHistoryItem] = RemoteCollection(
            self._load_history, id_of=lambda item: item.date, name="store-history"
        )

    async def _load_history(self, _scope: Optional[str]) -> Result[Page[StoreHistoryItem]]:
        result = await self.service.get_store_history(self.store.id)
        return result.map(lambda items: Page(records=list(items)))

    async def mount(self) -> Result[List[StoreHistoryItem]]:
        return await self.history.load(background=False)


@dataclass
class NewUser:
    username: str = ""
    password: str = ""
    full_name: str = ""
    email: str = ""
    phone: str = ""
    role: str = "support"

    def to_remote(self) -> Dict[str, str]:
        return {
            "username": self.username,
            "password": self.password,
            "fullName": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
        }


class UserManagementScreen:
    """
    Accounts and roles.

    Role and status changes show immediately on the user row; when the
    remote rejects one, the user list is reloaded to put the confirmed values
    back.
    """

    def __init__(self, service: SheetService, *, notifier: Optional[Notifier] = None) -> None:
        self.service = service
        self.notifier = notifier or LoggingNotifier()
        self.users: RemoteCollection[User] = RemoteCollection(
            self._load_users, id_of=lambda user: user.username, name="users"
        )
        self.roles: List[Role] = []

    async def _load_users(self, _scope: Optional[str]) -> Result[Page[User]]:
        result = await self.service.get_users()
        return result.map(lambda users: Page(records=list(users)))

    async def load(self) -> None:
        _, roles = await asyncio.gather(self.users.load(), self.service.get_roles())
        if roles.success:
            self.roles = roles.data or []

    async def create_user(self, form: NewUser) -> Result[Any]:
        if not form.username or not form.password or not form.full_name:
            self.notifier.warning("Username, password and full name are required.")
            raise ValidationFailed("Username, password and full name are required.")
        result = await self.service.create_user(form.to_remote())
        if result.success:
            self.notifier.info(f"Account {form.username} created.")
            await self.load()
        else:
            self.notifier.error(result.error or "Could not create the account.")
        return result

    async def _patch_user(self, username: str, **changes: str) -> Result[Any]:
        user = self.users.get(username)
        if user is not None:
            self.users.upsert_local(user.model_copy(update=changes))
        result = await self.service.update_user(
            username, role=changes.get("role"), status=changes.get("status")
        )
        if not result.success:
            self.notifier.error(f"Could not update {username}: {result.error}")
            await self.users.load(background=True)
        return result

    async def change_role(self, username: str, role: str) -> Result[Any]:
        return await self._patch_user(username, role=role)

    async def change_status(self, username: str, status: str) -> Result[Any]:
        return await self._patch_user(username, status=status)

    async def add_role(self, name: str, level: int = 5) -> Result[Any]:
        if not name.strip():
            raise ValidationFailed("Role name is required.")
        result = await self.service.add_role(name.strip(), level)
        if not result.success:
            self.notifier.error(f"Could not add role: {result.error}")
            return result
        roles = await self.service.get_roles()
        if roles.success:
            self.roles = roles.data or []
        return result

    def roles_by_level(self) -> Dict[int, List[Role]]:
        return group_roles_by_level(self.roles)


__all__ = [
    "DesignerQueueScreen",
    "NewUser",
    "OrderListScreen",
    "StoreDashboard",
    "StoreDetailScreen",
    "UserManagementScreen",
]
