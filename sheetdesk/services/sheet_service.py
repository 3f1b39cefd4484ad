"""
Typed operations over the remote gateway.

One coroutine per logical remote operation. Each returns a `Result`; list
fetchers map the payload to domain models and treat a non-list payload as an
empty list, since older deployments answer some operations with an object.
"""

from __future__ import annotations

import time
from typing import Any, Callable, List, Mapping, Optional, TypeVar

from pydantic import BaseModel

from sheetdesk.domain.models import (
    DailyStat,
    Order,
    OrderPage,
    Role,
    Store,
    StoreHistoryItem,
    User,
    remote_rows,
)
from sheetdesk.domain.months import current_utc_month, month_of
from sheetdesk.infrastructure.gateway import FailureKind, RemoteGateway, Result
from sheetdesk.infrastructure.ip_lookup import get_client_ip

LOGIN_FAILED_MESSAGE = "Login failed."

M = TypeVar("M", bound=BaseModel)


def _as_list(data: Any) -> List[Any]:
    return data if isinstance(data, list) else []


def _rows(build: Callable[[Any], M], data: Any, kind: str) -> List[M]:
    return remote_rows(build, _as_list(data), kind)


def new_store_id(now_ms: Optional[int] = None) -> str:
    """Client-assigned store id: `ST-` plus the last six digits of epoch ms."""
    stamp = str(now_ms if now_ms is not None else int(time.time() * 1000))
    return f"ST-{stamp[-6:]}"


class SheetService:
    """Remote operations of the order dashboard backend."""

    def __init__(self, gateway: RemoteGateway) -> None:
        self.gateway = gateway

    # --- auth -------------------------------------------------------------

    async def login(self, username: str, password: str) -> Result[User]:
        ip = await get_client_ip()
        result = await self.gateway.call(
            "login", "POST", {"username": username, "password": password, "ip": ip}
        )
        data = result.data if result.success else None
        if isinstance(data, Mapping) and data.get("success") and isinstance(data.get("user"), Mapping):
            return Result.ok(User.from_remote(data["user"]))
        return Result.fail(
            result.error or LOGIN_FAILED_MESSAGE, result.kind or FailureKind.APPLICATION
        )

    # --- users & roles ----------------------------------------------------

    async def create_user(self, user_data: Mapping[str, Any]) -> Result[Any]:
        return await self.gateway.call("createUser", "POST", dict(user_data))

    async def get_users(self) -> Result[List[User]]:
        result = await self.gateway.call("getUsers", "GET")
        return result.map(lambda data: _rows(User.from_remote, data, "user"))

    async def update_user(
        self, username: str, role: Optional[str] = None, status: Optional[str] = None
    ) -> Result[Any]:
        # Only the changed fields are sent.
        changes = {key: value for key, value in (("role", role), ("status", status)) if value is not None}
        return await self.gateway.call(
            "updateUser", "POST", {"username": username, **changes}
        )

    async def get_roles(self) -> Result[List[Role]]:
        result = await self.gateway.call("getRoles", "GET")
        return result.map(lambda data: _rows(Role.model_validate, data, "role"))

    async def add_role(self, name: str, level: int) -> Result[Any]:
        return await self.gateway.call("addRole", "POST", {"role": name, "level": level})

    # --- orders -----------------------------------------------------------

    async def get_orders(self, month: Optional[str] = None) -> Result[OrderPage]:
        result = await self.gateway.call("getOrders", "GET", {"month": month or current_utc_month()})
        return result.map(OrderPage.from_remote)

    async def add_order(self, order: Order) -> Result[Any]:
        payload = order.to_remote()
        payload["user"] = order.handler
        payload["month"] = month_of(order.date)
        # Creation must report failures back, so it is never keep-alive.
        return await self.gateway.call("addOrder", "POST", payload, keep_alive=False)

    async def update_order(self, file_id: str, order_id: str, field: str, value: Any) -> Result[Any]:
        return await self.gateway.call(
            "updateOrder",
            "POST",
            {"fileId": file_id, "orderId": order_id, "field": field, "value": value},
        )

    async def update_order_row(
        self, file_id: str, order_id: str, data: Mapping[str, Any]
    ) -> Result[Any]:
        return await self.gateway.call(
            "updateOrderRow", "POST", {"fileId": file_id, "orderId": order_id, "data": dict(data)}
        )

    async def create_month_file(self, month: str) -> Result[Any]:
        return await self.gateway.call("createMonthFile", "POST", {"month": month})

    # --- units ------------------------------------------------------------

    async def get_units(self) -> Result[List[str]]:
        result = await self.gateway.call("getUnits", "GET")
        return result.map(lambda data: [str(u) for u in _as_list(data)])

    async def add_unit(self, unit: str) -> Result[Any]:
        return await self.gateway.call("addUnit", "POST", {"unit": unit})

    # --- stores & stats ---------------------------------------------------

    async def get_stores(self) -> Result[List[Store]]:
        result = await self.gateway.call("getStores", "GET")
        return result.map(lambda data: _rows(Store.from_remote, data, "store"))

    async def add_store(self, name: str, url: str = "", region: str = "") -> Result[Store]:
        store = Store(id=new_store_id(), name=name, url=url, region=region)
        result = await self.gateway.call("addStore", "POST", store.model_dump())
        return result.map(lambda _: store)

    async def delete_store(self, store_id: str) -> Result[Any]:
        return await self.gateway.call("deleteStore", "POST", {"id": store_id})

    async def get_daily_stats(self) -> Result[List[DailyStat]]:
        result = await self.gateway.call("getDailyStats", "GET")
        return result.map(lambda data: _rows(DailyStat.model_validate, data, "daily stat"))

    async def get_store_history(self, store_id: str) -> Result[List[StoreHistoryItem]]:
        result = await self.gateway.call("getStoreHistory", "POST", {"storeId": store_id})
        return result.map(lambda data: _rows(StoreHistoryItem.model_validate, data, "store history"))

    async def trigger_debug_snapshot(self) -> Result[Any]:
        return await self.gateway.call("debugSnapshot", "POST", {})


__all__ = ["LOGIN_FAILED_MESSAGE", "SheetService", "new_store_id"]
