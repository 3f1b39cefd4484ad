"""
Pytest configuration for sheetdesk.

Provides fixtures for:
- Settings isolation (no developer environment leaks into tests)
- An in-process fake of the sheet backend served through httpx.MockTransport
- Gateway/service wiring against that fake
- A recording notifier
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Dict, List, Optional, Set, Tuple

import httpx
import pytest

from sheetdesk.config import get_settings
from sheetdesk.infrastructure.gateway import RemoteGateway
from sheetdesk.orchestrator import BackgroundTasks
from sheetdesk.services.sheet_service import SheetService

API_URL = "https://sheet.test/exec"

_ENV_VARS = (
    "API_URL",
    "REQUEST_TIMEOUT_SECONDS",
    "REFRESH_INTERVAL_SECONDS",
    "IP_LOOKUP_URL",
    "IP_LOOKUP_TIMEOUT_SECONDS",
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "ROLE_RANKS",
    "DEFAULT_UNIT",
    "AVERAGE_ORDER_VALUE",
    "CURRENT_USER",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Fresh settings per test, built from defaults only."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _snake(action: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", action).lower()


class FakeSheetBackend:
    """
    In-memory stand-in for the sheet script endpoint.

    Orders live in per-month files; every request is recorded as
    (method, action, payload). `errors` makes an action answer with an
    application error, `unrecognized` makes it answer `{}`, and `gates` holds
    an action until the test sets the event.
    """

    def __init__(self) -> None:
        self.files: Dict[str, str] = {}
        self.orders: Dict[str, List[Dict[str, Any]]] = {}
        self.stores: List[Dict[str, Any]] = []
        self.users: List[Dict[str, Any]] = []
        self.roles: List[Dict[str, Any]] = [
            {"name": "admin", "level": 1},
            {"name": "leader", "level": 2},
            {"name": "support", "level": 4},
            {"name": "designer", "level": 5},
        ]
        self.units: List[str] = ["Printway", "Merchize"]
        self.daily_stats: List[Dict[str, Any]] = []
        self.history: Dict[str, List[Dict[str, Any]]] = {}
        self.requests: List[Tuple[str, str, Dict[str, Any]]] = []
        self.errors: Dict[str, str] = {}
        self.unrecognized: Set[str] = set()
        self.gates: Dict[str, asyncio.Event] = {}

    # --- test helpers -------------------------------------------------------

    def seed_month(self, month: str, orders: List[Dict[str, Any]], file_id: Optional[str] = None) -> str:
        self.files[month] = file_id or f"file-{month}"
        self.orders[month] = [dict(o) for o in orders]
        return self.files[month]

    def calls(self, action: str) -> List[Dict[str, Any]]:
        return [payload for _, name, payload in self.requests if name == action]

    def month_orders(self, month: str) -> List[Dict[str, Any]]:
        return self.orders.get(month, [])

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # --- wire ---------------------------------------------------------------

    async def handle(self, request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        action = params.pop("action", "")
        params.pop("_t", None)
        if request.method == "POST":
            payload = json.loads(request.content or b"{}")
            payload.pop("action", None)
        else:
            payload = params
        self.requests.append((request.method, action, payload))

        gate = self.gates.get(action)
        if gate is not None:
            await gate.wait()
        if action in self.unrecognized:
            return httpx.Response(200, json={})
        if action in self.errors:
            return httpx.Response(200, json={"error": self.errors[action]})
        handler = getattr(self, f"_{_snake(action)}", None)
        if handler is None:
            return httpx.Response(200, json={})
        return httpx.Response(200, json=handler(dict(payload)))

    # --- operations ---------------------------------------------------------

    def _month_of_file(self, file_id: str) -> Optional[str]:
        return next((m for m, f in self.files.items() if f == file_id), None)

    def _get_orders(self, p: Dict[str, Any]) -> Any:
        month = p.get("month", "")
        return {"orders": list(self.orders.get(month, [])), "fileId": self.files.get(month)}

    def _add_order(self, p: Dict[str, Any]) -> Any:
        month = p.pop("month")
        handler = p.pop("user", "")
        self.files.setdefault(month, f"file-{month}")
        rows = self.orders.setdefault(month, [])
        if any(row["id"] == p["id"] for row in rows):
            return {"error": f"Order {p['id']} already exists"}
        rows.insert(0, {**p, "handler": handler})
        return {"success": True}

    def _find_order(self, p: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        month = self._month_of_file(p.get("fileId", ""))
        if month is None:
            return None
        return next((o for o in self.orders[month] if o["id"] == p.get("orderId")), None)

    def _update_order_row(self, p: Dict[str, Any]) -> Any:
        row = self._find_order(p)
        if row is None:
            return {"error": "Order not found"}
        row.update(p.get("data") or {})
        return {"success": True}

    def _update_order(self, p: Dict[str, Any]) -> Any:
        row = self._find_order(p)
        if row is None:
            return {"error": "Order not found"}
        row[p["field"]] = p["value"]
        return {"success": True}

    def _create_month_file(self, p: Dict[str, Any]) -> Any:
        self.files.setdefault(p["month"], f"file-{p['month']}")
        self.orders.setdefault(p["month"], [])
        return {"success": True, "fileId": self.files[p["month"]]}

    def _get_units(self, p: Dict[str, Any]) -> Any:
        return list(self.units)

    def _add_unit(self, p: Dict[str, Any]) -> Any:
        self.units.append(p["unit"])
        return {"success": True}

    def _get_stores(self, p: Dict[str, Any]) -> Any:
        return [dict(s) for s in self.stores]

    def _add_store(self, p: Dict[str, Any]) -> Any:
        self.stores.append(dict(p))
        return {"success": True}

    def _delete_store(self, p: Dict[str, Any]) -> Any:
        self.stores = [s for s in self.stores if s["id"] != p["id"]]
        return {"success": True}

    def _get_daily_stats(self, p: Dict[str, Any]) -> Any:
        return list(self.daily_stats)

    def _get_store_history(self, p: Dict[str, Any]) -> Any:
        return list(self.history.get(p["storeId"], []))

    def _debug_snapshot(self, p: Dict[str, Any]) -> Any:
        self.daily_stats.append(
            {
                "date": f"2024-03-{len(self.daily_stats) + 1:02d}",
                "totalListing": sum(int(s.get("listing") or 0) for s in self.stores),
                "totalSale": sum(int(s.get("sale") or 0) for s in self.stores),
            }
        )
        return {"success": True}

    def _get_users(self, p: Dict[str, Any]) -> Any:
        return [{k: v for k, v in u.items() if k != "password"} for u in self.users]

    def _create_user(self, p: Dict[str, Any]) -> Any:
        if any(u["username"] == p["username"] for u in self.users):
            return {"error": "Username already exists"}
        self.users.append({"status": "Active", **p})
        return {"success": True}

    def _update_user(self, p: Dict[str, Any]) -> Any:
        user = next((u for u in self.users if u["username"] == p["username"]), None)
        if user is None:
            return {"error": "User not found"}
        for key in ("role", "status"):
            if p.get(key) is not None:
                user[key] = p[key]
        return {"success": True}

    def _get_roles(self, p: Dict[str, Any]) -> Any:
        return list(self.roles)

    def _add_role(self, p: Dict[str, Any]) -> Any:
        self.roles.append({"name": p["role"], "level": p["level"]})
        return {"success": True}

    def _login(self, p: Dict[str, Any]) -> Any:
        user = next(
            (u for u in self.users if u["username"] == p["username"] and u.get("password") == p["password"]),
            None,
        )
        if user is None:
            return {"success": False, "error": "Invalid username or password"}
        return {"success": True, "user": {k: v for k, v in user.items() if k != "password"}}


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def of(self, level: str) -> List[str]:
        return [m for lvl, m in self.messages if lvl == level]


@pytest.fixture
def backend() -> FakeSheetBackend:
    return FakeSheetBackend()


@pytest.fixture
def background() -> BackgroundTasks:
    return BackgroundTasks()


@pytest.fixture
def gateway(backend: FakeSheetBackend, background: BackgroundTasks) -> RemoteGateway:
    return RemoteGateway(API_URL, transport=backend.transport(), background=background)


@pytest.fixture
def service(gateway: RemoteGateway) -> SheetService:
    return SheetService(gateway)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
