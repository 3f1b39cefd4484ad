"""
Domain models for sheetdesk.

The remote sheet speaks camelCase and is loose about types (numbers arrive as
formatted strings, booleans as "TRUE"). Each model keeps the remote names as
aliases and offers a lenient `from_remote` constructor mirroring what the
sheet actually sends.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from sheetdesk.utils.logging import get_logger

log = get_logger(__name__)

Quantity = Union[int, float, str]

R = TypeVar("R")


def remote_rows(build: Callable[[Any], R], items: Iterable[Any], kind: str) -> List[R]:
    """
    Build one record per remote row, skipping rows that cannot be read.

    A row that is not an object, or whose cells the model rejects, is logged
    and dropped so one broken sheet line does not fail the whole list.
    """
    rows: List[R] = []
    for index, item in enumerate(items):
        try:
            rows.append(build(item))
        except (AttributeError, TypeError, ValidationError) as exc:
            log.warning(
                "Skipping malformed %s row",
                kind,
                extra={"row": index, "error": type(exc).__name__},
            )
    return rows


def parse_sheet_number(value: Any) -> str:
    """
    Normalise a spreadsheet number cell to its canonical string form.

    Empty cells become "0", thousands separators are stripped, and anything
    that still does not parse as a number becomes "0".
    """
    if value is None or value == "":
        return "0"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return "0"
        try:
            number = float(text)
        except ValueError:
            return "0"
    if number != number or number in (float("inf"), float("-inf")):
        return "0"
    if number.is_integer():
        return str(int(number))
    return repr(number)


def sheet_number(value: Any) -> float:
    """Numeric value of a spreadsheet cell (see `parse_sheet_number`)."""
    return float(parse_sheet_number(value))


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class OrderStatus(str, Enum):
    PENDING = "Pending"
    FULFILLED = "Fulfilled"
    CANCELLED = "Cancelled"
    REFUND = "Refund"
    RESEND = "Resend"


class OrderItem(BaseModel):
    """A single product line of an order."""

    sku: str = ""
    type: str = ""
    quantity: Quantity = 1
    note: str = ""

    model_config = {"frozen": True}


class Order(BaseModel):
    """
    One row of a month's order sheet.

    `store_id` holds whatever the sheet stored: a store id or, for rows created
    from the dashboard, the store's display name.
    """

    id: str = Field(..., description="Order code, unique within its month.")
    date: str = Field("", description="Order date, YYYY-MM-DD.")
    store_id: str = Field("", alias="storeId")
    type: str = Field("", description="Fulfilment unit of the first product line.")
    sku: str = ""
    quantity: Quantity = "1"
    tracking: str = ""
    is_checked: bool = Field(False, alias="isChecked")
    link: str = ""
    status: str = OrderStatus.PENDING.value
    note: str = ""
    handler: str = ""
    action_role: str = Field("", alias="actionRole")
    items: Optional[List[OrderItem]] = None

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @classmethod
    def from_remote(cls, item: Mapping[str, Any]) -> "Order":
        return cls(
            id=_text(item.get("id") or ""),
            date=_text(item.get("date") or ""),
            store_id=_text(item.get("storeId") or ""),
            type=_text(item.get("type") or ""),
            sku=_text(item.get("sku") or ""),
            quantity=item.get("quantity") or "1",
            tracking=_text(item.get("tracking") or ""),
            is_checked=item.get("isChecked") is True or item.get("isChecked") == "TRUE",
            link=_text(item.get("link") or ""),
            status=_text(item.get("status") or OrderStatus.PENDING.value),
            note=_text(item.get("note") or ""),
            handler=_text(item.get("handler") or item.get("user") or ""),
            action_role=_text(item.get("actionRole") or ""),
        )

    def to_remote(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class OrderPage(BaseModel):
    """Orders of one month plus the id of the sheet file holding them."""

    orders: List[Order] = Field(default_factory=list)
    file_id: Optional[str] = Field(None, alias="fileId")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_remote(cls, data: Any) -> "OrderPage":
        if isinstance(data, Mapping) and isinstance(data.get("orders"), list):
            return cls(
                orders=remote_rows(Order.from_remote, data["orders"], "order"),
                file_id=_text(data.get("fileId")) or None,
            )
        # Older deployments answer with a bare array and no file id.
        if isinstance(data, list):
            return cls(orders=remote_rows(Order.from_remote, data, "order"), file_id=None)
        return cls()


class Store(BaseModel):
    id: str
    name: str = ""
    url: str = ""
    region: str = ""
    status: str = "LIVE"
    listing: str = "0"
    sale: str = "0"

    model_config = {"frozen": True}

    @classmethod
    def from_remote(cls, item: Mapping[str, Any]) -> "Store":
        return cls(
            id=_text(item.get("id") or ""),
            name=_text(item.get("name")),
            url=_text(item.get("url")),
            region=_text(item.get("region") or ""),
            status=_text(item.get("status") or "LIVE"),
            listing=parse_sheet_number(item.get("listing")),
            sale=parse_sheet_number(item.get("sale")),
        )

    @property
    def is_live(self) -> bool:
        return self.status.upper() in ("LIVE", "ACTIVE")


class User(BaseModel):
    username: str
    full_name: str = Field("", alias="fullName")
    role: str = ""
    email: str = ""
    phone: str = ""
    status: str = "Active"

    model_config = {"frozen": True, "populate_by_name": True}

    @classmethod
    def from_remote(cls, item: Mapping[str, Any]) -> "User":
        return cls(
            username=_text(item.get("username")),
            full_name=_text(item.get("fullName")),
            role=_text(item.get("role")),
            email=_text(item.get("email")),
            phone=_text(item.get("phone")),
            status=_text(item.get("status") or "Active"),
        )


class Role(BaseModel):
    name: str
    level: int = 5

    model_config = {"frozen": True}

    @field_validator("level", mode="before")
    @classmethod
    def _coerce_level(cls, value: Any) -> int:
        return int(sheet_number(value))


class DailyStat(BaseModel):
    """Daily snapshot of listing/sale totals across all stores."""

    date: str
    total_listing: float = Field(0, alias="totalListing")
    total_sale: float = Field(0, alias="totalSale")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("total_listing", "total_sale", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> float:
        return sheet_number(value)


class StoreHistoryItem(BaseModel):
    date: str
    store_id: str = Field("", alias="storeId")
    listing: float = 0
    sale: float = 0

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("listing", "sale", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> float:
        return sheet_number(value)

    @field_validator("store_id", mode="before")
    @classmethod
    def _coerce_store_id(cls, value: Any) -> str:
        return _text(value)


class DashboardMetrics(BaseModel):
    revenue: float = 0
    net_income: float = 0
    inventory_value: float = 0
    debt: float = 0


class DailyRevenue(BaseModel):
    date: str
    amount: float


class StoreGrowth(BaseModel):
    """Change of listing/sale totals since the latest daily snapshot."""

    listing: float = 0
    sale: float = 0
    total_listing_now: float = 0
    total_sale_now: float = 0


__all__ = [
    "DailyRevenue",
    "DailyStat",
    "DashboardMetrics",
    "Order",
    "OrderItem",
    "OrderPage",
    "OrderStatus",
    "Quantity",
    "Role",
    "Store",
    "StoreGrowth",
    "StoreHistoryItem",
    "User",
    "parse_sheet_number",
    "remote_rows",
    "sheet_number",
]
