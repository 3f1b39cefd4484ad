"""
Domain package for sheetdesk.

Exports the record models shared by the gateway service, the screens, and the
CLI. Keep this package focused on data definitions and value helpers.
"""

from sheetdesk.domain.models import (
    DailyRevenue,
    DailyStat,
    DashboardMetrics,
    Order,
    OrderItem,
    OrderPage,
    OrderStatus,
    Role,
    Store,
    StoreGrowth,
    StoreHistoryItem,
    User,
    parse_sheet_number,
)
from sheetdesk.domain.months import current_local_month, month_of, shift_month

__all__ = [
    "DailyRevenue",
    "DailyStat",
    "DashboardMetrics",
    "Order",
    "OrderItem",
    "OrderPage",
    "OrderStatus",
    "Role",
    "Store",
    "StoreGrowth",
    "StoreHistoryItem",
    "User",
    "current_local_month",
    "month_of",
    "parse_sheet_number",
    "shift_month",
]
