"""
Dashboard figures derived from stores and daily snapshots.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from sheetdesk.domain.models import DailyRevenue, DailyStat, DashboardMetrics, Store, StoreGrowth, sheet_number
from sheetdesk.views.sort_filter import parse_timestamp

NET_INCOME_RATIO = 0.3
INVENTORY_VALUE = 55_000_000


def _by_date(stats: Iterable[DailyStat]) -> List[DailyStat]:
    """Oldest first; snapshots with unreadable dates keep their order at the end."""
    indexed = list(enumerate(stats))

    def _key(pair: tuple[int, DailyStat]) -> tuple[int, float, int]:
        index, stat = pair
        stamp = parse_timestamp(stat.date)
        return (1, 0.0, index) if stamp is None else (0, stamp, index)

    return [stat for _, stat in sorted(indexed, key=_key)]


def totals(stores: Iterable[Store]) -> tuple[float, float]:
    """(listing, sale) summed over all stores."""
    listing = sale = 0.0
    for store in stores:
        listing += sheet_number(store.listing)
        sale += sheet_number(store.sale)
    return listing, sale


def compute_metrics(stores: Iterable[Store], average_order_value: float) -> DashboardMetrics:
    _, sale = totals(stores)
    revenue = sale * average_order_value
    return DashboardMetrics(
        revenue=revenue,
        net_income=revenue * NET_INCOME_RATIO,
        inventory_value=INVENTORY_VALUE,
        debt=0,
    )


def latest_snapshot(stats: Sequence[DailyStat]) -> Optional[DailyStat]:
    ordered = _by_date(stats)
    return ordered[-1] if ordered else None


def compute_growth(stores: Iterable[Store], stats: Sequence[DailyStat]) -> StoreGrowth:
    """Listing/sale change since the latest snapshot (the totals when there is none)."""
    listing_now, sale_now = totals(stores)
    last = latest_snapshot(stats)
    if last is None:
        return StoreGrowth(
            listing=listing_now, sale=sale_now, total_listing_now=listing_now, total_sale_now=sale_now
        )
    return StoreGrowth(
        listing=listing_now - last.total_listing,
        sale=sale_now - last.total_sale,
        total_listing_now=listing_now,
        total_sale_now=sale_now,
    )


def compute_daily_revenue(stats: Sequence[DailyStat], average_order_value: float) -> List[DailyRevenue]:
    """Revenue per day from the positive sale delta between consecutive snapshots."""
    if len(stats) < 2:
        return []
    ordered = _by_date(stats)
    return [
        DailyRevenue(
            date=curr.date,
            amount=max(0.0, curr.total_sale - prev.total_sale) * average_order_value,
        )
        for prev, curr in zip(ordered, ordered[1:])
    ]


__all__ = [
    "INVENTORY_VALUE",
    "NET_INCOME_RATIO",
    "compute_daily_revenue",
    "compute_growth",
    "compute_metrics",
    "latest_snapshot",
    "totals",
]
