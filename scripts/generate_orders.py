"""
Sample order generator for sheetdesk.

Emits deterministic pseudo-random `addOrder` payloads as JSON, for seeding a
test sheet or feeding the fake backend in local runs.
"""

from __future__ import annotations

import json
import random
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List

import typer

from sheetdesk.domain.models import Order, OrderItem, OrderStatus
from sheetdesk.domain.months import month_of, parse_month

app = typer.Typer(help="Generate sample order payloads (JSON).")

UNITS = ["Printway", "Merchize", "Gearment", "Onos"]
STORES = ["Aurora Prints", "Blue Fern", "Cedar Lane", "Delta Tees"]
HANDLERS = ["linh", "minh", "trang"]


def generate_orders(count: int, month: str, seed: int) -> List[Dict[str, Any]]:
    """`count` addOrder payloads dated within `month` (YYYY-MM)."""
    year, number = parse_month(month)
    rng = random.Random(seed)
    first_day = date(year, number, 1)
    payloads: List[Dict[str, Any]] = []

    for i in range(count):
        items = [
            OrderItem(
                sku=f"SKU-{rng.randint(1000, 9999)}",
                type=rng.choice(UNITS),
                quantity=rng.randint(1, 3),
            )
            for _ in range(rng.randint(1, 3))
        ]
        order = Order(
            id=f"ORD-{month.replace('-', '')}-{i + 1:04d}",
            date=(first_day + timedelta(days=rng.randint(0, 27))).isoformat(),
            store_id=rng.choice(STORES),
            items=items,
            type=items[0].type,
            sku=items[0].sku,
            quantity=items[0].quantity,
            status=rng.choice(list(OrderStatus)).value,
            handler=rng.choice(HANDLERS),
            is_checked=rng.random() < 0.3,
        )
        payload = order.to_remote()
        payload["user"] = order.handler
        payload["month"] = month_of(order.date)
        payloads.append(payload)
    return payloads


@app.command()
def main(
    count: int = typer.Option(20, "--count", "-n", help="Number of orders to generate."),
    month: str = typer.Option(
        date.today().strftime("%Y-%m"), "--month", "-m", help="Month of the orders, YYYY-MM."
    ),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write to this file instead of stdout."
    ),
) -> None:
    """
    Generate sample orders and print (or write) them as a JSON array.
    """
    try:
        payloads = generate_orders(count, month, seed)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--month") from exc

    text = json.dumps(payloads, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text + "\n", encoding="utf-8")
        typer.echo(f"Wrote {len(payloads)} orders -> {output}")
    else:
        typer.echo(text)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
