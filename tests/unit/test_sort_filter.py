from __future__ import annotations

from datetime import date, datetime, timezone

from sheetdesk.domain.models import Order
from sheetdesk.views.sort_filter import (
    SortKey,
    filter_records,
    parse_timestamp,
    sort_records,
    view,
)

FIELDS = (lambda o: o.id, lambda o: o.sku, lambda o: o.tracking)


def _orders(*specs: tuple[str, str]) -> list[Order]:
    return [Order(id=order_id, date=order_date, sku=f"SKU-{order_id}") for order_id, order_date in specs]


def _ids(records: list[Order]) -> list[str]:
    return [r.id for r in records]


def test_parse_timestamp_variants() -> None:
    assert parse_timestamp("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc).timestamp()
    assert parse_timestamp("2024-03-01T10:00:00Z") == parse_timestamp("2024-03-01T10:00:00+00:00")
    assert parse_timestamp(date(2024, 3, 1)) == parse_timestamp("2024-03-01")
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp("01/03/2024") is None


def test_equal_timestamps_keep_source_order_in_both_directions() -> None:
    records = _orders(("a", "2024-03-05"), ("b", "2024-03-05"), ("c", "2024-03-01"), ("d", "2024-03-05"))

    desc = sort_records(records, SortKey("date", "desc"))
    asc = sort_records(records, SortKey("date", "asc"))

    assert _ids(desc) == ["a", "b", "d", "c"]
    assert _ids(asc) == ["c", "a", "b", "d"]


def test_unparseable_dates_sort_last_in_source_order() -> None:
    records = _orders(("x", "not a date"), ("a", "2024-03-02"), ("y", ""), ("b", "2024-03-09"))

    assert _ids(sort_records(records, SortKey("date", "desc"))) == ["b", "a", "x", "y"]
    assert _ids(sort_records(records, SortKey("date", "asc"))) == ["a", "b", "x", "y"]


def test_non_timestamp_sort_key_keeps_order() -> None:
    records = _orders(("b", "2024-03-02"), ("a", "2024-03-09"))

    assert _ids(sort_records(records, SortKey("sku", "asc"))) == ["b", "a"]


def test_filter_is_case_insensitive_substring_over_fields() -> None:
    records = [
        Order(id="ORD-1", tracking="LP00123"),
        Order(id="ORD-2", sku="mug-white"),
        Order(id="X-3"),
    ]

    assert _ids(filter_records(records, "lp001", FIELDS)) == ["ORD-1"]
    assert _ids(filter_records(records, "MUG", FIELDS)) == ["ORD-2"]
    assert _ids(filter_records(records, "ord", FIELDS)) == ["ORD-1", "ORD-2"]


def test_empty_filter_returns_everything() -> None:
    records = _orders(("a", "2024-03-01"), ("b", "2024-03-02"))

    assert _ids(filter_records(records, "", FIELDS)) == ["a", "b"]


def test_filter_skips_missing_fields() -> None:
    records = [Order(id="A", tracking="")]

    assert filter_records(records, "none", (lambda o: None, lambda o: o.tracking)) == []


def test_view_is_pure() -> None:
    records = _orders(("a", "2024-03-01"), ("b", "2024-03-09"), ("c", "bad"))
    snapshot = list(records)

    first = view(records, "", SortKey(), fields=FIELDS)
    second = view(records, "", SortKey(), fields=FIELDS)

    assert _ids(first) == _ids(second) == ["b", "a", "c"]
    assert records == snapshot
    assert first is not records


def test_sort_key_toggle() -> None:
    key = SortKey()
    assert key == SortKey("date", "desc")
    assert key.toggled("date") == SortKey("date", "asc")
    assert key.toggled("date").toggled("date") == SortKey("date", "desc")
    assert key.toggled("sku") == SortKey("sku", "desc")


def test_works_on_plain_mappings() -> None:
    rows = [{"id": "a", "date": "2024-01-01"}, {"id": "b", "date": "2024-02-01"}]

    assert [r["id"] for r in sort_records(rows, SortKey("date", "desc"))] == ["b", "a"]
