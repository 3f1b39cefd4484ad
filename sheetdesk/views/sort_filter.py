"""
Filtering and ordering of a loaded collection.

`view` is a pure function of (records, filter text, sort key). Sorting by the
timestamp field is stable: records are decorated with their position in the
source collection and ties on the parsed timestamp are broken by that
position, in both directions. Records whose timestamp does not parse always
come after every record that does, and keep their source order among
themselves. Other sort keys leave the filtered order untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

Direction = Literal["asc", "desc"]
FieldGetter = Callable[[T], Any]

DEFAULT_TIMESTAMP_FIELD = "date"


@dataclass(frozen=True)
class SortKey:
    field: str = DEFAULT_TIMESTAMP_FIELD
    direction: Direction = "desc"

    def toggled(self, field: str) -> "SortKey":
        """Header click: same field flips direction, a new field starts descending."""
        if field == self.field:
            return SortKey(field, "asc" if self.direction == "desc" else "desc")
        return SortKey(field, "desc")


def field_value(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def parse_timestamp(value: Any) -> Optional[float]:
    """Epoch seconds for a date/datetime or ISO-8601 text; None when unparseable."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    else:
        text = "" if value is None else str(value).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def matches(record: T, needle: str, fields: Iterable[FieldGetter[T]]) -> bool:
    """True when any field contains `needle` (already lower-cased)."""
    for getter in fields:
        value = getter(record)
        if value is None or value == "":
            continue
        if needle in str(value).lower():
            return True
    return False


def filter_records(records: Sequence[T], filter_text: str, fields: Sequence[FieldGetter[T]]) -> List[T]:
    needle = (filter_text or "").lower()
    if not needle:
        return list(records)
    return [r for r in records if matches(r, needle, fields)]


def sort_records(
    records: Sequence[T],
    sort_key: SortKey,
    timestamp_field: str = DEFAULT_TIMESTAMP_FIELD,
) -> List[T]:
    if sort_key.field != timestamp_field:
        return list(records)

    descending = sort_key.direction == "desc"

    def _key(pair: Tuple[int, T]) -> Tuple[int, float, int]:
        index, record = pair
        stamp = parse_timestamp(field_value(record, timestamp_field))
        if stamp is None:
            return (1, 0.0, index)
        return (0, -stamp if descending else stamp, index)

    return [record for _, record in sorted(enumerate(records), key=_key)]


def view(
    records: Sequence[T],
    filter_text: str,
    sort_key: SortKey,
    *,
    fields: Sequence[FieldGetter[T]],
    timestamp_field: str = DEFAULT_TIMESTAMP_FIELD,
) -> List[T]:
    """Filtered, ordered copy of `records`; the input is never modified."""
    return sort_records(filter_records(records, filter_text, fields), sort_key, timestamp_field)


__all__ = [
    "DEFAULT_TIMESTAMP_FIELD",
    "Direction",
    "FieldGetter",
    "SortKey",
    "field_value",
    "filter_records",
    "matches",
    "parse_timestamp",
    "sort_records",
    "view",
]
