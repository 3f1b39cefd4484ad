"""
Reference resolution between records.

Rows in the order sheet point at a store either by id or by display name.
Every field that references another record resolves it the same way:

1. exact identifier match,
2. exact display-name match,
3. the raw value itself.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterable, List, Optional, TypeVar

from sheetdesk.domain.models import Store

T = TypeVar("T")


def resolve_reference(
    value: object,
    candidates: Iterable[T],
    id_of: Callable[[T], object],
    name_of: Callable[[T], str],
) -> str:
    """Display text for `value`, following the id → name → raw chain."""
    raw = "" if value is None else str(value)
    pool = list(candidates)
    for candidate in pool:
        if str(id_of(candidate)) == raw:
            return name_of(candidate)
    for candidate in pool:
        if name_of(candidate) == raw:
            return name_of(candidate)
    return raw


class ReferenceResolver(Generic[T]):
    """`resolve_reference` bound to one candidate list."""

    def __init__(
        self,
        candidates: Iterable[T],
        id_of: Callable[[T], object],
        name_of: Callable[[T], str],
    ) -> None:
        self.candidates: List[T] = list(candidates)
        self._id_of = id_of
        self._name_of = name_of

    def __call__(self, value: object) -> str:
        return resolve_reference(value, self.candidates, self._id_of, self._name_of)

    def find(self, value: object) -> Optional[T]:
        """The candidate whose id equals `value`, if any."""
        raw = "" if value is None else str(value)
        return next((c for c in self.candidates if str(self._id_of(c)) == raw), None)


def store_resolver(stores: Iterable[Store]) -> ReferenceResolver[Store]:
    return ReferenceResolver(stores, id_of=lambda s: s.id, name_of=lambda s: s.name)


__all__ = ["ReferenceResolver", "resolve_reference", "store_resolver"]
