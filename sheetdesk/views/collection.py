"""
Collection view state.

`RemoteCollection` holds the records of one scope (a month of orders, the
store registry, the user list) for one screen. Loads replace the records
wholesale; optimistic patches go through `upsert_local` / `remove_local` and
never touch the network.

Reloads that overlap are resolved by dispatch order: only the most recently
started load may apply its response. A slower response from a superseded
load (for instance the previous month after a quick month change) is
discarded instead of overwriting the newer scope.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterator, List, Optional, Set, TypeVar

from sheetdesk.infrastructure.gateway import Result
from sheetdesk.utils.logging import get_logger
from sheetdesk.views.abstract import Page, PageLoader

log = get_logger(__name__)

T = TypeVar("T")


class PendingSet:
    """Identifiers of records with a mutation in flight."""

    def __init__(self) -> None:
        self._ids: Set[str] = set()

    def add(self, record_id: str) -> None:
        self._ids.add(record_id)

    def discard(self, record_id: str) -> None:
        self._ids.discard(record_id)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))


class RemoteCollection(Generic[T]):
    """
    Records of one remote scope plus the flags a screen renders from.

    Attributes
    ----------
    loading : bool
        A primary load is in flight (nothing useful to show yet).
    refreshing : bool
        A background reload is in flight; `records` still holds the previous
        data and stays usable.
    last_error : str | None
        Message of the most recent failed load; the previous records are kept.
    """

    def __init__(
        self,
        loader: PageLoader[T],
        id_of: Callable[[T], str],
        scope_key: Optional[str] = None,
        name: str = "collection",
    ) -> None:
        self._loader = loader
        self._id_of = id_of
        self.name = name
        self.scope_key = scope_key
        self.scope_ref: Optional[str] = None
        self.records: List[T] = []
        self.loading = False
        self.refreshing = False
        self.loaded = False
        self.last_error: Optional[str] = None
        self._generation = 0

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self.records))

    async def load(
        self, scope_key: Optional[str] = None, *, background: Optional[bool] = None
    ) -> Result[List[T]]:
        """
        Fetch the scope and replace the held records.

        Parameters
        ----------
        scope_key : str | None
            New scope to switch to; None reloads the current scope.
        background : bool | None
            Use the `refreshing` flag instead of `loading`. Defaults to True
            whenever records are already on display.
        """
        if scope_key is not None:
            self.scope_key = scope_key
        scope = self.scope_key
        if background is None:
            background = bool(self.records)

        self._generation += 1
        generation = self._generation
        if background:
            self.refreshing = True
        else:
            self.loading = True
        log.debug(
            "Loading %s",
            self.name,
            extra={"collection": self.name, "scope": scope, "background": background},
        )

        try:
            result: Result[Page[T]] = await self._loader(scope)
        finally:
            if generation == self._generation:
                self.loading = False
                self.refreshing = False

        if generation != self._generation:
            log.info(
                "Discarding superseded %s load",
                self.name,
                extra={"collection": self.name, "scope": scope},
            )
            return Result.ok(list(self.records))

        if not result.success or result.data is None:
            self.last_error = result.error
            log.warning(
                "Loading %s failed: %s",
                self.name,
                result.error,
                extra={"collection": self.name, "scope": scope},
            )
            return Result(success=False, error=result.error, kind=result.kind)

        page = result.data
        self.records = list(page.records)
        self.scope_ref = page.scope_ref
        self.last_error = None
        self.loaded = True
        log.info(
            "Loaded %s",
            self.name,
            extra={"collection": self.name, "scope": scope, "count": len(self.records)},
        )
        return Result.ok(list(self.records))

    def get(self, record_id: str) -> Optional[T]:
        return next((r for r in self.records if self._id_of(r) == record_id), None)

    def contains_id(self, record_id: str, case_insensitive: bool = True) -> bool:
        """Client-side duplicate check; blind to records created elsewhere."""
        if case_insensitive:
            wanted = record_id.strip().lower()
            return any(self._id_of(r).lower() == wanted for r in self.records)
        return any(self._id_of(r) == record_id for r in self.records)

    def upsert_local(self, record: T) -> None:
        """Insert at the head when new, otherwise replace in place."""
        record_id = self._id_of(record)
        for index, existing in enumerate(self.records):
            if self._id_of(existing) == record_id:
                self.records[index] = record
                return
        self.records.insert(0, record)

    def remove_local(self, record_id: str) -> bool:
        before = len(self.records)
        self.records = [r for r in self.records if self._id_of(r) != record_id]
        return len(self.records) != before


__all__ = ["PendingSet", "RemoteCollection"]
