"""
Shared contracts for sheetdesk screens.

Screens hold remote collections, report to the person using them through a
`Notifier`, and tell an enclosing coordinator when background work starts
and ends so navigation that could race an in-flight write can be held back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Protocol, TypeVar, runtime_checkable

from sheetdesk.infrastructure.gateway import Result
from sheetdesk.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One loaded slice of a remote collection.

    `scope_ref` is the remote's handle for the slice (the month file id for
    orders) and is what edits must quote back.
    """

    records: List[T] = field(default_factory=list)
    scope_ref: Optional[str] = None


PageLoader = Callable[[Optional[str]], Awaitable[Result[Page[T]]]]


@runtime_checkable
class Notifier(Protocol):
    """Interruptive messages for the person driving the screen."""

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that only writes to the log; the default for headless use."""

    def __init__(self, name: str = "sheetdesk.notify") -> None:
        self._log = get_logger(name)

    def info(self, message: str) -> None:
        self._log.info(message)

    def warning(self, message: str) -> None:
        self._log.warning(message)

    def error(self, message: str) -> None:
        self._log.error(message)


@runtime_checkable
class ProcessObserver(Protocol):
    """Receives start/end notices for background processes."""

    def process_started(self) -> None: ...

    def process_ended(self) -> None: ...


class ProcessCoordinator:
    """
    Counts background processes across screens.

    While any process is active, navigation between screens should be
    refused (`navigation_blocked`).
    """

    def __init__(self) -> None:
        self.active = 0

    def process_started(self) -> None:
        self.active += 1

    def process_ended(self) -> None:
        self.active = max(0, self.active - 1)

    @property
    def navigation_blocked(self) -> bool:
        return self.active > 0


__all__ = [
    "LoggingNotifier",
    "Notifier",
    "Page",
    "PageLoader",
    "ProcessCoordinator",
    "ProcessObserver",
]
