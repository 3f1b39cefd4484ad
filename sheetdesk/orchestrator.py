"""
Background task orchestration for sheetdesk.

Requests that must outlive whoever started them (keep-alive gateway calls,
optimistic create/edit reconciliation) run as tasks owned by a
`BackgroundTasks` runner rather than by a screen. When a task finishes, the
runner publishes a `TaskEvent` to its subscribers; a screen that has gone away
simply is not subscribed any more and the task still completes.

Usage:
    from sheetdesk.orchestrator import BackgroundTasks

    tasks = BackgroundTasks()
    unsubscribe = tasks.subscribe(lambda event: print(event))
    task = tasks.spawn(service.add_order(order), label="addOrder:ORD-1")
    await tasks.join()
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, List, Optional, Set, TypeVar

from sheetdesk.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

EventListener = Callable[["TaskEvent"], None]


@dataclass(frozen=True)
class TaskEvent:
    """Completion notice for a background task."""

    label: str
    succeeded: bool
    result: Any = None
    error: Optional[str] = None
    cancelled: bool = False


class BackgroundTasks:
    """
    Owner of fire-and-forget tasks.

    Tasks are strongly referenced until they finish so the event loop cannot
    garbage-collect them mid-flight. The last `history` events are kept for
    late readers.
    """

    def __init__(self, history: int = 256) -> None:
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._labels: dict[asyncio.Task[Any], str] = {}
        self._listeners: List[EventListener] = []
        self._events: Deque[TaskEvent] = deque(maxlen=history)

    @property
    def active(self) -> int:
        return len(self._tasks)

    @property
    def recent_events(self) -> List[TaskEvent]:
        return list(self._events)

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a completion listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def spawn(self, awaitable: Awaitable[T], label: str) -> "asyncio.Task[T]":
        """Schedule `awaitable` on the running loop and track it until done."""
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        self._labels[task] = label
        task.add_done_callback(self._on_done)
        log.debug("[TASK START] %s", label, extra={"task": label, "active": self.active})
        return task

    def _on_done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        label = self._labels.pop(task, "task")
        if task.cancelled():
            event = TaskEvent(label=label, succeeded=False, cancelled=True)
            log.info("[TASK CANCELLED] %s", label, extra={"task": label})
        elif task.exception() is not None:
            exc = task.exception()
            event = TaskEvent(label=label, succeeded=False, error=str(exc))
            log.error(
                "[TASK FAILED] %s",
                label,
                exc_info=(type(exc), exc, exc.__traceback__),
                extra={"task": label},
            )
        else:
            event = TaskEvent(label=label, succeeded=True, result=task.result())
            log.debug("[TASK DONE] %s", label, extra={"task": label})
        self._publish(event)

    def _publish(self, event: TaskEvent) -> None:
        self._events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - one bad listener must not starve the rest
                log.exception("Task event listener failed", extra={"task": event.label})

    async def join(self) -> None:
        """Wait until every task spawned so far (and any they spawn) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding tasks and wait for them to unwind."""
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


__all__ = ["BackgroundTasks", "EventListener", "TaskEvent"]
