"""
Optimistic order mutations.

Both flows follow dispatch-then-reconcile:

- Create: validate, reject ids already on screen, insert the new order at the
  head of the collection, mark it pending, then send `addOrder` in the
  background. Success reloads the month; failure tells the user and removes
  the optimistic row.
- Edit: validate, mark the order pending, send only the editable fields with
  `updateOrderRow` in the background. The displayed fields are left alone
  until the reload after success, so a failed edit needs no rollback.

The pending mark is cleared, and the process observer told, in a `finally`
block whatever the outcome. While an order is pending, edits on it are
ignored.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from sheetdesk.domain.models import Order, OrderItem, OrderStatus, Store
from sheetdesk.errors import DuplicateIdentifier, ValidationFailed
from sheetdesk.infrastructure.gateway import FailureKind, Result
from sheetdesk.orchestrator import BackgroundTasks
from sheetdesk.services.sheet_service import SheetService
from sheetdesk.utils.logging import get_logger
from sheetdesk.views.abstract import LoggingNotifier, Notifier, ProcessObserver
from sheetdesk.views.collection import PendingSet, RemoteCollection
from sheetdesk.views.references import store_resolver

log = get_logger(__name__)

MISSING_REQUIRED_MESSAGE = "Order code and store are required."
MISSING_ITEMS_MESSAGE = "Enter at least one product line with a SKU."
NO_SCOPE_FILE_MESSAGE = "No month file is loaded for this order; reload the month and try again."
UNKNOWN_HANDLER = "Unknown"


@dataclass
class OrderDraft:
    """Input of the create form."""

    id: str = ""
    date: str = field(default_factory=lambda: date.today().isoformat())
    store_id: str = ""
    items: List[OrderItem] = field(default_factory=list)
    tracking: str = ""
    link: str = ""
    status: str = OrderStatus.PENDING.value
    action_role: str = ""
    is_checked: bool = False

    def valid_items(self) -> List[OrderItem]:
        return [item for item in self.items if item.sku.strip()]


@dataclass
class OrderEditForm:
    """Input of the edit form; id, date and store are read-only."""

    order_id: str
    date: str
    store_id: str
    item: OrderItem
    tracking: str = ""
    link: str = ""
    status: str = OrderStatus.PENDING.value
    action_role: str = ""
    is_checked: bool = False

    @classmethod
    def from_order(cls, order: Order) -> "OrderEditForm":
        return cls(
            order_id=order.id,
            date=order.date,
            store_id=order.store_id,
            item=OrderItem(
                sku=order.sku, type=order.type, quantity=order.quantity or 1, note=order.note
            ),
            tracking=order.tracking,
            link=order.link,
            status=order.status or OrderStatus.PENDING.value,
            action_role=order.action_role,
            is_checked=order.is_checked,
        )

    def changes(self) -> Dict[str, Any]:
        """Fields an edit sends: the editable ones only, remote names."""
        return {
            "type": self.item.type,
            "sku": self.item.sku,
            "quantity": self.item.quantity,
            "note": self.item.note,
            "tracking": self.tracking,
            "link": self.link,
            "status": self.status,
            "actionRole": self.action_role,
            "isChecked": self.is_checked,
        }


class OrderMutationController:
    """
    Create/edit orders against one screen's collection.

    Parameters
    ----------
    service : SheetService
        Remote operations.
    orders : RemoteCollection[Order]
        The screen's order collection; patched optimistically and reloaded to
        reconcile.
    background : BackgroundTasks
        Owner of the dispatched requests.
    stores : callable
        Returns the currently known stores, used to store the display name.
    notifier : Notifier
        Where validation warnings and remote failures are reported.
    observer : ProcessObserver | None
        Told when a background process starts and ends.
    current_user : str | None
        Username recorded as handler of created orders.
    default_unit : str
        Fulfilment unit preselected on new product lines.
    """

    def __init__(
        self,
        service: SheetService,
        orders: RemoteCollection[Order],
        background: BackgroundTasks,
        *,
        stores: Callable[[], Iterable[Store]] = lambda: (),
        notifier: Optional[Notifier] = None,
        observer: Optional[ProcessObserver] = None,
        current_user: Optional[str] = None,
        default_unit: str = "Printway",
    ) -> None:
        self.service = service
        self.orders = orders
        self.background = background
        self.stores = stores
        self.notifier = notifier or LoggingNotifier()
        self.observer = observer
        self.current_user = current_user
        self.default_unit = default_unit
        self.pending = PendingSet()

    # --- helpers ------------------------------------------------------------

    def is_pending(self, order_id: str) -> bool:
        return order_id in self.pending

    def new_draft(self) -> OrderDraft:
        return OrderDraft(items=[OrderItem(type=self.default_unit, quantity=1)])

    def warn_if_duplicate(self, order_id: str) -> bool:
        """Early warning while typing the code; True when it is already listed."""
        if order_id.strip() and self.orders.contains_id(order_id):
            self.notifier.warning(f'Order code "{order_id}" already exists in the list.')
            return True
        return False

    def _reject(self, message: str) -> ValidationFailed:
        self.notifier.warning(message)
        return ValidationFailed(message)

    def _dispatch(
        self,
        order_id: str,
        label: str,
        send: Callable[[], Awaitable[Result[Any]]],
        on_failure: Callable[[Result[Any]], None],
    ) -> "asyncio.Task[Result[Any]]":
        self.pending.add(order_id)
        if self.observer is not None:
            self.observer.process_started()
        log.info("[%s] dispatched %s", label, order_id, extra={"order_id": order_id})
        return self.background.spawn(
            self._reconcile(order_id, label, send, on_failure), label=f"{label}:{order_id}"
        )

    async def _reconcile(
        self,
        order_id: str,
        label: str,
        send: Callable[[], Awaitable[Result[Any]]],
        on_failure: Callable[[Result[Any]], None],
    ) -> Result[Any]:
        try:
            result = await send()
            if result.success:
                log.info("[%s] confirmed %s", label, order_id, extra={"order_id": order_id})
                await self.orders.load(background=True)
            else:
                log.warning(
                    "[%s] failed %s: %s",
                    label,
                    order_id,
                    result.error,
                    extra={"order_id": order_id},
                )
                on_failure(result)
            return result
        finally:
            self.pending.discard(order_id)
            if self.observer is not None:
                self.observer.process_ended()

    # --- create ---------------------------------------------------------------

    def build_order(self, draft: OrderDraft) -> Order:
        items = draft.valid_items()
        first = items[0]
        store = store_resolver(self.stores()).find(draft.store_id)
        return Order(
            id=draft.id.strip(),
            date=draft.date,
            store_id=store.name if store else draft.store_id,
            items=items,
            handler=self.current_user or UNKNOWN_HANDLER,
            sku=first.sku,
            type=first.type,
            quantity=first.quantity,
            note=first.note,
            status=draft.status,
            tracking=draft.tracking,
            link=draft.link,
            is_checked=draft.is_checked,
            action_role=draft.action_role,
        )

    def submit_create(self, draft: OrderDraft) -> "asyncio.Task[Result[Any]]":
        """
        Validate, show the order immediately, and send it in the background.

        Raises
        ------
        ValidationFailed
            Required fields are missing; nothing was sent.
        DuplicateIdentifier
            The code is already listed for this month; nothing was sent.
        """
        if not draft.id.strip() or not draft.store_id:
            raise self._reject(MISSING_REQUIRED_MESSAGE)
        if not draft.valid_items():
            raise self._reject(MISSING_ITEMS_MESSAGE)

        order_id = draft.id.strip()
        if self.orders.contains_id(order_id):
            message = f"Order code {order_id} already exists in the list."
            self.notifier.warning(message)
            raise DuplicateIdentifier(order_id, message)

        order = self.build_order(draft)
        self.orders.upsert_local(order)

        def _rollback(result: Result[Any]) -> None:
            self.notifier.error(f"Could not save order {order_id}: {result.error}")
            self.orders.remove_local(order_id)

        return self._dispatch(order_id, "addOrder", lambda: self.service.add_order(order), _rollback)

    # --- edit -----------------------------------------------------------------

    def begin_edit(self, order_id: str) -> Optional[OrderEditForm]:
        """Edit form for the order, or None while it is pending or unknown."""
        if self.is_pending(order_id):
            log.debug("Edit ignored, order pending", extra={"order_id": order_id})
            return None
        order = self.orders.get(order_id)
        if order is None:
            return None
        return OrderEditForm.from_order(order)

    def _report_update_failure(self, order_id: str) -> Callable[[Result[Any]], None]:
        def _report(result: Result[Any]) -> None:
            self.notifier.error(f"Could not update order {order_id}: {result.error}")

        return _report

    async def _send_update(self, send: Callable[[str], Awaitable[Result[Any]]]) -> Result[Any]:
        file_id = self.orders.scope_ref
        if not file_id:
            return Result.fail(NO_SCOPE_FILE_MESSAGE, FailureKind.APPLICATION)
        return await send(file_id)

    def submit_edit(self, form: OrderEditForm) -> Optional["asyncio.Task[Result[Any]]"]:
        """
        Send the edited fields in the background.

        Returns None, without sending anything, while the order is pending.

        Raises
        ------
        ValidationFailed
            Required fields are missing; nothing was sent.
        """
        order_id = form.order_id
        if self.is_pending(order_id):
            log.debug("Edit ignored, order pending", extra={"order_id": order_id})
            return None
        if not order_id or not form.store_id:
            raise self._reject(MISSING_REQUIRED_MESSAGE)
        if not form.item.sku.strip():
            raise self._reject(MISSING_ITEMS_MESSAGE)

        changes = form.changes()
        return self._dispatch(
            order_id,
            "updateOrderRow",
            lambda: self._send_update(
                lambda file_id: self.service.update_order_row(file_id, order_id, changes)
            ),
            self._report_update_failure(order_id),
        )

    def update_field(
        self, order_id: str, field_name: str, value: Any
    ) -> Optional["asyncio.Task[Result[Any]]"]:
        """Single-cell patch (e.g. ticking the checkbox); same rules as an edit."""
        if self.is_pending(order_id):
            return None
        return self._dispatch(
            order_id,
            "updateOrder",
            lambda: self._send_update(
                lambda file_id: self.service.update_order(file_id, order_id, field_name, value)
            ),
            self._report_update_failure(order_id),
        )


__all__ = [
    "MISSING_ITEMS_MESSAGE",
    "MISSING_REQUIRED_MESSAGE",
    "NO_SCOPE_FILE_MESSAGE",
    "OrderDraft",
    "OrderEditForm",
    "OrderMutationController",
]
