"""Screen state for the order dashboard: collections, sort/filter, mutations, refresh."""

from sheetdesk.views.abstract import (
    LoggingNotifier,
    Notifier,
    Page,
    ProcessCoordinator,
    ProcessObserver,
)
from sheetdesk.views.collection import PendingSet, RemoteCollection
from sheetdesk.views.mutations import OrderDraft, OrderEditForm, OrderMutationController
from sheetdesk.views.references import ReferenceResolver, resolve_reference, store_resolver
from sheetdesk.views.refresh import RefreshLoop
from sheetdesk.views.roles import RoleHierarchy, group_roles_by_level
from sheetdesk.views.screens import (
    DesignerQueueScreen,
    NewUser,
    OrderListScreen,
    StoreDashboard,
    StoreDetailScreen,
    UserManagementScreen,
)
from sheetdesk.views.sort_filter import SortKey, view

__all__ = [
    "DesignerQueueScreen",
    "LoggingNotifier",
    "NewUser",
    "Notifier",
    "OrderDraft",
    "OrderEditForm",
    "OrderListScreen",
    "OrderMutationController",
    "Page",
    "PendingSet",
    "ProcessCoordinator",
    "ProcessObserver",
    "ReferenceResolver",
    "RefreshLoop",
    "RemoteCollection",
    "RoleHierarchy",
    "SortKey",
    "StoreDashboard",
    "StoreDetailScreen",
    "UserManagementScreen",
    "group_roles_by_level",
    "resolve_reference",
    "store_resolver",
    "view",
]
