"""
sheetdesk - async client and screen state for a spreadsheet-backed order dashboard.

The backend is a single script endpoint in front of a spreadsheet. This package
provides:

- A gateway that multiplexes every operation over that endpoint and turns
  every outcome into a `Result`
- Typed service calls for orders, stores, users and roles
- Screen state: per-screen collections, pure filter/sort, optimistic
  create/edit with background reconciliation, and periodic refresh
- A typer CLI that renders the screens as rich tables
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from sheetdesk.config import Settings, get_settings
from sheetdesk.errors import DuplicateIdentifier, SheetdeskError, ValidationFailed
from sheetdesk.infrastructure.gateway import FailureKind, RemoteGateway, Result
from sheetdesk.orchestrator import BackgroundTasks, TaskEvent
from sheetdesk.services.sheet_service import SheetService
from sheetdesk.utils.logging import configure_logging, get_logger
from sheetdesk.utils.profiler import ProfileStats, profile_block

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "DuplicateIdentifier",
    "SheetdeskError",
    "ValidationFailed",
    # Remote access
    "FailureKind",
    "RemoteGateway",
    "Result",
    "SheetService",
    # Background work
    "BackgroundTasks",
    "TaskEvent",
    # Logging
    "configure_logging",
    "get_logger",
    # Profiling
    "ProfileStats",
    "profile_block",
]
