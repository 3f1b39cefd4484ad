"""
Exception types for sheetdesk.

Only local problems are raised. Anything the remote side reports travels as a
`Result(success=False)` from the gateway instead.
"""

from __future__ import annotations


class SheetdeskError(Exception):
    """Base class for sheetdesk exceptions."""


class ValidationFailed(SheetdeskError, ValueError):
    """Input rejected before any request was sent."""


class DuplicateIdentifier(ValidationFailed):
    """The identifier already exists in the loaded collection."""

    def __init__(self, record_id: str, message: str) -> None:
        super().__init__(message)
        self.record_id = record_id


__all__ = ["DuplicateIdentifier", "SheetdeskError", "ValidationFailed"]
