"""
Services package for sheetdesk.

Typed wrappers over the remote gateway, one coroutine per remote operation.
"""

from sheetdesk.services.sheet_service import SheetService, new_store_id

__all__ = ["SheetService", "new_store_id"]
