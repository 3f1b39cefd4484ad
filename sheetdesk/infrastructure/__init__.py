"""
Infrastructure package for sheetdesk.

Centralizes I/O concerns: the operation-multiplexed remote gateway and the
client IP lookup. Keep this layer focused on transport and resource
management, decoupled from screen logic.
"""

from sheetdesk.infrastructure.gateway import FailureKind, RemoteGateway, Result
from sheetdesk.infrastructure.ip_lookup import UNKNOWN_IP, get_client_ip

__all__ = [
    "FailureKind",
    "RemoteGateway",
    "Result",
    "UNKNOWN_IP",
    "get_client_ip",
]
