"""
Public IP lookup used for the login audit trail.

The lookup is best-effort: a short retry for transient network errors, then
the sentinel "Unknown". It never raises, so login is never blocked by it.
"""

from __future__ import annotations

from typing import Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sheetdesk.config import get_settings
from sheetdesk.utils.logging import get_logger

log = get_logger(__name__)

UNKNOWN_IP = "Unknown"


@retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=1),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)
async def _fetch_ip(client: httpx.AsyncClient, url: str) -> str:
    response = await client.get(url)
    response.raise_for_status()
    data = response.json()
    return str(data.get("ip") or UNKNOWN_IP) if isinstance(data, dict) else UNKNOWN_IP


async def get_client_ip(
    url: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Resolve the caller's public IP address.

    Returns
    -------
    str
        The address reported by the lookup service, or "Unknown" on any failure.
    """
    settings = get_settings()
    target = url or settings.ip_lookup_url
    try:
        async with httpx.AsyncClient(
            timeout=timeout or settings.ip_lookup_timeout_seconds, transport=transport
        ) as client:
            return await _fetch_ip(client, target)
    except (httpx.HTTPError, ValueError) as exc:
        log.warning("Client IP lookup failed", extra={"url": target, "error": repr(exc)})
        return UNKNOWN_IP


__all__ = ["UNKNOWN_IP", "get_client_ip"]
