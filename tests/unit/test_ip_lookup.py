from __future__ import annotations

import httpx
import pytest

from sheetdesk.infrastructure.ip_lookup import UNKNOWN_IP, get_client_ip

LOOKUP_URL = "https://ip.test/?format=json"


@pytest.mark.asyncio
async def test_returns_reported_address() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ip": "198.51.100.4"}))

    assert await get_client_ip(LOOKUP_URL, transport=transport) == "198.51.100.4"


@pytest.mark.asyncio
async def test_retries_transient_transport_error_once() -> None:
    attempts: list[httpx.Request] = []

    def _flaky(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectTimeout("slow", request=request)
        return httpx.Response(200, json={"ip": "198.51.100.5"})

    assert await get_client_ip(LOOKUP_URL, transport=httpx.MockTransport(_flaky)) == "198.51.100.5"
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_gives_up_with_unknown() -> None:
    def _down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    assert await get_client_ip(LOOKUP_URL, transport=httpx.MockTransport(_down)) == UNKNOWN_IP


@pytest.mark.asyncio
async def test_bad_status_or_body_is_unknown() -> None:
    error = httpx.MockTransport(lambda request: httpx.Response(503))
    garbage = httpx.MockTransport(lambda request: httpx.Response(200, text="not json"))
    no_ip = httpx.MockTransport(lambda request: httpx.Response(200, json=["x"]))

    assert await get_client_ip(LOOKUP_URL, transport=error) == UNKNOWN_IP
    assert await get_client_ip(LOOKUP_URL, transport=garbage) == UNKNOWN_IP
    assert await get_client_ip(LOOKUP_URL, transport=no_ip) == UNKNOWN_IP
