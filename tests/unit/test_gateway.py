from __future__ import annotations

import asyncio
import json
import re

import httpx
import pytest

from sheetdesk.infrastructure.gateway import (
    MALFORMED_RESPONSE_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    TRANSPORT_FAILURE_MESSAGE,
    UNRECOGNIZED_OPERATION_MESSAGE,
    FailureKind,
    RemoteGateway,
    Result,
    interpret_body,
    make_nonce,
)
from sheetdesk.orchestrator import BackgroundTasks

API_URL = "https://sheet.test/exec"
NONCE_PATTERN = re.compile(r"^\d+_[0-9a-f]+$")


class _Recorder:
    def __init__(self, body: str = '{"success": true}', status: int = 200) -> None:
        self.body = body
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, text=self.body)


def _gateway(handler, **kwargs) -> RemoteGateway:
    return RemoteGateway(API_URL, transport=httpx.MockTransport(handler), **kwargs)


async def _wait_for(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


def test_interpret_body_unparseable_text_is_parse_failure() -> None:
    result = interpret_body("<html>Moved Temporarily</html>")
    assert not result.success
    assert result.error == MALFORMED_RESPONSE_MESSAGE
    assert result.kind is FailureKind.PARSE


def test_interpret_body_error_field_becomes_failure_message() -> None:
    result = interpret_body('{"error": "Sheet locked"}')
    assert not result.success
    assert result.error == "Sheet locked"
    assert result.kind is FailureKind.APPLICATION


def test_interpret_body_non_string_error_is_stringified() -> None:
    result = interpret_body('{"error": {"code": 7}}')
    assert not result.success
    assert result.error == "{'code': 7}"


def test_interpret_body_empty_object_is_unrecognized_operation() -> None:
    result = interpret_body("{}")
    assert not result.success
    assert result.error == UNRECOGNIZED_OPERATION_MESSAGE
    assert result.kind is FailureKind.UNRECOGNIZED


def test_interpret_body_passes_payload_through() -> None:
    assert interpret_body("[1, 2]") == Result.ok([1, 2])
    assert interpret_body('{"success": true, "error": ""}').data == {"success": True, "error": ""}
    assert interpret_body("[]").success


def test_result_map_keeps_failures() -> None:
    failed = Result.fail("nope", FailureKind.APPLICATION)
    assert failed.map(lambda data: data * 2) == failed
    assert Result.ok(2).map(lambda data: data * 2).data == 4


def test_nonce_shape_and_uniqueness() -> None:
    nonces = {make_nonce() for _ in range(50)}
    assert len(nonces) == 50
    assert all(NONCE_PATTERN.match(n) for n in nonces)


@pytest.mark.asyncio
async def test_get_sends_payload_as_query_params() -> None:
    recorder = _Recorder(body="[]")
    async with _gateway(recorder) as gateway:
        result = await gateway.call("getOrders", "GET", {"month": "2024-03", "skip": None, "all": True})

    assert result.success and result.data == []
    request = recorder.requests[0]
    assert request.method == "GET"
    params = dict(request.url.params)
    assert params["action"] == "getOrders"
    assert params["month"] == "2024-03"
    assert params["all"] == "true"
    assert "skip" not in params
    assert NONCE_PATTERN.match(params["_t"])


@pytest.mark.asyncio
async def test_post_sends_json_text_body_with_action() -> None:
    recorder = _Recorder()
    async with _gateway(recorder) as gateway:
        await gateway.call("addUnit", "POST", {"unit": "Onos"})

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.headers["content-type"].startswith("text/plain")
    assert json.loads(request.content) == {"action": "addUnit", "unit": "Onos"}
    assert request.url.params["action"] == "addUnit"
    assert "_t" in request.url.params


@pytest.mark.asyncio
async def test_each_call_uses_a_fresh_nonce() -> None:
    recorder = _Recorder()
    async with _gateway(recorder) as gateway:
        await gateway.call("getUnits")
        await gateway.call("getUnits")

    first, second = (r.url.params["_t"] for r in recorder.requests)
    assert first != second


@pytest.mark.asyncio
async def test_transport_error_is_a_failed_result() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _gateway(_refuse) as gateway:
        result = await gateway.call("getStores")

    assert not result.success
    assert result.error == TRANSPORT_FAILURE_MESSAGE
    assert result.kind is FailureKind.TRANSPORT


@pytest.mark.asyncio
async def test_http_error_status_still_interprets_body() -> None:
    async with _gateway(_Recorder(body='{"error": "Quota exceeded"}', status=500)) as gateway:
        result = await gateway.call("getStores")

    assert not result.success
    assert result.error == "Quota exceeded"


@pytest.mark.asyncio
async def test_missing_endpoint_fails_without_request() -> None:
    recorder = _Recorder()
    gateway = RemoteGateway("", transport=httpx.MockTransport(recorder))
    result = await gateway.call("getUsers")

    assert not result.success
    assert result.error == NOT_CONFIGURED_MESSAGE
    assert recorder.requests == []


def test_timeout_defaults_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    assert RemoteGateway(API_URL).timeout == 60.0
    assert RemoteGateway(API_URL, timeout=5).timeout == 5

    from sheetdesk.config import get_settings

    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "0")
    get_settings.cache_clear()
    assert RemoteGateway(API_URL).timeout is None


@pytest.mark.asyncio
async def test_keep_alive_request_outlives_cancelled_caller() -> None:
    release = asyncio.Event()
    seen: list[httpx.Request] = []

    async def _slow(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        await release.wait()
        return httpx.Response(200, json={"success": True})

    background = BackgroundTasks()
    async with _gateway(_slow, background=background) as gateway:
        caller = asyncio.ensure_future(gateway.call("addUnit", "POST", {"unit": "Onos"}, keep_alive=True))
        await _wait_for(lambda: seen)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        release.set()
        await background.join()

    event = background.recent_events[-1]
    assert event.label == "gateway:addUnit"
    assert event.succeeded
    assert event.result.data == {"success": True}
