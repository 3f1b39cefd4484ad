"""
Remote data gateway for sheetdesk.

Every remote operation goes through one HTTP endpoint, multiplexed by the
`action` query parameter:

    GET  <endpoint>?action=<op>&_t=<nonce>&<payload as query params>
    POST <endpoint>?action=<op>&_t=<nonce>   body: {"action": <op>, ...payload}

`RemoteGateway.call` never raises for remote trouble. Transport failures,
application errors, unrecognised operations and unparseable bodies all come
back as `Result(success=False, error=...)`, so callers branch on one flag.
There are no retries here: `addOrder` and friends are not idempotent, and the
mutation controller owns the duplicate-creation risk.
"""

from __future__ import annotations

import asyncio
import json
import secrets
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Literal, Mapping, Optional, TypeVar

import httpx

from sheetdesk.config import get_settings
from sheetdesk.orchestrator import BackgroundTasks
from sheetdesk.utils.logging import get_logger
from sheetdesk.utils.profiler import profile_block

log = get_logger(__name__)

T = TypeVar("T")
U = TypeVar("U")

Method = Literal["GET", "POST"]

UNRECOGNIZED_OPERATION_MESSAGE = (
    "The backend did not recognise this operation. "
    "Publish a new deployment of the sheet script and try again."
)
MALFORMED_RESPONSE_MESSAGE = "Malformed response from the sheet backend (JSON parse error)."
TRANSPORT_FAILURE_MESSAGE = "Network error: the request could not be completed."
NOT_CONFIGURED_MESSAGE = "The sheet API endpoint is not configured (set API_URL)."

# The script endpoint only answers simple CORS requests, so JSON goes out as text.
POST_HEADERS = {"Content-Type": "text/plain;charset=utf-8"}


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    APPLICATION = "application"
    UNRECOGNIZED = "unrecognized"
    PARSE = "parse"


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a gateway call.

    On success `data` holds the parsed payload exactly as the remote sent it
    (or as mapped by `map`). On failure `error` carries a user-facing message
    and `kind` says where it came from; `kind` is for logging only.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[FailureKind] = None

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: FailureKind) -> "Result[Any]":
        return cls(success=False, error=error, kind=kind)

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        if not self.success:
            return Result(success=False, error=self.error, kind=self.kind)
        return Result(success=True, data=fn(self.data))  # type: ignore[arg-type]


def make_nonce() -> str:
    """Cache-busting token: epoch milliseconds plus a random suffix."""
    return f"{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value)
    return str(value)


def interpret_body(text: str) -> Result[Any]:
    """Turn a raw response body into a normalised Result."""
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        return Result.fail(MALFORMED_RESPONSE_MESSAGE, FailureKind.PARSE)

    if isinstance(parsed, dict):
        if parsed.get("error"):
            return Result.fail(str(parsed["error"]), FailureKind.APPLICATION)
        if not parsed:
            return Result.fail(UNRECOGNIZED_OPERATION_MESSAGE, FailureKind.UNRECOGNIZED)
    return Result.ok(parsed)


class RemoteGateway:
    """
    Single-endpoint, operation-multiplexed client.

    The underlying `httpx.AsyncClient` is created lazily and closed by
    `aclose()` (or by leaving the async context). Pass `client` to share an
    existing one; a shared client is not closed by the gateway.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        background: Optional[BackgroundTasks] = None,
    ) -> None:
        settings = get_settings()
        self.api_url = (api_url if api_url is not None else settings.api_url).strip()
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.background = background
        self._transport = transport
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def call(
        self,
        operation: str,
        method: Method = "GET",
        payload: Optional[Mapping[str, Any]] = None,
        *,
        keep_alive: bool = False,
    ) -> Result[Any]:
        """
        Perform one remote operation.

        Parameters
        ----------
        operation : str
            Logical operation name, sent as `action`.
        method : "GET" | "POST"
            GET sends the payload as query parameters, POST as a JSON body.
        payload : mapping | None
            Operation arguments.
        keep_alive : bool
            Run the request as a background task that survives cancellation
            of the caller; completion is published on the background runner.
            Leave False when the caller must see the outcome (e.g. creation).
        """
        if not self.api_url:
            log.warning(NOT_CONFIGURED_MESSAGE, extra={"operation": operation})
            return Result.fail(NOT_CONFIGURED_MESSAGE, FailureKind.TRANSPORT)

        request = self._send(operation, method, dict(payload or {}))
        if keep_alive and self.background is not None:
            task = self.background.spawn(request, label=f"gateway:{operation}")
            return await asyncio.shield(task)
        return await request

    async def _send(self, operation: str, method: Method, payload: Dict[str, Any]) -> Result[Any]:
        params: Dict[str, str] = {"action": operation, "_t": make_nonce()}
        content: Optional[str] = None
        headers: Optional[Dict[str, str]] = None

        if method == "GET":
            for key, value in payload.items():
                if value is not None and key not in params:
                    params[key] = _query_value(value)
        else:
            content = json.dumps({"action": operation, **payload})
            headers = POST_HEADERS

        with profile_block(operation) as stats:
            try:
                response = await self._get_client().request(
                    method, self.api_url, params=params, content=content, headers=headers
                )
                text = response.text
            except httpx.HTTPError as exc:
                log.warning(
                    "[GATEWAY TRANSPORT FAILURE] %s",
                    operation,
                    extra={"operation": operation, "method": method, "error": repr(exc)},
                )
                return Result.fail(TRANSPORT_FAILURE_MESSAGE, FailureKind.TRANSPORT)

        if response.is_error:
            log.warning(
                "[GATEWAY HTTP %s] %s",
                response.status_code,
                operation,
                extra={"operation": operation, "status": response.status_code},
            )

        result = interpret_body(text)
        if result.success:
            log.info(
                "[GATEWAY OK] %s %s (%.1f ms)",
                method,
                operation,
                stats.duration_ms,
                extra={"operation": operation, "method": method, "duration_ms": stats.duration_ms},
            )
        else:
            log.warning(
                "[GATEWAY FAILED] %s %s: %s",
                method,
                operation,
                result.error,
                extra={
                    "operation": operation,
                    "method": method,
                    "kind": result.kind.value if result.kind else None,
                    "duration_ms": stats.duration_ms,
                },
            )
        return result

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RemoteGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = [
    "FailureKind",
    "MALFORMED_RESPONSE_MESSAGE",
    "Method",
    "NOT_CONFIGURED_MESSAGE",
    "RemoteGateway",
    "Result",
    "TRANSPORT_FAILURE_MESSAGE",
    "UNRECOGNIZED_OPERATION_MESSAGE",
    "interpret_body",
    "make_nonce",
]
