"""
Pool transport protocol — the network boundary.

The pipeline depends on this protocol, not on a concrete network stack.
The contract mirrors the native pool library: calls return an immediate
result code, and the actual outcome arrives later through a callback
that may run on any thread and in any order.

    - open(genesis) -> (code, handle)
    - submit(handle, request_bytes, callback_id, callback) -> code
    - refresh(handle, callback_id, callback) -> code
    - status(handle, callback_id, callback) -> code
    - close(handle) -> code

Callbacks receive ``(callback_id, code, response)``. ``code`` is an
``ErrorCode`` value; ``response`` is the ledger's JSON text (submit), the
pool status JSON (status) or "" (refresh).

Concrete implementations:
    - HttpxProxyTransport (HTTP gateway in front of a pool, uses httpx)
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Callable, Coroutine, Protocol, runtime_checkable

import httpx

from vdr_protocol.errors import ErrorCode

logger = logging.getLogger(__name__)

PoolHandle = int

# (callback_id, code, response)
Callback = Callable[[int, int, str], None]


@runtime_checkable
class PoolTransport(Protocol):
    """Callback-based pool transport.

    Implementations own node connections, consensus collection and
    retries. Nothing above this seam retries.
    """

    def open(self, genesis: bytes) -> tuple[int, PoolHandle]:
        """Open a pool from newline-delimited genesis transactions."""
        ...

    def submit(
        self, handle: PoolHandle, request: bytes, callback_id: int, callback: Callback
    ) -> int:
        """Start a submission; the response arrives through ``callback``."""
        ...

    def refresh(self, handle: PoolHandle, callback_id: int, callback: Callback) -> int:
        ...

    def status(self, handle: PoolHandle, callback_id: int, callback: Callback) -> int:
        ...

    def close(self, handle: PoolHandle) -> int:
        ...


# =========================================================================
# HTTP proxy transport
# =========================================================================


def http_status_code(status: int) -> ErrorCode:
    """Map an HTTP status from the proxy to a transport code."""
    if 200 <= status < 300:
        return ErrorCode.SUCCESS
    if status == 400:
        return ErrorCode.POOL_REQUEST_FAILED
    if status == 409:
        return ErrorCode.POOL_NO_CONSENSUS
    if status == 504:
        return ErrorCode.POOL_TIMEOUT
    if status == 503:
        return ErrorCode.UNAVAILABLE
    return ErrorCode.UNEXPECTED


def http_exception_code(exc: httpx.HTTPError) -> ErrorCode:
    """Map an httpx exception to a transport code."""
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCode.POOL_TIMEOUT
    if isinstance(exc, httpx.NetworkError):
        return ErrorCode.CONNECTION
    return ErrorCode.UNEXPECTED


# Gateway status keys -> transport-neutral status keys.
_STATUS_KEYS = {"pool_nodes": "nodes", "pool_mt_root": "mt_root", "pool_mt_size": "mt_size"}


def gateway_status(text: str) -> str:
    """Rename the gateway's ``pool_*`` status keys.

    Text that is not a JSON object passes through unchanged; the status
    parser reports it.
    """
    try:
        status = json.loads(text)
    except ValueError:
        return text
    if not isinstance(status, dict):
        return text
    return json.dumps({_STATUS_KEYS.get(key, key): value for key, value in status.items()})


class HttpxProxyTransport:
    """Transport that talks to an indy-vdr-proxy style HTTP gateway.

    The gateway does node fan-out, consensus and its own periodic pool
    refresh; this class only maps HTTP onto the callback contract.

        - submit:  POST {base_url}/submit   (body: request JSON)
        - status:  GET  {base_url}/         (``pool_*`` keys renamed)
        - refresh: no request; reported as done straight away

    A 400 answer still carries the ledger's body, so a REJECT / REQNACK
    reaches the reply parser with code POOL_REQUEST_FAILED.

    Must be driven from a running event loop: submit and status schedule
    their HTTP exchange as a task and return immediately.

    Args:
        base_url: Gateway root URL.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, base_url: str, timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._handles = itertools.count(1)
        self._open: dict[PoolHandle, bytes] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def base_url(self) -> str:
        return self._base_url

    def open(self, genesis: bytes) -> tuple[int, PoolHandle]:
        if not genesis.strip():
            return ErrorCode.INPUT, 0
        handle = next(self._handles)
        self._open[handle] = genesis
        return ErrorCode.SUCCESS, handle

    def submit(
        self, handle: PoolHandle, request: bytes, callback_id: int, callback: Callback
    ) -> int:
        if handle not in self._open:
            return ErrorCode.INPUT
        return self._spawn(
            self._exchange("POST", "/submit", request, callback_id, callback)
        )

    def refresh(self, handle: PoolHandle, callback_id: int, callback: Callback) -> int:
        if handle not in self._open:
            return ErrorCode.INPUT
        logger.debug("refresh of handle %s left to the gateway", handle)
        callback(callback_id, ErrorCode.SUCCESS, "")
        return ErrorCode.SUCCESS

    def status(self, handle: PoolHandle, callback_id: int, callback: Callback) -> int:
        if handle not in self._open:
            return ErrorCode.INPUT
        return self._spawn(
            self._exchange("GET", "/", None, callback_id, callback, rewrite=gateway_status)
        )

    def close(self, handle: PoolHandle) -> int:
        if self._open.pop(handle, None) is None:
            return ErrorCode.INPUT
        return ErrorCode.SUCCESS

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> int:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return ErrorCode.UNAVAILABLE
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return ErrorCode.SUCCESS

    async def _exchange(
        self,
        method: str,
        path: str,
        body: bytes | None,
        callback_id: int,
        callback: Callback,
        *,
        rewrite: Callable[[str], str] | None = None,
    ) -> None:
        url = f"{self._base_url}{path}"
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["content"] = body
            kwargs["headers"] = {"Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            code = http_exception_code(exc)
            logger.debug("%s %s failed: %s (code %d)", method, url, exc, code)
            callback(callback_id, code, str(exc))
            return

        code = http_status_code(response.status_code)
        logger.debug(
            "%s %s -> HTTP %d, %d bytes", method, url, response.status_code, len(response.content)
        )
        text = response.text
        if code == ErrorCode.SUCCESS and rewrite is not None:
            text = rewrite(text)
        callback(callback_id, code, text)
