"""
Submission pipeline — the only stateful piece of the protocol engine.

Flow per submission:

    request (built by caller)
      → canonicalize → sign → attach signature(s)
      → encode_wire
      → transport.submit(handle, bytes, callback_id, callback)
      → await the future registered for (channel, callback_id)
      → non-zero code → TransportError (or LedgerRejection, see below)
      → parse_read_reply / parse_write_reply

Correlation:
    Each channel (submit, refresh, status) has its own map of pending
    futures keyed by callback id. Submissions use the request's ``reqId``
    as callback id; refresh/status use a counter. Callbacks may run on
    any thread and in any order; they hand the result to the loop with
    ``call_soon_threadsafe``. Concurrent same-channel submissions are
    therefore independent. A second in-flight submission with the same
    ``reqId`` is refused with TransportError(INPUT).

Rejections:
    The pool reports a REJECT / REQNACK as code POOL_REQUEST_FAILED with
    the ledger's reply as the response. Such replies are raised as
    ``LedgerRejection`` rather than ``TransportError``.

No timeouts, cancellation or retries here. Wrap calls in
``asyncio.wait_for`` if needed.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Callable

from vdr_protocol.errors import (
    BuildError,
    ErrorCode,
    ProtocolError,
    SigningError,
    TransportError,
)
from vdr_protocol.reply import (
    PoolStatus,
    ReadReply,
    WriteReply,
    parse_pool_status,
    parse_read_reply,
    parse_reply,
    parse_write_reply,
)
from vdr_protocol.request import Request
from vdr_protocol.serialize import encode_wire
from vdr_protocol.signer import Signer, endorse_request, sign_request
from vdr_protocol.transport import Callback, PoolHandle, PoolTransport

logger = logging.getLogger(__name__)

CHANNEL_SUBMIT = "submit"
CHANNEL_REFRESH = "refresh"
CHANNEL_STATUS = "status"


class SubmissionPipeline:
    """Async submission pipeline over one open pool handle.

    Args:
        transport: The pool transport.
        handle: Handle returned by ``transport.open``.
    """

    def __init__(self, transport: PoolTransport, handle: PoolHandle) -> None:
        self._transport = transport
        self._handle = handle
        self._pending: dict[str, dict[int, asyncio.Future[tuple[int, str]]]] = {
            CHANNEL_SUBMIT: {},
            CHANNEL_REFRESH: {},
            CHANNEL_STATUS: {},
        }
        self._callback_ids = itertools.count(1)
        self._closed = False

    @classmethod
    def open(cls, transport: PoolTransport, genesis: bytes) -> "SubmissionPipeline":
        """Open a pool handle and wrap it.

        Raises:
            TransportError: If the transport refuses to open the pool.
        """
        code, handle = transport.open(genesis)
        if code != ErrorCode.SUCCESS:
            raise TransportError(code, "could not open pool", operation="open")
        logger.debug("opened pool handle %s", handle)
        return cls(transport, handle)

    @property
    def transport(self) -> PoolTransport:
        return self._transport

    @property
    def handle(self) -> PoolHandle:
        return self._handle

    @property
    def closed(self) -> bool:
        return self._closed

    def in_flight(self, channel: str = CHANNEL_SUBMIT) -> int:
        """Number of outstanding calls on a channel."""
        return len(self._pending[channel])

    # ---------------------------------------------------------------------
    # Correlation
    # ---------------------------------------------------------------------

    def _deliver(self, channel: str, callback_id: int, code: int, response: str) -> None:
        future = self._pending[channel].get(callback_id)
        if future is None:
            logger.warning("dropping %s callback for unknown id %s", channel, callback_id)
            return
        if not future.done():
            future.set_result((code, response))

    async def _call(
        self,
        channel: str,
        callback_id: int,
        start: Callable[[Callback], int],
        txn_type: str | None = None,
    ) -> str:
        if self._closed:
            raise TransportError(
                ErrorCode.INPUT, "pool handle is closed", operation=channel, txn_type=txn_type
            )

        pending = self._pending[channel]
        if callback_id in pending:
            raise TransportError(
                ErrorCode.INPUT,
                f"request id {callback_id} is already in flight",
                operation=channel,
                txn_type=txn_type,
            )

        loop = asyncio.get_running_loop()
        future: asyncio.Future[tuple[int, str]] = loop.create_future()
        pending[callback_id] = future

        def on_result(cb_id: int, code: int, response: str) -> None:
            loop.call_soon_threadsafe(self._deliver, channel, cb_id, code, response)

        try:
            code = start(on_result)
            if code != ErrorCode.SUCCESS:
                raise TransportError(
                    code, "transport refused the call", operation=channel, txn_type=txn_type
                )
            code, response = await future
        finally:
            pending.pop(callback_id, None)

        if code != ErrorCode.SUCCESS:
            if code == ErrorCode.POOL_REQUEST_FAILED and response:
                _raise_if_rejection(response, txn_type)
            raise TransportError(
                code, response or "no detail", operation=channel, txn_type=txn_type
            )
        return response

    async def _submit(self, request: Request) -> str:
        payload = encode_wire(request)
        logger.debug(
            "submitting type=%s reqId=%s (%d bytes)",
            request.txn_type,
            request.req_id,
            len(payload),
        )
        response = await self._call(
            CHANNEL_SUBMIT,
            request.req_id,
            lambda cb: self._transport.submit(self._handle, payload, request.req_id, cb),
            request.txn_type,
        )
        logger.debug(
            "reply for type=%s reqId=%s (%d bytes)",
            request.txn_type,
            request.req_id,
            len(response),
        )
        return response

    # ---------------------------------------------------------------------
    # Submissions
    # ---------------------------------------------------------------------

    async def submit_read(self, request: Request) -> ReadReply:
        """Submit an unsigned read request.

        Raises:
            BuildError: If the request is not a read.
            TransportError: On a non-zero transport code.
            LedgerRejection: If the ledger refused the read.
            ProtocolError: If the reply is malformed.
        """
        if not request.is_read:
            raise BuildError(
                f"type {request.txn_type} is not a read; use submit_write",
                txn_type=request.txn_type,
            )
        response = await self._submit(request)
        return parse_read_reply(response, txn_type=request.txn_type)

    async def submit_write(self, request: Request, signer: Signer) -> WriteReply:
        """Sign with a single signer and submit.

        Raises:
            SigningError: If the request is a read or the signer fails.
            TransportError: On a non-zero transport code.
            LedgerRejection: If the ledger refused the write.
            ProtocolError: If the reply is malformed.
        """
        signed = sign_request(request, signer)
        return await self.submit_signed(signed)

    async def submit_endorsed(
        self,
        request: Request,
        author_did: str,
        author: Signer,
        endorser_did: str,
        endorser: Signer,
    ) -> WriteReply:
        """Author signs, endorser co-signs, then submit.

        The request's ``endorser`` field is set to ``endorser_did`` when
        absent; a different endorser already on the request is an error.

        Raises:
            SigningError: On endorser mismatch, reads, or signer failure.
        """
        signed = endorse_request(request, author_did, author, endorser_did, endorser)
        return await self.submit_signed(signed)

    async def submit_signed(self, request: Request) -> WriteReply:
        """Submit a write that already carries its signature(s).

        Raises:
            SigningError: If the request is unsigned.
        """
        if not request.is_signed:
            raise SigningError("write request is not signed", txn_type=request.txn_type)
        response = await self._submit(request)
        return parse_write_reply(response, txn_type=request.txn_type)

    async def submit_json(self, text: str | bytes) -> ReadReply | WriteReply:
        """Submit a prepared JSON request.

        Reads are sent as-is; writes must already be signed.

        Raises:
            BuildError: If the JSON is not a valid request envelope.
        """
        request = Request.from_json(text)
        if request.is_read:
            return await self.submit_read(request)
        return await self.submit_signed(request)

    # ---------------------------------------------------------------------
    # Pool maintenance
    # ---------------------------------------------------------------------

    async def refresh(self) -> None:
        """Ask the transport to refresh the pool's node list."""
        callback_id = next(self._callback_ids)
        await self._call(
            CHANNEL_REFRESH,
            callback_id,
            lambda cb: self._transport.refresh(self._handle, callback_id, cb),
        )
        logger.debug("refreshed pool handle %s", self._handle)

    async def status(self) -> PoolStatus:
        callback_id = next(self._callback_ids)
        response = await self._call(
            CHANNEL_STATUS,
            callback_id,
            lambda cb: self._transport.status(self._handle, callback_id, cb),
        )
        return parse_pool_status(response)

    def close(self) -> None:
        """Close the pool handle. Safe to call twice.

        Raises:
            TransportError: If the transport fails to close the handle.
        """
        if self._closed:
            return
        self._closed = True
        code = self._transport.close(self._handle)
        if code != ErrorCode.SUCCESS:
            raise TransportError(code, "could not close pool", operation="close")
        logger.debug("closed pool handle %s", self._handle)


def _raise_if_rejection(response: str, txn_type: str | None) -> None:
    """Raise LedgerRejection if ``response`` is a REJECT / REQNACK reply."""
    try:
        parse_reply(response, txn_type=txn_type)
    except ProtocolError:
        return
