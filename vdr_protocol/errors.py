"""
Error taxonomy and transport error-code classification.

Every failure surfaced by this package is a ``LedgerError`` subclass:

    - ``BuildError`` — invalid arguments to an operation constructor.
    - ``SerializationError`` — canonical or wire encoding failed.
    - ``SigningError`` — the signer could not produce a signature, or
      signatures were attached out of order.
    - ``TransportError`` — non-zero code from the pool transport.
    - ``LedgerRejection`` — the ledger answered REJECT / REQNACK.
      A legitimate protocol outcome, not a bug.
    - ``ProtocolError`` — the response could not be parsed into a
      known reply shape.
    - ``ConfigError`` — invalid client configuration.

Nothing in this package retries. ``TransportError.transient`` is a hint
for callers that want to.

Transport codes follow the pool library's numbering:
    - 0: success
    - 1-8: local failures (config, connection, input, ...)
    - 30-32: pool failures (no consensus, request failed, timeout)
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Pool transport result codes."""

    SUCCESS = 0
    CONFIG = 1
    CONNECTION = 2
    FILESYSTEM = 3
    INPUT = 4
    RESOURCE = 5
    UNAVAILABLE = 6
    UNEXPECTED = 7
    INCOMPATIBLE = 8
    POOL_NO_CONSENSUS = 30
    POOL_REQUEST_FAILED = 31
    POOL_TIMEOUT = 32


# Codes where resubmitting the same request may succeed.
_TRANSIENT_CODES: frozenset[ErrorCode] = frozenset(
    {
        ErrorCode.CONNECTION,
        ErrorCode.UNAVAILABLE,
        ErrorCode.POOL_NO_CONSENSUS,
        ErrorCode.POOL_TIMEOUT,
    }
)


def classify_error_code(code: int) -> ErrorCode:
    """Map a raw transport code to an ErrorCode.

    Unknown codes map to UNEXPECTED rather than guessing.
    """
    try:
        return ErrorCode(code)
    except ValueError:
        return ErrorCode.UNEXPECTED


def is_transient(code: int) -> bool:
    """Whether a transport code describes a condition worth retrying."""
    return classify_error_code(code) in _TRANSIENT_CODES


# =========================================================================
# Exceptions
# =========================================================================


class LedgerError(Exception):
    """Base class for every error raised by vdr_protocol.

    Attributes:
        txn_type: Type code of the operation involved, when known.
    """

    def __init__(self, message: str, *, txn_type: str | None = None) -> None:
        super().__init__(message)
        self.txn_type = txn_type


class BuildError(LedgerError):
    """Invalid arguments to an operation constructor."""


class SerializationError(LedgerError):
    """Canonical or wire encoding failed."""


class SigningError(LedgerError):
    """The signer failed, or signatures were attached out of order."""


class TransportError(LedgerError):
    """The pool transport returned a non-zero code.

    Attributes:
        code: The raw transport code.
        kind: ``ErrorCode`` classification of ``code``.
        operation: Transport operation that failed ("open", "submit",
            "refresh", "status", "close").
    """

    def __init__(
        self,
        code: int,
        message: str,
        *,
        operation: str,
        txn_type: str | None = None,
    ) -> None:
        super().__init__(
            f"{operation} failed (transport code {code}): {message}",
            txn_type=txn_type,
        )
        self.code = code
        self.kind = classify_error_code(code)
        self.operation = operation
        self.detail = message

    @property
    def transient(self) -> bool:
        return self.kind in _TRANSIENT_CODES


class LedgerRejection(LedgerError):
    """The ledger refused the request (REJECT / REQNACK).

    Attributes:
        reason: The ledger's reason string.
        op: The reply ``op`` value ("REJECT", "REQNACK", or None when the
            envelope only carried a reason).
        req_id: Echoed request id, when present.
        identifier: Echoed submitter DID, when present.
    """

    def __init__(
        self,
        reason: str,
        *,
        op: str | None = None,
        req_id: int | None = None,
        identifier: str | None = None,
        txn_type: str | None = None,
    ) -> None:
        label = op or "REJECTED"
        super().__init__(f"ledger {label}: {reason}", txn_type=txn_type)
        self.reason = reason
        self.op = op
        self.req_id = req_id
        self.identifier = identifier


class ProtocolError(LedgerError):
    """A response could not be parsed into a known reply shape."""


class ConfigError(LedgerError):
    """Invalid client configuration value."""
