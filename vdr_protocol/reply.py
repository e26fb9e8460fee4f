"""
Reply parser — turns raw ledger responses into typed results or errors.

Response envelopes:

    - ``{"op": "REPLY", "result": {...}}`` — success; the result shape
      depends on whether the request was a read or a write.
    - ``{"op": "REJECT" | "REQNACK", "reason": "...", ...}`` — the ledger
      refused the request. Raised as ``LedgerRejection``, never returned.
    - A bare ``{"reason": "..."}`` without a result is treated as a
      rejection too (some gateways strip ``op``).

Anything else — non-JSON, non-object, unknown ``op``, a result that fails
the reply schema — raises ``ProtocolError``.

State proofs are passed through untouched. Verifying them is the pool
transport's job.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from vdr_protocol.errors import LedgerRejection, ProtocolError
from vdr_protocol.schema import validation_error

REJECTION_OPS = frozenset({"REJECT", "REQNACK"})


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class ReadReply:
    """Result of a read (GET_*) request.

    Attributes:
        type: Echoed txn type code.
        data: Payload. JSON strings are decoded; None when the ledger
            has no such record.
        seq_no: Sequence number of the record, when found.
        txn_time: Ledger time of the record, when found.
        identifier: Echoed submitter DID.
        req_id: Echoed request id.
        dest: Echoed target DID, for DID-scoped reads.
        state_proof: Opaque state proof, passed through.
        raw: The full ``result`` object.
    """

    type: str
    data: Any = None
    seq_no: int | None = None
    txn_time: int | None = None
    identifier: str | None = None
    req_id: int | None = None
    dest: str | None = None
    state_proof: dict[str, Any] | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class TxnMetadata:
    txn_id: str | None
    seq_no: int
    txn_time: int | None = None


@dataclass(frozen=True)
class WriteReply:
    """Result of an accepted write.

    Attributes:
        txn_metadata: Ledger-assigned id, sequence number and time.
        txn: Echoed transaction (``type``, ``data``, ``metadata``...).
        req_signature: Echoed request signature block.
        root_hash: Merkle root after the write.
        audit_path: Merkle audit path.
        raw: The full ``result`` object.
    """

    txn_metadata: TxnMetadata
    txn: dict[str, Any]
    req_signature: dict[str, Any] | None = None
    root_hash: str | None = None
    audit_path: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def txn_type(self) -> str:
        return str(self.txn["type"])

    @property
    def data(self) -> Any:
        return self.txn.get("data")


@dataclass(frozen=True)
class PoolStatus:
    """Pool status as reported by the transport (passthrough)."""

    status: str | None = None
    nodes: tuple[str, ...] = ()
    mt_root: str | None = None
    mt_size: int | None = None
    last_refresh: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)


# =========================================================================
# Parsing
# =========================================================================


def _decode_object(raw: str | bytes | dict[str, Any], what: str) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"{what} is not valid JSON: {exc}") from exc
    if not isinstance(decoded, dict):
        raise ProtocolError(f"{what} must be a JSON object, got {type(decoded).__name__}")
    return decoded


def parse_reply(
    raw: str | bytes | dict[str, Any],
    *,
    txn_type: str | None = None,
) -> dict[str, Any]:
    """Unwrap a response envelope into its ``result`` object.

    Args:
        raw: Response text (or an already-decoded dict).
        txn_type: Type code of the request, for error context.

    Returns:
        The ``result`` dict of a REPLY.

    Raises:
        LedgerRejection: REJECT / REQNACK, or a reason without a result.
        ProtocolError: Anything that is not a recognizable envelope.
    """
    envelope = _decode_object(raw, "ledger response")
    op = envelope.get("op")

    if op in REJECTION_OPS or (op is None and "reason" in envelope and "result" not in envelope):
        reason = envelope.get("reason")
        raise LedgerRejection(
            str(reason) if reason else "no reason given",
            op=op,
            req_id=envelope.get("reqId"),
            identifier=envelope.get("identifier"),
            txn_type=txn_type,
        )

    if op not in (None, "REPLY"):
        raise ProtocolError(f"unexpected response op: {op!r}", txn_type=txn_type)

    result = envelope.get("result")
    if not isinstance(result, dict):
        raise ProtocolError("response has no result object", txn_type=txn_type)
    return result


def _decode_data(data: Any) -> Any:
    if isinstance(data, str):
        try:
            return json.loads(data)
        except ValueError:
            return data
    return data


def parse_read_reply(
    raw: str | bytes | dict[str, Any],
    *,
    txn_type: str | None = None,
) -> ReadReply:
    """Parse the response to a read request.

    Raises:
        LedgerRejection: If the ledger refused the read.
        ProtocolError: If the result doesn't look like a read reply.
    """
    result = parse_reply(raw, txn_type=txn_type)
    error = validation_error(result, "reply.read.json")
    if error is not None:
        raise ProtocolError(f"malformed read reply: {error}", txn_type=txn_type)

    return ReadReply(
        type=result["type"],
        data=_decode_data(result.get("data")),
        seq_no=result.get("seqNo"),
        txn_time=result.get("txnTime"),
        identifier=result.get("identifier"),
        req_id=result.get("reqId"),
        dest=result.get("dest"),
        state_proof=result.get("state_proof"),
        raw=result,
    )


def parse_write_reply(
    raw: str | bytes | dict[str, Any],
    *,
    txn_type: str | None = None,
) -> WriteReply:
    """Parse the response to a write request.

    Raises:
        LedgerRejection: If the ledger refused the write.
        ProtocolError: If the result doesn't look like a write reply.
    """
    result = parse_reply(raw, txn_type=txn_type)
    error = validation_error(result, "reply.write.json")
    if error is not None:
        raise ProtocolError(f"malformed write reply: {error}", txn_type=txn_type)

    metadata = result["txnMetadata"]
    return WriteReply(
        txn_metadata=TxnMetadata(
            txn_id=metadata.get("txnId"),
            seq_no=metadata["seqNo"],
            txn_time=metadata.get("txnTime"),
        ),
        txn=result["txn"],
        req_signature=result.get("reqSignature"),
        root_hash=result.get("rootHash"),
        audit_path=tuple(result.get("auditPath") or ()),
        raw=result,
    )


def parse_pool_status(raw: str | bytes | dict[str, Any]) -> PoolStatus:
    """Parse the transport's pool status JSON.

    Raises:
        ProtocolError: If the status is not a JSON object of the expected shape.
    """
    status = _decode_object(raw, "pool status")
    error = validation_error(status, "pool.status.json")
    if error is not None:
        raise ProtocolError(f"malformed pool status: {error}")

    return PoolStatus(
        status=status.get("status"),
        nodes=tuple(status.get("nodes") or ()),
        mt_root=status.get("mt_root"),
        mt_size=status.get("mt_size"),
        last_refresh=status.get("last_refresh"),
        raw=status,
    )
