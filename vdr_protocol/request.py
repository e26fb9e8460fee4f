"""
Request builder — wraps an Operation in the ledger request envelope.

The envelope carries the submitter DID (``identifier``), an optional
endorser, a random 32-bit ``reqId``, ``protocolVersion`` (always 2) and,
once signed, either ``signature`` or ``signatures``.

Requests are immutable. Signing returns a new Request with the
signature attached (see signer.py).

Read operations short-circuit: ``endorser`` and ``taaAcceptance`` are
never set on them, whatever the caller passes.

``reqId`` uniqueness per submitter is the caller's concern; the builder
draws a random value and does no dedup.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, Mapping

from vdr_protocol.constants import PROTOCOL_VERSION
from vdr_protocol.errors import BuildError
from vdr_protocol.integrity import taa_digest
from vdr_protocol.operations import CustomOperation, Operation
from vdr_protocol.schema import validation_error

_SECONDS_PER_DAY = 86400


def new_req_id() -> int:
    """Random unsigned 32-bit request id."""
    return uuid.uuid4().int & 0xFFFFFFFF


# =========================================================================
# TAA acceptance
# =========================================================================


@dataclass(frozen=True)
class TaaAcceptance:
    """Transaction author agreement acceptance attached to writes.

    Attributes:
        digest: Hex sha256 of the agreement (``version + text``).
        mechanism: Acceptance mechanism label from the ledger's AML.
        time: Acceptance time in seconds since the epoch. The ledger
            only accepts day precision, so ``build()`` truncates it.
    """

    digest: str
    mechanism: str
    time: int

    def to_dict(self) -> dict[str, object]:
        return {"taaDigest": self.digest, "mechanism": self.mechanism, "time": self.time}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaaAcceptance":
        return cls(digest=data["taaDigest"], mechanism=data["mechanism"], time=data["time"])

    @classmethod
    def build(
        cls,
        mechanism: str,
        *,
        digest: str | None = None,
        text: str | None = None,
        version: str | None = None,
        accepted_at: int | None = None,
    ) -> "TaaAcceptance":
        """Build an acceptance from a digest or from the agreement text.

        Args:
            mechanism: Acceptance mechanism (e.g. "on_file").
            digest: Agreement digest. If omitted, both ``text`` and
                ``version`` are required and the digest is derived.
            text: Agreement text.
            version: Agreement version.
            accepted_at: Epoch seconds. Defaults to now(UTC).

        Raises:
            BuildError: If neither a digest nor text+version is given,
                or if mechanism is empty.
        """
        if not mechanism:
            raise BuildError("TAA mechanism must be non-empty")
        if digest is None:
            if text is None or version is None:
                raise BuildError("TAA digest or both text and version are required")
            digest = taa_digest(text, version)
        if accepted_at is None:
            accepted_at = int(datetime.now(UTC).timestamp())
        return cls(
            digest=digest,
            mechanism=mechanism,
            time=accepted_at // _SECONDS_PER_DAY * _SECONDS_PER_DAY,
        )


# =========================================================================
# Request
# =========================================================================


@dataclass(frozen=True)
class Request:
    """A ledger request envelope.

    Attributes:
        operation: The operation to perform.
        identifier: Submitter DID.
        req_id: Unsigned 32-bit request id.
        protocol_version: Always PROTOCOL_VERSION on requests we build.
        endorser: Co-signer DID for endorsed writes.
        signature: Base58 signature (single signer).
        signatures: DID -> base58 signature (multi-signer), read-only.
        taa_acceptance: TAA acceptance for writes.
        handle: Optional envelope handle.
    """

    operation: Operation
    identifier: str
    req_id: int
    protocol_version: int = PROTOCOL_VERSION
    endorser: str | None = None
    signature: str | None = None
    signatures: Mapping[str, str] = field(default_factory=dict)
    taa_acceptance: TaaAcceptance | None = None
    handle: str | None = None

    def __post_init__(self) -> None:
        # Read-only copy; signing returns a new Request.
        object.__setattr__(self, "signatures", MappingProxyType(dict(self.signatures)))

    @property
    def txn_type(self) -> str:
        return self.operation.txn_type

    @property
    def is_read(self) -> bool:
        return self.operation.is_read

    @property
    def is_signed(self) -> bool:
        return self.signature is not None or bool(self.signatures)

    def unsigned_dict(self) -> dict[str, Any]:
        """Envelope without ``signature`` / ``signatures`` (keys absent)."""
        result: dict[str, Any] = {
            "operation": self.operation.to_dict(),
            "identifier": self.identifier,
            "reqId": self.req_id,
            "protocolVersion": self.protocol_version,
        }
        if self.endorser is not None:
            result["endorser"] = self.endorser
        if self.taa_acceptance is not None:
            result["taaAcceptance"] = self.taa_acceptance.to_dict()
        if self.handle is not None:
            result["handle"] = self.handle
        return result

    def to_dict(self) -> dict[str, Any]:
        """Full wire envelope, including whichever signature form is set."""
        result = self.unsigned_dict()
        if self.signature is not None:
            result["signature"] = self.signature
        if self.signatures:
            result["signatures"] = dict(self.signatures)
        return result

    def with_signature(self, signature: str) -> "Request":
        return replace(self, signature=signature, signatures={})

    def with_multi_signature(self, did: str, signature: str) -> "Request":
        signatures = dict(self.signatures)
        signatures[did] = signature
        return replace(self, signature=None, signatures=signatures)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Request":
        """Parse a prepared request envelope.

        The operation is kept opaque (CustomOperation).

        Raises:
            BuildError: If the envelope doesn't match the request schema.
        """
        error = validation_error(data, "request.json")
        if error is not None:
            raise BuildError(f"invalid request envelope: {error}")

        taa = data.get("taaAcceptance")
        return cls(
            operation=CustomOperation(data["operation"]),
            identifier=data.get("identifier", ""),
            req_id=data["reqId"],
            protocol_version=data["protocolVersion"],
            endorser=data.get("endorser"),
            signature=data.get("signature"),
            signatures=dict(data.get("signatures") or {}),
            taa_acceptance=TaaAcceptance.from_dict(taa) if taa else None,
            handle=data.get("handle"),
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> "Request":
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise BuildError(f"request is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise BuildError("request must be a JSON object")
        return cls.from_dict(data)


# =========================================================================
# Builder
# =========================================================================


def build_request(
    operation: Operation,
    submitter_did: str,
    *,
    endorser_did: str | None = None,
    taa_acceptance: TaaAcceptance | None = None,
    handle: str | None = None,
    req_id: int | None = None,
) -> Request:
    """Wrap an operation in a fresh, unsigned request envelope.

    Args:
        operation: Operation from the catalog.
        submitter_did: Submitter DID (``identifier``).
        endorser_did: Endorser DID. Ignored for read operations.
        taa_acceptance: TAA acceptance. Ignored for read operations.
        handle: Optional envelope handle.
        req_id: Fixed request id. Defaults to a random 32-bit value.

    Returns:
        Unsigned Request with protocolVersion 2.
    """
    if operation.is_read:
        endorser_did = None
        taa_acceptance = None

    return Request(
        operation=operation,
        identifier=submitter_did,
        req_id=new_req_id() if req_id is None else req_id,
        protocol_version=PROTOCOL_VERSION,
        endorser=endorser_did,
        taa_acceptance=taa_acceptance,
        handle=handle,
    )
