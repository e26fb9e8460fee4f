"""
Signing input and wire encoding for requests.

Three encodings of the same Request:

    - ``canonicalize(request)`` — bytes every single signer and every
      multi-sig author signs. Sorted keys, no whitespace, UTF-8, with
      ``signature`` and ``signatures`` removed (absent, not null).
    - ``endorsement_input(request)`` — what the endorser signs: the same
      canonical form plus the ``signatures`` map collected so far, so the
      endorser's signature covers the author's.
    - ``encode_wire(request)`` — the JSON sent to the pool, signatures
      included.

``canonicalize`` is idempotent and does not depend on the order in which
fields were supplied.
"""

from __future__ import annotations

import json
from typing import Any

from vdr_protocol.canonical_json import canonical_json_bytes
from vdr_protocol.errors import SerializationError
from vdr_protocol.request import Request

SIGNATURE_KEYS = ("signature", "signatures")


def _encode(obj: Any, txn_type: str | None) -> bytes:
    try:
        return canonical_json_bytes(obj)
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"request is not JSON-encodable: {exc}", txn_type=txn_type
        ) from exc


def canonicalize(request: Request | dict[str, Any]) -> bytes:
    """Canonical signing bytes of a request (signatures excluded).

    Accepts a Request or an already-built wire dict, so a request parsed
    from JSON canonicalizes the same way as one built locally.

    Raises:
        SerializationError: If a value cannot be encoded as JSON.
    """
    if isinstance(request, Request):
        return _encode(request.unsigned_dict(), request.txn_type)
    body = {k: v for k, v in request.items() if k not in SIGNATURE_KEYS}
    txn_type = (body.get("operation") or {}).get("type")
    return _encode(body, txn_type)


def endorsement_input(request: Request) -> bytes:
    """Bytes the endorser signs: unsigned content plus ``signatures`` so far.

    Raises:
        SerializationError: If a value cannot be encoded as JSON.
    """
    body = request.unsigned_dict()
    body["signatures"] = dict(request.signatures)
    return _encode(body, request.txn_type)


def encode_wire(request: Request) -> bytes:
    """Wire JSON of a (normally signed) request.

    Raises:
        SerializationError: If a value cannot be encoded as JSON.
    """
    try:
        return json.dumps(request.to_dict(), ensure_ascii=False, allow_nan=False).encode(
            "utf-8"
        )
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"request is not JSON-encodable: {exc}", txn_type=request.txn_type
        ) from exc
