"""
Signer protocol and request signing — the secrets boundary.

Callers hand this module a Request and a ``Signer``; the signer only ever
sees bytes to sign and never the request object itself. Key material
stays inside the signer.

Two patterns:

    - Single signer: the submitter signs ``canonicalize(request)`` and
      the base58 result goes in ``signature``.
    - Endorsement: the author signs ``canonicalize(request)`` into
      ``signatures[author_did]``; the endorser then signs
      ``endorsement_input(request)`` — which already contains the
      author's entry — into ``signatures[endorser_did]``. The endorser
      step refuses to run before the author step.

Read requests are never signed.

Concrete implementations:
    - Ed25519Signer (cryptography, seed-derived like the ledger's wallets)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Mapping, Protocol, runtime_checkable

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from vdr_protocol.errors import SigningError
from vdr_protocol.request import Request
from vdr_protocol.serialize import canonicalize, endorsement_input

SEED_LENGTH = 32


@runtime_checkable
class Signer(Protocol):
    """Interface for request signing.

    Implementations manage key material internally. Raise SigningError
    (or any exception, which is wrapped) when no signature can be made.
    """

    def sign(self, message: bytes) -> bytes:
        """Sign raw bytes and return the raw signature."""
        ...


# =========================================================================
# Ed25519
# =========================================================================


def did_from_verkey(verkey: bytes) -> str:
    """Unqualified DID: base58 of the first 16 bytes of the verkey."""
    return base58.b58encode(verkey[:16]).decode("ascii")


@dataclass(frozen=True)
class Ed25519Signer:
    """Ed25519 signer holding a private key.

    Attributes:
        private_key: The signing key. Never logged.
    """

    private_key: Ed25519PrivateKey

    @classmethod
    def from_seed(cls, seed: bytes | str) -> "Ed25519Signer":
        """Derive the key pair from a 32-byte seed.

        A str seed is taken as its UTF-8 bytes, matching the
        ``000000000000000000000000Trustee1`` style seeds used on test pools.

        Raises:
            SigningError: If the seed is not exactly 32 bytes.
        """
        raw = seed.encode("utf-8") if isinstance(seed, str) else bytes(seed)
        if len(raw) != SEED_LENGTH:
            raise SigningError(f"seed must be {SEED_LENGTH} bytes, got {len(raw)}")
        return cls(Ed25519PrivateKey.from_private_bytes(raw))

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        return cls(Ed25519PrivateKey.generate())

    @property
    def verkey_bytes(self) -> bytes:
        return self.private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    @property
    def verkey(self) -> str:
        """Base58 verification key (safe for logging)."""
        return base58.b58encode(self.verkey_bytes).decode("ascii")

    @property
    def did(self) -> str:
        return did_from_verkey(self.verkey_bytes)

    def sign(self, message: bytes) -> bytes:
        return self.private_key.sign(message)


# =========================================================================
# Request signing
# =========================================================================


def _sign_b58(signer: Signer, message: bytes, txn_type: str) -> str:
    try:
        signature = signer.sign(message)
    except SigningError:
        raise
    except Exception as exc:
        raise SigningError(f"signer failed: {exc}", txn_type=txn_type) from exc
    if not isinstance(signature, (bytes, bytearray)) or not signature:
        raise SigningError("signer returned no signature bytes", txn_type=txn_type)
    return base58.b58encode(bytes(signature)).decode("ascii")


def _reject_read(request: Request) -> None:
    if request.is_read:
        raise SigningError(
            f"read requests are not signed (type {request.txn_type})",
            txn_type=request.txn_type,
        )


def sign_request(request: Request, signer: Signer) -> Request:
    """Single-signer: sign canonical bytes into ``signature``.

    Args:
        request: Unsigned write request.
        signer: The submitter's signer.

    Returns:
        New Request with ``signature`` set and ``signatures`` empty.

    Raises:
        SigningError: On read requests, or if the signer fails.
    """
    _reject_read(request)
    signature = _sign_b58(signer, canonicalize(request), request.txn_type)
    return request.with_signature(signature)


def add_author_signature(request: Request, author_did: str, signer: Signer) -> Request:
    """First endorsement step: the author signs the unsigned canonical bytes.

    Raises:
        SigningError: On read requests, or if the signer fails.
    """
    _reject_read(request)
    signature = _sign_b58(signer, canonicalize(request), request.txn_type)
    return request.with_multi_signature(author_did, signature)


def add_endorser_signature(request: Request, endorser_did: str, signer: Signer) -> Request:
    """Second endorsement step: the endorser co-signs over the author's entry.

    The request must already name ``endorser_did`` in its ``endorser``
    field; the author's signature covers that field.

    Raises:
        SigningError: On read requests, if the request names a different
            (or no) endorser, if no author signature is present yet, or if
            the signer fails.
    """
    _reject_read(request)
    if request.endorser != endorser_did:
        raise SigningError(
            f"request names endorser {request.endorser}, not {endorser_did}",
            txn_type=request.txn_type,
        )
    authors = [did for did in request.signatures if did != endorser_did]
    if not authors:
        raise SigningError(
            "author must sign before the endorser", txn_type=request.txn_type
        )
    signature = _sign_b58(signer, endorsement_input(request), request.txn_type)
    return request.with_multi_signature(endorser_did, signature)


def endorse_request(
    request: Request,
    author_did: str,
    author: Signer,
    endorser_did: str,
    endorser: Signer,
) -> Request:
    """Author signs, then endorser signs. Returns the multi-signed request.

    A request with no ``endorser`` gets ``endorser_did`` before the author
    signs.

    Raises:
        SigningError: If the request names a different endorser, or on
            any failure of the two signing steps.
    """
    if request.endorser is None:
        request = replace(request, endorser=endorser_did)
    signed = add_author_signature(request, author_did, author)
    return add_endorser_signature(signed, endorser_did, endorser)


# =========================================================================
# Verification
# =========================================================================


def verify_signature(verkey: str, message: bytes, signature: str) -> bool:
    """Check a base58 Ed25519 signature against a base58 verkey."""
    try:
        public_key = Ed25519PublicKey.from_public_bytes(base58.b58decode(verkey))
        public_key.verify(base58.b58decode(signature), message)
    except (InvalidSignature, ValueError):
        return False
    return True


def verify_request(request: Request, verkeys: Mapping[str, str]) -> bool:
    """Verify every signature on a request.

    Single-signed requests are checked against ``verkeys[identifier]``.
    Multi-signed requests: the author entries against the canonical bytes
    and the endorser entry against the endorsement input that preceded it.

    Args:
        request: Signed request.
        verkeys: DID -> base58 verkey.

    Returns:
        True only if the request is signed and every signature verifies.
    """
    if request.signature is not None:
        verkey = verkeys.get(request.identifier)
        return verkey is not None and verify_signature(
            verkey, canonicalize(request), request.signature
        )
    if not request.signatures:
        return False

    endorser = request.endorser
    for did, signature in request.signatures.items():
        verkey = verkeys.get(did)
        if verkey is None:
            return False
        if did == endorser:
            before = {d: s for d, s in request.signatures.items() if d != endorser}
            message = endorsement_input(replace(request, signatures=before))
        else:
            message = canonicalize(request)
        if not verify_signature(verkey, message, signature):
            return False
    return True
