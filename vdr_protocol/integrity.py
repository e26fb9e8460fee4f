"""
Ledger digests.

Two places put a sha256 hex digest on the wire instead of content:

    - hashed ATTRIB: ``hash`` is the digest of the attribute's canonical
      JSON; the value itself stays off-ledger.
    - TAA acceptance: ``taaDigest`` is the digest of ``version + text``
      of the agreement being accepted.
"""

import hashlib
from typing import Any, Mapping

from vdr_protocol.canonical_json import canonical_json_bytes


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def attrib_hash(data: Mapping[str, Any]) -> str:
    """Digest carried by a hashed ATTRIB for ``data``."""
    return sha256_hex(canonical_json_bytes(dict(data)))


def taa_digest(text: str, version: str) -> str:
    """Digest identifying a transaction author agreement.

    The ledger concatenates version then text, with no separator.
    """
    return sha256_hex(f"{version}{text}".encode("utf-8"))
