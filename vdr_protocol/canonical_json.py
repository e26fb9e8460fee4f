"""
Canonical JSON for signing input and ledger-side documents.

The ledger verifies signatures over exactly these bytes:

    - object keys sorted at every level
    - ``,`` and ``:`` separators, no whitespace
    - non-ASCII text emitted as UTF-8, not ``\\u`` escapes
    - NaN and Infinity refused (ValueError), since the ledger's JSON
      parser rejects them

One shared encoder keeps every caller on the same options.
"""

import json
from typing import Any

_SIGNING_ENCODER = json.JSONEncoder(
    ensure_ascii=False,
    allow_nan=False,
    sort_keys=True,
    separators=(",", ":"),
)


def canonical_json(obj: Any) -> str:
    """Canonical text of ``obj``.

    Raises:
        TypeError: If ``obj`` holds a value JSON cannot represent.
        ValueError: If ``obj`` holds NaN or Infinity.
    """
    return _SIGNING_ENCODER.encode(obj)


def canonical_json_bytes(obj: Any) -> bytes:
    return canonical_json(obj).encode("utf-8")
