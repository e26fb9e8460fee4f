"""
Ledger type codes, roles and envelope constants.

This is the single table shared by the operation catalog, the request
builder and the tests. The numeric strings are defined by the target
ledger's transaction registry; changing any of them breaks wire
compatibility.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum

# Request envelope protocol version. Fixed by the ledger.
PROTOCOL_VERSION = 2

# Submitter used for anonymous reads.
DEFAULT_REQUEST_DID = "LibindyDid111111111111"


class TxnType(StrEnum):
    """Ledger transaction type codes."""

    NODE = "0"
    NYM = "1"
    GET_TXN = "3"
    TXN_AUTHOR_AGREEMENT = "4"
    TXN_AUTHOR_AGREEMENT_AML = "5"
    GET_TXN_AUTHOR_AGREEMENT = "6"
    GET_TXN_AUTHOR_AGREEMENT_AML = "7"
    ATTRIB = "100"
    SCHEMA = "101"
    CLAIM_DEF = "102"
    GET_ATTR = "104"
    GET_NYM = "105"
    GET_SCHEMA = "107"
    GET_CLAIM_DEF = "108"
    POOL_UPGRADE = "109"
    NODE_UPGRADE = "110"
    POOL_CONFIG = "111"
    AUTH_RULE = "120"
    GET_AUTH_RULE = "121"
    SET_CONTEXT = "200"
    RICH_SCHEMA = "201"
    GET_CONTEXT = "300"
    GET_RICH_SCHEMA = "301"
    AUCTION_START = "99990"
    HANDLE = "99994"
    GET_HANDLE = "99996"


# Types answered by a single node with a state proof; never signed.
READ_TXN_TYPES: frozenset[str] = frozenset(
    {
        TxnType.GET_TXN,
        TxnType.GET_TXN_AUTHOR_AGREEMENT,
        TxnType.GET_TXN_AUTHOR_AGREEMENT_AML,
        TxnType.GET_ATTR,
        TxnType.GET_NYM,
        TxnType.GET_SCHEMA,
        TxnType.GET_CLAIM_DEF,
        TxnType.GET_AUTH_RULE,
        TxnType.GET_CONTEXT,
        TxnType.GET_RICH_SCHEMA,
        TxnType.GET_HANDLE,
    }
)


def is_read_type(txn_type: str) -> bool:
    """Whether a type code names a read (GET_*) operation."""
    return txn_type in READ_TXN_TYPES


class Role(StrEnum):
    """NYM roles. A plain user has no role (field omitted)."""

    TRUSTEE = "0"
    STEWARD = "2"
    ENDORSER = "101"
    NETWORK_MONITOR = "201"


class AuthAction(StrEnum):
    """AUTH_RULE actions."""

    ADD = "ADD"
    EDIT = "EDIT"


class LedgerId(IntEnum):
    """Ledger identifiers accepted by GET_TXN."""

    POOL = 0
    DOMAIN = 1
    CONFIG = 2


# Rich schema object type tags.
RS_TYPE_SCHEMA = "sch"
RS_TYPE_CONTEXT = "ctx"

# Default rich schema / context format version.
RS_FORMAT_VERSION = "2"
