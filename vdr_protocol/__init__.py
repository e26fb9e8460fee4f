"""
Request/reply protocol engine for Indy-style permissioned ledgers.

Public API:

    Pure layer (no I/O):
        - Operation catalog: ``Nym``, ``GetNym``, ``Attrib``, ``Schema``, ...
          one frozen dataclass per ledger operation kind.
        - ``build_request()`` — wrap an operation in a request envelope.
        - ``canonicalize()`` / ``endorsement_input()`` — signing bytes.
        - ``sign_request()`` / ``endorse_request()`` — attach signatures.
        - ``parse_read_reply()`` / ``parse_write_reply()`` — typed replies.

    Impure layer (pool I/O):
        - ``SubmissionPipeline`` — sign, submit, correlate, parse.
        - ``LedgerClient`` — per-interaction convenience methods.

    Protocols (for dependency injection):
        - ``PoolTransport`` — network boundary (callback-based).
        - ``Signer`` — secrets boundary (sign bytes).

    Concrete implementations:
        - ``Ed25519Signer`` — cryptography-backed signer.
        - ``HttpxProxyTransport`` — HTTP gateway transport.

    Errors:
        - ``LedgerError`` and subclasses; ``ErrorCode`` transport codes.
"""

from vdr_protocol.client import LedgerClient
from vdr_protocol.config import ClientConfig
from vdr_protocol.constants import (
    DEFAULT_REQUEST_DID,
    PROTOCOL_VERSION,
    AuthAction,
    LedgerId,
    Role,
    TxnType,
)
from vdr_protocol.errors import (
    BuildError,
    ConfigError,
    ErrorCode,
    LedgerError,
    LedgerRejection,
    ProtocolError,
    SerializationError,
    SigningError,
    TransportError,
    classify_error_code,
    is_transient,
)
from vdr_protocol.operations import (
    Attrib,
    AuctionStart,
    AuthRule,
    ClaimDef,
    Context,
    CustomOperation,
    GetAcceptanceMechanisms,
    GetAttrib,
    GetAuthRule,
    GetClaimDef,
    GetContext,
    GetHandle,
    GetNym,
    GetRichSchema,
    GetSchema,
    GetTxn,
    GetTxnAuthorAgreement,
    Handle,
    Nym,
    Operation,
    RichSchema,
    Schema,
)
from vdr_protocol.pipeline import SubmissionPipeline
from vdr_protocol.reply import (
    PoolStatus,
    ReadReply,
    TxnMetadata,
    WriteReply,
    parse_pool_status,
    parse_read_reply,
    parse_reply,
    parse_write_reply,
)
from vdr_protocol.request import Request, TaaAcceptance, build_request
from vdr_protocol.serialize import canonicalize, encode_wire, endorsement_input
from vdr_protocol.signer import (
    Ed25519Signer,
    Signer,
    add_author_signature,
    add_endorser_signature,
    endorse_request,
    sign_request,
    verify_request,
    verify_signature,
)
from vdr_protocol.transport import HttpxProxyTransport, PoolHandle, PoolTransport

__all__ = [
    # Constants
    "DEFAULT_REQUEST_DID",
    "PROTOCOL_VERSION",
    "AuthAction",
    "LedgerId",
    "Role",
    "TxnType",
    # Operations
    "Operation",
    "Nym",
    "GetNym",
    "Attrib",
    "GetAttrib",
    "Schema",
    "GetSchema",
    "ClaimDef",
    "GetClaimDef",
    "RichSchema",
    "GetRichSchema",
    "Context",
    "GetContext",
    "AuthRule",
    "GetAuthRule",
    "Handle",
    "GetHandle",
    "AuctionStart",
    "GetTxn",
    "GetTxnAuthorAgreement",
    "GetAcceptanceMechanisms",
    "CustomOperation",
    # Requests
    "Request",
    "TaaAcceptance",
    "build_request",
    "canonicalize",
    "endorsement_input",
    "encode_wire",
    # Signing
    "Signer",
    "Ed25519Signer",
    "sign_request",
    "add_author_signature",
    "add_endorser_signature",
    "endorse_request",
    "verify_signature",
    "verify_request",
    # Replies
    "ReadReply",
    "WriteReply",
    "TxnMetadata",
    "PoolStatus",
    "parse_reply",
    "parse_read_reply",
    "parse_write_reply",
    "parse_pool_status",
    # Pool I/O
    "PoolHandle",
    "PoolTransport",
    "HttpxProxyTransport",
    "SubmissionPipeline",
    "LedgerClient",
    "ClientConfig",
    # Errors
    "ErrorCode",
    "classify_error_code",
    "is_transient",
    "LedgerError",
    "BuildError",
    "SerializationError",
    "SigningError",
    "TransportError",
    "LedgerRejection",
    "ProtocolError",
    "ConfigError",
]
