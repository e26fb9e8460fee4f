"""
Operation catalog — one frozen dataclass per ledger operation kind.

Each operation is a pure "recipe": no secrets, no network state, no
envelope metadata. ``to_dict()`` produces the ``operation`` object of the
wire request.

Every kind carries only its legal fields. Absent fields are omitted from
``to_dict()`` entirely (never emitted as null) because the signature
covers the exact JSON shape.

Constructors check arguments that the kind cannot do without and raise
``BuildError``. DID syntax is not validated here; the ledger does that
on submission.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from vdr_protocol.canonical_json import canonical_json
from vdr_protocol.constants import (
    RS_FORMAT_VERSION,
    RS_TYPE_CONTEXT,
    RS_TYPE_SCHEMA,
    AuthAction,
    LedgerId,
    Role,
    TxnType,
    is_read_type,
)
from vdr_protocol.errors import BuildError
from vdr_protocol.integrity import attrib_hash

# =========================================================================
# Helpers
# =========================================================================


def _require(value: str | None, name: str, txn_type: str) -> None:
    if not value:
        raise BuildError(f"{name} must be non-empty", txn_type=txn_type)


def _exactly_one(txn_type: str, **candidates: Any) -> None:
    present = [name for name, value in candidates.items() if value is not None]
    if len(present) != 1:
        names = "/".join(candidates)
        raise BuildError(
            f"exactly one of {names} is required, got: {present or 'none'}",
            txn_type=txn_type,
        )


def _json_text(value: Any) -> Any:
    """Ledger-side JSON documents travel as strings; encode dicts/lists."""
    if isinstance(value, (dict, list)):
        return canonical_json(value)
    return value


# =========================================================================
# Base
# =========================================================================


@dataclass(frozen=True)
class Operation:
    """Base for every operation kind.

    Subclasses set ``txn_type`` and implement ``_wire_fields()``.
    """

    txn_type: ClassVar[str]

    def _wire_fields(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        """Wire ``operation`` object with absent fields omitted."""
        body: dict[str, Any] = {"type": str(self.txn_type)}
        for key, value in self._wire_fields().items():
            if value is not None:
                body[key] = value
        return body

    @property
    def is_read(self) -> bool:
        return is_read_type(self.txn_type)


# =========================================================================
# Identity: NYM / ATTRIB
# =========================================================================


@dataclass(frozen=True)
class Nym(Operation):
    """Create or update the identity record of ``dest``."""

    txn_type = TxnType.NYM

    dest: str
    verkey: str | None = None
    role: Role | str | None = None
    alias: str | None = None
    diddoc_content: str | Mapping[str, Any] | None = None
    version: int | None = None

    def __post_init__(self) -> None:
        _require(self.dest, "dest", self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {
            "dest": self.dest,
            "verkey": self.verkey,
            "role": str(self.role) if self.role is not None else None,
            "alias": self.alias,
            "diddocContent": _json_text(
                dict(self.diddoc_content)
                if isinstance(self.diddoc_content, Mapping)
                else self.diddoc_content
            ),
            "version": self.version,
        }


@dataclass(frozen=True)
class GetNym(Operation):
    txn_type = TxnType.GET_NYM

    dest: str
    seq_no: int | None = None
    timestamp: int | None = None

    def __post_init__(self) -> None:
        _require(self.dest, "dest", self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {"dest": self.dest, "seqNo": self.seq_no, "timestamp": self.timestamp}


@dataclass(frozen=True)
class Attrib(Operation):
    """Attach an attribute to ``dest``.

    Exactly one of ``raw`` (JSON text), ``hash`` (hex sha256) or ``enc``
    (encrypted blob) is carried.
    """

    txn_type = TxnType.ATTRIB

    dest: str
    raw: str | None = None
    hash: str | None = None
    enc: str | None = None

    def __post_init__(self) -> None:
        _require(self.dest, "dest", self.txn_type)
        _exactly_one(self.txn_type, raw=self.raw, hash=self.hash, enc=self.enc)

    def _wire_fields(self) -> dict[str, Any]:
        return {"dest": self.dest, "raw": self.raw, "hash": self.hash, "enc": self.enc}

    @classmethod
    def raw_json(cls, dest: str, data: Mapping[str, Any]) -> "Attrib":
        """Raw attribute from a JSON object, e.g. ``{"endpoint": {...}}``."""
        if not data:
            raise BuildError("raw attribute data must be non-empty", txn_type=cls.txn_type)
        return cls(dest=dest, raw=canonical_json(dict(data)))

    @classmethod
    def hashed(cls, dest: str, data: Mapping[str, Any]) -> "Attrib":
        """Hashed attribute: sha256 over the canonical JSON of ``data``."""
        if not data:
            raise BuildError("hashed attribute data must be non-empty", txn_type=cls.txn_type)
        return cls(dest=dest, hash=attrib_hash(data))

    @classmethod
    def endpoint(cls, dest: str, endpoint: str) -> "Attrib":
        """The conventional ``{"endpoint": {"endpoint": url}}`` attribute."""
        _require(endpoint, "endpoint", cls.txn_type)
        return cls.raw_json(dest, {"endpoint": {"endpoint": endpoint}})


@dataclass(frozen=True)
class GetAttrib(Operation):
    """Read one attribute of ``dest``; ``raw`` names the attribute."""

    txn_type = TxnType.GET_ATTR

    dest: str
    raw: str | None = None
    hash: str | None = None
    enc: str | None = None
    seq_no: int | None = None
    timestamp: int | None = None

    def __post_init__(self) -> None:
        _require(self.dest, "dest", self.txn_type)
        _exactly_one(self.txn_type, raw=self.raw, hash=self.hash, enc=self.enc)

    def _wire_fields(self) -> dict[str, Any]:
        return {
            "dest": self.dest,
            "raw": self.raw,
            "hash": self.hash,
            "enc": self.enc,
            "seqNo": self.seq_no,
            "timestamp": self.timestamp,
        }


# =========================================================================
# Schemas and credential definitions
# =========================================================================


@dataclass(frozen=True)
class Schema(Operation):
    txn_type = TxnType.SCHEMA

    name: str
    version: str
    attr_names: tuple[str, ...]

    def __post_init__(self) -> None:
        _require(self.name, "name", self.txn_type)
        _require(self.version, "version", self.txn_type)
        if not self.attr_names:
            raise BuildError("attr_names must be non-empty", txn_type=self.txn_type)
        # Accept any iterable of names but store an immutable tuple.
        object.__setattr__(self, "attr_names", tuple(self.attr_names))

    def _wire_fields(self) -> dict[str, Any]:
        return {
            "data": {
                "name": self.name,
                "version": self.version,
                "attr_names": list(self.attr_names),
            }
        }


@dataclass(frozen=True)
class GetSchema(Operation):
    txn_type = TxnType.GET_SCHEMA

    dest: str
    name: str
    version: str

    def __post_init__(self) -> None:
        _require(self.dest, "dest", self.txn_type)
        _require(self.name, "name", self.txn_type)
        _require(self.version, "version", self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {"dest": self.dest, "data": {"name": self.name, "version": self.version}}

    @classmethod
    def from_schema_id(cls, schema_id: str) -> "GetSchema":
        """Parse ``<issuer_did>:2:<name>:<version>``."""
        parts = schema_id.split(":")
        if len(parts) != 4 or parts[1] != "2":
            raise BuildError(
                f"schema id must look like '<did>:2:<name>:<version>', got: {schema_id!r}",
                txn_type=cls.txn_type,
            )
        return cls(dest=parts[0], name=parts[2], version=parts[3])


@dataclass(frozen=True)
class ClaimDef(Operation):
    """Credential definition over the schema with sequence number ``ref``."""

    txn_type = TxnType.CLAIM_DEF

    ref: int
    data: Mapping[str, Any]
    tag: str = "default"
    signature_type: str = "CL"

    def __post_init__(self) -> None:
        if self.ref < 1:
            raise BuildError(f"ref must be >= 1, got: {self.ref}", txn_type=self.txn_type)
        if not self.data:
            raise BuildError("data must be non-empty", txn_type=self.txn_type)
        _require(self.tag, "tag", self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {
            "ref": self.ref,
            "signature_type": self.signature_type,
            "tag": self.tag,
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class GetClaimDef(Operation):
    txn_type = TxnType.GET_CLAIM_DEF

    origin: str
    ref: int
    tag: str = "default"
    signature_type: str = "CL"

    def __post_init__(self) -> None:
        _require(self.origin, "origin", self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {
            "origin": self.origin,
            "ref": self.ref,
            "signature_type": self.signature_type,
            "tag": self.tag,
        }

    @classmethod
    def from_cred_def_id(cls, cred_def_id: str) -> "GetClaimDef":
        """Parse ``<origin_did>:3:<signature_type>:<ref>:<tag>``."""
        parts = cred_def_id.split(":")
        if len(parts) != 5 or parts[1] != "3" or not parts[3].isdigit():
            raise BuildError(
                "credential definition id must look like "
                f"'<did>:3:CL:<seq_no>:<tag>', got: {cred_def_id!r}",
                txn_type=cls.txn_type,
            )
        return cls(origin=parts[0], ref=int(parts[3]), tag=parts[4], signature_type=parts[2])


# =========================================================================
# Rich schema objects (RICH_SCHEMA / SET_CONTEXT)
# =========================================================================


@dataclass(frozen=True)
class _RichObject(Operation):
    rs_type: ClassVar[str]

    id: str
    content: str | Mapping[str, Any]
    name: str
    version: str
    ver: str = RS_FORMAT_VERSION

    def __post_init__(self) -> None:
        _require(self.id, "id", self.txn_type)
        _require(self.name, "name", self.txn_type)
        _require(self.version, "version", self.txn_type)
        if not self.content:
            raise BuildError("content must be non-empty", txn_type=self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        content = dict(self.content) if isinstance(self.content, Mapping) else self.content
        return {
            "id": self.id,
            "content": _json_text(content),
            "rsName": self.name,
            "rsVersion": self.version,
            "rsType": self.rs_type,
            "ver": self.ver,
        }


@dataclass(frozen=True)
class RichSchema(_RichObject):
    txn_type = TxnType.RICH_SCHEMA
    rs_type = RS_TYPE_SCHEMA


@dataclass(frozen=True)
class Context(_RichObject):
    """JSON-LD context object."""

    txn_type = TxnType.SET_CONTEXT
    rs_type = RS_TYPE_CONTEXT


@dataclass(frozen=True)
class _GetRichObject(Operation):
    dest: str
    name: str
    version: str

    def __post_init__(self) -> None:
        _require(self.dest, "dest", self.txn_type)
        _require(self.name, "name", self.txn_type)
        _require(self.version, "version", self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {"dest": self.dest, "data": {"name": self.name, "version": self.version}}


@dataclass(frozen=True)
class GetRichSchema(_GetRichObject):
    txn_type = TxnType.GET_RICH_SCHEMA


@dataclass(frozen=True)
class GetContext(_GetRichObject):
    txn_type = TxnType.GET_CONTEXT


# =========================================================================
# Authorization rules
# =========================================================================


@dataclass(frozen=True)
class AuthRule(Operation):
    """Set the constraint for one (txn type, action, field) combination."""

    txn_type = TxnType.AUTH_RULE

    auth_type: str
    auth_action: AuthAction
    field: str
    constraint: Mapping[str, Any]
    old_value: str | None = None
    new_value: str | None = None

    def __post_init__(self) -> None:
        _require(self.auth_type, "auth_type", self.txn_type)
        _require(self.field, "field", self.txn_type)
        if not self.constraint:
            raise BuildError("constraint must be non-empty", txn_type=self.txn_type)
        if self.auth_action == AuthAction.ADD and self.old_value is not None:
            raise BuildError("old_value is not allowed for ADD rules", txn_type=self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {
            "auth_type": str(self.auth_type),
            "auth_action": str(self.auth_action),
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "constraint": dict(self.constraint),
        }


@dataclass(frozen=True)
class GetAuthRule(Operation):
    """Query AUTH rules.

    With no arguments every rule is returned. Otherwise ``auth_type``,
    ``auth_action`` and ``field`` are all required; ``old_value`` is only
    meaningful for EDIT.
    """

    txn_type = TxnType.GET_AUTH_RULE

    auth_type: str | None = None
    auth_action: AuthAction | None = None
    field: str | None = None
    old_value: str | None = None
    new_value: str | None = None

    def __post_init__(self) -> None:
        filters = (self.auth_type, self.auth_action, self.field)
        if any(v is not None for v in (*filters, self.old_value, self.new_value)):
            if any(not v for v in filters):
                raise BuildError(
                    "auth_type, auth_action and field are required together",
                    txn_type=self.txn_type,
                )
        if self.auth_action == AuthAction.ADD and self.old_value is not None:
            raise BuildError("old_value is not allowed for ADD rules", txn_type=self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {
            "auth_type": str(self.auth_type) if self.auth_type is not None else None,
            "auth_action": str(self.auth_action) if self.auth_action is not None else None,
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


# =========================================================================
# Handles and auctions
# =========================================================================


@dataclass(frozen=True)
class Handle(Operation):
    txn_type = TxnType.HANDLE

    dest: str
    handle: str

    def __post_init__(self) -> None:
        _require(self.dest, "dest", self.txn_type)
        _require(self.handle, "handle", self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {"dest": self.dest, "handle": self.handle}


@dataclass(frozen=True)
class GetHandle(Handle):
    txn_type = TxnType.GET_HANDLE


@dataclass(frozen=True)
class AuctionStart(Operation):
    txn_type = TxnType.AUCTION_START

    dest: str
    auctionid: str
    handle: str

    def __post_init__(self) -> None:
        _require(self.dest, "dest", self.txn_type)
        _require(self.auctionid, "auctionid", self.txn_type)
        _require(self.handle, "handle", self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {"dest": self.dest, "auctionid": self.auctionid, "handle": self.handle}


# =========================================================================
# Ledger reads: transactions, TAA, AML
# =========================================================================


@dataclass(frozen=True)
class GetTxn(Operation):
    txn_type = TxnType.GET_TXN

    seq_no: int
    ledger_id: LedgerId = LedgerId.DOMAIN

    def __post_init__(self) -> None:
        if self.seq_no < 1:
            raise BuildError(f"seq_no must be >= 1, got: {self.seq_no}", txn_type=self.txn_type)

    def _wire_fields(self) -> dict[str, Any]:
        return {"ledgerId": int(self.ledger_id), "data": self.seq_no}


@dataclass(frozen=True)
class GetTxnAuthorAgreement(Operation):
    """Latest TAA, or a specific one by version, digest or timestamp."""

    txn_type = TxnType.GET_TXN_AUTHOR_AGREEMENT

    version: str | None = None
    digest: str | None = None
    timestamp: int | None = None

    def _wire_fields(self) -> dict[str, Any]:
        return {"version": self.version, "digest": self.digest, "timestamp": self.timestamp}


@dataclass(frozen=True)
class GetAcceptanceMechanisms(Operation):
    txn_type = TxnType.GET_TXN_AUTHOR_AGREEMENT_AML

    version: str | None = None
    timestamp: int | None = None

    def _wire_fields(self) -> dict[str, Any]:
        return {"version": self.version, "timestamp": self.timestamp}


# =========================================================================
# Custom
# =========================================================================


@dataclass(frozen=True)
class CustomOperation(Operation):
    """Caller-shaped operation. The body is transmitted as given."""

    body: Mapping[str, Any]

    def __post_init__(self) -> None:
        txn_type = self.body.get("type") if isinstance(self.body, Mapping) else None
        if not isinstance(txn_type, str) or not txn_type:
            raise BuildError("custom operation requires a string 'type'")

    @property  # type: ignore[override]
    def txn_type(self) -> str:
        return str(self.body["type"])

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self.body))
