"""
Ledger client — convenience facade over SubmissionPipeline.

One method per common ledger interaction. Reads use the client's default
submitter (``LibindyDid111111111111`` unless configured); writes take the
submitter DID and its signer explicitly, plus an optional endorser.

Usage:

    async with LedgerClient.from_config(ClientConfig.from_env()) as client:
        reply = await client.get_nym("FzAaV9Waa1DccDa72qwg13")
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Mapping

from vdr_protocol.canonical_json import canonical_json
from vdr_protocol.config import ClientConfig
from vdr_protocol.constants import DEFAULT_REQUEST_DID, AuthAction, LedgerId, Role
from vdr_protocol.errors import ProtocolError, SigningError
from vdr_protocol.operations import (
    Attrib,
    AuctionStart,
    AuthRule,
    ClaimDef,
    Context,
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
from vdr_protocol.reply import PoolStatus, ReadReply, WriteReply
from vdr_protocol.request import TaaAcceptance, build_request
from vdr_protocol.signer import Signer
from vdr_protocol.transport import HttpxProxyTransport, PoolTransport

logger = logging.getLogger(__name__)


class LedgerClient:
    """High-level ledger client.

    Args:
        pipeline: An open submission pipeline.
        genesis: The genesis transactions the pool was opened with.
        submitter_did: Submitter for reads.
    """

    def __init__(
        self,
        pipeline: SubmissionPipeline,
        genesis: bytes,
        submitter_did: str = DEFAULT_REQUEST_DID,
    ) -> None:
        self._pipeline = pipeline
        self._genesis = genesis
        self._submitter_did = submitter_did

    @classmethod
    def open(
        cls,
        genesis: bytes | str,
        transport: PoolTransport,
        submitter_did: str = DEFAULT_REQUEST_DID,
    ) -> "LedgerClient":
        """Open a pool through ``transport`` and return a client for it.

        Raises:
            TransportError: If the transport cannot open the pool.
        """
        raw = genesis.encode("utf-8") if isinstance(genesis, str) else genesis
        pipeline = SubmissionPipeline.open(transport, raw)
        return cls(pipeline, raw, submitter_did)

    @classmethod
    def from_config(cls, config: ClientConfig) -> "LedgerClient":
        """Open a client over an HTTP proxy transport described by ``config``."""
        transport = HttpxProxyTransport(config.proxy_url, timeout=config.timeout)
        logger.debug("opening client via proxy %s", config.proxy_url)
        return cls.open(config.read_genesis(), transport, config.default_submitter)

    @property
    def genesis(self) -> bytes:
        return self._genesis

    @property
    def pipeline(self) -> SubmissionPipeline:
        return self._pipeline

    async def __aenter__(self) -> "LedgerClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._pipeline.close()

    async def refresh(self) -> None:
        await self._pipeline.refresh()

    async def status(self) -> PoolStatus:
        return await self._pipeline.status()

    # =====================================================================
    # Reads
    # =====================================================================

    async def _read(self, operation: Operation) -> ReadReply:
        request = build_request(operation, self._submitter_did)
        return await self._pipeline.submit_read(request)

    async def get_nym(
        self, did: str, *, seq_no: int | None = None, timestamp: int | None = None
    ) -> ReadReply:
        return await self._read(GetNym(dest=did, seq_no=seq_no, timestamp=timestamp))

    async def get_attrib(
        self,
        did: str,
        *,
        raw: str | None = None,
        hash: str | None = None,
        enc: str | None = None,
        seq_no: int | None = None,
        timestamp: int | None = None,
    ) -> ReadReply:
        return await self._read(
            GetAttrib(dest=did, raw=raw, hash=hash, enc=enc, seq_no=seq_no, timestamp=timestamp)
        )

    async def get_endpoint(self, did: str) -> str | None:
        """Service endpoint published with ``set_endpoint``, or None."""
        reply = await self.get_attrib(did, raw="endpoint")
        data = reply.data
        if data is None:
            return None
        if not isinstance(data, dict) or not isinstance(data.get("endpoint"), dict):
            raise ProtocolError(f"endpoint attribute has unexpected shape: {data!r}")
        endpoint = data["endpoint"].get("endpoint")
        return str(endpoint) if endpoint is not None else None

    async def get_schema(self, schema_id: str) -> ReadReply:
        return await self._read(GetSchema.from_schema_id(schema_id))

    async def get_cred_def(self, cred_def_id: str) -> ReadReply:
        return await self._read(GetClaimDef.from_cred_def_id(cred_def_id))

    async def get_auth_rules(self) -> ReadReply:
        return await self._read(GetAuthRule())

    async def get_txn_type_auth_rule(
        self,
        auth_type: str,
        auth_action: AuthAction,
        field: str,
        *,
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> ReadReply:
        return await self._read(
            GetAuthRule(
                auth_type=auth_type,
                auth_action=auth_action,
                field=field,
                old_value=old_value,
                new_value=new_value,
            )
        )

    async def get_txn_author_agreement(
        self,
        *,
        version: str | None = None,
        digest: str | None = None,
        timestamp: int | None = None,
    ) -> ReadReply:
        return await self._read(
            GetTxnAuthorAgreement(version=version, digest=digest, timestamp=timestamp)
        )

    async def get_acceptance_mechanisms(
        self, *, version: str | None = None, timestamp: int | None = None
    ) -> ReadReply:
        return await self._read(GetAcceptanceMechanisms(version=version, timestamp=timestamp))

    async def get_rich_schema(self, did: str, name: str, version: str) -> ReadReply:
        return await self._read(GetRichSchema(dest=did, name=name, version=version))

    async def get_context(self, did: str, name: str, version: str) -> ReadReply:
        return await self._read(GetContext(dest=did, name=name, version=version))

    async def get_handle(self, did: str, handle: str) -> ReadReply:
        return await self._read(GetHandle(dest=did, handle=handle))

    async def get_txn(self, seq_no: int, ledger_id: LedgerId = LedgerId.DOMAIN) -> ReadReply:
        return await self._read(GetTxn(seq_no=seq_no, ledger_id=ledger_id))

    # =====================================================================
    # Writes
    # =====================================================================

    async def _write(
        self,
        operation: Operation,
        submitter_did: str,
        signer: Signer,
        *,
        endorser_did: str | None = None,
        endorser: Signer | None = None,
        taa_acceptance: TaaAcceptance | None = None,
    ) -> WriteReply:
        request = build_request(
            operation,
            submitter_did,
            endorser_did=endorser_did,
            taa_acceptance=taa_acceptance,
        )
        if endorser_did is None:
            return await self._pipeline.submit_write(request, signer)
        if endorser is None:
            raise SigningError("endorser_did given without an endorser signer")
        return await self._pipeline.submit_endorsed(
            request, submitter_did, signer, endorser_did, endorser
        )

    async def create_nym(
        self,
        submitter_did: str,
        signer: Signer,
        dest: str,
        *,
        verkey: str | None = None,
        role: Role | str | None = None,
        alias: str | None = None,
        diddoc_content: str | Mapping[str, Any] | None = None,
        version: int | None = None,
        **write_options: Any,
    ) -> WriteReply:
        """Write a NYM record.

        ``diddoc_content`` (JSON text or an object) and ``version`` are
        sent as ``diddocContent`` / ``version`` when given.

        ``write_options`` are ``endorser_did``, ``endorser`` and
        ``taa_acceptance`` (the same for every write method).
        """
        operation = Nym(
            dest=dest,
            verkey=verkey,
            role=role,
            alias=alias,
            diddoc_content=diddoc_content,
            version=version,
        )
        return await self._write(operation, submitter_did, signer, **write_options)

    async def create_attrib(
        self,
        submitter_did: str,
        signer: Signer,
        dest: str,
        *,
        raw: Mapping[str, Any] | None = None,
        hash: str | None = None,
        enc: str | None = None,
        **write_options: Any,
    ) -> WriteReply:
        raw_text = canonical_json(dict(raw)) if raw is not None else None
        operation = Attrib(dest=dest, raw=raw_text, hash=hash, enc=enc)
        return await self._write(operation, submitter_did, signer, **write_options)

    async def set_endpoint(
        self,
        submitter_did: str,
        signer: Signer,
        dest: str,
        endpoint: str,
        **write_options: Any,
    ) -> WriteReply:
        return await self._write(
            Attrib.endpoint(dest, endpoint), submitter_did, signer, **write_options
        )

    async def create_schema(
        self,
        submitter_did: str,
        signer: Signer,
        name: str,
        version: str,
        attr_names: list[str] | tuple[str, ...],
        **write_options: Any,
    ) -> str:
        """Write a schema and return its ledger id (``txnMetadata.txnId``).

        Raises:
            ProtocolError: If the reply carries no txnId.
        """
        reply = await self._write(
            Schema(name=name, version=version, attr_names=tuple(attr_names)),
            submitter_did,
            signer,
            **write_options,
        )
        if reply.txn_metadata.txn_id is None:
            raise ProtocolError("schema reply carries no txnId", txn_type=reply.txn_type)
        return reply.txn_metadata.txn_id

    async def create_cred_def(
        self,
        submitter_did: str,
        signer: Signer,
        schema_seq_no: int,
        data: Mapping[str, Any],
        *,
        tag: str = "default",
        **write_options: Any,
    ) -> WriteReply:
        return await self._write(
            ClaimDef(ref=schema_seq_no, data=data, tag=tag),
            submitter_did,
            signer,
            **write_options,
        )

    async def create_rich_schema(
        self,
        submitter_did: str,
        signer: Signer,
        id: str,
        content: str | Mapping[str, Any],
        name: str,
        version: str,
        **write_options: Any,
    ) -> WriteReply:
        return await self._write(
            RichSchema(id=id, content=content, name=name, version=version),
            submitter_did,
            signer,
            **write_options,
        )

    async def create_context(
        self,
        submitter_did: str,
        signer: Signer,
        id: str,
        content: str | Mapping[str, Any],
        name: str,
        version: str,
        **write_options: Any,
    ) -> WriteReply:
        return await self._write(
            Context(id=id, content=content, name=name, version=version),
            submitter_did,
            signer,
            **write_options,
        )

    async def set_auth_rule(
        self,
        submitter_did: str,
        signer: Signer,
        auth_type: str,
        auth_action: AuthAction,
        field: str,
        constraint: Mapping[str, Any],
        *,
        old_value: str | None = None,
        new_value: str | None = None,
        **write_options: Any,
    ) -> WriteReply:
        operation = AuthRule(
            auth_type=auth_type,
            auth_action=auth_action,
            field=field,
            constraint=constraint,
            old_value=old_value,
            new_value=new_value,
        )
        return await self._write(operation, submitter_did, signer, **write_options)

    async def add_handle(
        self,
        submitter_did: str,
        signer: Signer,
        dest: str,
        handle: str,
        **write_options: Any,
    ) -> WriteReply:
        return await self._write(
            Handle(dest=dest, handle=handle), submitter_did, signer, **write_options
        )

    async def start_auction(
        self,
        submitter_did: str,
        signer: Signer,
        dest: str,
        auctionid: str,
        handle: str,
        **write_options: Any,
    ) -> WriteReply:
        return await self._write(
            AuctionStart(dest=dest, auctionid=auctionid, handle=handle),
            submitter_did,
            signer,
            **write_options,
        )
