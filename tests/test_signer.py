"""
Tests for the signer abstraction and request signing.

Uses the well-known test-pool trustee seed so DIDs and verkeys match
what a local ledger would report.

Test plan:
- Ed25519Signer: seed → DID / verkey, bad seed rejected
- Single signer: NYM with role 101 and fixed reqId has fixed canonical
  bytes and a fixed signature, signs deterministically,
  signature verifies against canonical bytes, reads refused
- Endorsement: author signs canonical bytes, endorser signs over the
  author's entry, order enforced, endorser field must name the endorser,
  verify_request checks both
- Signer failures surface as SigningError
"""

import base58
import pytest

from vdr_protocol.constants import Role
from vdr_protocol.errors import SigningError
from vdr_protocol.operations import GetNym, Nym
from vdr_protocol.request import build_request
from vdr_protocol.serialize import canonicalize, endorsement_input
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

TRUSTEE_SEED = "000000000000000000000000Trustee1"
TRUSTEE_DID = "V4SGRU86Z58d6TV7PBUe6f"
TRUSTEE_VERKEY = "GJ1SzoWzavQYfNL9XkaJdrQejfztN4XqdsiV4ct3LXKL"

AUTHOR_SEED = b"author-seed-000000000000000000!!"
NEW_DID = "FzAaV9Waa1DccDa72qwg13"

NYM_CANONICAL = (
    b'{"identifier":"V4SGRU86Z58d6TV7PBUe6f",'
    b'"operation":{"dest":"FzAaV9Waa1DccDa72qwg13","role":"101","type":"1",'
    b'"verkey":"~HFPBKTr4VcaT7CT2SEQ4Wt"},'
    b'"protocolVersion":2,"reqId":1585221529}'
)
NYM_SIGNATURE = (
    "7pUpdkQ8DmADE8am2tyUWkTMgJzym8dj5bLc7u7mi6qrkjmKCa6o1kstRdzByNKTGrt7fCtg3Y9oLyGFrTgYb7Z"
)


# ---------------------------------------------------------------------------
# Fake signers
# ---------------------------------------------------------------------------


class RecordingSigner:
    """Returns a fixed signature and remembers what it was asked to sign."""

    def __init__(self, signature: bytes = b"\x01\x02\x03") -> None:
        self._signature = signature
        self.messages: list[bytes] = []

    def sign(self, message: bytes) -> bytes:
        self.messages.append(message)
        return self._signature


class BrokenSigner:
    def sign(self, message: bytes) -> bytes:
        raise RuntimeError("hsm unavailable")


class EmptySigner:
    def sign(self, message: bytes) -> bytes:
        return b""


def _nym_request(**kwargs):
    op = Nym(dest=NEW_DID, verkey="~HFPBKTr4VcaT7CT2SEQ4Wt", role=Role.ENDORSER)
    return build_request(op, TRUSTEE_DID, req_id=1585221529, **kwargs)


# ---------------------------------------------------------------------------
# Ed25519Signer
# ---------------------------------------------------------------------------


class TestEd25519Signer:
    def test_trustee_seed_did(self) -> None:
        assert Ed25519Signer.from_seed(TRUSTEE_SEED).did == TRUSTEE_DID

    def test_trustee_seed_verkey(self) -> None:
        assert Ed25519Signer.from_seed(TRUSTEE_SEED).verkey == TRUSTEE_VERKEY

    def test_bytes_and_str_seed_agree(self) -> None:
        a = Ed25519Signer.from_seed(TRUSTEE_SEED)
        b = Ed25519Signer.from_seed(TRUSTEE_SEED.encode("utf-8"))
        assert a.verkey == b.verkey

    def test_short_seed_rejected(self) -> None:
        with pytest.raises(SigningError):
            Ed25519Signer.from_seed("too-short")

    def test_generate_distinct(self) -> None:
        assert Ed25519Signer.generate().verkey != Ed25519Signer.generate().verkey

    def test_satisfies_protocol(self) -> None:
        assert isinstance(Ed25519Signer.generate(), Signer)


# ---------------------------------------------------------------------------
# Single signer
# ---------------------------------------------------------------------------


class TestSignRequest:
    def test_nym_canonical_bytes(self) -> None:
        assert canonicalize(_nym_request()) == NYM_CANONICAL

    def test_nym_signature_golden(self) -> None:
        signed = sign_request(_nym_request(), Ed25519Signer.from_seed(TRUSTEE_SEED))
        assert signed.signature == NYM_SIGNATURE

    def test_nym_signature_deterministic(self) -> None:
        signer = Ed25519Signer.from_seed(TRUSTEE_SEED)
        first = sign_request(_nym_request(), signer)
        second = sign_request(_nym_request(), Ed25519Signer.from_seed(TRUSTEE_SEED))
        assert first.signature == second.signature
        assert len(base58.b58decode(first.signature)) == 64

    def test_nym_signature_verifies(self) -> None:
        signed = sign_request(_nym_request(), Ed25519Signer.from_seed(TRUSTEE_SEED))
        assert verify_signature(TRUSTEE_VERKEY, canonicalize(signed), signed.signature)
        assert verify_request(signed, {TRUSTEE_DID: TRUSTEE_VERKEY})

    def test_signs_canonical_bytes(self) -> None:
        signer = RecordingSigner()
        request = _nym_request()
        sign_request(request, signer)
        assert signer.messages == [canonicalize(request)]

    def test_signature_is_base58(self) -> None:
        signed = sign_request(_nym_request(), RecordingSigner(b"\x01\x02\x03"))
        assert signed.signature == base58.b58encode(b"\x01\x02\x03").decode("ascii")
        assert signed.signatures == {}

    def test_tampered_request_fails_verification(self) -> None:
        signed = sign_request(_nym_request(), Ed25519Signer.from_seed(TRUSTEE_SEED))
        other = build_request(Nym(dest=NEW_DID), TRUSTEE_DID, req_id=1585221529)
        assert not verify_request(
            other.with_signature(signed.signature), {TRUSTEE_DID: TRUSTEE_VERKEY}
        )

    def test_read_refused(self) -> None:
        request = build_request(GetNym(dest=NEW_DID), TRUSTEE_DID)
        with pytest.raises(SigningError):
            sign_request(request, RecordingSigner())

    def test_signer_exception_wrapped(self) -> None:
        with pytest.raises(SigningError) as exc_info:
            sign_request(_nym_request(), BrokenSigner())
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.txn_type == "1"

    def test_empty_signature_rejected(self) -> None:
        with pytest.raises(SigningError):
            sign_request(_nym_request(), EmptySigner())


# ---------------------------------------------------------------------------
# Endorsement
# ---------------------------------------------------------------------------


class TestEndorsement:
    def setup_method(self) -> None:
        self.author = Ed25519Signer.from_seed(AUTHOR_SEED)
        self.endorser = Ed25519Signer.from_seed(TRUSTEE_SEED)
        self.request = build_request(
            Nym(dest=NEW_DID), self.author.did, endorser_did=TRUSTEE_DID, req_id=42
        )

    def test_both_signatures_present(self) -> None:
        signed = endorse_request(
            self.request, self.author.did, self.author, TRUSTEE_DID, self.endorser
        )
        assert set(signed.signatures) == {self.author.did, TRUSTEE_DID}
        assert signed.signature is None

    def test_author_signs_canonical_bytes(self) -> None:
        signed = endorse_request(
            self.request, self.author.did, self.author, TRUSTEE_DID, self.endorser
        )
        assert verify_signature(
            self.author.verkey, canonicalize(self.request), signed.signatures[self.author.did]
        )

    def test_endorser_covers_author_signature(self) -> None:
        after_author = add_author_signature(self.request, self.author.did, self.author)
        signed = add_endorser_signature(after_author, TRUSTEE_DID, self.endorser)
        assert verify_signature(
            TRUSTEE_VERKEY, endorsement_input(after_author), signed.signatures[TRUSTEE_DID]
        )
        assert not verify_signature(
            TRUSTEE_VERKEY, canonicalize(self.request), signed.signatures[TRUSTEE_DID]
        )

    def test_endorser_input_contains_author_entry(self) -> None:
        recorder = RecordingSigner()
        after_author = add_author_signature(self.request, self.author.did, self.author)
        add_endorser_signature(after_author, TRUSTEE_DID, recorder)
        assert after_author.signatures[self.author.did].encode("ascii") in recorder.messages[0]

    def test_endorser_first_rejected(self) -> None:
        with pytest.raises(SigningError):
            add_endorser_signature(self.request, TRUSTEE_DID, self.endorser)

    def test_endorser_field_required(self) -> None:
        request = build_request(Nym(dest=NEW_DID), self.author.did, req_id=42)
        after_author = add_author_signature(request, self.author.did, self.author)
        with pytest.raises(SigningError):
            add_endorser_signature(after_author, TRUSTEE_DID, self.endorser)

    def test_other_endorser_refused(self) -> None:
        after_author = add_author_signature(self.request, self.author.did, self.author)
        other = Ed25519Signer.generate()
        with pytest.raises(SigningError):
            add_endorser_signature(after_author, other.did, other)

    def test_endorse_fills_missing_endorser(self) -> None:
        request = build_request(Nym(dest=NEW_DID), self.author.did, req_id=42)
        signed = endorse_request(request, self.author.did, self.author, TRUSTEE_DID, self.endorser)
        assert signed.endorser == TRUSTEE_DID
        verkeys = {self.author.did: self.author.verkey, TRUSTEE_DID: TRUSTEE_VERKEY}
        assert verify_request(signed, verkeys)

    def test_endorse_mismatch_refused(self) -> None:
        other = Ed25519Signer.generate()
        with pytest.raises(SigningError):
            endorse_request(self.request, self.author.did, self.author, other.did, other)

    def test_verify_request(self) -> None:
        signed = endorse_request(
            self.request, self.author.did, self.author, TRUSTEE_DID, self.endorser
        )
        verkeys = {self.author.did: self.author.verkey, TRUSTEE_DID: TRUSTEE_VERKEY}
        assert verify_request(signed, verkeys)

    def test_verify_request_missing_key(self) -> None:
        signed = endorse_request(
            self.request, self.author.did, self.author, TRUSTEE_DID, self.endorser
        )
        assert not verify_request(signed, {self.author.did: self.author.verkey})

    def test_unsigned_does_not_verify(self) -> None:
        assert not verify_request(self.request, {TRUSTEE_DID: TRUSTEE_VERKEY})

    def test_read_refused(self) -> None:
        request = build_request(GetNym(dest=NEW_DID), self.author.did)
        with pytest.raises(SigningError):
            add_author_signature(request, self.author.did, self.author)


class TestVerifySignature:
    def test_garbage_signature(self) -> None:
        assert not verify_signature(TRUSTEE_VERKEY, b"msg", "0OIl")

    def test_wrong_key(self) -> None:
        signer = Ed25519Signer.generate()
        signature = base58.b58encode(signer.sign(b"msg")).decode("ascii")
        assert not verify_signature(TRUSTEE_VERKEY, b"msg", signature)
