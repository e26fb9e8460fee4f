"""
Tests for the operation catalog — exact wire shapes, no signing.

Test plan:
- Type codes: every kind emits its ledger type code
- GET_NYM for a DID from the default submitter emits type "105" + dest
- Absent fields: omitted entirely, never null or ""
- Attrib: exactly one of raw/hash/enc; helpers emit the right field
- Schema / GetSchema / GetClaimDef: data layout, id parsing
- Rich schema / context: rs* fields and default format version
- AuthRule / GetAuthRule: all-or-nothing filters, ADD forbids old_value
- GetTxn: ledgerId + data, seq_no >= 1
- CustomOperation: requires a string type, body passed through
"""

import pytest

from vdr_protocol.constants import AuthAction, LedgerId, Role, TxnType
from vdr_protocol.errors import BuildError
from vdr_protocol.integrity import attrib_hash
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
    RichSchema,
    Schema,
)

DID = "FzAaV9Waa1DccDa72qwg13"
ISSUER = "Th7MpTaRZVRYnPiabds81Y"


# ---------------------------------------------------------------------------
# Type codes
# ---------------------------------------------------------------------------


class TestTypeCodes:
    @pytest.mark.parametrize(
        ("operation", "code"),
        [
            (Nym(dest=DID), "1"),
            (GetNym(dest=DID), "105"),
            (Attrib(dest=DID, raw='{"a":1}'), "100"),
            (GetAttrib(dest=DID, raw="endpoint"), "104"),
            (Schema(name="s", version="1.0", attr_names=("a",)), "101"),
            (GetSchema(dest=DID, name="s", version="1.0"), "107"),
            (ClaimDef(ref=10, data={"primary": {}}), "102"),
            (GetClaimDef(origin=DID, ref=10), "108"),
            (RichSchema(id="did:sov:1", content="{}x", name="n", version="1"), "201"),
            (GetRichSchema(dest=DID, name="n", version="1"), "301"),
            (Context(id="did:sov:2", content="{}x", name="n", version="1"), "200"),
            (GetContext(dest=DID, name="n", version="1"), "300"),
            (GetAuthRule(), "121"),
            (Handle(dest=DID, handle="alice"), "99994"),
            (GetHandle(dest=DID, handle="alice"), "99996"),
            (AuctionStart(dest=DID, auctionid="a1", handle="alice"), "99990"),
            (GetTxn(seq_no=1), "3"),
            (GetTxnAuthorAgreement(), "6"),
            (GetAcceptanceMechanisms(), "7"),
        ],
    )
    def test_type_code(self, operation, code) -> None:
        assert operation.to_dict()["type"] == code

    def test_read_kinds_are_reads(self) -> None:
        assert GetNym(dest=DID).is_read is True
        assert GetHandle(dest=DID, handle="h").is_read is True
        assert GetTxn(seq_no=5).is_read is True

    def test_write_kinds_are_not_reads(self) -> None:
        assert Nym(dest=DID).is_read is False
        assert Handle(dest=DID, handle="h").is_read is False
        assert AuctionStart(dest=DID, auctionid="a", handle="h").is_read is False


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class TestGetNym:
    def test_minimal_shape(self) -> None:
        assert GetNym(dest=DID).to_dict() == {"type": "105", "dest": DID}

    def test_seq_no_and_timestamp(self) -> None:
        body = GetNym(dest=DID, seq_no=7, timestamp=1700000000).to_dict()
        assert body["seqNo"] == 7
        assert body["timestamp"] == 1700000000

    def test_rejects_empty_dest(self) -> None:
        with pytest.raises(BuildError) as exc_info:
            GetNym(dest="")
        assert exc_info.value.txn_type == TxnType.GET_NYM


class TestNym:
    def test_absent_fields_omitted(self) -> None:
        body = Nym(dest=DID).to_dict()
        assert body == {"type": "1", "dest": DID}
        assert "role" not in body
        assert "verkey" not in body

    def test_role_code(self) -> None:
        body = Nym(dest=DID, verkey="~abc", role=Role.ENDORSER).to_dict()
        assert body["role"] == "101"
        assert body["verkey"] == "~abc"

    def test_diddoc_content_mapping_encoded_as_text(self) -> None:
        body = Nym(dest=DID, diddoc_content={"b": 1, "a": 2}).to_dict()
        assert body["diddocContent"] == '{"a":2,"b":1}'


class TestAttrib:
    def test_requires_one_value(self) -> None:
        with pytest.raises(BuildError):
            Attrib(dest=DID)

    def test_rejects_two_values(self) -> None:
        with pytest.raises(BuildError):
            Attrib(dest=DID, raw="{}", hash="ab")

    def test_raw_json_helper(self) -> None:
        body = Attrib.raw_json(DID, {"name": "Alice"}).to_dict()
        assert body == {"type": "100", "dest": DID, "raw": '{"name":"Alice"}'}

    def test_hashed_helper(self) -> None:
        data = {"name": "Alice"}
        body = Attrib.hashed(DID, data).to_dict()
        assert body["hash"] == attrib_hash(data)
        assert "raw" not in body
        assert "enc" not in body

    def test_endpoint_helper(self) -> None:
        body = Attrib.endpoint(DID, "https://agent.example").to_dict()
        assert body["raw"] == '{"endpoint":{"endpoint":"https://agent.example"}}'

    def test_raw_json_rejects_empty(self) -> None:
        with pytest.raises(BuildError):
            Attrib.raw_json(DID, {})

    def test_get_attrib_names_attribute(self) -> None:
        body = GetAttrib(dest=DID, raw="endpoint").to_dict()
        assert body == {"type": "104", "dest": DID, "raw": "endpoint"}


# ---------------------------------------------------------------------------
# Schemas and credential definitions
# ---------------------------------------------------------------------------


class TestSchema:
    def test_data_layout(self) -> None:
        body = Schema(name="degree", version="1.0", attr_names=("name", "age")).to_dict()
        assert body["data"] == {"name": "degree", "version": "1.0", "attr_names": ["name", "age"]}

    def test_list_attr_names_stored_as_tuple(self) -> None:
        schema = Schema(name="degree", version="1.0", attr_names=["name"])  # type: ignore[arg-type]
        assert schema.attr_names == ("name",)

    def test_rejects_empty_attr_names(self) -> None:
        with pytest.raises(BuildError):
            Schema(name="degree", version="1.0", attr_names=())

    def test_get_schema_from_id(self) -> None:
        op = GetSchema.from_schema_id(f"{ISSUER}:2:degree:1.0")
        assert op.to_dict() == {
            "type": "107",
            "dest": ISSUER,
            "data": {"name": "degree", "version": "1.0"},
        }

    def test_get_schema_bad_id(self) -> None:
        with pytest.raises(BuildError):
            GetSchema.from_schema_id("not-a-schema-id")


class TestClaimDef:
    def test_defaults(self) -> None:
        body = ClaimDef(ref=12, data={"primary": {"n": "1"}}).to_dict()
        assert body["signature_type"] == "CL"
        assert body["tag"] == "default"
        assert body["ref"] == 12

    def test_rejects_zero_ref(self) -> None:
        with pytest.raises(BuildError):
            ClaimDef(ref=0, data={"primary": {}})

    def test_get_claim_def_from_id(self) -> None:
        op = GetClaimDef.from_cred_def_id(f"{ISSUER}:3:CL:12:tag1")
        assert op.to_dict() == {
            "type": "108",
            "origin": ISSUER,
            "ref": 12,
            "signature_type": "CL",
            "tag": "tag1",
        }

    def test_get_claim_def_bad_id(self) -> None:
        with pytest.raises(BuildError):
            GetClaimDef.from_cred_def_id(f"{ISSUER}:3:CL:notanumber:tag")


# ---------------------------------------------------------------------------
# Rich schema objects
# ---------------------------------------------------------------------------


class TestRichObjects:
    def test_rich_schema_fields(self) -> None:
        body = RichSchema(
            id="did:sov:abc", content={"@id": "x"}, name="Person", version="1.0"
        ).to_dict()
        assert body == {
            "type": "201",
            "id": "did:sov:abc",
            "content": '{"@id":"x"}',
            "rsName": "Person",
            "rsVersion": "1.0",
            "rsType": "sch",
            "ver": "2",
        }

    def test_context_type_tag(self) -> None:
        body = Context(id="did:sov:ctx", content='{"@context":{}}', name="c", version="1").to_dict()
        assert body["rsType"] == "ctx"
        assert body["content"] == '{"@context":{}}'

    def test_rejects_empty_content(self) -> None:
        with pytest.raises(BuildError):
            RichSchema(id="did:sov:abc", content="", name="n", version="1")

    def test_get_rich_schema_layout(self) -> None:
        body = GetRichSchema(dest=DID, name="Person", version="1.0").to_dict()
        assert body == {"type": "301", "dest": DID, "data": {"name": "Person", "version": "1.0"}}


# ---------------------------------------------------------------------------
# Authorization rules
# ---------------------------------------------------------------------------


class TestAuthRules:
    def test_get_all_rules(self) -> None:
        assert GetAuthRule().to_dict() == {"type": "121"}

    def test_get_add_rule(self) -> None:
        body = GetAuthRule(
            auth_type="1", auth_action=AuthAction.ADD, field="role", new_value="101"
        ).to_dict()
        assert body == {
            "type": "121",
            "auth_type": "1",
            "auth_action": "ADD",
            "field": "role",
            "new_value": "101",
        }

    def test_get_edit_rule_carries_old_value(self) -> None:
        body = GetAuthRule(
            auth_type="1",
            auth_action=AuthAction.EDIT,
            field="role",
            old_value="0",
            new_value="101",
        ).to_dict()
        assert body["old_value"] == "0"

    def test_partial_filter_rejected(self) -> None:
        with pytest.raises(BuildError):
            GetAuthRule(auth_type="1")

    def test_add_with_old_value_rejected(self) -> None:
        with pytest.raises(BuildError):
            GetAuthRule(
                auth_type="1", auth_action=AuthAction.ADD, field="role", old_value="0"
            )

    def test_auth_rule_write(self) -> None:
        constraint = {"constraint_id": "ROLE", "role": "0", "sig_count": 1}
        body = AuthRule(
            auth_type="1",
            auth_action=AuthAction.ADD,
            field="role",
            new_value="101",
            constraint=constraint,
        ).to_dict()
        assert body["type"] == "120"
        assert body["constraint"] == constraint
        assert "old_value" not in body


# ---------------------------------------------------------------------------
# Ledger reads, handles, custom
# ---------------------------------------------------------------------------


class TestGetTxn:
    def test_shape(self) -> None:
        assert GetTxn(seq_no=42).to_dict() == {"type": "3", "ledgerId": 1, "data": 42}

    def test_pool_ledger(self) -> None:
        assert GetTxn(seq_no=1, ledger_id=LedgerId.POOL).to_dict()["ledgerId"] == 0

    def test_rejects_zero(self) -> None:
        with pytest.raises(BuildError):
            GetTxn(seq_no=0)


class TestTaaReads:
    def test_latest_taa_has_no_filters(self) -> None:
        assert GetTxnAuthorAgreement().to_dict() == {"type": "6"}

    def test_taa_by_version(self) -> None:
        assert GetTxnAuthorAgreement(version="2.0").to_dict() == {"type": "6", "version": "2.0"}

    def test_aml_by_timestamp(self) -> None:
        body = GetAcceptanceMechanisms(timestamp=1700000000).to_dict()
        assert body == {"type": "7", "timestamp": 1700000000}


class TestHandles:
    def test_handle_shape(self) -> None:
        assert Handle(dest=DID, handle="alice").to_dict() == {
            "type": "99994",
            "dest": DID,
            "handle": "alice",
        }

    def test_auction_shape(self) -> None:
        body = AuctionStart(dest=DID, auctionid="a-1", handle="alice").to_dict()
        assert body == {"type": "99990", "dest": DID, "auctionid": "a-1", "handle": "alice"}

    def test_rejects_empty_handle(self) -> None:
        with pytest.raises(BuildError):
            Handle(dest=DID, handle="")


class TestCustomOperation:
    def test_body_passed_through(self) -> None:
        body = {"type": "20001", "payload": {"x": [1, 2]}}
        op = CustomOperation(body)
        assert op.txn_type == "20001"
        assert op.to_dict() == body

    def test_to_dict_is_a_copy(self) -> None:
        body = {"type": "20001", "payload": {"x": 1}}
        out = CustomOperation(body).to_dict()
        out["payload"]["x"] = 2
        assert body["payload"]["x"] == 1

    def test_requires_type(self) -> None:
        with pytest.raises(BuildError):
            CustomOperation({"payload": 1})

    def test_custom_read_type_is_read(self) -> None:
        assert CustomOperation({"type": "105", "dest": DID}).is_read is True
