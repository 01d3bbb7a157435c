"""
Servekit — Request Validation Unit Tests
========================================

Covers RequestBuilder and MasterController.validate_payload:
    ✅ rule collection and chaining
    ✅ no rules → None
    ✅ every error collected, grouped under param / query / body
    ✅ unknown keys ignored, even for extra="forbid" models
    ✅ keys read through AliasChoices / AliasPath survive the unknown-key filter
"""

from typing import Optional

import pytest
from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field

from servekit.core import MasterController, PayloadType, RequestBuilder


class ItemParams(BaseModel):
    item_id: int


class Paging(BaseModel):
    limit: int = Field(ge=1, le=100)
    offset: int = Field(ge=0)


class LoginBody(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=20)


class StrictBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    nickname: Optional[str] = None


class TestRequestBuilder:

    def test_starts_empty(self):
        builder = RequestBuilder()
        assert builder.payload == []
        assert len(builder.get) == 0

    def test_add_methods_chain_in_order(self):
        builder = (
            RequestBuilder()
            .add_to_body(LoginBody)
            .add_to_query(Paging)
            .add_to_params(ItemParams)
        )
        assert [p.type for p in builder.payload] == [
            PayloadType.BODY,
            PayloadType.QUERY,
            PayloadType.PARAMS,
        ]
        assert builder.schemas_for(PayloadType.QUERY) == [Paging]

    def test_rejects_non_model_schema(self):
        with pytest.raises(TypeError, match="pydantic BaseModel"):
            RequestBuilder().add_to_body(dict)

    def test_payload_is_a_copy(self):
        builder = RequestBuilder().add_to_body(LoginBody)
        builder.payload.clear()
        assert len(builder) == 1


class TestValidatePayload:

    def test_no_rules_returns_none(self):
        assert MasterController.validate_payload({}, {}, {"anything": 1}, RequestBuilder()) is None

    def test_valid_payload_returns_none(self):
        rules = RequestBuilder().add_to_params(ItemParams).add_to_query(Paging).add_to_body(LoginBody)
        errors = MasterController.validate_payload(
            {"item_id": "7"},
            {"limit": "10", "offset": "0"},
            {"email": "a@b.co", "password": "longenough"},
            rules,
        )
        assert errors is None

    def test_collects_every_error_per_part(self):
        rules = RequestBuilder().add_to_params(ItemParams).add_to_query(Paging).add_to_body(LoginBody)
        errors = MasterController.validate_payload(
            {"item_id": "abc"},
            {"limit": "0"},
            {"password": "short"},
            rules,
        )

        assert set(errors) == {"param", "query", "body"}
        assert len(errors["param"]) == 1
        # limit out of range and offset missing
        assert len(errors["query"]) == 2
        # email missing and password too short
        assert len(errors["body"]) == 2
        assert any(msg.startswith('"email"') for msg in errors["body"])
        assert any("at least 8 characters" in msg for msg in errors["body"])

    def test_empty_error_groups_are_removed(self):
        rules = RequestBuilder().add_to_query(Paging).add_to_body(LoginBody)
        errors = MasterController.validate_payload(
            {}, {"limit": "5", "offset": "0"}, {"email": "x@y.z"}, rules
        )
        assert list(errors) == ["body"]

    def test_unknown_keys_are_allowed(self):
        rules = RequestBuilder().add_to_body(StrictBody)
        errors = MasterController.validate_payload(
            {}, {}, {"name": "Ada", "extra": "ignored", "another": 1}, rules
        )
        assert errors is None

    def test_non_object_body_is_reported(self):
        rules = RequestBuilder().add_to_body(LoginBody)
        errors = MasterController.validate_payload({}, {}, ["not", "an", "object"], rules)
        assert len(errors["body"]) == 1

    def test_none_body_validates_as_empty(self):
        rules = RequestBuilder().add_to_body(LoginBody)
        errors = MasterController.validate_payload({}, {}, None, rules)
        assert len(errors["body"]) == 2

    def test_multiple_schemas_for_one_part_all_apply(self):
        class NameOnly(BaseModel):
            name: str

        rules = RequestBuilder().add_to_body(LoginBody).add_to_body(NameOnly)
        errors = MasterController.validate_payload(
            {}, {}, {"email": "a@b.co", "password": "longenough"}, rules
        )
        assert errors == {"body": ['"name" Field required']}

    def test_alias_choices_and_paths_are_kept(self):
        class Contact(BaseModel):
            email: str = Field(validation_alias=AliasChoices("email", "mail"))
            city: str = Field(validation_alias=AliasPath("address", "city"))

        rules = RequestBuilder().add_to_body(Contact)
        errors = MasterController.validate_payload(
            {}, {}, {"mail": "a@b.co", "address": {"city": "Paris"}, "junk": 1}, rules
        )
        assert errors is None
