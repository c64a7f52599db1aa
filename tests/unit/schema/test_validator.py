"""Tests for validate(schema, value) over declarative and pydantic schemas."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import BaseModel, ConfigDict

from contractual.contracts import AnyOf
from contractual.contracts.validation import ROOT_FIELD
from contractual.schema import compile_schema, validate

PERSON = {"name": "str", "age": "int", "email?": "str"}


class Person(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    name: str
    age: int


class TestDeclarativeObjects:
    def test_valid_value_passes(self) -> None:
        assert validate(PERSON, {"name": "Ada", "age": 36}).passed

    def test_optional_field_may_be_present(self) -> None:
        assert validate(PERSON, {"name": "Ada", "age": 36, "email": "ada@example.com"}).passed

    def test_every_offending_field_is_named(self) -> None:
        outcome = validate(PERSON, {"age": "36", "nickname": "A"})

        assert not outcome.passed
        assert outcome.fields == frozenset({"name", "age", "nickname"})

    def test_missing_field_reports_none_value(self) -> None:
        outcome = validate(PERSON, {"age": 36})

        assert outcome.errors["name"].value is None
        assert outcome.errors["name"].kind == "missing"

    def test_mistyped_field_reports_supplied_value(self) -> None:
        outcome = validate(PERSON, {"name": "Ada", "age": "36"})

        assert outcome.errors["age"].value == "36"

    def test_unknown_key_is_rejected_not_dropped(self) -> None:
        outcome = validate(PERSON, {"name": "Ada", "age": 36, "admin": True})

        assert outcome.fields == frozenset({"admin"})
        assert outcome.errors["admin"].kind == "extra_forbidden"

    @pytest.mark.parametrize(
        ("spec", "value"),
        [
            ({"n": "int"}, {"n": True}),
            ({"n": "int"}, {"n": 1.0}),
            ({"b": "bool"}, {"b": 1}),
            ({"s": "str"}, {"s": 5}),
            ({"f": "float"}, {"f": float("nan")}),
        ],
    )
    def test_scalars_are_never_coerced(self, spec: dict[str, Any], value: dict[str, Any]) -> None:
        assert not validate(spec, value).passed

    def test_int_is_accepted_where_float_is_declared(self) -> None:
        assert validate({"f": "float"}, {"f": 2}).passed

    def test_nested_error_is_keyed_by_top_level_field(self) -> None:
        outcome = validate({"address": {"city": "str"}}, {"address": {"city": 1}})

        assert outcome.fields == frozenset({"address"})
        assert outcome.errors["address"].path == "address.city"

    def test_alternatives_accept_either_shape(self) -> None:
        spec = {"id?": "str|str[]"}

        assert validate(spec, {"id": "a"}).passed
        assert validate(spec, {"id": ["a", "b"]}).passed
        assert validate(spec, {}).passed
        assert not validate(spec, {"id": 3}).passed

    def test_non_object_value_is_reported_at_root(self) -> None:
        outcome = validate(PERSON, "not an object")

        assert outcome.fields == frozenset({ROOT_FIELD})
        assert outcome.errors[ROOT_FIELD].value == "not an object"

    def test_value_is_not_modified(self) -> None:
        value = {"name": "Ada", "age": 36}
        validate(PERSON, value)

        assert value == {"name": "Ada", "age": 36}


class TestUnions:
    RECORD = {"id": "str"}

    def test_one_or_many(self) -> None:
        schema = compile_schema(AnyOf(self.RECORD, [self.RECORD]), "OneOrMany")

        assert validate(schema, {"id": "a"}).passed
        assert validate(schema, [{"id": "a"}, {"id": "b"}]).passed
        assert validate(schema, []).passed

    def test_object_value_reports_object_member_errors(self) -> None:
        schema = compile_schema(AnyOf(self.RECORD, [self.RECORD]), "OneOrMany")

        outcome = validate(schema, {"id": 1, "extra": "x"})

        assert outcome.fields == frozenset({"id", "extra"})

    def test_list_value_reports_list_member_errors(self) -> None:
        schema = compile_schema(AnyOf(self.RECORD, [self.RECORD]), "OneOrMany")

        outcome = validate(schema, [{"id": "a"}, {"id": 2}])

        assert outcome.fields == frozenset({"1"})

    def test_value_matching_no_member_shape_is_reported_at_root(self) -> None:
        schema = compile_schema(AnyOf(self.RECORD, [self.RECORD]), "OneOrMany")

        outcome = validate(schema, "text")

        assert outcome.fields == frozenset({ROOT_FIELD})
        assert outcome.errors[ROOT_FIELD].kind == "union_mismatch"


class TestPydanticSchemas:
    def test_model_class(self) -> None:
        assert validate(Person, {"name": "Ada", "age": 36}).passed

        outcome = validate(Person, {"name": "Ada"})
        assert outcome.fields == frozenset({"age"})

    def test_list_of_models(self) -> None:
        assert validate(list[Person], [{"name": "Ada", "age": 36}]).passed

    def test_model_or_list_union(self) -> None:
        schema = compile_schema(Person | list[Person], "People")

        assert validate(schema, {"name": "Ada", "age": 36}).passed
        assert validate(schema, [{"name": "Ada", "age": 36}]).passed
        assert validate(schema, {"name": "Ada"}).fields == frozenset({"age"})
