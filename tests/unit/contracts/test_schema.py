# tests/unit/contracts/test_schema.py
"""Tests for FieldSchema and the field reference helpers."""

from __future__ import annotations

import pytest

from flowscope.contracts import (
    FieldSchema,
    FieldSpec,
    InvalidRename,
    InvalidSchema,
    Selector,
    TypeTag,
    UnknownField,
    as_declared,
    as_selection,
    dedup,
    dedup_names,
    field_args,
)


class TestFieldSchemaConstruction:
    """Construction rejects anything that would break name uniqueness."""

    def test_from_names_preserves_order(self) -> None:
        schema = FieldSchema.from_names(["name", "score1", "score2", "id"])
        assert schema.names == ("name", "score1", "score2", "id")

    def test_from_names_with_types(self) -> None:
        schema = FieldSchema.from_names(["id", "name"], {"id": "long"})
        assert schema.get("id") == FieldSpec("id", TypeTag.LONG)
        assert schema.get("name") == FieldSpec("name")

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(InvalidSchema, match="Duplicate field names"):
            FieldSchema.from_names(["a", "b", "a"])

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(InvalidSchema, match="non-blank"):
            FieldSchema.from_names(["a", "  "])

    def test_none_name_rejected(self) -> None:
        with pytest.raises(InvalidSchema, match="cannot be nil"):
            FieldSchema.from_names(["a", None])  # type: ignore[list-item]

    def test_empty(self) -> None:
        assert len(FieldSchema.empty()) == 0
        assert FieldSchema.empty() == FieldSchema.from_names([])

    def test_str_and_repr(self) -> None:
        schema = FieldSchema.from_names(["a", "b"], {"a": "int"})
        assert str(schema) == "['a', 'b']"
        assert repr(schema) == "FieldSchema(['a:int', 'b'])"

    def test_membership(self) -> None:
        schema = FieldSchema.from_names(["a", "b"])
        assert "a" in schema
        assert "z" not in schema
        assert list(schema) == ["a", "b"]


class TestFieldSchemaDerivations:
    """Derivations return new schemas and never touch the original."""

    @pytest.fixture
    def schema(self) -> FieldSchema:
        return FieldSchema.from_names(["a", "b", "c"])

    def test_project_reorders(self, schema: FieldSchema) -> None:
        assert schema.project(["c", "a"]).names == ("c", "a")
        assert schema.names == ("a", "b", "c")

    def test_project_by_position(self, schema: FieldSchema) -> None:
        assert schema.project([0, -1]).names == ("a", "c")

    def test_project_unknown_field(self, schema: FieldSchema) -> None:
        with pytest.raises(UnknownField) as exc_info:
            schema.project(["a", "x"])
        assert exc_info.value.fields == ("x",)
        assert exc_info.value.available == ("a", "b", "c")

    def test_project_out_of_range_position(self, schema: FieldSchema) -> None:
        with pytest.raises(UnknownField):
            schema.project([3])

    def test_difference_ignores_positions_and_absent_names(self, schema: FieldSchema) -> None:
        assert schema.difference(["b", 0, "zz"]).names == ("a", "c")

    def test_rename_in_place(self) -> None:
        schema = FieldSchema.from_names(["name", "score1", "score2"], {"score1": "int"})
        renamed = schema.rename({"score1": "s1"})
        assert renamed.names == ("name", "s1", "score2")
        assert renamed.get("s1") == FieldSpec("s1", TypeTag.INT)

    def test_rename_unknown_field(self, schema: FieldSchema) -> None:
        with pytest.raises(InvalidRename, match="zz"):
            schema.rename({"zz": "y"})

    def test_rename_into_collision(self, schema: FieldSchema) -> None:
        with pytest.raises(InvalidSchema):
            schema.rename({"a": "b"})

    def test_append_collision(self, schema: FieldSchema) -> None:
        with pytest.raises(InvalidSchema):
            schema.append(FieldSchema.from_names(["c"]))

    def test_with_types(self, schema: FieldSchema) -> None:
        typed = schema.with_types({"b": TypeTag.DOUBLE})
        assert typed.get("b") == FieldSpec("b", TypeTag.DOUBLE)
        assert schema.get("b") == FieldSpec("b")

    def test_resolve(self, schema: FieldSchema) -> None:
        assert schema.resolve(1) == "b"
        assert schema.resolve("c") == "c"
        with pytest.raises(UnknownField):
            schema.resolve(5)

    def test_missing(self, schema: FieldSchema) -> None:
        assert schema.missing(["a", "x", 2, 7]) == ["x", 7]


class TestDedup:
    """Collisions are suffixed with underscores, left to right."""

    def test_dedup_literal(self) -> None:
        assert dedup_names(["a", "b"], ["a", "c"], ["a", "d"]) == ["a", "b", "a_", "c", "a__", "d"]

    def test_dedup_schema(self) -> None:
        assert dedup(["a", "b"], ["a", "c"], ["a", "d"]).names == ("a", "b", "a_", "c", "a__", "d")

    def test_dedup_within_one_list(self) -> None:
        assert dedup_names(["a", "a"]) == ["a", "a_"]

    def test_suffix_skips_taken_names(self) -> None:
        assert dedup_names(["a", "a_"], ["a"]) == ["a", "a_", "a__"]

    def test_types_travel_with_renamed_fields(self) -> None:
        left = FieldSchema.from_names(["id", "name"], {"id": "int"})
        right = FieldSchema.from_names(["id"], {"id": "long"})
        merged = dedup(left, right)
        assert merged.fields == (
            FieldSpec("id", TypeTag.INT),
            FieldSpec("name"),
            FieldSpec("id_", TypeTag.LONG),
        )


class TestFieldReferences:
    """Normalization of field references into selections and declarations."""

    def test_as_selection(self) -> None:
        assert as_selection(None) is None
        assert as_selection(Selector.ALL) is Selector.ALL
        assert as_selection("a") == ("a",)
        assert as_selection(2) == (2,)
        assert as_selection(["a", 1]) == ("a", 1)
        assert as_selection(FieldSchema.from_names(["x", "y"])) == ("x", "y")

    def test_single_selector_in_list_collapses(self) -> None:
        assert as_selection([Selector.RESULTS]) is Selector.RESULTS

    def test_selector_mixed_with_names_rejected(self) -> None:
        with pytest.raises(InvalidSchema, match="cannot be mixed"):
            as_selection(["a", Selector.ALL])  # type: ignore[list-item]

    def test_none_in_list_rejected(self) -> None:
        with pytest.raises(InvalidSchema, match="cannot be nil"):
            as_selection(["a", None])  # type: ignore[list-item]

    def test_as_declared(self) -> None:
        assert as_declared(["a", "b"]) == FieldSchema.from_names(["a", "b"])
        assert as_declared(Selector.ARGS) is Selector.ARGS
        with pytest.raises(InvalidSchema, match="positions"):
            as_declared([0])

    def test_field_args(self) -> None:
        assert field_args(()) is None
        assert field_args(("a", "b")) == ("a", "b")
        assert field_args((["a", "b"],)) == ("a", "b")
        assert field_args(("a", ["b", "c"])) == ("a", "b", "c")
        assert field_args((Selector.ALL,)) is Selector.ALL
        assert field_args((FieldSchema.from_names(["x"]), "y")) == ("x", "y")
