# tests/unit/core/test_resolver.py
"""Tests for the resolution seam and the default field algebra."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from flowscope.contracts import (
    AggregateByStage,
    CoGroupStage,
    EachStage,
    EveryStage,
    FieldSchema,
    FieldSpec,
    GroupByStage,
    HashJoinStage,
    HeadStage,
    SchemaFixStage,
    Scope,
    ScopeResolutionError,
    Selector,
    StageKind,
    TypeTag,
)
from flowscope.contracts.enums import CompositeKind
from flowscope.contracts.operations import (
    CompositeAggregate,
    aggregator,
    buffer,
    filter_op,
    function,
    identity,
)
from flowscope.contracts.stages import StageDescriptor
from flowscope.core import FieldAlgebraResolver, PlannerError, copy, resolve


def source(*names: str) -> Scope:
    return Scope.source("in", FieldSchema.from_names(names))


@pytest.fixture
def resolver() -> FieldAlgebraResolver:
    return FieldAlgebraResolver()


class TestResolve:
    """The seam wraps every resolver failure."""

    def test_returns_resolver_scope(self, resolver: FieldAlgebraResolver) -> None:
        incoming = source("a", "b")
        scope = resolve(HeadStage("in"), [incoming], resolver)
        assert scope.values_fields == incoming.values_fields

    def test_failure_is_chained(self) -> None:
        cause = ValueError("planner exploded")

        def failing(stage: StageDescriptor, inputs: Sequence[Scope]) -> Scope:
            raise cause

        with pytest.raises(ScopeResolutionError) as exc_info:
            resolve(HeadStage("in"), [source("a")], failing, node="f.in")
        assert exc_info.value.__cause__ is cause
        assert "planner exploded" in str(exc_info.value)
        assert exc_info.value.node == "f.in"

    def test_unsupported_descriptor(self, resolver: FieldAlgebraResolver) -> None:
        with pytest.raises(PlannerError, match="Unsupported"):
            resolver("not a stage", [source("a")])  # type: ignore[arg-type]

    def test_copy_renames_and_keeps_fields(self) -> None:
        original = source("a", "b")
        copied = copy(original, "branch")
        assert copied.name == "branch"
        assert copied.values_fields == original.values_fields
        assert original.name == "in"


class TestEachResolution:
    def test_function_results_by_default(self, resolver: FieldAlgebraResolver) -> None:
        scope = resolver(EachStage("in", identity(), ("a", "b")), [source("a", "b", "c")])
        assert scope.values_fields.names == ("a", "b")
        assert scope.kind is StageKind.TRANSFORM
        assert scope.input_schemas == (FieldSchema.from_names(["a", "b", "c"]),)

    def test_output_all_appends_results(self, resolver: FieldAlgebraResolver) -> None:
        stage = EachStage("in", function("F", ["d"]), ("a",), Selector.ALL)
        assert resolver(stage, [source("a", "b", "c")]).values_fields.names == ("a", "b", "c", "d")

    def test_output_all_collision(self, resolver: FieldAlgebraResolver) -> None:
        stage = EachStage("in", function("F", ["a"]), ("a",), Selector.ALL)
        with pytest.raises(PlannerError, match="collide"):
            resolver(stage, [source("a", "b")])

    def test_output_replace(self, resolver: FieldAlgebraResolver) -> None:
        stage = EachStage("in", identity(["x"]), ("b",), Selector.REPLACE)
        assert resolver(stage, [source("a", "b", "c")]).values_fields.names == ("a", "x", "c")

    def test_output_swap(self, resolver: FieldAlgebraResolver) -> None:
        stage = EachStage("in", function("F", ["d"]), ("b",), Selector.SWAP)
        assert resolver(stage, [source("a", "b", "c")]).values_fields.names == ("a", "c", "d")

    def test_explicit_output(self, resolver: FieldAlgebraResolver) -> None:
        stage = EachStage("in", function("F", ["d"]), ("b",), ("d", "a"))
        assert resolver(stage, [source("a", "b", "c")]).values_fields.names == ("d", "a")

    def test_filter_passes_tuple_through(self, resolver: FieldAlgebraResolver) -> None:
        stage = EachStage("in", filter_op("FilterNull"), ("a",))
        assert resolver(stage, [source("a", "b")]).values_fields.names == ("a", "b")

    def test_arity_mismatch(self, resolver: FieldAlgebraResolver) -> None:
        with pytest.raises(PlannerError, match="expects 2"):
            resolver(EachStage("in", identity(["x", "y"]), ("a",)), [source("a", "b")])

    def test_retype(self, resolver: FieldAlgebraResolver) -> None:
        stage = EachStage("in", identity(["a"], {"a": "int"}), ("a",))
        assert resolver(stage, [source("a", "b")]).values_fields.fields == (FieldSpec("a", TypeTag.INT),)

    def test_aggregator_rejected(self, resolver: FieldAlgebraResolver) -> None:
        with pytest.raises(PlannerError, match="cannot be applied by an Each"):
            resolver(EachStage("in", aggregator("Count", ["count"])), [source("a")])


class TestGroupingResolution:
    def test_group_by(self, resolver: FieldAlgebraResolver) -> None:
        scope = resolver(GroupByStage("in", ("in",), ("a",)), [source("a", "b")])
        assert scope.kind is StageKind.GROUP
        assert scope.grouping_keys == FieldSchema.from_names(["a"])
        assert scope.values_fields.names == ("a", "b")
        assert scope.sort_keys is None

    def test_group_by_merge_requires_same_fields(self, resolver: FieldAlgebraResolver) -> None:
        with pytest.raises(PlannerError, match="same fields"):
            resolver(GroupByStage("u", ("x", "y"), ("a",)), [source("a", "b"), source("a", "c")])

    def test_co_group_declared_fields(self, resolver: FieldAlgebraResolver) -> None:
        left = Scope.source("left", FieldSchema.from_names(["id", "name"]))
        right = Scope.source("right", FieldSchema.from_names(["id", "age"]))
        declared = FieldSchema.from_names(["id", "name", "id_", "age"])
        stage = CoGroupStage("j", ("left", "right"), (("id",), ("id",)), declared, FieldSchema.from_names(["id"]))
        scope = resolver(stage, [left, right])
        assert scope.values_fields == declared
        assert scope.grouping_keys == FieldSchema.from_names(["id"])
        assert len(scope.key_selectors) == 2

    def test_co_group_shared_names_need_declaration(self, resolver: FieldAlgebraResolver) -> None:
        stage = CoGroupStage("j", ("l", "r"), (("id",), ("id",)))
        with pytest.raises(PlannerError, match="no fields were declared"):
            resolver(stage, [source("id", "name"), source("id", "age")])

    def test_join_key_sizes_must_match(self, resolver: FieldAlgebraResolver) -> None:
        stage = CoGroupStage("j", ("l", "r"), (("a", "b"), ("c",)))
        with pytest.raises(PlannerError, match="same size"):
            resolver(stage, [source("a", "b"), source("c", "d")])

    def test_declared_size_must_match(self, resolver: FieldAlgebraResolver) -> None:
        stage = CoGroupStage("j", ("l", "r"), (("a",), ("c",)), FieldSchema.from_names(["x"]))
        with pytest.raises(PlannerError, match="must match the size"):
            resolver(stage, [source("a", "b"), source("c", "d")])

    def test_hash_join_is_a_row_stream(self, resolver: FieldAlgebraResolver) -> None:
        stage = HashJoinStage("j", ("l", "r"), (("a",), ("c",)))
        scope = resolver(stage, [source("a", "b"), source("c", "d")])
        assert scope.kind is StageKind.TRANSFORM
        assert scope.grouping_keys is None
        assert scope.values_fields.names == ("a", "b", "c", "d")


class TestAggregationResolution:
    @pytest.fixture
    def grouped(self, resolver: FieldAlgebraResolver) -> Scope:
        return resolver(GroupByStage("in", ("in",), ("a",)), [source("a", "b", "c")])

    def test_every_aggregator_accumulates_grouping(self, resolver: FieldAlgebraResolver, grouped: Scope) -> None:
        stage = EveryStage("in", aggregator("Count", ["count"]), Selector.VALUES, Selector.ALL)
        scope = resolver(stage, [grouped])
        assert scope.kind is StageKind.AGGREGATE
        assert scope.grouping_keys == FieldSchema.from_names(["a", "count"])
        assert scope.values_fields.names == ("a", "b", "c")
        assert scope.row_fields.names == ("a", "count")

    def test_every_results_only(self, resolver: FieldAlgebraResolver, grouped: Scope) -> None:
        stage = EveryStage("in", aggregator("Count", ["count"]), Selector.VALUES)
        assert resolver(stage, [grouped]).grouping_keys == FieldSchema.from_names(["count"])

    def test_buffer_all_appends_to_values(self, resolver: FieldAlgebraResolver, grouped: Scope) -> None:
        stage = EveryStage("in", buffer("Window", ["z"]), Selector.ALL, Selector.ALL)
        assert resolver(stage, [grouped]).grouping_keys == FieldSchema.from_names(["a", "b", "c", "z"])

    def test_values_selector_excludes_keys(self, resolver: FieldAlgebraResolver, grouped: Scope) -> None:
        stage = EveryStage("in", aggregator("Concat", Selector.ARGS), Selector.VALUES)
        assert resolver(stage, [grouped]).grouping_keys == FieldSchema.from_names(["b", "c"])

    def test_every_requires_group(self, resolver: FieldAlgebraResolver) -> None:
        stage = EveryStage("in", aggregator("Count", ["count"]), Selector.VALUES)
        with pytest.raises(PlannerError, match="must follow a grouping stage"):
            resolver(stage, [source("a")])

    def test_aggregate_by(self, resolver: FieldAlgebraResolver) -> None:
        keys = FieldSchema.from_names(["a"])
        stage = AggregateByStage(
            "in",
            ("in",),
            keys,
            (
                CompositeAggregate(CompositeKind.COUNT, Selector.VALUES, FieldSchema.from_names(["count"])),
                CompositeAggregate(
                    CompositeKind.SUM,
                    FieldSchema.from_names(["b"]),
                    FieldSchema.from_names(["b"]),
                    TypeTag.DOUBLE,
                ),
            ),
        )
        scope = resolver(stage, [source("a", "b", "c")])
        assert scope.values_fields.names == ("a", "count", "b")
        assert scope.values_fields.get("b") == FieldSpec("b", TypeTag.DOUBLE)
        assert scope.key_selectors == (keys,)

    def test_aggregate_by_missing_key(self, resolver: FieldAlgebraResolver) -> None:
        stage = AggregateByStage("in", ("in",), FieldSchema.from_names(["zz"]), ())
        with pytest.raises(PlannerError, match="Grouping fields"):
            resolver(stage, [source("a")])

    def test_schema_fix_exposes_aggregated_tuple(self, resolver: FieldAlgebraResolver, grouped: Scope) -> None:
        every = resolver(EveryStage("in", aggregator("Count", ["count"]), Selector.VALUES, Selector.ALL), [grouped])
        fixed = resolver(SchemaFixStage("in"), [every])
        assert fixed.kind is StageKind.TRANSFORM
        assert fixed.values_fields.names == ("a", "count")
