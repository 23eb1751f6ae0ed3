# src/flowscope/compose/aggregations.py
"""Aggregations context: the per-group stages following a grouping stage.

An ``Aggregations`` context is opened by ``group_by``, ``union`` and ``join``
when they are given a body, receives the body's aggregator or buffer calls,
and is closed when the body returns.

Rules enforced:
- Exactly one buffer, or one or more aggregators, never both
- No stages after the context is closed

Composite rewrite:
    When the grouping stage is a GroupBy without sort or reverse, and every
    aggregator has a composite equivalent (count, sum, average), the group
    stage and its aggregators are replaced by one AggregateBy stage keyed on
    the grouping fields. A single aggregator without a composite equivalent
    (min, max, first, last, a custom aggregator, a buffer or a group
    assertion) disqualifies the rewrite for the whole context. Otherwise a
    schema-fix stage is appended so the values fields after the context are
    the aggregated tuple, not the group's values.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

import structlog

from flowscope.contracts.enums import CompositeKind, ContextState, Selector, TypeTag
from flowscope.contracts.errors import (
    AmbiguousOperationKind,
    BufferExclusivityViolation,
    GroupingKeyMismatch,
    InvalidStageOptions,
    UnknownField,
)
from flowscope.contracts.operations import CompositeAggregate, Operation, assertion
from flowscope.contracts.operations import aggregator as aggregator_op
from flowscope.contracts.options import AggregatorOptions, AssertionOptions, EveryOptions, SumOptions
from flowscope.contracts.schema import FieldSchema, as_selection, field_args
from flowscope.contracts.scope import Scope
from flowscope.contracts.stages import AggregateByStage, EveryStage, GroupByStage, GroupStage, SchemaFixStage
from flowscope.contracts.types import FieldRef, StageID
from flowscope.core.resolver import resolve

if TYPE_CHECKING:
    from flowscope.compose.assembly import Assembly

logger = structlog.get_logger(__name__)


def field_map(args: Sequence[str | Mapping[str, str]]) -> list[tuple[str, str]]:
    """Input -> output field pairs for the aggregators.

    A mapping as the first argument is applied in sorted input order;
    otherwise each field aggregates into a field of the same name.
    """
    if args and isinstance(args[0], Mapping):
        return sorted(args[0].items())
    return [(f, f) for f in args if isinstance(f, str)]


class Aggregations:
    """Builder for the per-group stages of one grouping stage.

    Attributes:
        assembly: Assembly owning the grouping stage
        group: Descriptor of the grouping stage
        state: OPEN until ``close`` runs
        tail: Identifier of the last stage in this context
        scope: Scope after the last stage in this context
        composites: Composite equivalents collected so far, or None once the
            rewrite is disqualified
    """

    def __init__(
        self,
        assembly: Assembly,
        group: GroupStage,
        group_stage: StageID,
        group_scope: Scope,
        inputs: Sequence[Scope],
        *,
        composite_rewrite: bool = True,
    ) -> None:
        self.assembly = assembly
        self.group = group
        self.state = ContextState.OPEN
        self.tail = group_stage
        self.scope = group_scope
        self._group_scope = group_scope
        self._inputs = tuple(inputs)
        self._stages: list[StageID] = [group_stage]
        self.has_buffer = False
        self.aggregator_count = 0

        # The rewrite only applies to an unsorted GroupBy
        eligible = (
            composite_rewrite
            and isinstance(group, GroupByStage)
            and not group.is_sorted
            and not group.is_sort_reversed
        )
        self.composites: list[CompositeAggregate] | None = [] if eligible else None

    def debug_scope(self) -> str:
        text = f"Current scope of aggregations for '{self.assembly.name}':\n  {self.scope.describe()}\n----------\n"
        logger.debug("debug_scope", node=self.assembly.qualified_name, scope=text)
        return text

    # -----------------------------
    # Stage construction
    # -----------------------------
    def every(
        self,
        *arguments: FieldRef,
        aggregator: Operation | None = None,
        buffer: Operation | None = None,
        output: FieldRef | None = None,
        composite: CompositeAggregate | None = None,
    ) -> EveryStage:
        """Append a per-group stage applying an aggregator or a buffer.

        Raises:
            InvalidStageOptions: If the context is closed
            AmbiguousOperationKind: If not exactly one of aggregator or buffer
                is given, or the operation is of the other kind
            BufferExclusivityViolation: If a buffer would share the context
                with another buffer or any aggregator
            UnknownField: If an argument field is not in the group values
        """
        node = self.assembly.qualified_name
        self._require_open()
        options = EveryOptions(aggregator=aggregator, buffer=buffer, output=output)
        if (options.aggregator is None) == (options.buffer is None):
            raise AmbiguousOperationKind("every requires either aggregator or buffer", node=node)
        if options.aggregator is not None and not options.aggregator.is_aggregator:
            raise AmbiguousOperationKind(
                f"aggregator specified but {options.aggregator.kind} {options.aggregator.name} provided", node=node
            )
        if options.buffer is not None and not options.buffer.is_buffer:
            raise AmbiguousOperationKind(
                f"buffer specified but {options.buffer.kind} {options.buffer.name} provided", node=node
            )
        is_buffer = options.buffer is not None
        self._check_exclusive(is_buffer)

        operation = options.aggregator or options.buffer
        assert operation is not None
        stage = EveryStage(self.assembly.name, operation, self._arguments(arguments), as_selection(options.output))
        self._append(stage)

        if is_buffer:
            self.has_buffer = True
        else:
            self.aggregator_count += 1
        if composite is not None and self.composites is not None:
            self.composites.append(composite)
        else:
            self._disqualify(operation.name)
        return stage

    def add_aggregator(
        self,
        operation: Operation,
        *arguments: FieldRef,
        composite: CompositeAggregate | None = None,
        output: FieldRef | None = None,
    ) -> EveryStage:
        return self.every(*arguments, aggregator=operation, output=output, composite=composite)

    def add_buffer(self, operation: Operation, *arguments: FieldRef, output: FieldRef | None = None) -> EveryStage:
        return self.every(*arguments, buffer=operation, output=output)

    def assert_group_size_equals(self, size: int, *, level: str = "strict") -> EveryStage:
        """Append a group assertion checking the size of every group."""
        node = self.assembly.qualified_name
        self._require_open()
        options = AssertionOptions(level=level)  # type: ignore[arg-type]
        if self.has_buffer:
            raise BufferExclusivityViolation("Buffer must be sole aggregation", node=node)
        operation = assertion("AssertGroupSizeEquals", params={"size": size, "level": options.level})
        stage = EveryStage(self.assembly.name, operation)
        self._append(stage)
        self._disqualify(operation.name)
        return stage

    # -----------------------------
    # Aggregators
    # -----------------------------
    def count(self, name: str = "count") -> EveryStage:
        """Count the rows of each group into ``name``."""
        declared = FieldSchema.from_names([name])
        return self.every(
            Selector.VALUES,
            aggregator=aggregator_op("Count", declared),
            output=Selector.ALL,
            composite=CompositeAggregate(CompositeKind.COUNT, Selector.VALUES, declared),
        )

    def sum(
        self,
        *fields: str,
        mapping: Mapping[str, str] | None = None,
        type: TypeTag | str | None = None,
    ) -> list[EveryStage]:
        """Sum fields into fields of the same name, or as renamed by ``mapping``.

        Sums are declared ``double`` unless ``type`` says otherwise.

        Raises:
            InvalidStageOptions: If no field is given
        """
        options = SumOptions(mapping=dict(mapping) if mapping is not None else None, type=type)
        pairs = sorted(options.mapping.items()) if options.mapping else [(f, f) for f in fields]
        if not pairs:
            raise InvalidStageOptions(
                "sum invoked on 0 fields (mapping must be provided to explicitly rename fields)",
                node=self.assembly.qualified_name,
            )
        sum_type = options.type or TypeTag.DOUBLE
        stages = []
        for in_field, out_field in pairs:
            declared = FieldSchema.from_names([out_field], {out_field: sum_type})
            stages.append(
                self.every(
                    in_field,
                    aggregator=aggregator_op("Sum", declared, arity=1, params={"type": options.type}),
                    output=Selector.ALL,
                    composite=CompositeAggregate(
                        CompositeKind.SUM,
                        FieldSchema.from_names([in_field]),
                        FieldSchema.from_names([out_field]),
                        sum_type,
                    ),
                )
            )
        return stages

    def average(self, *fields: str | Mapping[str, str]) -> list[EveryStage]:
        """Average fields into fields of the same name, or as renamed by a leading mapping.

        Raises:
            InvalidStageOptions: If no field is given
        """
        pairs = field_map(fields)
        if not pairs:
            raise InvalidStageOptions("average invoked on 0 fields", node=self.assembly.qualified_name)
        stages = []
        for in_field, out_field in pairs:
            declared = FieldSchema.from_names([out_field], {out_field: TypeTag.DOUBLE})
            stages.append(
                self.every(
                    in_field,
                    aggregator=aggregator_op("Average", declared, arity=1),
                    output=Selector.ALL,
                    composite=CompositeAggregate(
                        CompositeKind.AVERAGE,
                        FieldSchema.from_names([in_field]),
                        FieldSchema.from_names([out_field]),
                        TypeTag.DOUBLE,
                    ),
                )
            )
        return stages

    def min(self, *fields: str | Mapping[str, str], ignore: list[object] | None = None) -> list[EveryStage]:
        return self._plain_aggregator("Min", fields, ignore)

    def max(self, *fields: str | Mapping[str, str], ignore: list[object] | None = None) -> list[EveryStage]:
        return self._plain_aggregator("Max", fields, ignore)

    def first(self, *fields: str | Mapping[str, str], ignore: list[object] | None = None) -> list[EveryStage]:
        return self._plain_aggregator("First", fields, ignore)

    def last(self, *fields: str | Mapping[str, str], ignore: list[object] | None = None) -> list[EveryStage]:
        return self._plain_aggregator("Last", fields, ignore)

    def _plain_aggregator(
        self,
        name: str,
        fields: Sequence[str | Mapping[str, str]],
        ignore: list[object] | None,
    ) -> list[EveryStage]:
        options = AggregatorOptions(ignore=ignore)
        pairs = field_map(fields)
        if not pairs:
            raise InvalidStageOptions(
                f"Composite aggregator '{name}' invoked on 0 fields", node=self.assembly.qualified_name
            )
        return [
            self.every(
                in_field,
                aggregator=aggregator_op(name, [out_field], params={"ignore": options.ignore}),
                output=Selector.ALL,
            )
            for in_field, out_field in pairs
        ]

    # -----------------------------
    # Lifecycle
    # -----------------------------
    def close(self) -> tuple[StageID, Scope]:
        """Close the context and return the final tail and scope.

        Raises:
            InvalidStageOptions: If the context is already closed
            GroupingKeyMismatch: If a composite rewrite finds inputs grouped
                on different key fields
            ScopeResolutionError: If the final stage cannot be resolved
        """
        node = self.assembly.qualified_name
        self._require_open()
        self.state = ContextState.CLOSED
        graph = self.assembly.flow.graph

        if self.composites:
            key_selectors = self._group_scope.key_selectors
            grouping = key_selectors[0]
            for key_fields in key_selectors:
                if key_fields != grouping:
                    raise GroupingKeyMismatch(
                        f"Grouping fields mismatch: {grouping} expected; {key_fields} found "
                        f"from {[str(k) for k in key_selectors]}",
                        node=node,
                    )
            rewrite = AggregateByStage(self.assembly.name, self.group.inputs, grouping, tuple(self.composites))
            self.scope = resolve(rewrite, self._inputs, self.assembly.flow.resolver, node=node)
            self.tail = graph.replace_stages(self._stages, self.assembly.name, "aggregate_by", rewrite, self.scope)
            logger.debug(
                "composite_rewrite",
                node=node,
                replaced=len(self._stages),
                composites=[c.describe() for c in self.composites],
            )
        else:
            fix = SchemaFixStage(self.assembly.name)
            self.scope = resolve(fix, [self.scope], self.assembly.flow.resolver, node=node)
            self.tail = graph.add_stage(self.assembly.name, "schema_fix", fix, self.scope, [self.tail])
            logger.debug("schema_fix_appended", node=node, fields=list(self.scope.values_fields.names))
        return self.tail, self.scope

    # -----------------------------
    # Helpers
    # -----------------------------
    def _require_open(self) -> None:
        if self.state is ContextState.CLOSED:
            raise InvalidStageOptions(
                f"Aggregations for '{self.assembly.name}' are closed", node=self.assembly.qualified_name
            )

    def _check_exclusive(self, is_buffer: bool) -> None:
        if self.has_buffer or (is_buffer and self.aggregator_count):
            raise BufferExclusivityViolation("Buffer must be sole aggregation", node=self.assembly.qualified_name)

    def _disqualify(self, reason: str) -> None:
        if self.composites is not None:
            logger.debug("composite_rewrite_disqualified", node=self.assembly.qualified_name, operation=reason)
        self.composites = None

    def _arguments(self, arguments: Sequence[FieldRef]) -> Selector | tuple[str | int, ...]:
        selection = field_args(arguments)
        if selection is None:
            selection = Selector.ALL
        if isinstance(selection, tuple):
            values = self.scope.values_fields
            missing = values.missing(selection)
            if missing:
                raise UnknownField(missing, values.names, node=self.assembly.qualified_name)
        return selection

    def _append(self, stage: EveryStage) -> None:
        node = self.assembly.qualified_name
        self.scope = resolve(stage, [self.scope], self.assembly.flow.resolver, node=node)
        self.tail = self.assembly.flow.graph.add_stage(self.assembly.name, "every", stage, self.scope, [self.tail])
        self._stages.append(self.tail)

