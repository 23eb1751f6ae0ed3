# src/flowscope/core/resolver.py
"""Planner resolution seam and the default in-process field algebra.

Every stage a builder constructs is handed to ``resolve`` exactly once,
together with the scopes feeding it. The resolver is the authority on schema
evolution; builders never compute an outgoing scope themselves.

``FieldAlgebraResolver`` reproduces the planner's field-resolution rules so
pipelines can be validated without the execution engine. A planner adapter
can be injected anywhere a ``PlannerResolver`` is accepted.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import structlog

from flowscope.contracts.enums import Selector, StageKind
from flowscope.contracts.errors import CompositionError, ScopeResolutionError
from flowscope.contracts.operations import Operation
from flowscope.contracts.schema import FieldSchema, dedup
from flowscope.contracts.scope import Scope
from flowscope.contracts.stages import (
    AggregateByStage,
    CoGroupStage,
    EachStage,
    EveryStage,
    GroupByStage,
    HashJoinStage,
    HeadStage,
    SchemaFixStage,
    Selection,
    StageDescriptor,
)
from flowscope.contracts.types import FieldName

logger = structlog.get_logger(__name__)


class PlannerError(Exception):
    """Raised by the field algebra when a stage cannot be resolved."""


class PlannerResolver(Protocol):
    """Computes the outgoing scope of a stage from its incoming scopes."""

    def __call__(self, stage: StageDescriptor, inputs: Sequence[Scope]) -> Scope: ...


def resolve(
    stage: StageDescriptor,
    inputs: Sequence[Scope],
    resolver: PlannerResolver,
    *,
    node: str | None = None,
) -> Scope:
    """Resolve the outgoing scope of ``stage``.

    Args:
        stage: Descriptor of the stage just built
        inputs: Scopes feeding the stage, in input order
        resolver: Planner resolution function
        node: Qualified name of the node building the stage, for diagnostics

    Raises:
        ScopeResolutionError: If the resolver fails; the original exception
            is chained and its message preserved
    """
    try:
        scope = resolver(stage, tuple(inputs))
    except Exception as exc:
        raise ScopeResolutionError(stage, exc, node=node) from exc
    logger.debug(
        "stage_resolved",
        node=node,
        stage=stage.describe(),
        kind=str(scope.kind),
        fields=list(scope.output_schema.names),
    )
    return scope


def copy(scope: Scope, name: str | None = None) -> Scope:
    """Independent copy of a scope, used when branching."""
    return scope.copy(name)


def source_scope(name: str, schema: FieldSchema) -> Scope:
    """Scope of a source whose schema was declared by an external descriptor."""
    return Scope.source(name, schema)


class FieldAlgebraResolver:
    """Default resolver implementing the planner's field algebra.

    Rules, per stage:

    - Each: arguments are selected from the incoming row fields. Filters and
      assertions pass the incoming tuple unchanged. Functions declare their
      results (explicit names, or their arguments) and the output selector
      combines results with the incoming tuple.
    - GroupBy: every input must carry the same values fields; values pass
      through and the keys become the grouping fields.
    - CoGroup: one key list per input, all the same size; the declared
      fields replace the concatenated inputs and the result keys (each key
      name once) become the grouping fields.
    - HashJoin: as CoGroup, but the result is a plain row stream.
    - Every: arguments are selected from the group; the values fields are
      carried unchanged while the grouping fields accumulate results.
    - AggregateBy: keys followed by every composite's declared field.
    - SchemaFix: identity over the incoming row fields.
    """

    def __call__(self, stage: StageDescriptor, inputs: Sequence[Scope]) -> Scope:
        match stage:
            case HeadStage():
                return self._single(stage, inputs).copy(stage.name)
            case EachStage():
                return self._each(stage, self._single(stage, inputs))
            case GroupByStage():
                return self._group_by(stage, inputs)
            case CoGroupStage():
                return self._co_group(stage, inputs)
            case HashJoinStage():
                return self._hash_join(stage, inputs)
            case EveryStage():
                return self._every(stage, self._single(stage, inputs))
            case AggregateByStage():
                return self._aggregate_by(stage, inputs)
            case SchemaFixStage():
                return self._schema_fix(stage, self._single(stage, inputs))
            case _:
                raise PlannerError(f"Unsupported stage descriptor: {stage!r}")

    # -----------------------------
    # Row-wise stages
    # -----------------------------
    def _each(self, stage: EachStage, incoming: Scope) -> Scope:
        fields = incoming.row_fields
        args = _select(fields, stage.arguments, "argument")
        operation = stage.operation
        if operation.is_filter or operation.is_assertion:
            output = fields
        elif operation.is_function:
            results = _results(operation, args)
            output = _output(fields, args, results, stage.output or Selector.RESULTS)
        else:
            raise PlannerError(f"{operation.kind} operation {operation.name} cannot be applied by an Each")
        return Scope(
            name=stage.name,
            kind=StageKind.TRANSFORM,
            input_schemas=(fields,),
            output_schema=output,
        )

    def _schema_fix(self, stage: SchemaFixStage, incoming: Scope) -> Scope:
        fields = incoming.row_fields
        return Scope(
            name=stage.name,
            kind=StageKind.TRANSFORM,
            input_schemas=(fields,),
            output_schema=fields,
        )

    # -----------------------------
    # Grouping stages
    # -----------------------------
    def _group_by(self, stage: GroupByStage, inputs: Sequence[Scope]) -> Scope:
        if not inputs:
            raise PlannerError(f"GroupBy {stage.name} has no inputs")
        values = [scope.row_fields for scope in inputs]
        for other in values[1:]:
            if other.names != values[0].names:
                raise PlannerError(
                    f"Merged inputs must declare the same fields: {list(values[0].names)} != {list(other.names)}"
                )
        key_selectors = tuple(_project(v, stage.keys, "grouping key") for v in values)
        sort_keys = None if stage.sort_by is None else _project(values[0], stage.sort_by, "sort key")
        return Scope(
            name=stage.name,
            kind=StageKind.GROUP,
            input_schemas=tuple(values),
            output_schema=values[0],
            grouping_keys=key_selectors[0],
            key_selectors=key_selectors,
            sort_keys=sort_keys,
        )

    def _join_fields(
        self,
        name: str,
        keys: tuple[tuple[FieldName, ...], ...],
        declared: FieldSchema | None,
        inputs: Sequence[Scope],
    ) -> tuple[tuple[FieldSchema, ...], tuple[FieldSchema, ...], FieldSchema]:
        if len(inputs) < 2:
            raise PlannerError(f"Join {name} requires at least two inputs, got {len(inputs)}")
        if len(keys) != len(inputs):
            raise PlannerError(f"Join {name} has {len(keys)} key selectors for {len(inputs)} inputs")
        values = tuple(scope.row_fields for scope in inputs)
        key_selectors = tuple(_project(v, k, "join key") for v, k in zip(values, keys, strict=True))
        sizes = {len(k) for k in key_selectors}
        if len(sizes) != 1:
            raise PlannerError(f"Join key selectors must be the same size: {[list(k.names) for k in key_selectors]}")
        concatenated = [n for v in values for n in v.names]
        if declared is None:
            if len(concatenated) != len(set(concatenated)):
                raise PlannerError(f"Join inputs share field names and no fields were declared: {concatenated}")
            declared = dedup(*values)
        elif len(declared) != len(concatenated):
            raise PlannerError(
                f"Declared fields {list(declared.names)} must match the size of the joined inputs {concatenated}"
            )
        return values, key_selectors, declared

    def _co_group(self, stage: CoGroupStage, inputs: Sequence[Scope]) -> Scope:
        values, key_selectors, declared = self._join_fields(stage.name, stage.keys, stage.declared, inputs)
        grouping = stage.result_keys if stage.result_keys is not None else key_selectors[0]
        return Scope(
            name=stage.name,
            kind=StageKind.GROUP,
            input_schemas=values,
            output_schema=declared,
            grouping_keys=grouping,
            key_selectors=key_selectors,
        )

    def _hash_join(self, stage: HashJoinStage, inputs: Sequence[Scope]) -> Scope:
        values, key_selectors, declared = self._join_fields(stage.name, stage.keys, stage.declared, inputs)
        return Scope(
            name=stage.name,
            kind=StageKind.TRANSFORM,
            input_schemas=values,
            output_schema=declared,
            key_selectors=key_selectors,
        )

    # -----------------------------
    # Aggregation stages
    # -----------------------------
    def _every(self, stage: EveryStage, incoming: Scope) -> Scope:
        if incoming.kind not in (StageKind.GROUP, StageKind.AGGREGATE) or incoming.grouping_keys is None:
            raise PlannerError(f"Every {stage.name} must follow a grouping stage, not a {incoming.kind} stage")
        values = incoming.output_schema
        grouping = incoming.grouping_keys
        key_names = {n for k in incoming.key_selectors for n in k.names} | set(grouping.names)
        match stage.arguments:
            case Selector.ALL:
                args = values
            case Selector.VALUES:
                args = values.difference(key_names)
            case Selector.GROUP:
                args = grouping
            case Selector():
                raise PlannerError(f"Selector {stage.arguments.upper()} cannot select aggregator arguments")
            case _:
                args = _project(values, stage.arguments, "argument")

        operation = stage.operation
        if operation.is_assertion:
            outgoing = grouping
        elif operation.is_aggregator or operation.is_buffer:
            results = _results(operation, args)
            output = stage.output or Selector.RESULTS
            if output is Selector.ALL:
                outgoing = _append(values if operation.is_buffer else grouping, results)
            elif output is Selector.RESULTS:
                outgoing = results
            elif isinstance(output, Selector):
                raise PlannerError(f"Selector {output.upper()} is not a valid aggregation output")
            else:
                outgoing = _project(_append(grouping, results), output, "output")
        else:
            raise PlannerError(f"{operation.kind} operation {operation.name} cannot be applied by an Every")
        return Scope(
            name=stage.name,
            kind=StageKind.AGGREGATE,
            input_schemas=(values,),
            output_schema=values,
            grouping_keys=outgoing,
            key_selectors=incoming.key_selectors,
            sort_keys=incoming.sort_keys,
        )

    def _aggregate_by(self, stage: AggregateByStage, inputs: Sequence[Scope]) -> Scope:
        if not inputs:
            raise PlannerError(f"AggregateBy {stage.name} has no inputs")
        values = tuple(scope.row_fields for scope in inputs)
        for fields in values:
            absent = fields.missing(stage.keys.names)
            if absent:
                raise PlannerError(f"Grouping fields {absent} not found in {list(fields.names)}")
            for composite in stage.composites:
                if isinstance(composite.argument, FieldSchema):
                    absent = fields.missing(composite.argument.names)
                    if absent:
                        raise PlannerError(f"Aggregated fields {absent} not found in {list(fields.names)}")
        keys = values[0].project(stage.keys.names)
        outgoing = keys
        for composite in stage.composites:
            declared = composite.declared
            if composite.type is not None:
                declared = declared.with_types({n: composite.type for n in declared.names})
            outgoing = _append(outgoing, declared)
        return Scope(
            name=stage.name,
            kind=StageKind.AGGREGATE,
            input_schemas=values,
            output_schema=outgoing,
            grouping_keys=outgoing,
            key_selectors=tuple(keys for _ in values),
        )

    # -----------------------------
    # Helpers
    # -----------------------------
    @staticmethod
    def _single(stage: StageDescriptor, inputs: Sequence[Scope]) -> Scope:
        if len(inputs) != 1:
            raise PlannerError(f"{stage.describe()} requires exactly one input, got {len(inputs)}")
        return inputs[0]


def _project(schema: FieldSchema, selection: Sequence[FieldName], what: str) -> FieldSchema:
    try:
        return schema.project(selection)
    except CompositionError as exc:
        raise PlannerError(f"Unable to resolve {what} selector {list(selection)}: {exc.detail}") from exc


def _append(left: FieldSchema, right: FieldSchema) -> FieldSchema:
    clash = [n for n in right.names if n in left]
    if clash:
        raise PlannerError(f"Output fields {clash} collide with {list(left.names)}")
    return left.append(right)


def _select(fields: FieldSchema, selection: Selection, what: str) -> FieldSchema:
    if selection is Selector.ALL:
        return fields
    if isinstance(selection, Selector):
        raise PlannerError(f"Selector {selection.upper()} cannot select {what} fields of a row stage")
    return _project(fields, selection, what)


def _results(operation: Operation, args: FieldSchema) -> FieldSchema:
    """Fields declared by an operation applied to ``args``."""
    if operation.arity is not None and len(args) != operation.arity:
        raise PlannerError(f"{operation.name} expects {operation.arity} argument(s), got {list(args.names)}")
    if operation.declared is Selector.ARGS:
        results = args
    elif isinstance(operation.declared, Selector):
        raise PlannerError(f"{operation.name} cannot declare {operation.declared.upper()} as its results")
    else:
        results = operation.declared
    if operation.retype:
        try:
            results = results.with_types(dict(operation.retype))
        except CompositionError as exc:
            raise PlannerError(f"Unable to retype results of {operation.name}: {exc.detail}") from exc
    return results


def _output(incoming: FieldSchema, args: FieldSchema, results: FieldSchema, output: Selection) -> FieldSchema:
    """Combine the incoming tuple with an operation's results."""
    match output:
        case Selector.RESULTS:
            return results
        case Selector.ALL:
            return _append(incoming, results)
        case Selector.REPLACE:
            if len(args) != len(results):
                raise PlannerError(
                    f"REPLACE requires as many results as arguments: {list(args.names)} -> {list(results.names)}"
                )
            renamed = dict(zip(args.names, results.names, strict=True))
            typed = {r.name: r.type for r in results.fields if r.type is not None}
            try:
                replaced = incoming.rename(renamed)
                return replaced.with_types(typed) if typed else replaced
            except CompositionError as exc:
                raise PlannerError(f"Unable to replace {list(args.names)}: {exc.detail}") from exc
        case Selector.SWAP:
            return _append(incoming.difference(args.names), results)
        case Selector():
            raise PlannerError(f"Selector {output.upper()} is not a valid output selector")
        case _:
            ambiguous = [r for r in output if isinstance(r, str) and r in incoming and r in results]
            if ambiguous:
                raise PlannerError(f"Output selector names ambiguous fields {ambiguous}")
            combined = FieldSchema(
                tuple(incoming.fields) + tuple(r for r in results.fields if r.name not in incoming)
            )
            return _project(combined, output, "output")
