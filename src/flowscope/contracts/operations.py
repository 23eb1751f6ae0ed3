"""Operation descriptors.

Operations themselves (functions, filters, aggregators, buffers) belong to the
external execution engine. Composition only needs their schema metadata: the
kind of behavior they contribute, what fields they declare, and how many
arguments they expect.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from flowscope.contracts.enums import CompositeKind, OperationKind, Selector, TypeTag
from flowscope.contracts.schema import FieldSchema, as_declared
from flowscope.contracts.types import FieldRef


@dataclass(frozen=True, slots=True)
class Operation:
    """Schema-level view of an operation applied by a stage.

    Attributes:
        name: Display name (e.g., "Identity", "RegexSplitter")
        kind: Behavior contributed to the stage
        declared: Fields the operation emits, or Selector.ARGS to emit its
            arguments (possibly re-typed), or Selector.ALL for pass-through
        retype: Declared types applied to ARGS results (used by cast)
        arity: Exact number of arguments required, or None for any
        params: Opaque, hashable parameters shown in descriptions
    """

    name: str
    kind: OperationKind
    declared: FieldSchema | Selector = Selector.ARGS
    retype: tuple[tuple[str, TypeTag], ...] = ()
    arity: int | None = None
    params: tuple[tuple[str, str], ...] = ()

    @property
    def is_filter(self) -> bool:
        return self.kind is OperationKind.FILTER

    @property
    def is_function(self) -> bool:
        return self.kind is OperationKind.FUNCTION

    @property
    def is_aggregator(self) -> bool:
        return self.kind is OperationKind.AGGREGATOR

    @property
    def is_buffer(self) -> bool:
        return self.kind is OperationKind.BUFFER

    @property
    def is_assertion(self) -> bool:
        return self.kind is OperationKind.ASSERTION

    def describe(self) -> str:
        declared = self.declared if isinstance(self.declared, Selector) else list(self.declared.names)
        params = "".join(f", {k}={v}" for k, v in self.params)
        return f"{self.name}({declared}{params})"


def _params(params: Mapping[str, object] | None) -> tuple[tuple[str, str], ...]:
    if not params:
        return ()
    return tuple((k, str(v)) for k, v in params.items() if v is not None)


def identity(declared: FieldRef | None = None, types: Mapping[str, TypeTag | str] | None = None) -> Operation:
    """Identity function: re-emits its arguments, optionally renamed or re-typed.

    With ``declared`` the arguments are relabelled positionally, so the
    declaration must have as many fields as there are arguments.
    """
    declaration = as_declared(declared) if declared is not None else Selector.ARGS
    retype = tuple((name, TypeTag(t)) for name, t in (types or {}).items())
    arity = len(declaration) if isinstance(declaration, FieldSchema) else None
    return Operation("Identity", OperationKind.FUNCTION, declaration, retype=retype, arity=arity)


def function(
    name: str,
    declared: FieldRef,
    *,
    arity: int | None = None,
    params: Mapping[str, object] | None = None,
) -> Operation:
    return Operation(name, OperationKind.FUNCTION, _declared(declared), arity=arity, params=_params(params))


def filter_op(name: str, *, params: Mapping[str, object] | None = None) -> Operation:
    return Operation(name, OperationKind.FILTER, Selector.ALL, params=_params(params))


def aggregator(
    name: str,
    declared: FieldRef,
    *,
    arity: int | None = None,
    params: Mapping[str, object] | None = None,
) -> Operation:
    return Operation(name, OperationKind.AGGREGATOR, _declared(declared), arity=arity, params=_params(params))


def buffer(name: str, declared: FieldRef, *, params: Mapping[str, object] | None = None) -> Operation:
    return Operation(name, OperationKind.BUFFER, _declared(declared), params=_params(params))


def assertion(name: str, *, params: Mapping[str, object] | None = None) -> Operation:
    return Operation(name, OperationKind.ASSERTION, Selector.ALL, params=_params(params))


def _declared(declared: FieldRef) -> FieldSchema | Selector:
    result = as_declared(declared)
    if result is None:
        raise ValueError("Operations must declare their fields")
    return result


@dataclass(frozen=True, slots=True)
class CompositeAggregate:
    """Composite equivalent of an aggregator, used by the AggregateBy rewrite.

    Attributes:
        kind: Which composite aggregation this is
        argument: Field(s) read from each group (Selector.VALUES for count)
        declared: Field emitted by the aggregation
        type: Declared output type, if any
    """

    kind: CompositeKind
    argument: FieldSchema | Selector
    declared: FieldSchema
    type: TypeTag | None = None

    def describe(self) -> str:
        argument = self.argument if isinstance(self.argument, Selector) else list(self.argument.names)
        return f"{self.kind.title()}By({argument} -> {list(self.declared.names)})"
