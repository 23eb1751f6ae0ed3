"""Stage descriptors handed to the planner's resolution seam.

One descriptor is built per stage. Descriptors are frozen and carry only
what field resolution needs; execution details stay with the external
engine.
"""

from __future__ import annotations

from dataclasses import dataclass

from flowscope.contracts.enums import JoinerKind, Selector
from flowscope.contracts.operations import CompositeAggregate, Operation
from flowscope.contracts.schema import FieldSchema
from flowscope.contracts.types import FieldName

type Selection = Selector | tuple[FieldName, ...]


def _fmt(selection: Selection | FieldSchema | None) -> str:
    if selection is None:
        return "null"
    if isinstance(selection, Selector):
        return selection.upper()
    if isinstance(selection, FieldSchema):
        return str(list(selection.names))
    return str(list(selection))


@dataclass(frozen=True, slots=True)
class Joiner:
    """Join semantics; ``required`` holds one flag per branch for MIXED joins."""

    kind: JoinerKind = JoinerKind.INNER
    required: tuple[bool, ...] = ()

    def describe(self) -> str:
        if self.kind is JoinerKind.MIXED:
            return f"mixed{list(self.required)}"
        return str(self.kind)


@dataclass(frozen=True, slots=True)
class HeadStage:
    """Named head pipe of an assembly; its scope is inherited, never resolved."""

    name: str

    def describe(self) -> str:
        return f"Pipe({self.name})"


@dataclass(frozen=True, slots=True)
class EachStage:
    """Row-wise stage applying a function, filter, or assertion."""

    name: str
    operation: Operation
    arguments: Selection = Selector.ALL
    output: Selection | None = None

    def describe(self) -> str:
        output = "" if self.output is None else f" -> {_fmt(self.output)}"
        return f"Each({self.name})[{_fmt(self.arguments)} {self.operation.describe()}{output}]"


@dataclass(frozen=True, slots=True)
class GroupByStage:
    """Grouping of one input, or union (merge-and-group) of several."""

    name: str
    inputs: tuple[str, ...]
    keys: tuple[FieldName, ...]
    sort_by: tuple[FieldName, ...] | None = None
    reverse: bool | None = None

    @property
    def is_sorted(self) -> bool:
        return self.sort_by is not None

    @property
    def is_sort_reversed(self) -> bool:
        return bool(self.reverse)

    def describe(self) -> str:
        sort = "" if self.sort_by is None else f" sort={_fmt(self.sort_by)}"
        reverse = "" if self.reverse is None else f" reverse={self.reverse}"
        return f"GroupBy({self.name})[{_fmt(self.keys)}{sort}{reverse}]"


@dataclass(frozen=True, slots=True)
class CoGroupStage:
    """Join of several inputs on per-input key fields."""

    name: str
    inputs: tuple[str, ...]
    keys: tuple[tuple[FieldName, ...], ...]
    declared: FieldSchema | None = None
    result_keys: FieldSchema | None = None
    joiner: Joiner = Joiner()

    is_sorted = False
    is_sort_reversed = False

    def describe(self) -> str:
        keys = ", ".join(_fmt(k) for k in self.keys)
        return f"CoGroup({self.name})[{keys} {self.joiner.describe()}]"


@dataclass(frozen=True, slots=True)
class HashJoinStage:
    """Join streaming the first input against the remaining, fully held, inputs."""

    name: str
    inputs: tuple[str, ...]
    keys: tuple[tuple[FieldName, ...], ...]
    declared: FieldSchema | None = None
    joiner: Joiner = Joiner()

    def describe(self) -> str:
        keys = ", ".join(_fmt(k) for k in self.keys)
        return f"HashJoin({self.name})[{keys} {self.joiner.describe()}]"


@dataclass(frozen=True, slots=True)
class EveryStage:
    """Per-group stage applying an aggregator, buffer, or group assertion."""

    name: str
    operation: Operation
    arguments: Selection = Selector.ALL
    output: Selection | None = None

    def describe(self) -> str:
        output = "" if self.output is None else f" -> {_fmt(self.output)}"
        return f"Every({self.name})[{_fmt(self.arguments)} {self.operation.describe()}{output}]"


@dataclass(frozen=True, slots=True)
class AggregateByStage:
    """Composite grouping + aggregation replacing a GroupBy and its aggregators."""

    name: str
    inputs: tuple[str, ...]
    keys: FieldSchema
    composites: tuple[CompositeAggregate, ...]

    def describe(self) -> str:
        composites = ", ".join(c.describe() for c in self.composites)
        return f"AggregateBy({self.name})[{_fmt(self.keys)} {composites}]"


@dataclass(frozen=True, slots=True)
class SchemaFixStage:
    """Identity over the aggregated tuple; metadata only, never planned."""

    name: str

    def describe(self) -> str:
        return f"SchemaFix({self.name})"


type StageDescriptor = (
    HeadStage
    | EachStage
    | GroupByStage
    | CoGroupStage
    | HashJoinStage
    | EveryStage
    | AggregateByStage
    | SchemaFixStage
)

type GroupStage = GroupByStage | CoGroupStage | HashJoinStage
