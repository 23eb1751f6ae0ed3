# src/flowscope/compose/assembly.py
"""Assembly builder: a named pipeline of stages within a flow.

An assembly starts from a head stage whose scope is either the scope of a
source with the same name, an independent copy of its parent assembly's
scope (for branches), or an empty scope. Every operation resolves one new
stage against the current scope and advances the tail.

Row operation vocabularies are capability classes holding a reference to the
assembly; the assembly forwards to them so pipelines read as one DSL:

    flow.assembly("input", lambda a: (
        a.project("name", "score"),
        a.group_by("name", body=lambda g: g.count()),
    ))
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING

import structlog

from flowscope.compose.aggregations import Aggregations
from flowscope.compose.joins import (
    check_union_schemas,
    join_keys,
    parse_joiner,
    resolve_keys,
    result_keys,
    union_key,
)
from flowscope.compose.operations import (
    AssertionOperations,
    FilterOperations,
    IdentityOperations,
    RegexOperations,
    TextOperations,
)
from flowscope.contracts.enums import Selector, TypeTag
from flowscope.contracts.errors import (
    AmbiguousOperationKind,
    InvalidStageOptions,
    MissingNode,
    UnknownField,
    UnsupportedAggregation,
)
from flowscope.contracts.operations import Operation
from flowscope.contracts.options import EachOptions, FieldOption, GroupByOptions, JoinOptions, UnionOptions
from flowscope.contracts.schema import FieldSchema, as_declared, as_selection, dedup, field_args
from flowscope.contracts.scope import Scope
from flowscope.contracts.stages import CoGroupStage, EachStage, GroupByStage, GroupStage, HashJoinStage, HeadStage
from flowscope.contracts.types import FieldName, FieldRef, KeySpec, StageID
from flowscope.core.expressions import Expression
from flowscope.core.nodes import Node
from flowscope.core.resolver import copy as copy_scope, resolve

if TYPE_CHECKING:
    from flowscope.compose.flow import Flow
    from flowscope.contracts.stages import StageDescriptor

logger = structlog.get_logger(__name__)

type AggregationsBody = Callable[[Aggregations], object]


class Assembly(Node):
    """A linear pipeline of stages, optionally branching into child assemblies.

    Attributes:
        flow: Flow owning this assembly's stages and scopes
        head: First stage of the assembly
        tail: Last stage built so far
        incoming_scopes: Scopes feeding the assembly; replaced by a join or union
    """

    kind = "assembly"

    def __init__(self, name: str, parent: Flow | Assembly) -> None:
        super().__init__(name, parent)
        self.flow: Flow = parent.flow if isinstance(parent, Assembly) else parent
        self.head: StageID | None = None
        self.tail: StageID | None = None
        self.incoming_scopes: list[Scope] = []
        self._scope: Scope | None = None
        self._identity = IdentityOperations(self)
        self._filters = FilterOperations(self)
        self._assertions = AssertionOperations(self)
        self._regex = RegexOperations(self)
        self._text = TextOperations(self)

    @classmethod
    def open(cls, name: str, parent: Flow | Assembly) -> Assembly:
        """Create an assembly under ``parent`` and build its head stage.

        Raises:
            AmbiguousNodeName: If ``parent`` already has a child named ``name``
        """
        assembly = parent.add_child(cls(name, parent))
        assembly._start()
        return assembly

    def _start(self) -> None:
        flow = self.flow
        predecessors: list[StageID] = []
        if isinstance(self.parent, Assembly):
            parent = self.parent
            incoming = copy_scope(parent.scope, self.name)
            predecessors.append(parent._tail())
            logger.debug("branch_created", node=self.qualified_name, parent=parent.qualified_name)
        elif self.name in flow.source_scopes:
            incoming = flow.source_scopes[self.name]
            predecessors.append(flow.source_stages[self.name])
        else:
            incoming = Scope.empty(self.name)
        head = HeadStage(self.name)
        scope = resolve(head, [incoming], flow.resolver, node=self.qualified_name)
        self.head = self.tail = flow.graph.add_stage(self.name, "head", head, scope, predecessors)
        self._scope = scope
        self.incoming_scopes = [scope]

    # -----------------------------
    # Scope access
    # -----------------------------
    @property
    def scope(self) -> Scope:
        """Scope after the current tail."""
        assert self._scope is not None
        return self._scope

    def debug_scope(self) -> str:
        text = f"Current scope for '{self.name}':\n  {self.scope.describe()}\n----------\n"
        logger.debug("debug_scope", node=self.qualified_name, scope=text)
        return text

    def describe(self, offset: str = "") -> str:
        incoming = ", ".join(str(s.values_fields) for s in self.incoming_scopes)
        if len(self.incoming_scopes) != 1:
            incoming = f"({incoming})"
        lines = [f"{offset}{self.name}:assembly :: {incoming} -> {self.scope.values_fields}"]
        lines.extend(child.describe(f"{offset}  ") for child in self.children.values())
        return "\n".join(lines)

    # -----------------------------
    # Row-wise stages
    # -----------------------------
    def each(
        self,
        *arguments: FieldRef,
        function: Operation | None = None,
        filter: Operation | None = None,
        output: FieldRef | None = None,
    ) -> EachStage:
        """Append a row-wise stage applying a function, or a filter or assertion.

        Arguments default to every field; the output selector of a function
        defaults to its results.

        Raises:
            AmbiguousOperationKind: If not exactly one of function or filter is
                given, or the operation is of the other kind
            InvalidStageOptions: If an output selector is given with a filter
            UnknownField: If an argument is not in the current scope
            ScopeResolutionError: If the planner rejects the stage
        """
        node = self.qualified_name
        options = EachOptions(function=function, filter=filter, output=output)
        if (options.function is None) == (options.filter is None):
            raise AmbiguousOperationKind("each requires either function or filter", node=node)
        if options.filter is not None and options.output is not None:
            raise InvalidStageOptions("An output selector cannot be applied to a filter", node=node)
        if options.function is not None and not options.function.is_function:
            raise AmbiguousOperationKind(
                f"function specified but {options.function.kind} {options.function.name} provided", node=node
            )
        if options.filter is not None and not (options.filter.is_filter or options.filter.is_assertion):
            raise AmbiguousOperationKind(
                f"filter specified but {options.filter.kind} {options.filter.name} provided", node=node
            )
        operation = options.function or options.filter
        assert operation is not None

        selection = field_args(arguments)
        if selection is None:
            selection = Selector.ALL
        if isinstance(selection, tuple):
            self._check_fields(selection)
        stage = EachStage(self.name, operation, selection, as_selection(options.output))
        self._append("each", stage)
        return stage

    # Identity operations
    def project(self, *fields: FieldRef) -> EachStage:
        return self._identity.project(*fields)

    def discard(self, *fields: FieldRef) -> EachStage:
        return self._identity.discard(*fields)

    def rename(self, name_map: Mapping[str, str]) -> EachStage:
        return self._identity.rename(name_map)

    def copy(self, name_map: Mapping[str, str]) -> EachStage:
        return self._identity.copy(name_map)

    def cast(self, type_map: Mapping[str, TypeTag | str]) -> EachStage:
        return self._identity.cast(type_map)

    def passthrough(self) -> EachStage:
        return self._identity.passthrough()

    def insert(self, values: Mapping[str, object]) -> list[EachStage]:
        return self._identity.insert(values)

    # Filters
    def filter(
        self,
        expression: str | Expression | None = None,
        *,
        from_fields: FieldRef = Selector.ALL,
        pattern: str | None = None,
        validate_expression: bool = True,
    ) -> EachStage:
        return self._filters.filter(
            expression, from_fields=from_fields, pattern=pattern, validate_expression=validate_expression
        )

    def reject(
        self,
        expression: str | Expression | None = None,
        *,
        from_fields: FieldRef = Selector.ALL,
        pattern: str | None = None,
    ) -> EachStage:
        return self._filters.reject(expression, from_fields=from_fields, pattern=pattern)

    def where(
        self,
        expression: str | Expression | None = None,
        *,
        from_fields: FieldRef = Selector.ALL,
        pattern: str | None = None,
    ) -> EachStage:
        return self._filters.where(expression, from_fields=from_fields, pattern=pattern)

    def filter_null(self, *fields: FieldRef) -> EachStage:
        return self._filters.filter_null(*fields)

    def filter_not_null(self, *fields: FieldRef) -> EachStage:
        return self._filters.filter_not_null(*fields)

    reject_null = filter_null
    where_null = filter_not_null

    # Assertions
    def assert_size_equals(self, size: int, *, level: str = "strict") -> EachStage:
        return self._assertions.assert_size_equals(size, level=level)

    def assert_not_null(self, *, level: str = "strict") -> EachStage:
        return self._assertions.assert_not_null(level=level)

    # Regex operations
    def parse(
        self,
        input_field: FieldRef,
        regex: str,
        into_fields: Sequence[str] | str,
        *,
        groups: list[int] | None = None,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        return self._regex.parse(input_field, regex, into_fields, groups=groups, output=output)

    def split(
        self,
        input_field: FieldRef,
        regex: str,
        into_fields: Sequence[str] | str,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        return self._regex.split(input_field, regex, into_fields, output=output)

    def split_rows(
        self,
        input_field: FieldRef,
        regex: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        return self._regex.split_rows(input_field, regex, into_field, output=output)

    def match_rows(
        self,
        input_field: FieldRef,
        regex: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        return self._regex.match_rows(input_field, regex, into_field, output=output)

    def replace(
        self,
        input_field: FieldRef,
        regex: str,
        into_field: FieldRef,
        replacement: str,
        *,
        replace_all: bool | None = None,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        return self._regex.replace(input_field, regex, into_field, replacement, replace_all=replace_all, output=output)

    # Text operations
    def parse_date(
        self,
        input_field: FieldRef,
        date_format: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        return self._text.parse_date(input_field, date_format, into_field, output=output)

    def format_date(
        self,
        input_field: FieldRef,
        date_format: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        return self._text.format_date(input_field, date_format, into_field, output=output)

    def join_fields(
        self,
        input_fields: FieldRef,
        delimiter: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        return self._text.join_fields(input_fields, delimiter, into_field, output=output)

    # -----------------------------
    # Branching and grouping
    # -----------------------------
    def branch(self, name: str, body: Callable[[Assembly], object] | None = None) -> Assembly:
        """Build a child assembly starting from a copy of the current scope.

        The parent's tail and scope are left untouched.

        Raises:
            AmbiguousNodeName: If this assembly already has a child named ``name``
        """
        assembly = Assembly.open(name, self)
        if body is not None:
            body(assembly)
        return assembly

    def group_by(
        self,
        *keys: FieldRef,
        sort_by: FieldOption | None = None,
        reverse: bool | None = None,
        body: AggregationsBody | None = None,
    ) -> GroupByStage:
        """Group rows on ``keys``; ``body`` receives the aggregations context.

        Raises:
            InvalidStageOptions: If no grouping field is given
            UnknownField: If a key or sort field is not in the current scope
        """
        node = self.qualified_name
        options = GroupByOptions(sort_by=sort_by, reverse=reverse)
        selection = field_args(keys)
        if not isinstance(selection, tuple) or not selection:
            raise InvalidStageOptions(f"group_by requires grouping fields, got {keys!r}", node=node)
        self._check_fields(selection)
        sort = self._sort_fields(options.sort_by)
        if sort is not None:
            self._check_fields(sort)
        stage = GroupByStage(self.name, (self.name,), selection, sort, options.reverse)
        self._group("group_by", stage, [self.scope], [self._tail()], body)
        return stage

    def union(
        self,
        *names: str,
        on: FieldOption | None = None,
        sort_by: FieldOption | None = None,
        reverse: bool | None = None,
        body: AggregationsBody | None = None,
    ) -> GroupByStage:
        """Merge assemblies sharing the same fields and group them.

        Groups on the first field of the first assembly unless ``on`` says
        otherwise. When ``reverse`` is given without ``sort_by``, the grouping
        key is also the sort key.

        Raises:
            InvalidStageOptions: If no assembly is named
            MissingNode: If a named assembly does not exist in the flow
            SchemaMismatch: If the assemblies disagree on the key fields
        """
        node = self.qualified_name
        options = UnionOptions(on=on, sort_by=sort_by, reverse=reverse)
        if not names:
            raise InvalidStageOptions("union requires at least one assembly", node=node)
        branches = self._incoming(names)
        schemas = {branch.name: branch.scope.values_fields for branch in branches}
        on_fields = as_selection(options.on)
        if isinstance(on_fields, Selector):
            raise InvalidStageOptions(f"union keys must name fields, got {on_fields.upper()}", node=node)
        keys = check_union_schemas(schemas, union_key(on_fields, schemas[names[0]], node=node), node=node)
        sort = self._sort_fields(options.sort_by)
        if sort is None and options.reverse is not None:
            sort = keys
        stage = GroupByStage(self.name, tuple(b.name for b in branches), keys, sort, options.reverse)
        scopes = [b.scope for b in branches]
        self._group("group_by", stage, scopes, [b._tail() for b in branches], body)
        self.incoming_scopes = scopes
        return stage

    def join(
        self,
        *names: str,
        on: KeySpec | None = None,
        joiner: str | Sequence[bool | int | str] | None = None,
        declared_fields: FieldSchema | Sequence[str] | None = None,
        hash: bool = False,
        body: AggregationsBody | None = None,
    ) -> CoGroupStage | HashJoinStage:
        """Join assemblies on key fields.

        ``on`` is one field list for every assembly, or a mapping from
        assembly name to its key fields (the assemblies are then taken from
        the mapping, in sorted name order). Output fields default to the
        deduplicated concatenation of the joined assemblies; the grouping
        fields of a join are the key names, each once.

        Raises:
            MissingJoinKey: If ``on`` is absent or empty
            MissingNode: If a named assembly does not exist in the flow
            UnknownField: If a key is not in its assembly
            InvalidJoinerSpec: If the joiner is unknown or does not fit the assemblies
            UnsupportedAggregation: If a hash join is given a body
        """
        node = self.qualified_name
        options = JoinOptions(
            on=on,  # type: ignore[arg-type]
            joiner=list(joiner) if joiner is not None and not isinstance(joiner, str) else joiner,
            declared_fields=(
                list(declared_fields)
                if isinstance(declared_fields, Sequence) and not isinstance(declared_fields, str)
                else declared_fields
            ),
            hash=hash,
        )
        branch_names, key_lists = join_keys(options.on, names, node=node)
        branches = self._incoming(branch_names)
        scopes = [b.scope for b in branches]
        keys = tuple(resolve_keys(s.values_fields, k, node=node) for s, k in zip(scopes, key_lists, strict=True))
        declared = as_declared(options.declared_fields)
        if declared is None:
            declared = dedup(*(s.values_fields for s in scopes))
        if isinstance(declared, Selector):
            raise InvalidStageOptions(f"declared_fields must name fields, got {declared.upper()}", node=node)
        parsed = parse_joiner(options.joiner, len(branches), node=node)
        predecessors = [b._tail() for b in branches]
        inputs = tuple(branch_names)

        stage: CoGroupStage | HashJoinStage
        if options.hash:
            if body is not None:
                raise UnsupportedAggregation("hash joins don't support aggregations", node=node)
            stage = HashJoinStage(self.name, inputs, keys, declared, parsed)
            self._append("hash_join", stage, scopes, predecessors)
        else:
            stage = CoGroupStage(self.name, inputs, keys, declared, result_keys(keys), parsed)
            self._group("co_group", stage, scopes, predecessors, body)
        self.incoming_scopes = scopes
        return stage

    co_group = join

    def inner_join(self, *names: str, on: KeySpec | None = None, **kwargs: object) -> CoGroupStage | HashJoinStage:
        return self.join(*names, on=on, joiner="inner", **kwargs)  # type: ignore[arg-type]

    def left_join(self, *names: str, on: KeySpec | None = None, **kwargs: object) -> CoGroupStage | HashJoinStage:
        return self.join(*names, on=on, joiner="left", **kwargs)  # type: ignore[arg-type]

    def right_join(self, *names: str, on: KeySpec | None = None, **kwargs: object) -> CoGroupStage | HashJoinStage:
        return self.join(*names, on=on, joiner="right", **kwargs)  # type: ignore[arg-type]

    def outer_join(self, *names: str, on: KeySpec | None = None, **kwargs: object) -> CoGroupStage | HashJoinStage:
        return self.join(*names, on=on, joiner="outer", **kwargs)  # type: ignore[arg-type]

    def hash_join(
        self,
        *names: str,
        on: KeySpec | None = None,
        joiner: str | Sequence[bool | int | str] | None = None,
        declared_fields: FieldSchema | Sequence[str] | None = None,
        body: AggregationsBody | None = None,
    ) -> CoGroupStage | HashJoinStage:
        """Join holding every assembly but the first in memory. Takes no body."""
        return self.join(*names, on=on, joiner=joiner, declared_fields=declared_fields, hash=True, body=body)

    # -----------------------------
    # Helpers
    # -----------------------------
    def _tail(self) -> StageID:
        assert self.tail is not None
        return self.tail

    def _append(
        self,
        label: str,
        stage: StageDescriptor,
        inputs: Sequence[Scope] | None = None,
        predecessors: Sequence[StageID] | None = None,
    ) -> Scope:
        flow = self.flow
        scope = resolve(stage, [self.scope] if inputs is None else inputs, flow.resolver, node=self.qualified_name)
        self.tail = flow.graph.add_stage(
            self.name, label, stage, scope, [self._tail()] if predecessors is None else predecessors
        )
        self._scope = scope
        return scope

    def _group(
        self,
        label: str,
        stage: GroupStage,
        inputs: Sequence[Scope],
        predecessors: Sequence[StageID],
        body: AggregationsBody | None,
    ) -> None:
        group_scope = self._append(label, stage, inputs, predecessors)
        if body is None:
            return
        aggregations = Aggregations(
            self,
            stage,
            self._tail(),
            group_scope,
            inputs,
            composite_rewrite=self.flow.composite_rewrite,
        )
        body(aggregations)
        self.tail, self._scope = aggregations.close()

    def _incoming(self, names: Sequence[str]) -> list[Assembly]:
        found: list[Assembly] = []
        for name in names:
            assembly = self.flow.find_child(name)
            if not isinstance(assembly, Assembly):
                raise MissingNode(f"Could not find assembly '{name}' from '{self.name}'", node=self.qualified_name)
            found.append(assembly)
        return found

    def _check_fields(self, selection: Sequence[FieldName]) -> None:
        values = self.scope.values_fields
        missing = values.missing(selection)
        if missing:
            raise UnknownField(missing, values.names, node=self.qualified_name)

    def _sort_fields(self, sort_by: FieldOption | None) -> tuple[FieldName, ...] | None:
        sort = as_selection(sort_by)
        if isinstance(sort, Selector):
            raise InvalidStageOptions(f"sort_by must name fields, got {sort.upper()}", node=self.qualified_name)
        return sort
