# src/flowscope/compose/flow.py
"""Flow builder: sources, sinks and the assemblies connecting them.

A flow owns the stage graph and the scope of every named assembly and
source. Its ``plan`` is the hand-off to the external planner.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from flowscope.compose.assembly import Assembly
from flowscope.contracts.errors import InvalidStageOptions, MissingNode
from flowscope.contracts.schema import FieldSchema
from flowscope.contracts.scope import Scope
from flowscope.contracts.taps import SourceDescriptor
from flowscope.contracts.types import StageID
from flowscope.core.graph import StageGraph, StageInfo
from flowscope.core.nodes import Node
from flowscope.core.resolver import FieldAlgebraResolver, PlannerResolver, source_scope

logger = structlog.get_logger(__name__)

SPILL_THRESHOLD = "cascading.cogroup.spill.threshold"
CACHE_FILES = "mapred.cache.files"
CACHE_ARCHIVES = "mapred.cache.archives"


def parse_mode(mode: str | None) -> str:
    """Execution mode recorded for the planner; anything but ``local`` is distributed."""
    return "local" if mode == "local" else "distributed"


@dataclass(frozen=True)
class FlowPlan:
    """Everything the external planner needs to execute one flow.

    Attributes:
        name: Qualified name of the flow
        mode: "local" or "distributed"
        sources: Source descriptors by name
        sinks: Sink descriptors by name
        source_stages: Stage reading each source
        sink_stages: Tail stage feeding each sink
        sink_schemas: Fields written to each sink
        graph: Stage graph of the flow
        properties: Snapshot of the flow properties
    """

    name: str
    mode: str
    sources: Mapping[str, SourceDescriptor]
    sinks: Mapping[str, Any]
    source_stages: Mapping[str, StageID]
    sink_stages: Mapping[str, StageID]
    sink_schemas: Mapping[str, FieldSchema]
    graph: StageGraph
    properties: Mapping[str, str] = field(default_factory=dict)

    def stages(self) -> list[StageInfo]:
        return self.graph.stages()


class Flow(Node):
    """A flow of assemblies reading sources and writing sinks.

    Assemblies and sources share one scope namespace: an assembly named
    after a source starts from that source's fields, and a sink is fed by
    the assembly (or source) with the sink's name.
    """

    kind = "flow"

    def __init__(
        self,
        name: str,
        parent: Node | None = None,
        *,
        properties: Mapping[str, str] | None = None,
        mode: str | None = None,
        resolver: PlannerResolver | None = None,
        composite_rewrite: bool = True,
    ) -> None:
        super().__init__(name, parent)
        self.properties: dict[str, str] = dict(properties or {})
        self.mode = parse_mode(mode)
        self.resolver: PlannerResolver = resolver or FieldAlgebraResolver()
        self.composite_rewrite = composite_rewrite
        self.graph = StageGraph()
        self.sources: dict[str, SourceDescriptor] = {}
        self.sinks: dict[str, Any] = {}
        self.source_scopes: dict[str, Scope] = {}
        self.source_stages: dict[str, StageID] = {}

    # -----------------------------
    # Building
    # -----------------------------
    def source(self, name: str, tap: SourceDescriptor) -> Scope:
        """Register a source; an assembly with the same name reads it.

        Raises:
            InvalidStageOptions: If ``tap`` does not declare its output schema
        """
        if not isinstance(tap, SourceDescriptor):
            raise InvalidStageOptions(
                f"Source '{name}' must declare its output schema, got {type(tap).__name__}",
                node=self.qualified_name,
            )
        scope = source_scope(name, tap.declared_output_schema())
        self.sources[name] = tap
        self.source_scopes[name] = scope
        self.source_stages[name] = self.graph.add_stage(name, "source", None, scope)
        logger.debug("source_registered", node=self.qualified_name, source=name, fields=list(scope.output_schema))
        return scope

    def sink(self, name: str, tap: Any) -> None:
        """Register a sink fed by the assembly named ``name``."""
        self.sinks[name] = tap
        logger.debug("sink_registered", node=self.qualified_name, sink=name)

    def assembly(self, name: str, body: Callable[[Assembly], object] | None = None) -> Assembly:
        """Build an assembly, then run ``body`` against it.

        Raises:
            AmbiguousNodeName: If the flow already has an assembly named ``name``
        """
        assembly = Assembly.open(name, self)
        if body is not None:
            body(assembly)
        return assembly

    # -----------------------------
    # Properties
    # -----------------------------
    def set_spill_threshold(self, threshold: int) -> None:
        self.properties[SPILL_THRESHOLD] = str(threshold)

    def add_file_to_distributed_cache(self, path: str) -> None:
        self._add_to_distributed_cache(path, CACHE_FILES)

    def add_archive_to_distributed_cache(self, path: str) -> None:
        self._add_to_distributed_cache(path, CACHE_ARCHIVES)

    def _add_to_distributed_cache(self, path: str, key: str) -> None:
        current = self.properties.get(key)
        self.properties[key] = ",".join([*current.split(","), path]) if current else path

    # -----------------------------
    # Introspection
    # -----------------------------
    def scope(self, name: str | None = None) -> Scope:
        """Scope of the named assembly or source; defaults to the last assembly built.

        Raises:
            InvalidStageOptions: If no name is given and no assembly exists yet
            AmbiguousNodeName: If more than one assembly or branch has that name
            MissingNode: If nothing in the flow has that name
        """
        if name is None:
            if not isinstance(self.last_child, Assembly):
                raise InvalidStageOptions(
                    "Must specify name if no children have been defined yet", node=self.qualified_name
                )
            return self.last_child.scope
        scope = self._named_scope(name)
        if scope is None:
            raise MissingNode(f"No assembly or source named '{name}'", node=self.qualified_name)
        return scope

    def _named_scope(self, name: str) -> Scope | None:
        # An assembly shadows the source it reads
        node = self.find_child(name)
        if isinstance(node, Assembly):
            return node.scope
        return self.source_scopes.get(name)

    def debug_scope(self, name: str | None = None) -> str:
        scope = self.scope(name)
        text = f"Scope for '{scope.name}':\n  {scope.describe()}"
        logger.debug("debug_scope", node=self.qualified_name, scope=text)
        return text

    def sink_schema(self) -> dict[str, FieldSchema]:
        """Fields written to each sink, keyed by sink name.

        Raises:
            AmbiguousNodeName: If more than one assembly or branch has a sink's name
            MissingNode: If a sink has no assembly or source feeding it
        """
        schemas: dict[str, FieldSchema] = {}
        for sink_name in self.sinks:
            scope = self._named_scope(sink_name)
            if scope is None:
                raise MissingNode(f"Cannot sink undefined assembly '{sink_name}'", node=self.qualified_name)
            schemas[sink_name] = scope.values_fields
        return schemas

    def sink_metadata(self) -> dict[str, dict[str, list[str]]]:
        return {name: {"field_names": list(schema.names)} for name, schema in self.sink_schema().items()}

    def describe(self, offset: str = "") -> str:
        lines = [f"{offset}{self.name}:flow"]
        lines.extend(
            f"{offset}  {name}:source :: {self.source_scopes[name].values_fields}" for name in self.sources
        )
        lines.extend(child.describe(f"{offset}  ") for child in self.children.values())
        for name in self.sinks:
            scope = self._named_scope(name)
            fields = "undefined" if scope is None else str(scope.values_fields)
            lines.append(f"{offset}  {name}:sink :: {fields}")
        return "\n".join(lines)

    def describe_stages(self) -> str:
        """Every stage in topological order with its input and output fields."""
        lines = [f"{self.name}:flow"]
        for info in self.graph.stages():
            descriptor = "Source" if info.descriptor is None else info.descriptor.describe()
            assert info.scope is not None
            inputs = ", ".join(str(s) for s in info.scope.input_schemas) or "none"
            lines.append(f"  {info.stage_id} {descriptor} :: {inputs} -> {info.scope.values_fields}")
        return "\n".join(lines)

    # -----------------------------
    # Hand-off
    # -----------------------------
    def plan(self) -> FlowPlan:
        """Freeze the flow into the structure handed to the external planner.

        Raises:
            MissingNode: If a source feeds no assembly or a sink has no assembly
        """
        node = self.qualified_name
        for source_name in self.sources:
            if not isinstance(self.find_child(source_name), Assembly):
                raise MissingNode(f"Source '{source_name}' is not read by any assembly", node=node)
        sink_stages: dict[str, StageID] = {}
        for sink_name in self.sinks:
            assembly = self.find_child(sink_name)
            if not isinstance(assembly, Assembly):
                raise MissingNode(f"Cannot sink undefined assembly '{sink_name}'", node=node)
            assert assembly.tail is not None
            sink_stages[sink_name] = assembly.tail
        plan = FlowPlan(
            name=node,
            mode=self.mode,
            sources=dict(self.sources),
            sinks=dict(self.sinks),
            source_stages=dict(self.source_stages),
            sink_stages=sink_stages,
            sink_schemas=self.sink_schema(),
            graph=self.graph,
            properties=dict(self.properties),
        )
        logger.info(
            "flow_planned",
            node=node,
            mode=self.mode,
            stages=self.graph.node_count,
            sources=list(self.sources),
            sinks=list(self.sinks),
        )
        return plan


def sink_schema(flow: Flow) -> dict[str, FieldSchema]:
    """Final output fields of every sink of ``flow``."""
    return flow.sink_schema()


def describe(node: Node) -> str:
    """Indented report of a cascade, flow or assembly and everything below it."""
    return node.describe()
