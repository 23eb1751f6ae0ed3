# src/flowscope/core/graph.py
"""Stage graph of a flow.

Uses NetworkX for graph bookkeeping:
- One node per constructed stage, keyed by a deterministic StageID
- Edges follow data flow (input stage -> consuming stage)
- Topological ordering for the hand-off to the external planner
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import networkx as nx

from flowscope.contracts.scope import Scope
from flowscope.contracts.stages import StageDescriptor
from flowscope.contracts.types import StageID


class GraphError(Exception):
    """Raised when the stage graph is used inconsistently."""


@dataclass(frozen=True, slots=True)
class StageInfo:
    """What the graph records for one stage.

    Attributes:
        stage_id: Deterministic identifier
        assembly: Name of the assembly that built the stage
        label: Short stage label (e.g., "each", "group_by")
        descriptor: Stage descriptor handed to the resolver; None for sources and sinks
        scope: Resolved outgoing scope
    """

    stage_id: StageID
    assembly: str
    label: str
    descriptor: StageDescriptor | None
    scope: Scope | None


class StageGraph:
    """Directed acyclic graph of the stages composed in one flow.

    Wraps a NetworkX DiGraph. Stage identifiers have the form
    ``<assembly>/<sequence>:<label>`` where the sequence counts every stage
    added to this graph, so rebuilding the same flow yields the same IDs.
    """

    def __init__(self) -> None:
        self._graph: nx.DiGraph[StageID] = nx.DiGraph()
        self._sequence = 0

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def has_stage(self, stage_id: str) -> bool:
        return self._graph.has_node(stage_id)

    def add_stage(
        self,
        assembly: str,
        label: str,
        descriptor: StageDescriptor | None,
        scope: Scope | None,
        predecessors: Sequence[StageID] = (),
    ) -> StageID:
        """Add a stage fed by ``predecessors`` and return its identifier.

        Raises:
            GraphError: If a predecessor is not in the graph
        """
        unknown = [p for p in predecessors if not self._graph.has_node(p)]
        if unknown:
            raise GraphError(f"Unknown predecessor stage(s) {unknown} for {assembly}:{label}")
        stage_id = StageID(f"{assembly}/{self._sequence}:{label}")
        self._sequence += 1
        info = StageInfo(stage_id, assembly, label, descriptor, scope)
        self._graph.add_node(stage_id, info=info)
        for predecessor in predecessors:
            self._graph.add_edge(predecessor, stage_id)
        return stage_id

    def stage(self, stage_id: StageID) -> StageInfo:
        """Return the recorded stage.

        Raises:
            GraphError: If the stage does not exist
        """
        if not self._graph.has_node(stage_id):
            raise GraphError(f"Unknown stage {stage_id}")
        info: StageInfo = self._graph.nodes[stage_id]["info"]
        return info

    def scope_of(self, stage_id: StageID) -> Scope | None:
        return self.stage(stage_id).scope

    def predecessors(self, stage_id: StageID) -> list[StageID]:
        self.stage(stage_id)
        return list(self._graph.predecessors(stage_id))

    def successors(self, stage_id: StageID) -> list[StageID]:
        self.stage(stage_id)
        return list(self._graph.successors(stage_id))

    def replace_stages(
        self,
        replaced: Sequence[StageID],
        assembly: str,
        label: str,
        descriptor: StageDescriptor,
        scope: Scope,
    ) -> StageID:
        """Collapse a run of stages into one new stage.

        The new stage inherits the inputs of the first replaced stage and the
        consumers of the last one.

        Raises:
            GraphError: If ``replaced`` is empty or names unknown stages
        """
        if not replaced:
            raise GraphError("replace_stages requires at least one stage")
        for stage_id in replaced:
            self.stage(stage_id)
        inputs = [p for p in self._graph.predecessors(replaced[0]) if p not in replaced]
        consumers = [s for s in self._graph.successors(replaced[-1]) if s not in replaced]
        self._graph.remove_nodes_from(replaced)
        new_id = self.add_stage(assembly, label, descriptor, scope, inputs)
        for consumer in consumers:
            self._graph.add_edge(new_id, consumer)
        return new_id

    def stages(self) -> list[StageInfo]:
        """All stages in a deterministic topological order.

        Raises:
            GraphError: If the graph contains a cycle
        """
        try:
            order = list(nx.lexicographical_topological_sort(self._graph, key=self._sort_key))
        except nx.NetworkXUnfeasible as exc:
            raise GraphError(f"Stage graph contains a cycle: {exc}") from exc
        return [self.stage(stage_id) for stage_id in order]

    @staticmethod
    def _sort_key(stage_id: StageID) -> tuple[int, str]:
        sequence = stage_id.rsplit("/", 1)[1].split(":", 1)[0]
        return int(sequence), stage_id
