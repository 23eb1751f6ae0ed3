# src/flowscope/compose/cascade.py
"""Cascade builder: a named group of flows sharing default properties and mode."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import structlog
import yaml

from flowscope.compose.flow import Flow, FlowPlan
from flowscope.core.nodes import Node
from flowscope.core.resolver import FieldAlgebraResolver, PlannerResolver

logger = structlog.get_logger(__name__)


class Cascade(Node):
    """Root node grouping flows.

    Properties and mode are defaults for child flows; each flow receives its
    own copy of the properties, so a flow's changes never leak to siblings.
    """

    kind = "cascade"

    def __init__(
        self,
        name: str,
        *,
        properties: Mapping[str, str] | None = None,
        mode: str | None = None,
        resolver: PlannerResolver | None = None,
        composite_rewrite: bool = True,
    ) -> None:
        super().__init__(name, None)
        self.properties: dict[str, str] = dict(properties or {})
        self.mode = mode
        self.resolver: PlannerResolver = resolver or FieldAlgebraResolver()
        self.composite_rewrite = composite_rewrite

    def flow(
        self,
        name: str,
        body: Callable[[Flow], object] | None = None,
        *,
        properties: Mapping[str, str] | None = None,
        mode: str | None = None,
    ) -> Flow:
        """Build a child flow, then run ``body`` against it.

        Raises:
            AmbiguousNodeName: If the cascade already has a flow named ``name``
        """
        flow = self.add_child(
            Flow(
                name,
                self,
                properties=dict(self.properties) if properties is None else properties,
                mode=mode or self.mode,
                resolver=self.resolver,
                composite_rewrite=self.composite_rewrite,
            )
        )
        logger.debug("flow_created", node=flow.qualified_name, mode=flow.mode)
        if body is not None:
            body(flow)
        return flow

    def flows(self) -> list[Flow]:
        return [child for child in self.children.values() if isinstance(child, Flow)]

    def sink_metadata(self) -> dict[str, dict[str, dict[str, list[str]]]]:
        """Sink field names of every flow, keyed by flow name then sink name."""
        return {flow.name: flow.sink_metadata() for flow in self.flows()}

    def write_sink_metadata(self, path: str | Path) -> Path:
        """Write ``sink_metadata`` to ``path`` as YAML."""
        path = Path(path)
        path.write_text(yaml.safe_dump(self.sink_metadata(), default_flow_style=False, sort_keys=False))
        logger.info("sink_metadata_written", node=self.qualified_name, path=str(path))
        return path

    def plan(self) -> list[FlowPlan]:
        return [flow.plan() for flow in self.flows()]
