# src/flowscope/core/registry.py
"""Build registry: the top-level cascades and flows of one build session.

A registry is created by the caller and passed around explicitly. Nothing
is registered process-wide, so two sessions (or two tests) never see each
other's pipelines.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from flowscope.core.config import BuildSettings, load_settings
from flowscope.core.logging import configure_logging
from flowscope.core.nodes import Node
from flowscope.core.resolver import FieldAlgebraResolver, PlannerResolver

if TYPE_CHECKING:
    from flowscope.compose.cascade import Cascade
    from flowscope.compose.flow import Flow

logger = structlog.get_logger(__name__)


class BuildRegistry:
    """Registry of top-level nodes for one build session.

    Cascades and top-level flows live in separate namespaces. Registering a
    second node under a name already in use logs a warning and replaces the
    earlier node.

    Example:
        registry = BuildRegistry()
        cascade = registry.cascade("wordcount", lambda c: c.flow("count", build_count))
    """

    def __init__(
        self,
        settings: BuildSettings | None = None,
        resolver: PlannerResolver | None = None,
    ) -> None:
        self.settings = settings or BuildSettings()
        self.resolver: PlannerResolver = resolver or FieldAlgebraResolver()
        self._cascades: dict[str, Cascade] = {}
        self._flows: dict[str, Flow] = {}

    @classmethod
    def from_config(cls, config_path: Path, resolver: PlannerResolver | None = None) -> BuildRegistry:
        """Load settings from YAML (with FLOWSCOPE_* overrides) and configure logging from them."""
        settings = load_settings(config_path)
        configure_logging(settings.logging)
        logger.info("registry_configured", config=str(config_path), mode=settings.mode)
        return cls(settings, resolver)

    def cascade(
        self,
        name: str,
        body: Callable[[Cascade], object] | None = None,
        *,
        properties: Mapping[str, str] | None = None,
        mode: str | None = None,
    ) -> Cascade:
        """Build and register a cascade, then run ``body`` against it."""
        from flowscope.compose.cascade import Cascade

        cascade = Cascade(
            name,
            properties=self.settings.properties if properties is None else properties,
            mode=mode or self.settings.mode,
            resolver=self.resolver,
            composite_rewrite=self.settings.composite_rewrite,
        )
        self._register(self._cascades, name, cascade, "cascade")
        if body is not None:
            body(cascade)
        return cascade

    def flow(
        self,
        name: str,
        body: Callable[[Flow], object] | None = None,
        *,
        properties: Mapping[str, str] | None = None,
        mode: str | None = None,
    ) -> Flow:
        """Build and register a top-level flow, then run ``body`` against it."""
        from flowscope.compose.flow import Flow

        flow = Flow(
            name,
            properties=self.settings.properties if properties is None else properties,
            mode=mode or self.settings.mode,
            resolver=self.resolver,
            composite_rewrite=self.settings.composite_rewrite,
        )
        self._register(self._flows, name, flow, "flow")
        if body is not None:
            body(flow)
        return flow

    def get(self, key: str | Node) -> Node | None:
        """Look up a registered node by name; nodes are returned as given."""
        if isinstance(key, Node):
            return key
        if key in self._cascades:
            return self._cascades[key]
        return self._flows.get(key)

    def cascades(self) -> list[Cascade]:
        return list(self._cascades.values())

    def flows(self) -> list[Flow]:
        return list(self._flows.values())

    def all(self) -> list[Node]:
        return [*self._cascades.values(), *self._flows.values()]

    def reset(self) -> None:
        self._cascades.clear()
        self._flows.clear()

    def describe(self) -> str:
        return "\n".join(node.describe() for node in self.all())

    @staticmethod
    def _register[N: Node](registry: dict[str, N], name: str, node: N, kind: str) -> None:
        if name in registry:
            logger.warning("node_reregistered", name=name, kind=kind)
        registry[name] = node
