# src/flowscope/core/__init__.py
"""Core infrastructure: Resolution, Node tree, Stage graph, Registry, Configuration, Logging."""

from flowscope.core.config import (
    BuildSettings,
    LoggingSettings,
    load_settings,
)
from flowscope.core.expressions import Expression, expr
from flowscope.core.graph import (
    GraphError,
    StageGraph,
    StageInfo,
)
from flowscope.core.logging import configure_logging
from flowscope.core.nodes import Node
from flowscope.core.registry import BuildRegistry
from flowscope.core.resolver import (
    FieldAlgebraResolver,
    PlannerError,
    PlannerResolver,
    copy,
    resolve,
    source_scope,
)

__all__ = [
    "BuildRegistry",
    "BuildSettings",
    "Expression",
    "FieldAlgebraResolver",
    "GraphError",
    "LoggingSettings",
    "Node",
    "PlannerError",
    "PlannerResolver",
    "StageGraph",
    "StageInfo",
    "configure_logging",
    "copy",
    "expr",
    "load_settings",
    "resolve",
    "source_scope",
]
