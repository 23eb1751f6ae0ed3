# src/flowscope/compose/__init__.py
"""Pipeline builders: Cascade, Flow, Assembly and the Aggregations context."""

from flowscope.compose.aggregations import Aggregations
from flowscope.compose.assembly import Assembly
from flowscope.compose.cascade import Cascade
from flowscope.compose.flow import Flow, FlowPlan, describe, sink_schema

__all__ = [
    "Aggregations",
    "Assembly",
    "Cascade",
    "Flow",
    "FlowPlan",
    "describe",
    "sink_schema",
]
