"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of semantically different string values.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, NewType

if TYPE_CHECKING:
    from flowscope.contracts.enums import Selector
    from flowscope.contracts.schema import FieldSchema

StageID = NewType("StageID", str)
"""Deterministic identifier of a stage in a flow's graph (e.g., 'input/3:each')"""

NodeName = NewType("NodeName", str)
"""User-defined name of a cascade, flow, assembly, or branch"""

SinkName = NewType("SinkName", str)
"""Name of the assembly whose tail feeds a sink"""

type FieldName = str | int
"""A field addressed by name or by (possibly negative) position"""

type FieldRef = FieldSchema | Selector | FieldName | Sequence[FieldName]
"""Anything accepted where a set of fields is expected"""

type KeySpec = FieldName | Sequence[FieldName] | Mapping[str, FieldName | Sequence[FieldName]]
"""A join key: one field list for every branch, or a per-branch mapping"""
