"""Shared contracts for cross-module data types.

Schemas, scopes, stage and operation descriptors, option models and the
error taxonomy live here. This package is a LEAF: it never imports from
``flowscope.core`` or ``flowscope.compose``.

Import patterns:
    from flowscope.contracts import FieldSchema, Scope, StageKind
    from flowscope.contracts.errors import UnknownField
"""

from flowscope.contracts.enums import (
    CompositeKind,
    ContextState,
    JoinerKind,
    OperationKind,
    Selector,
    SinkMode,
    StageKind,
    TypeTag,
)
from flowscope.contracts.errors import (
    AmbiguousNodeName,
    AmbiguousOperationKind,
    BufferExclusivityViolation,
    CompositionError,
    GroupingKeyMismatch,
    InvalidJoinerSpec,
    InvalidRename,
    InvalidSchema,
    InvalidStageOptions,
    MissingJoinKey,
    MissingNode,
    SchemaMismatch,
    ScopeResolutionError,
    UnknownField,
    UnsupportedAggregation,
)
from flowscope.contracts.operations import CompositeAggregate, Operation
from flowscope.contracts.protocols import RowTransformable
from flowscope.contracts.schema import (
    FieldSchema,
    FieldSpec,
    as_declared,
    as_selection,
    dedup,
    dedup_names,
    field_args,
)
from flowscope.contracts.scope import Scope
from flowscope.contracts.stages import (
    AggregateByStage,
    CoGroupStage,
    EachStage,
    EveryStage,
    GroupByStage,
    HashJoinStage,
    HeadStage,
    Joiner,
    SchemaFixStage,
    StageDescriptor,
)
from flowscope.contracts.taps import MultiTap, Scheme, SourceDescriptor, Tap, sequence_file_scheme, text_line_scheme
from flowscope.contracts.types import FieldName, FieldRef, KeySpec, NodeName, SinkName, StageID

__all__ = [
    "AggregateByStage",
    "AmbiguousNodeName",
    "AmbiguousOperationKind",
    "BufferExclusivityViolation",
    "CoGroupStage",
    "CompositeAggregate",
    "CompositeKind",
    "CompositionError",
    "ContextState",
    "EachStage",
    "EveryStage",
    "FieldName",
    "FieldRef",
    "FieldSchema",
    "FieldSpec",
    "GroupByStage",
    "GroupingKeyMismatch",
    "HashJoinStage",
    "HeadStage",
    "InvalidJoinerSpec",
    "InvalidRename",
    "InvalidSchema",
    "InvalidStageOptions",
    "Joiner",
    "JoinerKind",
    "KeySpec",
    "MissingJoinKey",
    "MissingNode",
    "MultiTap",
    "NodeName",
    "Operation",
    "OperationKind",
    "RowTransformable",
    "SchemaFixStage",
    "SchemaMismatch",
    "Scheme",
    "Scope",
    "ScopeResolutionError",
    "Selector",
    "SinkMode",
    "SinkName",
    "SourceDescriptor",
    "StageDescriptor",
    "StageID",
    "StageKind",
    "Tap",
    "TypeTag",
    "UnknownField",
    "UnsupportedAggregation",
    "as_declared",
    "as_selection",
    "dedup",
    "dedup_names",
    "field_args",
    "sequence_file_scheme",
    "text_line_scheme",
]
