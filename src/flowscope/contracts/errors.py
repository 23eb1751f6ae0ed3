"""Composition error taxonomy.

Every error is raised synchronously at the call that builds the offending
stage. There is no deferred validation and no partial success: a pipeline
either composes completely or construction stops at the first violation.

Errors name the qualified path of the node being built (e.g.
``wordcount.count_flow.input``) and the field or name involved so that
pipeline authors can locate the problem without dumping the whole tree.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class CompositionError(Exception):
    """Base class for all pipeline construction errors.

    Attributes:
        node: Qualified name of the node under construction, if known
    """

    def __init__(self, message: str, *, node: str | None = None) -> None:
        self.node = node
        self.detail = message
        super().__init__(f"[{node}] {message}" if node else message)


class InvalidSchema(CompositionError, ValueError):
    """Raised when a field schema would contain duplicate or blank names."""


class UnknownField(CompositionError, LookupError):
    """Raised when a referenced field is absent from the visible schema.

    Attributes:
        fields: The names that could not be found
        available: The names that were visible at the time
    """

    def __init__(
        self,
        fields: Sequence[str | int],
        available: Sequence[str],
        *,
        node: str | None = None,
    ) -> None:
        self.fields = tuple(fields)
        self.available = tuple(available)
        missing = ", ".join(repr(f) for f in self.fields)
        super().__init__(f"Unknown field(s) {missing}; available: {list(self.available)}", node=node)


class InvalidRename(CompositionError, ValueError):
    """Raised when a rename or field copy names fields that do not exist."""

    def __init__(
        self,
        fields: Sequence[str],
        *,
        operation: str = "rename",
        node: str | None = None,
    ) -> None:
        self.fields = tuple(fields)
        super().__init__(f"Invalid field names in {operation}: {list(self.fields)}", node=node)


class AmbiguousNodeName(CompositionError):
    """Raised on duplicate direct-child insertion or an ambiguous subtree lookup."""


class MissingNode(CompositionError, LookupError):
    """Raised when a caller requires a named node that does not exist."""


class AmbiguousOperationKind(CompositionError, TypeError):
    """Raised when a stage is not given exactly one of filter or function."""


class InvalidStageOptions(CompositionError, ValueError):
    """Raised when a builder call is structurally invalid for its stage."""


class MissingJoinKey(CompositionError, ValueError):
    """Raised when a join is requested without a usable ``on`` key."""


class InvalidJoinerSpec(CompositionError, ValueError):
    """Raised when a joiner is unknown or a mixed joiner does not fit the branches."""


class UnsupportedAggregation(CompositionError):
    """Raised when aggregations are attached to a stage that cannot carry them."""


class BufferExclusivityViolation(CompositionError):
    """Raised when a buffer is combined with aggregators or another buffer."""


class GroupingKeyMismatch(CompositionError):
    """Raised when branches of a multi-input grouping disagree on key fields."""


class SchemaMismatch(CompositionError):
    """Raised when unioned branches disagree on the schema of their key fields."""


class ScopeResolutionError(CompositionError):
    """Wraps a failure raised by the planner's field resolution.

    The original exception is chained as ``__cause__`` and its message is
    preserved verbatim in this error's message.

    Attributes:
        stage: The stage descriptor that could not be resolved
    """

    def __init__(self, stage: Any, cause: BaseException, *, node: str | None = None) -> None:
        self.stage = stage
        self.cause = cause
        label = stage.describe() if hasattr(stage, "describe") else repr(stage)
        super().__init__(f"Exception computing outgoing scope for {label}: {cause}", node=node)
