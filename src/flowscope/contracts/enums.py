"""All kinds, modes, and symbolic selectors used across module boundaries."""

from enum import StrEnum


class StageKind(StrEnum):
    """Kind of the stage a Scope was resolved for.

    Values:
        SOURCE: Schema read from an external source descriptor
        TRANSFORM: Row-wise stage (function, filter, assertion, hash join)
        GROUP: Grouping stage (group by, union, join)
        AGGREGATE: Per-group aggregation stage (aggregator, buffer, composite)
    """

    SOURCE = "source"
    TRANSFORM = "transform"
    GROUP = "group"
    AGGREGATE = "aggregate"


class TypeTag(StrEnum):
    """Optional declared type of a field."""

    INT = "int"
    LONG = "long"
    BOOL = "bool"
    DOUBLE = "double"
    FLOAT = "float"
    STRING = "string"


class Selector(StrEnum):
    """Symbolic field sets resolved by the planner's field algebra.

    Values:
        ALL: Every field visible at that point
        RESULTS: Only the fields declared by the operation
        REPLACE: Incoming fields with the arguments replaced in place by results
        SWAP: Incoming fields minus the arguments, followed by results
        ARGS: The operation declares its argument fields as its results
        VALUES: Group values excluding the grouping keys
        GROUP: The grouping keys
    """

    ALL = "all"
    RESULTS = "results"
    REPLACE = "replace"
    SWAP = "swap"
    ARGS = "args"
    VALUES = "values"
    GROUP = "group"


class OperationKind(StrEnum):
    """Behavior an operation contributes to its stage."""

    FUNCTION = "function"
    FILTER = "filter"
    AGGREGATOR = "aggregator"
    BUFFER = "buffer"
    ASSERTION = "assertion"


class CompositeKind(StrEnum):
    """Aggregations that have a composite (map-side combinable) equivalent."""

    COUNT = "count"
    SUM = "sum"
    AVERAGE = "average"


class JoinerKind(StrEnum):
    """How a join treats unmatched keys on each side."""

    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    OUTER = "outer"
    MIXED = "mixed"


class SinkMode(StrEnum):
    """What a sink does with pre-existing output."""

    KEEP = "keep"
    REPLACE = "replace"
    APPEND = "append"


class ContextState(StrEnum):
    """Lifecycle of an aggregations context."""

    OPEN = "open"
    CLOSED = "closed"
