# src/flowscope/compose/operations/filters.py
"""Row filters and stream assertions."""

from __future__ import annotations

from flowscope.contracts.enums import Selector
from flowscope.contracts.errors import InvalidStageOptions
from flowscope.contracts.operations import assertion, filter_op
from flowscope.contracts.options import AssertionOptions, FilterOptions
from flowscope.contracts.protocols import RowTransformable
from flowscope.contracts.stages import EachStage
from flowscope.contracts.types import FieldRef
from flowscope.core.expressions import Expression, expr


class FilterOperations:
    """Filters remove the rows they match; ``where`` keeps them instead."""

    def __init__(self, target: RowTransformable) -> None:
        self._target = target

    def filter(
        self,
        expression: str | Expression | None = None,
        *,
        from_fields: FieldRef = Selector.ALL,
        pattern: str | None = None,
        validate_expression: bool = True,
    ) -> EachStage:
        """Remove rows matching a typed expression or a regular expression.

        Raises:
            InvalidStageOptions: If neither or both of expression and pattern are given
            UnknownField: If the expression reads a field not in the current scope
        """
        text = str(expression) if isinstance(expression, Expression) else expression
        options = FilterOptions(
            from_fields=from_fields,
            expression=text,
            pattern=pattern,
            validate_expression=validate_expression,
        )
        node = self._target.qualified_name
        if (options.expression is None) == (options.pattern is None):
            raise InvalidStageOptions("filter requires exactly one of an expression or a pattern", node=node)
        if options.expression is not None:
            stub = expr(expression if isinstance(expression, Expression) else options.expression)
            if options.validate_expression:
                stub.validate_scope(self._target.scope, node=node)
            operation = filter_op("ExpressionFilter", params={"expression": stub.expression})
        else:
            operation = filter_op("RegexFilter", params={"pattern": options.pattern})
        return self._target.each(options.from_fields, filter=operation)

    def reject(
        self,
        expression: str | Expression | None = None,
        *,
        from_fields: FieldRef = Selector.ALL,
        pattern: str | None = None,
    ) -> EachStage:
        """Remove rows matching an expression.

        Raises:
            InvalidStageOptions: If a pattern is given
        """
        if pattern is not None:
            raise InvalidStageOptions("Regex not allowed", node=self._target.qualified_name)
        return self.filter(expression, from_fields=from_fields)

    def where(
        self,
        expression: str | Expression | None = None,
        *,
        from_fields: FieldRef = Selector.ALL,
        pattern: str | None = None,
    ) -> EachStage:
        """Keep only rows matching an expression.

        Raises:
            InvalidStageOptions: If a pattern is given
        """
        if pattern is not None:
            raise InvalidStageOptions("Regex not allowed", node=self._target.qualified_name)
        negated = expr(expression).negated() if expression is not None else None
        return self.filter(negated, from_fields=from_fields)

    def filter_null(self, *fields: FieldRef) -> EachStage:
        """Remove rows where any of ``fields`` is null."""
        return self._target.each(*fields, filter=filter_op("FilterNull"))

    def filter_not_null(self, *fields: FieldRef) -> EachStage:
        """Remove rows where all of ``fields`` are non-null."""
        return self._target.each(*fields, filter=filter_op("FilterNotNull"))

    reject_null = filter_null
    where_null = filter_not_null


class AssertionOperations:
    """Stream assertions: checked per row, passing the row through unchanged."""

    def __init__(self, target: RowTransformable) -> None:
        self._target = target

    def assert_size_equals(self, size: int, *, level: str = "strict") -> EachStage:
        options = AssertionOptions(level=level)  # type: ignore[arg-type]
        operation = assertion("AssertSizeEquals", params={"size": size, "level": options.level})
        return self._target.each(Selector.ALL, filter=operation)

    def assert_not_null(self, *, level: str = "strict") -> EachStage:
        options = AssertionOptions(level=level)  # type: ignore[arg-type]
        operation = assertion("AssertNotNull", params={"level": options.level})
        return self._target.each(Selector.ALL, filter=operation)
