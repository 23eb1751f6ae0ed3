# src/flowscope/core/expressions.py
"""Typed expression stubs.

Expressions are written for the external evaluator with their argument
fields annotated by type, e.g. ``'val2:double < 40.0 ? val1:double : 0.0'``.
Composition only needs the annotations: they name the fields an expression
reads and the types it expects. Compiling and evaluating the expression is
the evaluator's business.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from flowscope.contracts.enums import TypeTag
from flowscope.contracts.errors import UnknownField
from flowscope.contracts.scope import Scope

_ANNOTATION = re.compile(r"\b([A-Za-z0-9_]+):(" + "|".join(t.value for t in TypeTag) + r")\b")
_IMPORTS = re.compile(r"^((?:\s*import[^;]*;\s*)*)(.*)$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class Expression:
    """A parsed expression stub.

    Attributes:
        text: Expression as written, annotations included
        expression: Expression with the type annotations stripped
        types: Annotated argument fields and their types, sorted by name
    """

    text: str
    expression: str
    types: tuple[tuple[str, TypeTag], ...]

    @classmethod
    def parse(cls, text: str) -> Expression:
        types: dict[str, TypeTag] = {}

        def strip(match: re.Match[str]) -> str:
            types[match.group(1)] = TypeTag(match.group(2))
            return match.group(1)

        expression = _ANNOTATION.sub(strip, text)
        return cls(text, expression, tuple(sorted(types.items())))

    @property
    def fields(self) -> list[str]:
        """Argument fields the expression reads, in sorted order."""
        return [name for name, _ in self.types]

    def negated(self) -> Expression:
        """The logical negation, keeping any leading import statements in front."""
        match = _IMPORTS.match(self.text)
        assert match is not None  # pattern matches every string
        imports, body = match.groups()
        return Expression.parse(f"{imports}!({body})")

    def validate_fields(self, fields: Iterable[str], *, node: str | None = None) -> list[str]:
        """Check that every argument is available.

        Returns:
            The available fields the expression does not use

        Raises:
            UnknownField: If an argument field is missing
        """
        available = list(fields)
        missing = [name for name in self.fields if name not in available]
        if missing:
            raise UnknownField(missing, available, node=node)
        return [name for name in available if name not in self.fields]

    def validate_scope(self, scope: Scope, *, node: str | None = None) -> list[str]:
        return self.validate_fields(scope.values_fields.names, node=node)

    def __str__(self) -> str:
        return self.text


def expr(expression: str | Expression) -> Expression:
    """Parse an annotated expression; already parsed expressions pass through."""
    if isinstance(expression, Expression):
        return expression
    return Expression.parse(expression)
