# src/flowscope/compose/operations/identity.py
"""Field-list operations built on the Identity function."""

from __future__ import annotations

from collections.abc import Mapping

from flowscope.contracts.enums import Selector, TypeTag
from flowscope.contracts.errors import InvalidRename, InvalidSchema, InvalidStageOptions
from flowscope.contracts.operations import function, identity
from flowscope.contracts.protocols import RowTransformable
from flowscope.contracts.schema import field_args
from flowscope.contracts.stages import EachStage
from flowscope.contracts.types import FieldRef
from flowscope.core.expressions import Expression


class IdentityOperations:
    """Project, discard, rename, copy, cast and insert fields."""

    def __init__(self, target: RowTransformable) -> None:
        self._target = target

    def project(self, *fields: FieldRef) -> EachStage:
        """Restrict (and reorder) the current fields to exactly ``fields``.

        Raises:
            UnknownField: If a field is not in the current scope
        """
        return self._target.each(*fields, function=identity())

    def discard(self, *fields: FieldRef) -> EachStage:
        """Remove named fields; names not in the current scope are ignored."""
        selection = field_args(fields)
        remove = selection if isinstance(selection, tuple) else ()
        keep = self._target.scope.values_fields.difference(remove)
        return self.project(list(keep.names))

    def rename(self, name_map: Mapping[str, str]) -> EachStage:
        """Relabel fields in place, keeping their positions.

        Raises:
            InvalidRename: If a key of ``name_map`` is not a current field
            InvalidSchema: If a new name collides with another field
        """
        original = self._target.scope.values_fields
        self._check_names(name_map, "rename")
        renamed = [name_map.get(name, name) for name in original.names]
        collisions = sorted({name for name in renamed if renamed.count(name) > 1})
        if collisions:
            raise InvalidSchema(
                f"rename would duplicate fields: {', '.join(collisions)}", node=self._target.qualified_name
            )
        return self._target.each(list(original.names), function=identity(renamed))

    def copy(self, name_map: Mapping[str, str]) -> EachStage:
        """Append copies of fields under new names, in original field order.

        Raises:
            InvalidRename: If a key of ``name_map`` is not a current field
        """
        original = self._target.scope.values_fields
        self._check_names(name_map, "copy")
        sources = [name for name in original.names if name in name_map]
        into = [name_map[name] for name in sources]
        return self._target.each(sources, function=identity(into), output=Selector.ALL)

    def cast(self, type_map: Mapping[str, TypeTag | str]) -> EachStage:
        """Declare new types for fields.

        The cast fields, in sorted name order, become the stage's results.
        """
        fields = sorted(type_map)
        return self._target.each(fields, function=identity(fields, {name: type_map[name] for name in fields}))

    def passthrough(self) -> EachStage:
        """Pipe copy: every field, unchanged."""
        return self._target.each(Selector.ALL, function=identity())

    def insert(self, values: Mapping[str, object]) -> list[EachStage]:
        """Append fields holding constants, or computed from typed expressions.

        Raises:
            UnknownField: If an expression reads a field not in the current scope
            InvalidStageOptions: If ``values`` is empty
        """
        if not values:
            raise InvalidStageOptions("insert requires at least one field", node=self._target.qualified_name)
        stages = []
        for name, value in values.items():
            if isinstance(value, Expression):
                value.validate_scope(self._target.scope, node=self._target.qualified_name)
                operation = function("ExpressionFunction", [name], params={"expression": value.expression})
                arguments: FieldRef = value.fields or Selector.ALL
            else:
                operation = function("Insert", [name], params={"value": value})
                arguments = Selector.ALL
            stages.append(self._target.each(arguments, function=operation, output=Selector.ALL))
        return stages

    def _check_names(self, name_map: Mapping[str, str], operation: str) -> None:
        available = self._target.scope.values_fields
        invalid = [name for name in name_map if name not in available]
        if invalid:
            raise InvalidRename(invalid, operation=operation, node=self._target.qualified_name)
