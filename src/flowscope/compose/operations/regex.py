# src/flowscope/compose/operations/regex.py
"""Regular expression functions: parse, split, generate and replace.

Every operation reads exactly one input field. Unlike a bare ``each``, the
output selector defaults to ALL, so results are appended to the row.
"""

from __future__ import annotations

from collections.abc import Sequence

from flowscope.contracts.enums import Selector
from flowscope.contracts.errors import InvalidStageOptions
from flowscope.contracts.operations import Operation, function
from flowscope.contracts.options import FieldOption, RegexOptions
from flowscope.contracts.protocols import RowTransformable
from flowscope.contracts.schema import as_selection
from flowscope.contracts.stages import EachStage
from flowscope.contracts.types import FieldName, FieldRef


def single_field(ref: FieldRef, what: str, *, node: str | None = None) -> tuple[FieldName, ...]:
    """Normalize a field reference that must name exactly one field.

    Raises:
        InvalidStageOptions: If the reference is a selector or names several fields
    """
    selection = as_selection(ref)
    if not isinstance(selection, tuple) or len(selection) != 1:
        raise InvalidStageOptions(f"{what} must declare exactly one field, was {ref!r}", node=node)
    return selection


class RegexOperations:
    """Operations parameterized by a regular expression."""

    def __init__(self, target: RowTransformable) -> None:
        self._target = target

    def parse(
        self,
        input_field: FieldRef,
        regex: str,
        into_fields: Sequence[str] | str,
        *,
        groups: list[int] | None = None,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        """Parse ``input_field`` with capture groups into ``into_fields``.

        Raises:
            InvalidStageOptions: If the input is not exactly one field, or the
                number of groups differs from the number of fields
        """
        options = RegexOptions(output=output, groups=groups)
        into = [into_fields] if isinstance(into_fields, str) else list(into_fields)
        if options.groups is not None and len(options.groups) != len(into):
            raise InvalidStageOptions(
                f"parse declares {len(into)} field(s) for {len(options.groups)} group(s)",
                node=self._target.qualified_name,
            )
        operation = function("RegexParser", into, params={"regex": regex, "groups": options.groups})
        return self._apply(input_field, operation, options)

    def split(
        self,
        input_field: FieldRef,
        regex: str,
        into_fields: Sequence[str] | str,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        """Split ``input_field`` on ``regex`` into one field per piece."""
        options = RegexOptions(output=output)
        into = [into_fields] if isinstance(into_fields, str) else list(into_fields)
        operation = function("RegexSplitter", into, params={"regex": regex})
        return self._apply(input_field, operation, options)

    def split_rows(
        self,
        input_field: FieldRef,
        regex: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        """Split ``input_field`` on ``regex``, emitting one row per piece."""
        options = RegexOptions(output=output)
        into = single_field(into_field, "into_field", node=self._target.qualified_name)
        return self._apply(input_field, function("RegexSplitGenerator", into, params={"regex": regex}), options)

    def match_rows(
        self,
        input_field: FieldRef,
        regex: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        """Emit one row per match of ``regex`` in ``input_field``."""
        options = RegexOptions(output=output)
        into = single_field(into_field, "into_field", node=self._target.qualified_name)
        return self._apply(input_field, function("RegexGenerator", into, params={"regex": regex}), options)

    def replace(
        self,
        input_field: FieldRef,
        regex: str,
        into_field: FieldRef,
        replacement: str,
        *,
        replace_all: bool | None = None,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        """Replace matches of ``regex`` in ``input_field`` and store the result in ``into_field``."""
        options = RegexOptions(output=output, replace_all=replace_all)
        into = single_field(into_field, "into_field", node=self._target.qualified_name)
        operation = function(
            "RegexReplace",
            into,
            params={"regex": regex, "replacement": replacement, "replace_all": options.replace_all},
        )
        return self._apply(input_field, operation, options)

    def _apply(self, input_field: FieldRef, operation: Operation, options: RegexOptions) -> EachStage:
        argument = single_field(input_field, "input_field", node=self._target.qualified_name)
        return self._target.each(argument, function=operation, output=options.output)
