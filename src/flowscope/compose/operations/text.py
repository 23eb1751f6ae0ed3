# src/flowscope/compose/operations/text.py
"""Date and text functions. Output selectors default to ALL."""

from __future__ import annotations

from flowscope.compose.operations.regex import single_field
from flowscope.contracts.enums import Selector, TypeTag
from flowscope.contracts.operations import function
from flowscope.contracts.options import FieldOption, RegexOptions
from flowscope.contracts.protocols import RowTransformable
from flowscope.contracts.schema import FieldSchema
from flowscope.contracts.stages import EachStage
from flowscope.contracts.types import FieldRef


class TextOperations:
    """Parse and format dates, join fields into text."""

    def __init__(self, target: RowTransformable) -> None:
        self._target = target

    def parse_date(
        self,
        input_field: FieldRef,
        date_format: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        """Parse ``input_field`` with ``date_format`` into a timestamp (long)."""
        return self._date("DateParser", input_field, date_format, into_field, TypeTag.LONG, output)

    def format_date(
        self,
        input_field: FieldRef,
        date_format: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        """Format the timestamp in ``input_field`` with ``date_format`` into a string."""
        return self._date("DateFormatter", input_field, date_format, into_field, TypeTag.STRING, output)

    def join_fields(
        self,
        input_fields: FieldRef,
        delimiter: str,
        into_field: FieldRef,
        *,
        output: FieldOption = Selector.ALL,
    ) -> EachStage:
        """Concatenate ``input_fields`` with ``delimiter`` into one string field."""
        options = RegexOptions(output=output)
        node = self._target.qualified_name
        into = single_field(into_field, "into_field", node=node)
        joined = FieldSchema.from_names([str(into[0])], {str(into[0]): TypeTag.STRING})
        operation = function("FieldJoiner", joined, params={"delimiter": delimiter})
        return self._target.each(input_fields, function=operation, output=options.output)

    def _date(
        self,
        name: str,
        input_field: FieldRef,
        date_format: str,
        into_field: FieldRef,
        type: TypeTag,
        output: FieldOption,
    ) -> EachStage:
        options = RegexOptions(output=output)
        node = self._target.qualified_name
        argument = single_field(input_field, "input_field", node=node)
        into = single_field(into_field, "into_field", node=node)
        declared = FieldSchema.from_names([str(into[0])], {str(into[0]): type})
        operation = function(name, declared, arity=1, params={"format": date_format})
        return self._target.each(argument, function=operation, output=options.output)
