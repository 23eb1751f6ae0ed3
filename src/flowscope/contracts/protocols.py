"""Capability protocols implemented by the builders.

Row operation vocabularies (identity, filter, regex, text) are written once
against ``RowTransformable`` and composed into the assembly builder by
delegation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from flowscope.contracts.operations import Operation
    from flowscope.contracts.scope import Scope
    from flowscope.contracts.stages import EachStage
    from flowscope.contracts.types import FieldRef


class RowTransformable(Protocol):
    """Something that can append row-wise stages and expose its current scope."""

    @property
    def scope(self) -> Scope: ...

    @property
    def qualified_name(self) -> str: ...

    def each(
        self,
        *arguments: FieldRef,
        function: Operation | None = None,
        filter: Operation | None = None,
        output: FieldRef | None = None,
    ) -> EachStage: ...
