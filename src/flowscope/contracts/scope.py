"""Scopes: the resolved schema snapshot attached to one pipeline stage.

Scopes are retained for the life of the pipeline definition so later stages,
``describe`` and ``debug_scope`` can inspect any ancestor. They are frozen;
"mutations" such as renaming a copied scope for a new branch return new
instances.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from flowscope.contracts.enums import StageKind
from flowscope.contracts.schema import FieldSchema


@dataclass(frozen=True, slots=True)
class Scope:
    """Input/output schema snapshot of a single stage.

    Attributes:
        name: Name of the assembly (or source) the scope belongs to
        kind: Kind of stage the scope was resolved for
        input_schemas: Row schemas of every incoming scope, in input order
        output_schema: Values fields leaving the stage
        grouping_keys: Grouping fields leaving a group or aggregation stage;
            after an aggregation this is the aggregated tuple (keys + results)
        key_selectors: Per-input key fields of the owning grouping stage
        sort_keys: Secondary sort fields of the owning grouping stage
    """

    name: str
    kind: StageKind
    input_schemas: tuple[FieldSchema, ...]
    output_schema: FieldSchema
    grouping_keys: FieldSchema | None = None
    key_selectors: tuple[FieldSchema, ...] = ()
    sort_keys: FieldSchema | None = None

    @classmethod
    def empty(cls, name: str) -> Scope:
        """Scope of an assembly that has no source or parent to inherit from."""
        return cls(name=name, kind=StageKind.SOURCE, input_schemas=(), output_schema=FieldSchema.empty())

    @classmethod
    def source(cls, name: str, schema: FieldSchema) -> Scope:
        return cls(name=name, kind=StageKind.SOURCE, input_schemas=(), output_schema=schema)

    @property
    def values_fields(self) -> FieldSchema:
        return self.output_schema

    @property
    def row_fields(self) -> FieldSchema:
        """Fields of the tuple a following row-wise stage receives.

        After an aggregation the tuple is the aggregated one (grouping keys
        plus results), not the group's values.
        """
        if self.kind is StageKind.AGGREGATE and self.grouping_keys is not None:
            return self.grouping_keys
        return self.output_schema

    def copy(self, name: str | None = None) -> Scope:
        """Return an independent copy, optionally under a new name."""
        return replace(self, name=self.name if name is None else name)

    def describe(self) -> str:
        def fmt(schema: FieldSchema | None) -> str:
            return "null" if schema is None else str(schema)

        inputs = ", ".join(str(s) for s in self.input_schemas) or "none"
        keys = ", ".join(str(s) for s in self.key_selectors) or "null"
        return (
            f"Scope name: {self.name}\n"
            f"  Kind: {self.kind}\n"
            f"  Incoming fields:   {inputs}\n"
            f"  Key selectors:     {keys}\n"
            f"  Sorting selectors: {fmt(self.sort_keys)}\n"
            f"  Out grouping\n"
            f"    fields: {fmt(self.grouping_keys)}\n"
            f"  Out values\n"
            f"    fields: {fmt(self.output_schema)}\n"
        )
