"""Per-operation option models.

Each DSL operation with optional parameters validates them eagerly, at call
time, through one of these frozen Pydantic models. Every field documents its
default and constraints. Structural rules that need the current scope (field
existence, joiner arity) are enforced by the builders, not here.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, field_validator

from flowscope.contracts.enums import Selector, TypeTag
from flowscope.contracts.operations import Operation
from flowscope.contracts.schema import FieldSchema

type FieldOption = Selector | InstanceOf[FieldSchema] | int | str | list[int | str]
type KeyOption = int | str | list[int | str] | dict[str, int | str | list[int | str]]

_MODEL_CONFIG = ConfigDict(frozen=True, extra="forbid")


class EachOptions(BaseModel):
    """Options of a row-wise stage.

    Exactly one of ``function`` or ``filter`` must be supplied; the builder
    enforces this so the error names the offending assembly.
    """

    model_config = _MODEL_CONFIG

    function: InstanceOf[Operation] | None = Field(default=None, description="Function applied to the arguments")
    filter: InstanceOf[Operation] | None = Field(default=None, description="Filter applied to the arguments")
    output: FieldOption | None = Field(
        default=None,
        description="Output selector; defaults to RESULTS. Not allowed with a filter.",
    )


class EveryOptions(BaseModel):
    """Options of a per-group stage. Exactly one of aggregator or buffer."""

    model_config = _MODEL_CONFIG

    aggregator: InstanceOf[Operation] | None = Field(default=None, description="Aggregator applied to each group")
    buffer: InstanceOf[Operation] | None = Field(default=None, description="Buffer applied to each group")
    output: FieldOption | None = Field(default=None, description="Output selector; defaults to RESULTS")


class GroupByOptions(BaseModel):
    """Options of ``group_by``."""

    model_config = _MODEL_CONFIG

    sort_by: FieldOption | None = Field(default=None, description="Secondary sort fields; default unsorted")
    reverse: bool | None = Field(default=None, description="Reverse the secondary sort; default unset")


class UnionOptions(BaseModel):
    """Options of ``union``."""

    model_config = _MODEL_CONFIG

    on: FieldOption | None = Field(
        default=None,
        description="Grouping key; defaults to the first field of the first branch",
    )
    sort_by: FieldOption | None = Field(default=None, description="Secondary sort fields")
    reverse: bool | None = Field(
        default=None,
        description="Reverse the sort; without sort_by the key is used as sort key",
    )


class JoinOptions(BaseModel):
    """Options of ``join`` and ``hash_join``."""

    model_config = _MODEL_CONFIG

    on: KeyOption | None = Field(
        default=None,
        description="Required. One field list for all branches, or a branch -> fields mapping",
    )
    joiner: str | list[bool | int | str] | None = Field(
        default=None,
        description="inner (default), left, right, outer, or one required-flag per branch",
    )
    declared_fields: InstanceOf[FieldSchema] | list[str] | None = Field(
        default=None,
        description="Output fields; defaults to the deduplicated concatenation of all branches",
    )
    hash: bool = Field(default=False, description="Hold all but the first branch in memory")


class SumOptions(BaseModel):
    """Options of ``sum``."""

    model_config = _MODEL_CONFIG

    mapping: dict[str, str] | None = Field(
        default=None,
        description="Input -> output field names, applied in sorted input order",
    )
    type: TypeTag | None = Field(default=None, description="Declared type of the sums; default double")


class AggregatorOptions(BaseModel):
    """Options of ``min``, ``max``, ``first`` and ``last``."""

    model_config = _MODEL_CONFIG

    ignore: list[Any] | None = Field(default=None, description="Values the aggregator skips")


class RegexOptions(BaseModel):
    """Options of the regex and text operations."""

    model_config = _MODEL_CONFIG

    output: FieldOption = Field(default=Selector.ALL, description="Output selector; default ALL")
    groups: list[int] | None = Field(default=None, description="Capture groups to keep (parse only)")
    replace_all: bool | None = Field(default=None, description="Replace every match (replace only)")

    @field_validator("groups")
    @classmethod
    def validate_groups(cls, v: list[int] | None) -> list[int] | None:
        if v is not None and any(g < 0 for g in v):
            raise ValueError(f"regex groups must be non-negative, got {v}")
        return v


class FilterOptions(BaseModel):
    """Options of ``filter``, ``reject`` and ``where``.

    Exactly one of ``expression`` or ``pattern`` is used; ``pattern`` is a
    regular expression matched against the ``from_fields``.
    """

    model_config = _MODEL_CONFIG

    from_fields: FieldOption = Field(default=Selector.ALL, description="Arguments of the filter; default ALL")
    expression: str | None = Field(default=None, description="Typed filter expression")
    pattern: str | None = Field(default=None, description="Regular expression filter")
    validate_expression: bool = Field(default=True, description="Check expression fields against the scope")


class AssertionOptions(BaseModel):
    """Options of stream and group assertions."""

    model_config = _MODEL_CONFIG

    level: Literal["strict", "valid"] = Field(default="strict", description="Assertion level; default strict")
