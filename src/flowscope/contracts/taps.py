"""Source and sink descriptors.

Only schema metadata crosses this boundary: a source declares the fields it
emits, a sink is registered under the name of the assembly that feeds it.
Reading and writing bytes, file formats and compression belong to the
external I/O layer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from flowscope.contracts.enums import SinkMode
from flowscope.contracts.errors import SchemaMismatch
from flowscope.contracts.schema import FieldSchema


@runtime_checkable
class SourceDescriptor(Protocol):
    """Anything that can tell composition which fields it will emit."""

    def declared_output_schema(self) -> FieldSchema: ...


@dataclass(frozen=True, slots=True)
class Scheme:
    """Record layout of a tap.

    Attributes:
        name: Format name (e.g., "TextLine", "SequenceFile")
        source_fields: Fields produced when reading
        sink_fields: Fields written when sinking; None writes every field
    """

    name: str
    source_fields: FieldSchema
    sink_fields: FieldSchema | None = None


def text_line_scheme(
    source_fields: Sequence[str] | None = None,
    sink_fields: Sequence[str] | None = None,
) -> Scheme:
    """Line-oriented text scheme; reads ``offset`` and ``line`` unless told otherwise."""
    source = FieldSchema.from_names(source_fields or ("offset", "line"))
    sink = FieldSchema.from_names(sink_fields) if sink_fields else None
    return Scheme("TextLine", source, sink)


def sequence_file_scheme(*fields: str) -> Scheme:
    schema = FieldSchema.from_names(fields)
    return Scheme("SequenceFile", schema, schema if fields else None)


@dataclass(frozen=True, slots=True)
class Tap:
    """A single path read or written with a scheme."""

    path: str
    scheme: Scheme = text_line_scheme()
    sink_mode: SinkMode = SinkMode.KEEP

    def __post_init__(self) -> None:
        # Accept plain strings such as "replace" for the sink mode
        object.__setattr__(self, "sink_mode", SinkMode(self.sink_mode))

    def declared_output_schema(self) -> FieldSchema:
        return self.scheme.source_fields

    def __str__(self) -> str:
        return f"{self.scheme.name}[{self.path}]"


@dataclass(frozen=True, slots=True)
class MultiTap:
    """Several taps read (or written) as one."""

    taps: tuple[Tap, ...]
    role: str

    @classmethod
    def multi_source_tap(cls, *taps: Tap) -> MultiTap:
        """Combine sources; every tap must declare the same fields.

        Raises:
            SchemaMismatch: If the taps declare different field names
        """
        if not taps:
            raise ValueError("multi_source_tap requires at least one tap")
        expected = taps[0].declared_output_schema().names
        for tap in taps[1:]:
            found = tap.declared_output_schema().names
            if found != expected:
                raise SchemaMismatch(f"Source tap {tap} declares {list(found)}, expected {list(expected)}")
        return cls(tuple(taps), "source")

    @classmethod
    def multi_sink_tap(cls, *taps: Tap) -> MultiTap:
        if not taps:
            raise ValueError("multi_sink_tap requires at least one tap")
        return cls(tuple(taps), "sink")

    def declared_output_schema(self) -> FieldSchema:
        return self.taps[0].declared_output_schema()

    def __str__(self) -> str:
        return f"Multi{self.role.title()}Tap[{', '.join(str(t) for t in self.taps)}]"
