"""Field schemas: the ordered, duplicate-free field lists that flow between stages.

A FieldSchema is immutable. Every transformation (projection, difference,
rename, deduplication) returns a new instance and never touches the
original, so any Scope that recorded a schema keeps seeing exactly what it
recorded.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from flowscope.contracts.enums import Selector, TypeTag
from flowscope.contracts.errors import InvalidRename, InvalidSchema, UnknownField
from flowscope.contracts.types import FieldName, FieldRef


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """A single field descriptor.

    Attributes:
        name: Field name, unique within its schema
        type: Declared type, or None when the type is not tracked
    """

    name: str
    type: TypeTag | None = None

    def __str__(self) -> str:
        return self.name if self.type is None else f"{self.name}:{self.type}"


@dataclass(frozen=True, slots=True, repr=False)
class FieldSchema:
    """Immutable ordered list of field descriptors.

    Order maps to physical tuple position and is preserved through every
    derivation unless the derivation explicitly reorders.

    Raises:
        InvalidSchema: On construction with duplicate or blank names
    """

    fields: tuple[FieldSpec, ...] = ()

    _positions: dict[str, int] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        names = [fs.name for fs in self.fields]
        blank = [n for n in names if not isinstance(n, str) or not n.strip()]
        if blank:
            raise InvalidSchema(f"Field names must be non-blank strings, got {names!r}")
        if len(names) != len(set(names)):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise InvalidSchema(f"Duplicate field names {duplicates} in {names}")
        object.__setattr__(self, "_positions", {n: i for i, n in enumerate(names)})

    # -----------------------------
    # Construction
    # -----------------------------
    @classmethod
    def from_names(
        cls,
        names: Iterable[str],
        types: Mapping[str, TypeTag | str] | None = None,
    ) -> FieldSchema:
        """Build a schema from plain names, optionally typing some of them.

        Raises:
            InvalidSchema: If names contain duplicates, blanks or None
        """
        names = list(names)
        if any(n is None for n in names):
            raise InvalidSchema(f"Fields cannot be nil: {names!r}")
        types = types or {}
        return cls(tuple(FieldSpec(n, TypeTag(types[n]) if n in types else None) for n in names))

    @classmethod
    def empty(cls) -> FieldSchema:
        return cls(())

    # -----------------------------
    # Introspection
    # -----------------------------
    @property
    def names(self) -> tuple[str, ...]:
        return tuple(fs.name for fs in self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    def __repr__(self) -> str:
        return f"FieldSchema({[str(fs) for fs in self.fields]})"

    def __str__(self) -> str:
        return repr(list(self.names))

    def get(self, name: str) -> FieldSpec | None:
        position = self._positions.get(name)
        return None if position is None else self.fields[position]

    def index(self, name: str) -> int:
        """Position of a named field.

        Raises:
            UnknownField: If the name is not in this schema
        """
        if name not in self._positions:
            raise UnknownField([name], self.names)
        return self._positions[name]

    def resolve(self, ref: FieldName) -> str:
        """Resolve a name or position to a field name.

        Raises:
            UnknownField: If the name is absent or the position out of range
        """
        if isinstance(ref, int) and not isinstance(ref, bool):
            try:
                return self.fields[ref].name
            except IndexError:
                raise UnknownField([ref], self.names) from None
        if ref not in self._positions:
            raise UnknownField([ref], self.names)
        return ref

    def missing(self, refs: Iterable[FieldName]) -> list[FieldName]:
        """Return the references that do not resolve against this schema."""
        absent: list[FieldName] = []
        for ref in refs:
            if isinstance(ref, int) and not isinstance(ref, bool):
                if not -len(self.fields) <= ref < len(self.fields):
                    absent.append(ref)
            elif ref not in self._positions:
                absent.append(ref)
        return absent

    # -----------------------------
    # Derivations
    # -----------------------------
    def project(self, selection: Iterable[FieldName]) -> FieldSchema:
        """Return exactly the selected fields, in selection order.

        Raises:
            UnknownField: If any selected name or position is absent
            InvalidSchema: If the selection names a field twice
        """
        selection = list(selection)
        absent = self.missing(selection)
        if absent:
            raise UnknownField(absent, self.names)
        return FieldSchema(tuple(self.fields[self._positions[self.resolve(ref)]] for ref in selection))

    def difference(self, remove: Iterable[FieldName]) -> FieldSchema:
        """Return this schema minus the named fields.

        Only named fields participate: positions and absent names are ignored.
        """
        removed = {r for r in remove if isinstance(r, str)}
        return FieldSchema(tuple(fs for fs in self.fields if fs.name not in removed))

    def rename(self, mapping: Mapping[str, str]) -> FieldSchema:
        """Substitute labels in place, preserving positions and types.

        Raises:
            InvalidRename: If a key of the mapping is not in this schema
            InvalidSchema: If the renamed schema would contain duplicates
        """
        invalid = [k for k in mapping if k not in self._positions]
        if invalid:
            raise InvalidRename(invalid)
        return FieldSchema(tuple(FieldSpec(mapping.get(fs.name, fs.name), fs.type) for fs in self.fields))

    def append(self, other: FieldSchema) -> FieldSchema:
        """Concatenate two schemas.

        Raises:
            InvalidSchema: If the schemas share a field name
        """
        return FieldSchema(self.fields + other.fields)

    def with_types(self, types: Mapping[str, TypeTag | str]) -> FieldSchema:
        """Return a copy with the given fields' declared types replaced.

        Raises:
            UnknownField: If a typed name is not in this schema
        """
        absent = [n for n in types if n not in self._positions]
        if absent:
            raise UnknownField(absent, self.names)
        return FieldSchema(
            tuple(FieldSpec(fs.name, TypeTag(types[fs.name])) if fs.name in types else fs for fs in self.fields)
        )


def _unique_name(taken: set[str], candidate: str) -> str:
    while candidate in taken:
        candidate = f"{candidate}_"
    return candidate


def dedup_names(*name_lists: Sequence[str]) -> list[str]:
    """Concatenate name lists, suffixing collisions with underscores.

    Left to right, first occurrence wins: a name already taken by an earlier
    field gets ``_`` appended until it is unique.
    """
    result: list[str] = []
    taken: set[str] = set()
    for names in name_lists:
        for name in names:
            unique = _unique_name(taken, name)
            taken.add(unique)
            result.append(unique)
    return result


def dedup(*schemas: FieldSchema | Sequence[str]) -> FieldSchema:
    """Concatenate schemas into one duplicate-free schema (see ``dedup_names``).

    Declared types travel with their (possibly renamed) fields.
    """
    specs: list[FieldSpec] = []
    for schema in schemas:
        if isinstance(schema, FieldSchema):
            specs.extend(schema.fields)
        else:
            specs.extend(FieldSpec(n) for n in schema)
    names = dedup_names([fs.name for fs in specs])
    return FieldSchema(tuple(FieldSpec(n, fs.type) for n, fs in zip(names, specs, strict=True)))


def as_selection(ref: FieldRef | None) -> Selector | tuple[FieldName, ...] | None:
    """Normalize a field reference into a Selector or a tuple of names/positions.

    A one-element sequence collapses to its element, so ``[Selector.ALL]``
    behaves like ``Selector.ALL``.

    Raises:
        InvalidSchema: If a sequence contains None
    """
    if ref is None:
        return None
    if isinstance(ref, Selector):
        return ref
    if isinstance(ref, FieldSchema):
        return ref.names
    if isinstance(ref, (str, int)):
        return (ref,)
    refs = list(ref)
    if len(refs) == 1 and isinstance(refs[0], Selector):
        return refs[0]
    if any(r is None for r in refs):
        raise InvalidSchema(f"Fields cannot be nil: {refs!r}")
    if any(isinstance(r, Selector) for r in refs):
        raise InvalidSchema(f"Selectors cannot be mixed with field names: {refs!r}")
    return tuple(refs)


def as_declared(ref: FieldRef | None) -> FieldSchema | Selector | None:
    """Normalize a declaration: operations declare names (never positions) or a Selector.

    Raises:
        InvalidSchema: If a position is used in a declaration
    """
    selection = as_selection(ref)
    if selection is None or isinstance(selection, Selector):
        return selection
    if isinstance(ref, FieldSchema):
        return ref
    positions = [r for r in selection if not isinstance(r, str)]
    if positions:
        raise InvalidSchema(f"Declared fields must be names, got positions {positions}")
    return FieldSchema.from_names(selection)  # type: ignore[arg-type]


def field_args(refs: Sequence[FieldRef]) -> Selector | tuple[FieldName, ...] | None:
    """Normalize positional field arguments such as ``each("a", "b")``.

    Names, positions and sequences are flattened into one selection; a lone
    Selector or schema is taken whole. No arguments yields None.

    Raises:
        InvalidSchema: If selectors are mixed with names, or a name is None
    """
    if not refs:
        return None
    if len(refs) == 1:
        return as_selection(refs[0])
    flat: list[FieldName] = []
    for ref in refs:
        if isinstance(ref, (str, int)):
            flat.append(ref)
        elif isinstance(ref, FieldSchema):
            flat.extend(ref.names)
        else:
            flat.extend(ref)
    return as_selection(flat)
