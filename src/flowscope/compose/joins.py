# src/flowscope/compose/joins.py
"""Key, joiner and schema reconciliation for multi-input stages.

These helpers turn the user-facing ``on``/``joiner``/``sort_by`` options of
``join``, ``hash_join`` and ``union`` into stage descriptor fields. They only
read scopes; the assembly builder owns stage construction.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from flowscope.contracts.enums import JoinerKind
from flowscope.contracts.errors import InvalidJoinerSpec, MissingJoinKey, SchemaMismatch, UnknownField
from flowscope.contracts.schema import FieldSchema, as_selection
from flowscope.contracts.stages import Joiner
from flowscope.contracts.types import FieldName, KeySpec

_REQUIRED = {True: True, 1: True, "inner": True, False: False, 0: False, "outer": False}


def _key_list(spec: FieldName | Sequence[FieldName], *, node: str | None) -> tuple[FieldName, ...]:
    selection = as_selection(spec)
    if selection is None or not isinstance(selection, tuple) or not selection:
        raise MissingJoinKey(f"join requires non-empty on parameter, got {spec!r}", node=node)
    return selection


def join_keys(
    on: KeySpec | None,
    branch_names: Sequence[str],
    *,
    node: str | None = None,
) -> tuple[list[str], list[tuple[FieldName, ...]]]:
    """Resolve ``on`` into the joined branches and one key list per branch.

    A single field list applies to every named branch. A mapping names the
    branches itself; they are joined in sorted name order and the positional
    branch names are ignored.

    Raises:
        MissingJoinKey: If ``on`` is absent or empty
    """
    if on is None:
        raise MissingJoinKey("join requires on parameter", node=node)
    if isinstance(on, Mapping):
        if not on:
            raise MissingJoinKey("join requires non-empty on parameter", node=node)
        names = sorted(on)
        return names, [_key_list(on[name], node=node) for name in names]
    keys = _key_list(on, node=node)
    return list(branch_names), [keys for _ in branch_names]


def parse_joiner(
    spec: str | Sequence[bool | int | str] | None,
    branch_count: int,
    *,
    node: str | None = None,
) -> Joiner:
    """Parse a joiner option.

    Accepts ``inner`` (default), ``left``, ``right``, ``outer``, or a sequence
    with one entry per branch where ``True``/``1``/``"inner"`` marks a
    required side and ``False``/``0``/``"outer"`` an optional one.

    Raises:
        InvalidJoinerSpec: On an unknown joiner, an invalid mixed entry, or a
            mixed joiner whose length differs from the number of branches
    """
    if spec is None:
        return Joiner(JoinerKind.INNER)
    if isinstance(spec, str):
        try:
            kind = JoinerKind(spec)
        except ValueError:
            raise InvalidJoinerSpec(f"Unknown joiner {spec!r}", node=node) from None
        if kind is JoinerKind.MIXED:
            raise InvalidJoinerSpec("A mixed joiner is given as one required flag per branch", node=node)
        return Joiner(kind)
    required: list[bool] = []
    for entry in spec:
        if entry not in _REQUIRED:
            raise InvalidJoinerSpec(f"invalid mixed joiner entry: {entry!r}", node=node)
        required.append(_REQUIRED[entry])
    if len(required) != branch_count:
        raise InvalidJoinerSpec(
            f"Mixed joiner has {len(required)} entries for {branch_count} branches",
            node=node,
        )
    return Joiner(JoinerKind.MIXED, tuple(required))


def resolve_keys(
    schema: FieldSchema,
    keys: Sequence[FieldName],
    *,
    node: str | None = None,
) -> tuple[str, ...]:
    """Resolve key names or positions against one branch's fields.

    Raises:
        UnknownField: If a key is not in the branch
    """
    missing = schema.missing(keys)
    if missing:
        raise UnknownField(missing, schema.names, node=node)
    return tuple(schema.resolve(k) for k in keys)


def result_keys(keys: Sequence[Sequence[str]]) -> FieldSchema:
    """Key schema after a join: each key name once, in first-seen order."""
    names: list[str] = []
    for key_list in keys:
        names.extend(n for n in key_list if n not in names)
    return FieldSchema.from_names(names)


def union_key(
    on: FieldName | Sequence[FieldName] | None,
    first: FieldSchema,
    *,
    node: str | None = None,
) -> tuple[FieldName, ...]:
    """Grouping key of a union; defaults to the first field of the first branch.

    Raises:
        MissingJoinKey: If no key is given and the first branch has no fields
    """
    if on is None:
        if not len(first):
            raise MissingJoinKey("union requires on parameter when the first branch has no fields", node=node)
        return (first.names[0],)
    return _key_list(on, node=node)


def check_union_schemas(
    branches: Mapping[str, FieldSchema],
    keys: Sequence[FieldName],
    *,
    node: str | None = None,
) -> tuple[str, ...]:
    """Check that every unioned branch carries the key fields in the same shape.

    Each key must exist in every branch, at the same position, with
    compatible declared types (equal, or undeclared on either side).

    Returns:
        The key names, with positions resolved against the first branch

    Raises:
        SchemaMismatch: If any branch disagrees with the first
    """
    resolved: list[str] = []
    items = list(branches.items())
    first_name, first = items[0]
    for key in keys:
        if first.missing([key]):
            raise SchemaMismatch(f"Union key {key!r} not found in '{first_name}' {first}", node=node)
        name = first.resolve(key)
        resolved.append(name)
        position = first.index(name)
        expected = first.fields[position]
        for branch_name, schema in items[1:]:
            if name not in schema:
                raise SchemaMismatch(f"Union key {name!r} not found in '{branch_name}' {schema}", node=node)
            found = schema.fields[schema.index(name)]
            if schema.index(name) != position:
                raise SchemaMismatch(
                    f"Union key {name!r} is at position {schema.index(name)} in '{branch_name}', "
                    f"expected {position} as in '{first_name}'",
                    node=node,
                )
            if expected.type is not None and found.type is not None and expected.type != found.type:
                raise SchemaMismatch(
                    f"Union key {name!r} is {found.type} in '{branch_name}', {expected.type} in '{first_name}'",
                    node=node,
                )
    return tuple(resolved)
