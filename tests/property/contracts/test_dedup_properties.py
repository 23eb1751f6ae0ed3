# tests/property/contracts/test_dedup_properties.py
"""Property-based tests for duplicate-name resolution.

Join output schemas are built by concatenating branch fields and suffixing
collisions with underscores. The result must always be a valid schema and
must never depend on anything but the input lists.
"""

from __future__ import annotations

from hypothesis import given

from flowscope.contracts import FieldSchema, dedup, dedup_names
from tests.property.conftest import name_lists, unique_names
from tests.property.settings import DETERMINISM_SETTINGS, STANDARD_SETTINGS


class TestDedupProperties:
    @given(lists=name_lists)
    @DETERMINISM_SETTINGS
    def test_dedup_is_deterministic(self, lists: list[list[str]]) -> None:
        """Property: the same lists always yield the same names."""
        assert dedup_names(*lists) == dedup_names(*lists)

    @given(lists=name_lists)
    @STANDARD_SETTINGS
    def test_result_is_unique_and_complete(self, lists: list[list[str]]) -> None:
        """Property: one unique name per input name, in input order."""
        flat = [name for names in lists for name in names]
        result = dedup_names(*lists)
        assert len(result) == len(flat)
        assert len(set(result)) == len(result)
        for original, unique in zip(flat, result, strict=True):
            assert unique.startswith(original)
            assert set(unique[len(original) :]) <= {"_"}

    @given(lists=name_lists)
    @STANDARD_SETTINGS
    def test_first_occurrence_keeps_its_name(self, lists: list[list[str]]) -> None:
        """Property: a name's first appearance is never renamed when nothing earlier took it."""
        flat = [name for names in lists for name in names]
        result = dedup_names(*lists)
        if flat:
            assert result[0] == flat[0]

    @given(lists=name_lists)
    @STANDARD_SETTINGS
    def test_dedup_builds_a_valid_schema(self, lists: list[list[str]]) -> None:
        assert dedup(*lists).names == tuple(dedup_names(*lists))

    @given(names=unique_names)
    @STANDARD_SETTINGS
    def test_distinct_names_are_untouched(self, names: list[str]) -> None:
        assert dedup_names(names) == names


class TestSchemaProperties:
    @given(names=unique_names)
    @STANDARD_SETTINGS
    def test_project_then_difference_partition(self, names: list[str]) -> None:
        """Property: projecting and discarding the same fields partitions the schema."""
        schema = FieldSchema.from_names(names)
        chosen = names[::2]
        kept = schema.project(chosen)
        dropped = schema.difference(chosen)
        assert set(kept.names) | set(dropped.names) == set(names)
        assert not set(kept.names) & set(dropped.names)
        assert schema.names == tuple(names)

    @given(names=unique_names)
    @STANDARD_SETTINGS
    def test_rename_preserves_positions(self, names: list[str]) -> None:
        schema = FieldSchema.from_names(names)
        renamed = schema.rename({names[0]: "renamed"})
        assert len(renamed) == len(schema)
        assert renamed.names[1:] == schema.names[1:]
