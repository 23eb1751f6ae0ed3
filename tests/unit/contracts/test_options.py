# tests/unit/contracts/test_options.py
"""Tests for the per-operation option models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from flowscope.contracts.enums import Selector, TypeTag
from flowscope.contracts.options import (
    AssertionOptions,
    EachOptions,
    GroupByOptions,
    JoinOptions,
    RegexOptions,
    SumOptions,
    UnionOptions,
)


class TestOptionModels:
    def test_unknown_option_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EachOptions(bogus=1)  # type: ignore[call-arg]

    def test_options_are_frozen(self) -> None:
        options = GroupByOptions(reverse=True)
        with pytest.raises(ValidationError):
            options.reverse = False  # type: ignore[misc]

    def test_selectors_survive_validation(self) -> None:
        assert RegexOptions().output is Selector.ALL
        assert RegexOptions(output=Selector.REPLACE).output is Selector.REPLACE

    def test_field_names_stay_strings(self) -> None:
        assert UnionOptions(on="name").on == "name"
        assert GroupByOptions(sort_by=["a", 1]).sort_by == ["a", 1]

    def test_negative_regex_group_rejected(self) -> None:
        with pytest.raises(ValidationError, match="non-negative"):
            RegexOptions(groups=[1, -1])

    def test_assertion_level(self) -> None:
        assert AssertionOptions().level == "strict"
        with pytest.raises(ValidationError):
            AssertionOptions(level="loose")  # type: ignore[arg-type]

    def test_sum_type_parsed(self) -> None:
        assert SumOptions(type="long").type is TypeTag.LONG  # type: ignore[arg-type]
        assert SumOptions().type is None

    def test_join_options(self) -> None:
        options = JoinOptions(on={"left": "id", "right": ["id"]}, joiner=[True, "outer"])
        assert options.on == {"left": "id", "right": ["id"]}
        assert options.joiner == [True, "outer"]
        assert options.hash is False
