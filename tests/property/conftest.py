# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Usage:
    from tests.property.conftest import field_names, name_lists

    @given(lists=name_lists)
    def test_dedup_is_unique(lists: list[list[str]]) -> None:
        ...
"""

# =============================================================================
# Hypothesis Settings
# =============================================================================
#
# For standardized @settings decorators, import from tests.property.settings:
#   from tests.property.settings import STANDARD_SETTINGS, DETERMINISM_SETTINGS
#
# Tiers: DETERMINISM (500), STANDARD (100), SLOW (50)
# =============================================================================

from __future__ import annotations

from hypothesis import strategies as st

# Short names over a small alphabet so collisions are common
field_names = st.text(alphabet="abc_", min_size=1, max_size=3)

# One field list per joined branch; names may repeat within and across lists
name_lists = st.lists(st.lists(field_names, max_size=5), min_size=1, max_size=4)

# Distinct names, as a source would declare them
unique_names = st.lists(field_names, min_size=1, max_size=6, unique=True)

# Aggregations available on the group context and whether they have a composite equivalent
COMPOSITE_AGGREGATORS = ("count", "sum", "average")
PLAIN_AGGREGATORS = ("min", "max", "first", "last")
aggregator_names = st.sampled_from(COMPOSITE_AGGREGATORS + PLAIN_AGGREGATORS)
