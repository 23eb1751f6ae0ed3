# tests/property/settings.py
"""Standardized Hypothesis settings profiles for property tests.

Provides consistent test intensity across all property test modules.
Import these instead of using inline @settings(max_examples=...).

Usage:
    from tests.property.settings import STANDARD_SETTINGS

    @given(names=field_names)
    @STANDARD_SETTINGS
    def test_something(names):
        ...

Tiers:
- DETERMINISM_SETTINGS: 500 examples - dedup and naming must be deterministic
- STANDARD_SETTINGS: 100 examples - Regular property tests
- SLOW_SETTINGS: 50 examples - Tests building whole flows per example
"""

from hypothesis import settings

# Deduplicated names feed join output schemas; they must never vary
DETERMINISM_SETTINGS = settings(max_examples=500)

# Standard property tests - good balance of coverage and speed
STANDARD_SETTINGS = settings(max_examples=100)

# Each example builds a flow, resolving every stage
SLOW_SETTINGS = settings(max_examples=50)
