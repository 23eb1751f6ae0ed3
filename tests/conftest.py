# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures build flows the way pipeline code does: sources declared through
taps, assemblies named after the sources they read.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os

import pytest
from hypothesis import Phase, Verbosity, settings

from flowscope.compose import Flow
from flowscope.core import BuildRegistry
from tests.fixtures.pipelines import make_flow


@pytest.fixture
def registry() -> BuildRegistry:
    return BuildRegistry()


@pytest.fixture
def scores_flow() -> Flow:
    """Flow with an ``input`` source of ``name, score1, score2, id``."""
    return make_flow(input=["name", "score1", "score2", "id"])


@pytest.fixture
def join_flow() -> Flow:
    """Flow with ``left`` (id, name) and ``right`` (id, age) assemblies."""
    flow = make_flow(left=["id", "name"], right=["id", "age"])
    flow.assembly("left")
    flow.assembly("right")
    return flow


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
