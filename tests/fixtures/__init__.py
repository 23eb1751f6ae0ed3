# tests/fixtures/__init__.py
"""Shared builders for flowscope tests."""

from tests.fixtures.pipelines import StubResolver, make_flow, make_tap

__all__ = [
    "StubResolver",
    "make_flow",
    "make_tap",
]
