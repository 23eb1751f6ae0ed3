# tests/unit/core/conftest.py
"""Fixtures for the core unit tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import structlog


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Undo configure_logging so later tests do not write to a closed capture stream."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def config_file(tmp_path: Path) -> Callable[[str], Path]:
    """Write a YAML settings file and return its path."""

    def write(text: str) -> Path:
        path = tmp_path / "flowscope.yaml"
        path.write_text(text)
        return path

    return write
