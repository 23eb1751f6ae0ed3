# tests/unit/core/test_config.py
"""Tests for build settings and their loading."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from pydantic import ValidationError

from flowscope.core import BuildSettings, LoggingSettings, load_settings


class TestBuildSettings:
    def test_defaults(self) -> None:
        settings = BuildSettings()
        assert settings.properties == {}
        assert settings.mode == "distributed"
        assert settings.composite_rewrite is True
        assert settings.logging == LoggingSettings()

    def test_frozen(self) -> None:
        settings = BuildSettings()
        with pytest.raises(ValidationError):
            settings.mode = "local"  # type: ignore[misc]

    def test_properties_are_strings(self) -> None:
        settings = BuildSettings(properties={"spill": 1000, "enabled": True})  # type: ignore[dict-item]
        assert settings.properties == {"spill": "1000", "enabled": "True"}

    def test_invalid_mode(self) -> None:
        with pytest.raises(ValidationError):
            BuildSettings(mode="cluster")  # type: ignore[arg-type]

    def test_log_level_normalized(self) -> None:
        assert LoggingSettings(level="debug").level == "DEBUG"  # type: ignore[arg-type]


class TestLoadSettings:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")

    def test_load_yaml(self, config_file: Callable[[str], Path]) -> None:
        path = config_file(
            "properties:\n"
            "  job_name: nightly\n"
            "  spill: 100\n"
            "mode: local\n"
            "composite_rewrite: false\n"
            "logging:\n"
            "  level: debug\n"
            "  json_output: true\n"
        )
        settings = load_settings(path)
        assert settings.properties == {"job_name": "nightly", "spill": "100"}
        assert settings.mode == "local"
        assert settings.composite_rewrite is False
        assert settings.logging.level == "DEBUG"
        assert settings.logging.json_output is True

    def test_environment_overrides_file(
        self, config_file: Callable[[str], Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = config_file("mode: distributed\n")
        monkeypatch.setenv("FLOWSCOPE_MODE", "local")
        assert load_settings(path).mode == "local"

    def test_invalid_file_contents(self, config_file: Callable[[str], Path]) -> None:
        with pytest.raises(ValidationError):
            load_settings(config_file("mode: cluster\n"))
