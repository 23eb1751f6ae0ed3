# tests/unit/core/test_logging.py
"""Tests for logging configuration."""

from __future__ import annotations

import io
import json

import pytest
import structlog

from flowscope.core import LoggingSettings, configure_logging

pytestmark = pytest.mark.usefixtures("restore_logging")


class TestConfigureLogging:
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(LoggingSettings(json_output=True))
        structlog.get_logger("flowscope.test").info("stage_resolved", node="f.in", fields=["a"])

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["event"] == "stage_resolved"
        assert record["node"] == "f.in"
        assert record["fields"] == ["a"]
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_console_output_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging()
        structlog.get_logger("flowscope.test").warning("node_reregistered", name="wordcount")

        out = capsys.readouterr().out
        assert "node_reregistered" in out
        assert "wordcount" in out

    def test_level_filters_events(self) -> None:
        stream = io.StringIO()
        configure_logging(LoggingSettings(json_output=True, level="warning"), stream=stream)
        logger = structlog.get_logger("flowscope.test")
        logger.debug("stage_resolved")
        logger.info("flow_planned")
        logger.warning("node_reregistered")

        lines = stream.getvalue().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["node_reregistered"]

    def test_unset_node_is_dropped(self) -> None:
        stream = io.StringIO()
        configure_logging(LoggingSettings(json_output=True), stream=stream)
        structlog.get_logger("flowscope.test").info("stage_resolved", node=None, stage="Head(input)")

        record = json.loads(stream.getvalue())
        assert "node" not in record
        assert record["stage"] == "Head(input)"
