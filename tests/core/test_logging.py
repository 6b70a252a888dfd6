"""Tests for structlog configuration."""

import json

import pytest


class TestConfigureLogging:
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        from reelgraph.core.logging import configure_logging, get_logger

        configure_logging("INFO", json_output=True)
        get_logger("test").info("cache hit", key="n-abc.mp4")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "cache hit"
        assert event["key"] == "n-abc.mp4"
        assert event["level"] == "info"

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        from reelgraph.core.logging import configure_logging, get_logger

        configure_logging("WARNING", json_output=True)
        logger = get_logger()
        logger.info("hidden")
        logger.warning("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err
