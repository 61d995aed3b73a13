"""Tests for logging setup and emitted events."""

from __future__ import annotations

import json

import pytest
import structlog
from structlog.testing import capture_logs

from layerconf import Configuration
from layerconf.log import setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()


def test_json_output(capsys):
    setup_logging("INFO", "json")
    structlog.get_logger("layerconf.test").info("snapshot_published", generation=2)
    line = capsys.readouterr().err.strip()
    event = json.loads(line)
    assert event["event"] == "snapshot_published"
    assert event["generation"] == 2
    assert event["level"] == "info"
    assert "timestamp" in event


def test_level_filtering(capsys):
    setup_logging("ERROR", "console")
    structlog.get_logger("layerconf.test").warning("ignored")
    assert capsys.readouterr().err == ""


def test_refresh_events():
    config = Configuration()
    kv = config.register_kv("kv", {"a": "1"})
    kv.set("a", "2")
    with capture_logs() as logs:
        config.refresh()
    published = [e for e in logs if e["event"] == "snapshot_published"]
    assert published == [
        {
            "event": "snapshot_published",
            "log_level": "info",
            "generation": config.snapshot().generation,
            "changed": ["kv"],
            "failed": [],
        }
    ]
