from __future__ import annotations

import json

from loguru import logger as loguru_logger

from infrastructure.logging.log_setup import configure_logging
from infrastructure.logging.loguru_logger import LoguruLogger
from infrastructure.logging.recording_logger import RecordingLogger


def test_loguru_logger_emits_event_and_fields() -> None:
    messages = []
    sink_id = loguru_logger.add(messages.append, level="TRACE", format="{message}")
    try:
        LoguruLogger().bind(run_id="r1").warning("check.failed", step="s1")
    finally:
        loguru_logger.remove(sink_id)

    message = messages[0]
    assert message.record["level"].name == "WARNING"
    assert message.record["extra"]["event"] == "check.failed"
    assert message.record["extra"]["run_id"] == "r1"
    text = message.record["message"]
    assert text.startswith("check.failed ")
    assert json.loads(text.replace("check.failed ", "", 1)) == {"run_id": "r1", "step": "s1"}


def test_configure_logging_filters_by_level() -> None:
    messages = []
    configure_logging("INFO", sink=messages.append)
    try:
        LoguruLogger().debug("hidden")
        LoguruLogger().info("shown")
    finally:
        configure_logging()

    assert len(messages) == 1
    assert "shown" in messages[0]


def test_recording_logger_shares_entries_between_bound_loggers() -> None:
    root = RecordingLogger()
    bound = root.bind(run_id="r1")

    root.info("a", x=1)
    bound.error("b", y=2)

    assert [e.event for e in root.entries] == ["a", "b"]
    assert root.events("b")[0].fields == {"run_id": "r1", "y": 2}
    assert root.events("b")[0].level == "ERROR"
    assert root.events("a")[0].fields == {"x": 1}
