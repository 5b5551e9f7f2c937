# tests/unit/core/test_logging.py
"""Tests for process logging configuration."""

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from runtrace.core.logging import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_json_output_from_structlog_and_stdlib() -> None:
    stream = io.StringIO()
    configure_logging(json_output=True, level="INFO", stream=stream)

    structlog.get_logger("runtrace.test").info("Submitted logs", job_id=7, status_code=204)
    logging.getLogger("some.library").warning("plain %s", "record")

    first, second = (json.loads(line) for line in stream.getvalue().splitlines())
    assert first["event"] == "Submitted logs"
    assert first["job_id"] == 7
    assert first["level"] == "info"
    assert "_record" not in first
    assert second["event"] == "plain record"
    assert second["level"] == "warning"


def test_level_filters_debug() -> None:
    stream = io.StringIO()
    configure_logging(json_output=True, level="INFO", stream=stream)

    structlog.get_logger("runtrace.test").debug("hidden")

    assert stream.getvalue() == ""


def test_noisy_loggers_clamped_to_warning() -> None:
    configure_logging(level="DEBUG", stream=io.StringIO())

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("opentelemetry.sdk").level == logging.WARNING


def test_noisy_loggers_follow_stricter_root_level() -> None:
    configure_logging(level="ERROR", stream=io.StringIO())

    assert logging.getLogger("httpx").level == logging.ERROR


def test_console_output_without_colour_on_non_tty() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)

    structlog.get_logger("runtrace.test").info("Fetched workflow run", job_count=3)

    output = stream.getvalue()
    assert "Fetched workflow run" in output
    assert "job_count=3" in output
    assert "\x1b[" not in output


def test_unknown_level_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging(level="CHATTY", stream=io.StringIO())
