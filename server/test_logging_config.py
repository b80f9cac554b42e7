"""Tests for the JSON formatter and logging setup."""
import io
import json
import logging
import sys

import pytest

from logging_config import JSONFormatter, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_json_formatter_includes_extras():
    record = logging.LogRecord("routers.analysis", logging.INFO, __file__, 10, "Analysis %s done", (7,), None)
    record.analysis_id = 7

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "Analysis 7 done"
    assert entry["severity"] == "INFO"
    assert entry["logger"] == "routers.analysis"
    assert entry["analysis_id"] == 7
    assert "repository" not in entry


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.getLogger("main").makeRecord(
            "main", logging.ERROR, __file__, 1, "Unhandled error", (), sys.exc_info()
        )

    entry = json.loads(JSONFormatter().format(record))

    assert entry["severity"] == "ERROR"
    assert "RuntimeError: boom" in entry["exception"]


def test_setup_logging_production_emits_json(restore_root_logger):
    stream = io.StringIO()

    setup_logging("production", "debug", stream=stream)
    logging.getLogger("services.analyzer").debug("fell back", extra={"repository": "o/r"})

    entry = json.loads(stream.getvalue().strip())
    assert entry["service"] == "repo-health"
    assert entry["severity"] == "DEBUG"
    assert entry["repository"] == "o/r"


def test_setup_logging_development_is_plain_text(restore_root_logger):
    stream = io.StringIO()

    setup_logging("development", "info", stream=stream)
    logging.getLogger("services.store").info("created repository")
    logging.getLogger("httpx").info("HTTP Request: GET /repos/o/r")

    output = stream.getvalue()
    assert "created repository" in output
    assert not output.lstrip().startswith("{")
    assert "HTTP Request" not in output
