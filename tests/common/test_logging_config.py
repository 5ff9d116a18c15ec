"""Tests for the bootstrap logging setup."""

import json
import logging
import sys

import pytest

from common.logging_config import JSONFormatter, build_console_formatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord("runestone-bootstrap", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_console_formatter_carries_prefix():
    formatter = build_console_formatter("[RS-BOOTSTRAP]")

    line = formatter.format(make_record("Waiting for postgres"))

    assert " - [RS-BOOTSTRAP] INFO - Waiting for postgres" in line


def test_json_formatter_fields():
    formatter = JSONFormatter("runestone-bootstrap")

    payload = json.loads(formatter.format(make_record("started", task="launch")))

    assert payload["level"] == "INFO"
    assert payload["service"] == "runestone-bootstrap"
    assert payload["message"] == "started"
    assert payload["extra"] == {"task": "launch"}


def test_json_formatter_includes_exception():
    formatter = JSONFormatter()
    try:
        raise RuntimeError("kaboom")
    except RuntimeError:
        record = make_record("failed", level=logging.ERROR)
        record.exc_info = sys.exc_info()

    payload = json.loads(formatter.format(record))

    assert "RuntimeError: kaboom" in payload["exception"]


def test_setup_logging_console_handler(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    logger = setup_logging("runestone-bootstrap", prefix="[TEST]")

    root = logging.getLogger()
    assert logger.name == "runestone-bootstrap"
    assert root.level == logging.INFO
    assert len(root.handlers) == 1
    assert not isinstance(root.handlers[0].formatter, JSONFormatter)
    assert "[TEST]" in root.handlers[0].formatter._fmt


def test_setup_logging_uses_json_under_kubernetes(monkeypatch):
    monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "10.0.0.1")

    setup_logging("runestone-bootstrap", log_level="debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, JSONFormatter)


def test_setup_logging_invalid_level_falls_back_to_info():
    setup_logging("runestone-bootstrap", log_level="chatty")

    assert logging.getLogger().level == logging.INFO


def test_setup_logging_file_handler(tmp_path):
    log_file = tmp_path / "bootstrap.log"

    setup_logging(
        "runestone-bootstrap",
        enable_console=False,
        enable_file=True,
        log_file_path=str(log_file),
    )
    logging.getLogger("runestone-bootstrap").warning("on disk")
    for handler in logging.getLogger().handlers:
        handler.flush()
        handler.close()

    assert json.loads(log_file.read_text().splitlines()[-1])["message"] == "on disk"
