"""Logging setup."""

import json
import logging

import pytest
from pythonjsonlogger.json import JsonFormatter

from app.core.logging_config import REQUEST_ID_CTX, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def test_json_output_carries_request_id(restore_root_logger):
    setup_logging(level="INFO", json_output=True)
    handler = restore_root_logger.handlers[0]
    assert isinstance(handler.formatter, JsonFormatter)

    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "seat held", None, None)
    token = REQUEST_ID_CTX.set("req-42")
    try:
        for log_filter in handler.filters:
            log_filter.filter(record)
    finally:
        REQUEST_ID_CTX.reset(token)

    payload = json.loads(handler.format(record))
    assert payload["message"] == "seat held"
    assert payload["request_id"] == "req-42"
    assert payload["levelname"] == "INFO"


def test_plain_output(restore_root_logger):
    setup_logging(level="WARNING", json_output=False)

    assert restore_root_logger.level == logging.WARNING
    assert not isinstance(restore_root_logger.handlers[0].formatter, JsonFormatter)
