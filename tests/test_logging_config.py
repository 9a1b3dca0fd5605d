"""Tests for the logging setup."""

import logging

from task_manager.logging_config import LOG_FORMAT, ContextFormatter


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("task_manager.repository", logging.INFO, __file__, 1, "task created", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_fills_missing_context() -> None:
    formatter = ContextFormatter(LOG_FORMAT)
    line = formatter.format(make_record())
    assert "op=- task=- task created" in line


def test_formatter_keeps_supplied_context() -> None:
    formatter = ContextFormatter(LOG_FORMAT)
    line = formatter.format(make_record(op="create", task="507f1f77bcf86cd799439011"))
    assert "op=create task=507f1f77bcf86cd799439011 task created" in line
