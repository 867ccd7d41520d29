# tests/test_observability.py
from __future__ import annotations

import json
import logging

from edumanager.exceptions import RecordNotFoundError, StoreError
from edumanager.observability import (
    CorrelatedFormatter,
    JSONFormatter,
    get_logger,
    get_observability_context,
    observability_context,
    setup_logging,
)


def _record(msg="hello", **extra):
    record = logging.LogRecord("edumanager.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_is_scoped_and_nested_scopes_share_the_correlation_id():
    assert get_observability_context() is None
    with observability_context(caller_id="u1", role="teacher", operation="students.fetch") as outer:
        with observability_context(operation="students.select") as inner:
            assert inner.correlation_id == outer.correlation_id
            assert get_observability_context() is inner
        assert get_observability_context() is outer
    assert get_observability_context() is None


def test_json_formatter_includes_caller_and_extras():
    formatter = JSONFormatter(static_fields={"service": "edumanager"})
    with observability_context(caller_id="u1", role="admin", operation="classes.update", record_id="c1"):
        line = json.loads(formatter.format(_record(table="classes")))

    assert line["msg"] == "hello"
    assert line["role"] == "admin"
    assert line["operation"] == "classes.update"
    assert line["metadata"] == {"record_id": "c1"}
    assert line["table"] == "classes"
    assert line["service"] == "edumanager"
    assert "correlation_id" in line


def test_correlated_formatter_prefix():
    formatter = CorrelatedFormatter(fmt="%(message)s")
    assert formatter.format(_record()) == "hello"

    with observability_context(role="student", operation="attendance.fetch") as ctx:
        line = formatter.format(_record())
    assert line == f"[student:attendance.fetch #{ctx.correlation_id[:8]}] hello"


def test_loggers_live_under_the_package_logger():
    assert get_logger("edumanager.store.sql").name == "edumanager.store.sql"
    assert get_logger("reports").name == "edumanager.reports"

    logger = setup_logging(level="debug", structured=True)
    handlers = list(logger.handlers)
    try:
        assert logger.level == logging.DEBUG
        setup_logging(level="warning")
        assert logger.handlers == handlers
        assert logger.level == logging.WARNING
    finally:
        for handler in handlers:
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
        del logger._edumanager_configured


def test_error_serialization():
    error = RecordNotFoundError("students", "s1", "delete")
    data = error.to_dict()
    assert data["type"] == "RecordNotFoundError"
    assert data["error_code"] == "record_not_found"
    assert data["context"] == {"record_id": "s1", "table": "students", "operation": "delete"}
    assert not error.is_retryable()
    assert isinstance(error, StoreError)
    assert str(error) == "RecordNotFoundError[record_not_found]: No students row with id 's1'"
