from __future__ import annotations

import json
import logging
import sys

from lms.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging
from lms.middleware.request_context import (
    _RequestContextFilter,
    install_request_context_filter,
    request_id_var,
)


def _record(level: int = logging.INFO, msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="lms.services.grading_service",
        level=level,
        pathname="grading_service.py",
        lineno=120,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ---- setup_logging ----


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("error")
    assert logging.getLogger().level == logging.ERROR


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("chatty")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_keeps_sqlalchemy_quiet() -> None:
    setup_logging("debug")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING


def test_setup_logging_replaces_handlers() -> None:
    setup_logging("info")
    setup_logging("info", json_format=True)
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0].formatter, _JsonFormatter)


# ---- container formatter ----


def test_container_formatter_omits_location_below_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.INFO, "graded"))
    assert "graded" in output
    assert "lms.services.grading_service" in output
    assert "[grading_service.py:" not in output


def test_container_formatter_adds_location_for_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.WARNING, "rejected"))
    assert "[grading_service.py:120]" in output


def test_container_formatter_is_not_json() -> None:
    output = _ContainerFormatter().format(_record())
    try:
        json.loads(output)
        raise AssertionError("container format should not be valid JSON")
    except json.JSONDecodeError:
        pass


# ---- JSON formatter ----


def test_json_formatter_emits_context_fields() -> None:
    parsed = json.loads(
        _JsonFormatter().format(
            _record(
                msg="Quiz graded",
                request_id="req-1",
                user_id="u-1",
                course_id="c-1",
            )
        )
    )
    assert parsed["message"] == "Quiz graded"
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "lms.services.grading_service"
    assert parsed["request_id"] == "req-1"
    assert parsed["user_id"] == "u-1"
    assert parsed["course_id"] == "c-1"


def test_json_formatter_skips_request_id_placeholder() -> None:
    parsed = json.loads(_JsonFormatter().format(_record(request_id="-")))
    assert "request_id" not in parsed


def test_json_formatter_includes_exception() -> None:
    try:
        raise KeyError("missing lesson")
    except KeyError:
        record = _record(logging.ERROR, "sync failed")
        record.exc_info = sys.exc_info()
        output = _JsonFormatter().format(record)

    assert "missing lesson" in json.loads(output)["exception"]


# ---- request id filter ----


def test_filter_copies_request_id_from_contextvar() -> None:
    token = request_id_var.set("req-42")
    try:
        record = _record()
        _RequestContextFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "req-42"  # type: ignore[attr-defined]


def test_install_request_context_filter_is_idempotent() -> None:
    setup_logging("info")
    install_request_context_filter()
    install_request_context_filter()
    handler = logging.getLogger().handlers[0]
    assert sum(isinstance(f, _RequestContextFilter) for f in handler.filters) == 1
