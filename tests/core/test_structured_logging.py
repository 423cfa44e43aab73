"""JSON log output: one parseable object per line, context as top-level keys."""

from __future__ import annotations

import json
import logging
import sys

from app.core.logging import _ContainerFormatter, _JsonFormatter


def _record(msg: str = "test message", args: tuple = (), level: int = logging.INFO):
    return logging.LogRecord(
        name="app.services.enrollment_service",
        level=level,
        pathname="enrollment_service.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )


def test_json_formatter_produces_valid_json() -> None:
    output = _JsonFormatter().format(_record("Enrolled %s", ("someone",)))
    parsed = json.loads(output)
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "app.services.enrollment_service"
    assert parsed["message"] == "Enrolled someone"
    assert "timestamp" in parsed


def test_json_formatter_includes_request_fields() -> None:
    record = _record()
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.method = "POST"  # type: ignore[attr-defined]
    record.path = "/v1/enrollments"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "POST"
    assert parsed["path"] == "/v1/enrollments"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_includes_domain_fields() -> None:
    record = _record()
    record.student_id = "s-1"  # type: ignore[attr-defined]
    record.course_id = "c-1"  # type: ignore[attr-defined]
    record.assessment_id = "a-1"  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["student_id"] == "s-1"
    assert parsed["course_id"] == "c-1"
    assert parsed["assessment_id"] == "a-1"


def test_json_formatter_omits_absent_context() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert "student_id" not in parsed
    assert "status_code" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("queue unreachable")
    except ValueError:
        record = _record("Post-commit hook failed", level=logging.ERROR)
        record.exc_info = sys.exc_info()
        output = _JsonFormatter().format(record)

    parsed = json.loads(output)
    assert "ValueError: queue unreachable" in parsed["exception"]


def test_container_formatter_is_plain_text() -> None:
    output = _ContainerFormatter().format(_record("server started"))
    assert "INFO" in output
    assert "server started" in output
    assert not output.lstrip().startswith("{")
