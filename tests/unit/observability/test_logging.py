"""Tests for structured logging."""

import json
import logging

from cacheaside.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    cache_key_var,
    request_id_var,
)


def _record(message: str = "Cache HIT", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="cacheaside.cache.loader",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_basic_fields(self) -> None:
        payload = json.loads(JsonFormatter().format(_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "cacheaside.cache.loader"
        assert payload["message"] == "Cache HIT"
        assert "request_id" not in payload

    def test_includes_context(self) -> None:
        with LogContext(request_id="req-1", cache_key="product:42"):
            payload = json.loads(JsonFormatter().format(_record()))

        assert payload["request_id"] == "req-1"
        assert payload["cache_key"] == "product:42"

    def test_extra_fields(self) -> None:
        payload = json.loads(JsonFormatter().format(_record(lock="lock:test", obj=object())))

        assert payload["lock"] == "lock:test"
        assert isinstance(payload["obj"], str)


class TestConsoleFormatter:
    def test_context_suffix(self) -> None:
        with LogContext(cache_key="product:42"):
            line = ConsoleFormatter(use_colors=False).format(_record())

        assert "Cache HIT" in line
        assert line.endswith("key=product:42")


class TestLogContext:
    def test_restores_previous_values(self) -> None:
        with LogContext(cache_key="outer"):
            with LogContext(cache_key="inner", unknown="ignored"):
                assert cache_key_var.get() == "inner"
            assert cache_key_var.get() == "outer"

        assert cache_key_var.get() == ""
        assert request_id_var.get() == ""
