"""Structured logging for cacheaside.

Two output formats share one context model:

- JSON lines (production): one object per record, ready for Loki/ELK
- Console (dev): ``time | LEVEL | logger | message | req=... key=...``

Context travels in context variables, so every log line emitted while a
request or a cache load is in progress carries its request id and cache key
without threading them through call signatures:

    with LogContext(cache_key="product:42"):
        logger.info("Loaded from source")
"""

from __future__ import annotations

import contextvars
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
cache_key_var: contextvars.ContextVar[str] = contextvars.ContextVar("cache_key", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "request_id": request_id_var,
    "cache_key": cache_key_var,
}

# Attributes every LogRecord has; anything else came in via `extra=`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

# Loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine")


def current_context() -> dict[str, str]:
    """Non-empty context values for the running task."""
    return {name: value for name, var in _CONTEXT_VARS.items() if (value := var.get())}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with context and `extra=` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(current_context())

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return orjson.dumps(entry, default=str).decode()


class ConsoleFormatter(logging.Formatter):
    """Single-line human-readable output, colored when writing to a TTY."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"

        parts = [
            datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3],
            f"{level:8}",
            record.name,
            record.getMessage(),
        ]

        context = current_context()
        if context:
            tags = []
            if "request_id" in context:
                tags.append(f"req={context['request_id'][:8]}")
            if "cache_key" in context:
                tags.append(f"key={context['cache_key']}")
            parts.append(" ".join(tags))

        line = " | ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Replace root handlers with a single stderr handler.

    Args:
        json_format: JSON lines when True, console format otherwise
        level: Root log level name
        use_colors: Color level names in console format
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(use_colors))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """Set request_id / cache_key for the duration of a block.

    Unknown names are ignored. Nesting restores the outer values on exit.
    """

    def __init__(self, **kwargs: str) -> None:
        self.values = {k: v for k, v in kwargs.items() if k in _CONTEXT_VARS}
        self._tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []

    def __enter__(self) -> LogContext:
        for name, value in self.values.items():
            var = _CONTEXT_VARS[name]
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
