"""JSON-lines logging on top of the standard library ``logging`` interface.

Components call :func:`get_logger` and log with ``extra={...}``; every
extra key ends up as a top-level field of the emitted JSON object. Where the
lines go is decided by a :class:`LogSink` (stdout by default).
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Protocol, TextIO, override

# Present on every LogRecord; never copied into the payload as extras.
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "message",
        "taskName",
        "thread",
        "threadName",
    }
)

_LEVEL_NAMES: dict[str, int] = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class LogSink(Protocol):
    """Destination for formatted log lines (stdout, file, log shipper...)."""

    def write(self, message: str) -> None:  # pragma: no cover
        ...


class PrintSink:
    """Writes each line to a text stream (stdout unless told otherwise)."""

    _stream: TextIO

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    def write(self, message: str) -> None:
        print(message, file=self._stream, flush=True)


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, component, message + extras."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": record.created,
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_ATTRS or key.startswith("_") or value is None:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class SinkHandler(logging.Handler):
    """Handler that hands formatted records to a :class:`LogSink`."""

    _sink: LogSink

    def __init__(self, sink: LogSink) -> None:
        super().__init__()
        self._sink = sink

    @override
    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._sink.write(self.format(record))
        except Exception:  # noqa: BLE001
            self.handleError(record)


_handler: SinkHandler | None = None


def parse_log_level(value: str | int | None) -> int:
    """Map a level name (``"debug"``, ``"INFO"``, ...) to a ``logging`` level.

    Integers pass through. Unknown names and ``None`` resolve to INFO.
    ``"trace"`` is accepted for compatibility and maps to DEBUG.
    """
    if isinstance(value, int):
        return value
    if not value:
        return logging.INFO
    return _LEVEL_NAMES.get(value.strip().lower(), logging.INFO)


def configure_logging(
    level: int | str = logging.INFO,
    sink: LogSink | None = None,
) -> None:
    """Route root logging to ``sink`` as JSON lines.

    Safe to call more than once: the handler installed by a previous call is
    replaced rather than stacked, so lines are never duplicated.
    """
    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = SinkHandler(sink if sink is not None else PrintSink())
    _handler.setFormatter(JsonFormatter())
    root.addHandler(_handler)
    root.setLevel(parse_log_level(level))


def get_logger(name: str) -> logging.Logger:
    """Return the standard logger for ``name``, configuring stdout on first use::

        logger = get_logger(__name__)
        logger.info("Index query done", extra={"url": url, "matches": 0})
    """
    if _handler is None:
        configure_logging()
    return logging.getLogger(name)
