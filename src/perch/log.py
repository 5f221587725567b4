"""Logging helpers built on the standard library.

``create_logger`` returns a dedicated, non-propagating logger that
writes one JSON object per line (or plain text), with serializers for
request/response objects passed through ``extra``::

    log = create_logger("info")
    log.info("request done", extra={"req": ctx.req, "res": ctx.res, "duration": 12})
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

LOGGER_NAME = "perch.app"

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_SERIALIZED_EXTRAS = ("req", "res", "duration", "err")


def parse_level(level: str | int) -> int:
    """Map ``"info"``/``"warn"``/... (or a numeric level) to a logging level."""
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        msg = f"Unknown log level {level!r}. Expected one of: {', '.join(sorted(_LEVELS))}"
        raise ValueError(msg) from None


def serialize_request(req: Any) -> dict[str, Any]:
    client = getattr(req, "client", None)
    return {
        "ip": client[0] if client else None,
        "method": getattr(req, "method", None),
        "url": getattr(req, "url", None),
    }


def serialize_response(res: Any) -> dict[str, Any]:
    return {"status": getattr(res, "status", None)}


class JsonFormatter(logging.Formatter):
    """One JSON object per record: time, level, name, msg and known extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "name": record.name,
            "msg": record.getMessage(),
        }
        req = getattr(record, "req", None)
        if req is not None:
            entry["req"] = serialize_request(req)
        res = getattr(record, "res", None)
        if res is not None:
            entry["res"] = serialize_response(res)
        duration = getattr(record, "duration", None)
        if duration is not None:
            entry["duration"] = duration
        if record.exc_info:
            entry["err"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable single line, with a ``METHOD url -> status (ms)`` suffix."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        req = getattr(record, "req", None)
        if req is None:
            return line
        res = getattr(record, "res", None)
        status = getattr(res, "status", "-")
        duration = getattr(record, "duration", None)
        timing = f" ({duration}ms)" if duration is not None else ""
        return f"{line} {getattr(req, 'method', '-')} {getattr(req, 'url', '-')} -> {status}{timing}"


def create_logger(
    level: str | int = "info",
    *,
    fmt: str = "json",
    name: str = LOGGER_NAME,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Build (or reconfigure) the named logger.

    Calling it again with the same *name* replaces the handler rather
    than stacking a second one.
    """
    if fmt not in ("json", "text"):
        msg = f"Unknown log format {fmt!r}. Expected 'json' or 'text'."
        raise ValueError(msg)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter() if fmt == "json" else TextFormatter())

    log = logging.getLogger(name)
    for existing in list(log.handlers):
        log.removeHandler(existing)
    log.addHandler(handler)
    log.setLevel(parse_level(level))
    log.propagate = False
    return log
