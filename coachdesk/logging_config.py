"""
Logging setup for CoachDesk.

JSON lines in production, a compact single-line format elsewhere. Every
record carries the request_id bound by RequestIdMiddleware ("-" outside a
request, e.g. in scheduled jobs).

Structured fields go through ``extra=``. Credential material never reaches
the output: fields named in ``REDACTED_FIELDS`` are masked by the filter
before any formatter sees them.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

REDACTED_FIELDS = frozenset((
    "password", "new_password", "current_password",
    "token", "access_token", "refresh_token", "reset_token",
))

# Libraries that log per statement or per request at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "request_id"}

_factory_installed = False


def get_request_id() -> Optional[str]:
    return request_id_var.get()


class ContextFilter(logging.Filter):
    """Stamp the request id and mask credential fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"  # type: ignore[attr-defined]
        for field in REDACTED_FIELDS.intersection(record.__dict__):
            setattr(record, field, "***")
        return True


class JsonFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if getattr(record, "request_id", "-") != "-":
            payload["request_id"] = record.request_id  # type: ignore[attr-defined]
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable format; extra fields are appended as key=value pairs."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(levelname)-5s %(name)s [%(request_id)s] %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _extra_fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_") and value is not None
    }


def _install_record_factory() -> None:
    # Records emitted before the filter runs (or through foreign handlers)
    # still need request_id for the console format string.
    global _factory_installed
    if _factory_installed:
        return
    base_factory = logging.getLogRecordFactory()

    def factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
        record = base_factory(*args, **kwargs)
        record.request_id = "-"  # type: ignore[attr-defined]
        return record

    logging.setLogRecordFactory(factory)
    _factory_installed = True


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Install the CoachDesk handler on the root logger.

    Safe to call more than once (app startup, scripts, test reloads): the
    root handlers are replaced, not stacked.
    """
    level = logging.DEBUG if debug else logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    _install_record_factory()

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if environment == "production" else ConsoleFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Module logger; use ``extra={"user_id": ...}`` for structured fields."""
    return logging.getLogger(name)
