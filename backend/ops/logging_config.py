"""
Structured logging configuration.

Posting commands log rejections with structured extra fields
(error_code, organization_id, transaction_number); the JSON formatter
keeps those as a nested "extra" object.

Configuration:
- Development: Human-readable console output
- Production: JSON lines to stdout

Environment variables:
- LOG_FORMAT: "json" or "console" (default: json in production)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_SQL: "True" echoes SQL through django.db.backends
"""
import json
import logging
import os
from datetime import datetime, timezone

# Application packages that get their own logger entry.
APP_LOGGERS = ("accounts", "ledger", "events", "ops")

SERVICE_NAME = "ledgerworks"

# Attributes every LogRecord carries; anything else came in through extra=.
STANDARD_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message", "taskName",
})


def get_logging_config(debug: bool = False) -> dict:
    """
    Build the Django LOGGING dict.

    Every application package in APP_LOGGERS logs to stdout without
    propagating, so a posting rejection is written exactly once.
    """
    level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")
    formatter = "json" if log_format == "json" else "verbose"

    def to_console(logger_level, propagate=False):
        return {"handlers": ["console"], "level": logger_level, "propagate": propagate}

    loggers = {
        "": {"handlers": ["console"], "level": level},
        "django": to_console(level),
        "django.request": to_console(level if debug else "ERROR"),
        # SQL echo only with LOG_SQL=True
        "django.db.backends": (
            to_console("DEBUG") if os.environ.get("LOG_SQL") == "True"
            else {"handlers": ["null"], "level": "INFO", "propagate": False}
        ),
    }
    loggers.update({name: to_console(level) for name in APP_LOGGERS})

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": "ops.logging_config.JsonFormatter"},
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
            "null": {"class": "logging.NullHandler"},
        },
        "loggers": loggers,
    }


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: timestamp (UTC), level, logger, message,
    source location, formatted exception, and whatever the caller passed
    through ``extra=``. Values json cannot encode (Decimal, UUID, date)
    are stringified.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
        }
        if record.pathname:
            entry["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extras = {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in STANDARD_RECORD_ATTRS
        }
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str)


def _jsonable(value):
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value
