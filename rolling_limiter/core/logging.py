"""Logging setup for the rate limiter.

The library only creates loggers under ``rolling_limiter`` and attaches limiter
context (backend, namespace, hashed key, verdict) through ``extra=``. Nothing is
configured on import; an application that wants the bundled text or JSON output
calls ``setup_logging()``, which reads ``log_level`` and ``log_format`` from
settings.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from rolling_limiter.core.config import settings

# Fields a limiter may attach to a record; see get_log_context()
LIMITER_FIELDS = (
    "limiter",
    "backend",
    "namespace",
    "key_hash",
    "operation",
    "count",
    "blocked",
    "ms_until_allowed",
)

# Attributes every LogRecord has, plus the ones format() writes itself
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object.

    Limiter fields go at the top level and are omitted when unset. Any other
    ``extra=`` keys are grouped under ``"extra"``.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        payload: Dict[str, Any] = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra: Dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in LIMITER_FIELDS:
                if value is not None:
                    payload[key] = value
            elif key not in _RECORD_ATTRIBUTES:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Default every limiter field to None so %-style formats never fail."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in LIMITER_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)
        return True


def _formatters(log_format: str) -> Dict[str, Dict[str, Any]]:
    formatters: Dict[str, Dict[str, Any]] = {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
        "structured": {
            "format": (
                "%(asctime)s %(levelname)s [%(name)s] %(message)s "
                "backend=%(backend)s namespace=%(namespace)s key=%(key_hash)s"
            ),
        },
    }
    if log_format == "json":
        formatters["json"] = {"()": "rolling_limiter.core.logging.JSONFormatter"}
    return formatters


def get_logging_config() -> Dict[str, Any]:
    """Build a ``logging.config.dictConfig`` mapping from settings.

    Records from ``rolling_limiter`` go to stdout; ERROR and above are also
    written to stderr.
    """
    log_format = settings.log_format.lower()
    log_level = settings.log_level.upper()
    formatter = log_format if log_format in ("json", "structured") else "standard"

    def stream_handler(stream, level: str) -> Dict[str, Any]:
        return {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": formatter,
            "stream": stream,
            "filters": ["context"],
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": _formatters(log_format),
        "filters": {"context": {"()": "rolling_limiter.core.logging.ContextFilter"}},
        "handlers": {
            "console": stream_handler(sys.stdout, log_level),
            "error_console": stream_handler(sys.stderr, "ERROR"),
        },
        "loggers": {
            "rolling_limiter": {
                "level": log_level,
                "handlers": ["console", "error_console"],
                "propagate": False,
            },
        },
        "root": {"level": log_level, "handlers": ["console"]},
    }


def setup_logging() -> None:
    """Apply ``get_logging_config()`` and quiet the Redis client's logger."""
    logging.config.dictConfig(get_logging_config())
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str = "rolling_limiter") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    limiter: Optional[str] = None,
    backend: Optional[str] = None,
    namespace: Optional[str] = None,
    key_hash: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for a log call, dropping None values.

    Pass ``key_hash`` from ``hash_identifier()``; raw identifiers are often user
    ids or IP addresses and must not be logged.

    Example:
        >>> logger.debug(
        ...     "Action blocked",
        ...     extra=get_log_context(backend="redis", namespace="login:", blocked=True),
        ... )
    """
    context = {
        "limiter": limiter,
        "backend": backend,
        "namespace": namespace,
        "key_hash": key_hash,
        **extra,
    }
    return {key: value for key, value in context.items() if value is not None}
