"""Logging setup for windowguard.

Library code only calls ``get_logger``; host applications opt in to the
bundled configuration with ``setup_logging()``. Three output styles are
available through ``settings.log_format``: plain text, text with decision
context appended, and one JSON object per line.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from windowguard.core.config import settings

LOGGER_NAME = "windowguard"

# Attributes present on every LogRecord; anything else arrived via extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON line.

    Decision context (identifier, key, algorithm...) is promoted to top
    level keys; any other ``extra=`` attribute is nested under ``"extra"``.
    """

    CONTEXT_FIELDS = (
        "request_id",
        "identifier",
        "key",
        "algorithm",
        "backend",
        "limit",
        "remaining",
        "retry_after",
    )

    def __init__(self, context_fields: Optional[Iterable[str]] = None):
        super().__init__()
        self.context_fields = tuple(
            self.CONTEXT_FIELDS if context_fields is None else context_fields
        )

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        for name in self.context_fields:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value

        extra = {
            name: value
            for name, value in vars(record).items()
            if name not in _RECORD_ATTRS and name not in self.CONTEXT_FIELDS
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Give every record the decision context attributes.

    Format strings such as ``%(identifier)s`` then work for records logged
    without that context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for name in JSONFormatter.CONTEXT_FIELDS:
            record.__dict__.setdefault(name, None)
        return True


def _stream_handler(stream: Any, level: str, formatter: str) -> Dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "stream": stream,
        "level": level,
        "formatter": formatter,
        "filters": ["context"],
    }


def get_logging_config() -> Dict[str, Any]:
    """Build a ``logging.config.dictConfig`` mapping from settings.

    Returns:
        Configuration routing the ``windowguard`` logger to stdout, with
        errors duplicated to stderr.
    """
    formatter = settings.log_format.lower()
    level = settings.log_level.upper()

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
            "structured": {
                "format": (
                    "%(asctime)s %(levelname)s [%(name)s] %(message)s "
                    "identifier=%(identifier)s algorithm=%(algorithm)s backend=%(backend)s"
                ),
            },
            "json": {
                "()": "windowguard.core.logging.JSONFormatter",
            },
        },
        "filters": {
            "context": {"()": "windowguard.core.logging.ContextFilter"},
        },
        "handlers": {
            "stdout": _stream_handler(sys.stdout, level, formatter),
            "stderr": _stream_handler(sys.stderr, "ERROR", formatter),
        },
        "loggers": {
            LOGGER_NAME: {
                "level": level,
                "handlers": ["stdout", "stderr"],
                "propagate": False,
            },
        },
    }


def setup_logging() -> None:
    """Apply the bundled logging configuration."""
    logging.config.dictConfig(get_logging_config())
    # redis-py is chatty at DEBUG
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    identifier: Optional[str] = None,
    key: Optional[str] = None,
    algorithm: Optional[str] = None,
    backend: Optional[str] = None,
    request_id: Optional[str] = None,
    **fields: Any,
) -> Dict[str, Any]:
    """Collect decision context for a logging ``extra=`` argument.

    Unset (None) values are left out so they never shadow defaults.

    Example:
        >>> logger.info(
        ...     "rate_limit.exceeded",
        ...     extra=get_log_context(identifier="1.2.3.4", algorithm="fixed-window"),
        ... )
    """
    fields.update(
        identifier=identifier,
        key=key,
        algorithm=algorithm,
        backend=backend,
        request_id=request_id,
    )
    return {name: value for name, value in fields.items() if value is not None}
