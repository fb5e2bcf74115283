import json
import logging
import os
import sys
from logging.config import dictConfig
from typing import Any, Dict

from app.core.config import LOG_LEVEL, LOG_PATH

# Attributes every LogRecord carries; anything else arrived through ``extra``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including fields passed via ``extra``."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(log_path: str | None = LOG_PATH, level: str = LOG_LEVEL):
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "default",
        },
        "access_console": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "access",
        },
    }
    root_handlers = ["console"]
    access_handlers = ["access_console"]

    if log_path:
        directory = os.path.dirname(log_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_path,
            "mode": "a",
            "encoding": "utf-8",
            "formatter": "json",
        }
        root_handlers.append("file")
        access_handlers.append("file")

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,

            # -----------------
            # FORMATTERS
            # -----------------
            "formatters": {
                "default": {
                    "format": (
                        "%(asctime)s | %(levelname)s | "
                        "%(name)s | %(message)s"
                    ),
                },
                "access": {
                    "format": (
                        "%(asctime)s | ACCESS | "
                        "%(client_addr)s | %(method)s | "
                        "%(path)s | %(status_code)s | "
                        "%(process_time_ms)sms"
                    ),
                },
                "json": {
                    "()": JsonFormatter,
                },
            },

            # -----------------
            # HANDLERS
            # -----------------
            "handlers": handlers,

            # -----------------
            # LOGGERS
            # -----------------
            "loggers": {
                # Used by request_logging_middleware
                "access": {
                    "handlers": access_handlers,
                    "level": "INFO",
                    "propagate": False,
                },
            },

            # -----------------
            # ROOT LOGGER
            # -----------------
            "root": {
                "level": level,
                "handlers": root_handlers,
            },
        }
    )
