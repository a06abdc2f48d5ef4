"""
Logging configuration for formcalc.

Library modules log through ``logging.getLogger(__name__)`` under the
``formcalc`` namespace. Hosts that want formcalc's own output format call
``setup_logging``; JSON lines for log aggregators, colored text otherwise.
"""

import logging
import sys
from typing import Any

import orjson

from formcalc.core.config import Settings
from formcalc.core.exceptions import FormCalcException

PACKAGE_LOGGER = "formcalc"

# Attributes of a bare LogRecord; anything else came from ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Formula diagnostics carry their error code and details as ``extra``
    fields; those end up under the "extra" key.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_data = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RECORD_ATTRS and not k.startswith("_")
        }
        if extra_data:
            log_data["extra"] = extra_data

        return orjson.dumps(log_data, default=str).decode("utf-8")


class ConsoleFormatter(logging.Formatter):
    """Console formatter with colored level names for development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.COLORS.get(record.levelname, self.RESET)
        # Other handlers may share this record
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    log_format: str | None = None,
) -> logging.Logger:
    """
    Set up logging for the formcalc package logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output JSON logs
        log_format: Custom log format string for console output

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level.upper())
    package_logger.handlers.clear()
    package_logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level.upper())

    if json_logs:
        formatter: logging.Formatter = JSONFormatter()
    else:
        format_str = (
            log_format
            or "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s"
        )
        formatter = ConsoleFormatter(format_str, datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)
    package_logger.addHandler(handler)

    package_logger.debug(
        "Logging configured",
        extra={
            "log_level": log_level,
            "json_logs": json_logs,
        },
    )
    return package_logger


def setup_logging_from_settings(settings: Settings) -> logging.Logger:
    """Set up logging using the level and format from settings."""
    return setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)


def log_recovered_error(logger: logging.Logger, error: FormCalcException) -> None:
    """
    Log an error that was handled instead of raised.

    Uses the error's own ``log_level`` and attaches its code and details
    as structured ``extra`` fields.
    """
    logger.log(
        error.log_level,
        error.message,
        extra={"error_code": error.code, "error_details": error.details},
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class LoggerMixin:
    """
    Mixin class that provides a logger attribute.

    Classes that inherit from this mixin get a logger named after the class.
    """

    @property
    def logger(self) -> logging.Logger:
        """Get logger for this class."""
        return logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)
