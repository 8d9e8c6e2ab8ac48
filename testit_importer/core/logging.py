"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""Logging infrastructure with contextual tracking.

This module provides the importer's logging setup: a rich console handler, a
debug-level file handler, correlation IDs stamped on every record, redaction
of API tokens, and a context manager for timing import phases.
"""

import json
import logging
import os
import re
import sys
import threading
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from re import Pattern
from typing import Any

from rich.logging import RichHandler

# Thread-local storage for context data
_context_local = threading.local()

ROOT_LOGGER_NAME = "testit_importer"
DEFAULT_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class CorrelationIdManager:
    """
    Manages correlation IDs using thread-local storage.

    One import run shares one correlation ID, which makes it possible to pick a
    single run out of a log file that several runs appended to.
    """

    def get_correlation_id(self) -> str:
        """
        Get the current correlation ID or generate a new one.
        """
        if not getattr(_context_local, "correlation_id", None):
            _context_local.correlation_id = f"import-{uuid.uuid4()}"
        return _context_local.correlation_id

    def set_correlation_id(self, correlation_id: str) -> None:
        """
        Set the current correlation ID.
        """
        _context_local.correlation_id = correlation_id

    def clear_correlation_id(self) -> None:
        """
        Clear the current correlation ID.
        """
        if hasattr(_context_local, "correlation_id"):
            delattr(_context_local, "correlation_id")


# Global correlation ID manager instance
correlation_manager = CorrelationIdManager()


class LogRedactor:
    """
    Redacts sensitive information from log messages.
    """

    def __init__(self) -> None:
        self.patterns: dict[str, Pattern] = {
            "private_token": re.compile(r"(PrivateToken)\s+([^\s\"']{8,})", re.IGNORECASE),
            "api_key": re.compile(
                r'(api[_-]?key|private[_-]?token|token)["\']?\s*[:=]\s*["\']?([^"\'&\s,}]{8,})',
                re.IGNORECASE,
            ),
            "password": re.compile(
                r'(password|passwd|secret)["\']?\s*[:=]\s*["\']?([^"\'&\s,}]+)', re.IGNORECASE
            ),
        }

    def redact(self, message: str) -> str:
        """
        Redact sensitive information from the message, keeping the key.
        """
        if not isinstance(message, str):
            return message

        for field, pattern in self.patterns.items():
            if field == "private_token":
                message = pattern.sub(r"\1 [REDACTED]", message)
            else:
                message = pattern.sub(r"\1: [REDACTED]", message)
        return message


# Global redactor instance
redactor = LogRedactor()


class ContextFilter(logging.Filter):
    """
    Stamps records with the correlation ID and redacts their message.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_manager.get_correlation_id()
        if isinstance(record.msg, str):
            record.msg = redactor.redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                redactor.redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs log records as JSON.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "correlation_id"):
            log_data["correlation_id"] = record.correlation_id

        if getattr(record, "context_data", None):
            log_data["context"] = record.context_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, default=str)


class RichContextFormatter(logging.Formatter):
    """
    Formatter for Rich console output with context data appended.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        context_data = getattr(record, "context_data", None)
        if context_data:
            context_str = " ".join(f"[{k}={v}]" for k, v in context_data.items())
            message = f"{message} {context_str}"

        return message


@contextmanager
def log_operation(
    logger: logging.Logger,
    operation_name: str,
    level: int = logging.INFO,
    context: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Context manager for logging operations with timing and context tracking.

    Args:
    ----
        logger: The logger instance to use
        operation_name: Name of the operation being performed
        level: Log level to use
        context: Additional context data to include in the logs

    Raises:
    ------
        Exception: Re-raises any exception that occurs within the context

    """
    start_time = time.time()
    context = dict(context or {})
    context["operation_id"] = str(uuid.uuid4())[:8]

    logger.log(level, "Starting %s", operation_name, extra={"context_data": context})

    try:
        yield
    except Exception as e:
        duration = time.time() - start_time
        error_context = {
            **context,
            "error_type": type(e).__name__,
            "error": str(e),
            "duration": f"{duration:.2f}s",
        }
        logger.error(
            "Failed %s after %.2fs",
            operation_name,
            duration,
            extra={"context_data": error_context},
            exc_info=True,
        )
        raise

    duration = time.time() - start_time
    logger.log(
        level,
        "Completed %s in %.2fs",
        operation_name,
        duration,
        extra={"context_data": context},
    )


@contextmanager
def correlation_id(value: str | None = None) -> Iterator[str]:
    """
    Context manager for setting a correlation ID for the current context.

    Args:
    ----
        value: ID to use, or None to generate a new one

    Yields:
    ------
        str: The current correlation ID (either provided or generated)

    """
    previous_id = getattr(_context_local, "correlation_id", None)

    correlation_manager.set_correlation_id(value or f"import-{uuid.uuid4()}")

    try:
        yield correlation_manager.get_correlation_id()
    finally:
        if previous_id:
            correlation_manager.set_correlation_id(previous_id)
        else:
            correlation_manager.clear_correlation_id()


def _file_handler(log_file: str, json_format: bool) -> logging.Handler:
    directory = os.path.dirname(os.path.abspath(log_file))
    os.makedirs(directory, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(DEFAULT_FILE_FORMAT))
    return handler


def configure_logging(
    level: int | str = logging.INFO,
    log_file: str | None = None,
    json_format: bool = False,
    use_rich: bool = True,
    debug: bool = False,
) -> None:
    """
    Configure application logging.

    The console shows records at ``level``; the log file, when given, always
    receives everything down to DEBUG so a failed run can be reconstructed.

    Args:
    ----
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL or integer)
        log_file: Optional path to log file
        json_format: Whether to use JSON format for logs
        use_rich: Whether to use Rich for console output
        debug: Whether to force debug mode

    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if debug:
        level = logging.DEBUG

    handlers: list[logging.Handler] = []

    if use_rich:
        console_handler: logging.Handler = RichHandler(
            rich_tracebacks=True, markup=False, show_time=True
        )
        console_handler.setFormatter(RichContextFormatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            JSONFormatter() if json_format else logging.Formatter(DEFAULT_FILE_FORMAT)
        )
    console_handler.setLevel(level)
    handlers.append(console_handler)

    if log_file:
        handlers.append(_file_handler(log_file, json_format))

    context_filter = ContextFilter()
    for handler in handlers:
        handler.addFilter(context_filter)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)

    logger.debug("Logging configured with level %s", logging.getLevelName(level))
