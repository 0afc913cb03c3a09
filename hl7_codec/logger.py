"""Structured logging configuration."""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """
    Configure structured logging.

    The library itself only creates loggers; applications (such as the
    command line script) call this once at start-up.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Replace handlers so repeated calls do not duplicate output
    root_logger.handlers = []

    # Diagnostics go to stderr, stdout is reserved for parsed output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, log_level.upper()))
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Events always go through the standard logging module under the given
    name, so nothing is written until the application configures logging.
    """
    return structlog.wrap_logger(
        logging.getLogger(name), wrapper_class=structlog.stdlib.BoundLogger
    )
