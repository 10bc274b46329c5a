"""Structured logging configuration for trainsim.

Example:
    >>> from trainsim.logging_config import configure_logging
    >>> configure_logging(log_level="DEBUG", log_format="console")
"""

import logging
import sys

import structlog
from structlog.typing import Processor


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    enable_colors: bool = True,
) -> None:
    """Configure structlog for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format ('json' or 'console')
        enable_colors: Colored output for console format
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=_get_processors(log_format, enable_colors),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def _get_processors(log_format: str, enable_colors: bool) -> list[Processor]:
    """Get the processor chain for the given output format."""
    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format.lower() == "json":
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=enable_colors))

    return processors


def get_logger(name: str, **context) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, optionally bound to extra context."""
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger
