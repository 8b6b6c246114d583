"""
Structured logging for mavlinklog.

Events are structlog key/value pairs, rendered either as JSON lines (for
unattended recorders) or for the console (for the command line tools).

Readers and writers log through loggers bound to the file they work on, so
each of their events carries the file path and, for MAV-LOG files, the log
UUID. Byte strings in events are rendered as hex.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "mavlinklog"
LOG_OUTPUTS = ("stdout", "stderr")


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to log entries."""
    event_dict["app"] = APP_NAME
    return event_dict


def render_bytes_as_hex(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace bytes values, such as frame heads seen while resynchronizing, with hex."""
    for key, value in event_dict.items():
        if isinstance(value, (bytes, bytearray)):
            event_dict[key] = value.hex()
    return event_dict


def _output_stream(log_output: str) -> TextIO:
    if log_output not in LOG_OUTPUTS:
        raise ValueError(f"Unsupported log output {log_output!r}, expected one of {LOG_OUTPUTS}")
    return sys.stdout if log_output == "stdout" else sys.stderr


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_output: str = "stderr",
) -> None:
    """
    Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_output: Output stream (stdout or stderr); stdout is left to the
            command output by default

    Raises:
        ValueError: If log_output is not stdout or stderr
    """
    stream = _output_stream(log_output)

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context,
        render_bytes_as_hex,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a logger, optionally bound to context that every event will carry.

    Args:
        name: Logger name (typically __name__)
        **context: Key/value pairs added to every event, e.g. ``path``

    Returns:
        structlog logger
    """
    logger = structlog.get_logger(name)
    if context:
        return logger.bind(**context)
    return logger
