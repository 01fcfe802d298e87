"""Structured logging configuration for mailbatch.

Batch runs under a scheduler (non-TTY stderr): JSON lines with ISO timestamps.
Interactive runs (TTY stderr): colored console output.
"""

import logging
import sys

import structlog


_PRIORITY_KEYS = ("timestamp", "level", "component", "event")


def reorder_keys(
    logger: object, method_name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    """Move timestamp, level, component and event to the front of the record."""
    ordered = {key: event_dict[key] for key in _PRIORITY_KEYS if key in event_dict}
    ordered.update((k, v) for k, v in event_dict.items() if k not in ordered)
    return ordered


def configure_logging(log_level: str = "info") -> None:
    """Configure structlog for JSON output (batch) or console (interactive).

    Args:
        log_level: Logging level name (debug, info, warning, error, critical).
                   Fed from the logging.level config value.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    renderer: structlog.types.Processor
    if sys.stderr.isatty():
        renderer = structlog.dev.ConsoleRenderer()
    else:
        processors += [structlog.processors.dict_tracebacks, reorder_keys]
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(**initial_context: object) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger with optional bound context."""
    return structlog.get_logger(**initial_context)
