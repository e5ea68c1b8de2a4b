"""Structured logging for the FTPS client, built on structlog."""

import logging
import sys
from typing import Any, Optional

import structlog


# Event keys whose values never reach the log output.
SECRET_KEYS = frozenset({"password", "passwd", "pass", "userpwd"})


def redact_secrets(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor masking credential values."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "console",
    stream: Optional[Any] = None,
) -> None:
    """Configure structured logging for applications using the client.

    The library itself only calls ``structlog.get_logger``; this is for
    the embedding application (or a test) to choose the output.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: Log format ('json' or 'console').
        stream: Output stream, stderr by default.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=log_level,
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if format.lower() == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to ``name``."""
    return structlog.get_logger(name)
