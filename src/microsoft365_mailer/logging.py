"""Structured logging for the Microsoft 365 mailer.

Events from ``microsoft365_mailer.*`` loggers are rendered by structlog and
written to stderr, so stdout stays free for command output such as the
message id printed by ``microsoft365-mailer send``.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor


PACKAGE_LOGGER = "microsoft365_mailer"

# Libraries that log request URLs (upload URLs are pre-authorized) at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "msal")

REDACTED_KEYS = frozenset({"authorization", "client_secret", "password", "access_token"})


class StderrHandler(logging.StreamHandler):
    """Stream handler bound to the current ``sys.stderr`` at emit time."""

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values passed as event keys."""
    for key in event_dict.keys() & REDACTED_KEYS:
        event_dict[key] = "[REDACTED]"
    return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging with structlog.

    Safe to call more than once; the package handler is replaced each time.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json or console)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    handler = StderrHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers = [handler]
    package_logger.setLevel(numeric_level)
    package_logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
