"""
Structured logging configuration with structlog.
JSON lines in production, console output everywhere else.

Client IPs must never reach the logs; the ``redact_client_ip`` processor
strips them even when a call site passes one by mistake.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from wool_analytics.core.config import settings

REDACTED_KEYS = frozenset({"ip", "client_ip", "remote_addr", "x_forwarded_for"})


def redact_client_ip(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in event_dict.keys() & REDACTED_KEYS:
        event_dict[key] = "[redacted]"
    return event_dict


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and the stdlib root logger for the service."""
    level_name = (level or settings.log_level).upper()
    if json_logs is None:
        json_logs = settings.environment == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        redact_client_ip,
    ]

    renderer: list[Processor]
    if json_logs:
        renderer = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    structlog.configure(
        processors=[*shared_processors, *renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    # Beacons arrive constantly; per-request access lines drown everything else
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, optionally with bound context."""
    return structlog.get_logger(name, **initial_values)
