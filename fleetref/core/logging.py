import logging
import os
import sys
from enum import Enum
from typing import Any

import structlog
from pathlib import Path

# Keys bound for the duration of an import commit
IMPORT_CONTEXT_KEYS = ("data_type", "import_channel", "import_format")


def add_import_context(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Render bound import context as plain values and drop unset keys."""
    for key in IMPORT_CONTEXT_KEYS:
        if key not in event_dict:
            continue
        value = event_dict[key]
        if value is None:
            del event_dict[key]
        elif isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def bind_import_context(data_type: Any, channel: Any = None, fmt: Any = None):
    """Bind data type, channel and format to every log event in the block."""
    return structlog.contextvars.bound_contextvars(
        data_type=data_type,
        import_channel=channel,
        import_format=fmt,
    )


def configure_logging() -> None:
    """Configure structured logging for the application."""

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_import_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if os.getenv("JSON_LOGS", "false").lower() == "true":
        processors = shared_processors + [structlog.processors.JSONRenderer()]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Library modules log through the standard library
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    log_file = Path("logs/fleetref.log")
    if log_file.parent.exists():
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
