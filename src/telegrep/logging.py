"""Structured logging configuration for telegrep.

structlog renders every entry, including records from stdlib loggers such as
httpx. Output is JSON under a supervisor and a console format on a terminal.
Bot API tokens are masked before anything is rendered, since httpx errors and
URLs carry the token in their path.
"""

import logging
import re
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

LOG_FORMATS = ("auto", "json", "console")

# <bot id>:<secret>, with or without the "bot" URL prefix
BOT_TOKEN_PATTERN = re.compile(r"(?<![0-9])[0-9]+:[A-Za-z0-9_-]{30,}")
REDACTED_TOKEN = "<token>"


def redact_bot_tokens(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask bot tokens in every string value of the entry."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = BOT_TOKEN_PATTERN.sub(REDACTED_TOKEN, value)
    return event_dict


def configure_logging(
    service_name: str = "telegrep", level: str = "INFO", log_format: str = "auto"
) -> None:
    """Configure structured logging for the daemon and CLI.

    Args:
        service_name: Value bound to the 'service' key of every entry
        level: Log level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        log_format: 'json', 'console', or 'auto' (console when stderr is a TTY)
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
    log_level = getattr(logging, level.upper())
    use_console = log_format == "console" or (log_format == "auto" and sys.stderr.isatty())

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_bot_tokens,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer()
        if use_console
        else structlog.processors.JSONRenderer(ensure_ascii=False)
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors + [redact_bot_tokens],
        processor=renderer,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.contextvars.bind_contextvars(service=service_name)
