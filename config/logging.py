"""
structlog setup for the invites feed core.

FeedSession.open() calls ensure_logging(), which configures JSON logs from
the `logging:` section of feed_config.yaml unless the embedding app has
already configured structlog itself.
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, WrappedLogger


def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag every line with app="invites" and the INVITES_ENV environment."""
    event_dict["app"] = "invites"
    event_dict["environment"] = os.getenv("INVITES_ENV", "development")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    enable_colors: bool = False,
) -> None:
    """
    Configure structlog over the stdlib logging module.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines when True, console rendering otherwise
        enable_colors: Colourise console rendering

    Raises:
        ValueError: Unknown level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=enable_colors))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def ensure_logging(level: str = "INFO", log_format: str = "json") -> bool:
    """
    Configure structlog once, leaving a host app's own setup untouched.

    LOG_LEVEL and LOG_FORMAT take precedence over the arguments.

    Args:
        level: Level from the feed config
        log_format: "json" or "console" from the feed config

    Returns:
        True when this call configured structlog
    """
    if structlog.is_configured():
        return False

    level = os.getenv("LOG_LEVEL", level)
    log_format = os.getenv("LOG_FORMAT", log_format)
    configure_logging(level=level, json_format=log_format == "json")
    structlog.get_logger(__name__).debug("logging_configured", level=level, format=log_format)
    return True

