"""Logging configuration for structured logging."""
import logging
import sys

from shop_dashboard.config.models import LoggingConfig


def configure_structured_logging(level: str = "INFO", quiet_loggers: list[str] | None = None):
    """
    Send log records to stdout as bare messages.

    Structured entries are already JSON; plain module loggers print their
    f-string message as-is. Loggers in ``quiet_loggers`` are capped at WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",  # JSON already formatted
        stream=sys.stdout,
    )
    logging.getLogger("shop_dashboard").setLevel(getattr(logging, level.upper()))

    for name in quiet_loggers if quiet_loggers is not None else ["asyncio"]:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_from_config(config: LoggingConfig) -> None:
    """Apply the ``logging`` section of the dashboard configuration."""
    configure_structured_logging(config.level, config.quiet_loggers)
