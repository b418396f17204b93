"""Structured logging utilities for dashboard recomputation and banner events."""
import json
import logging
import uuid
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, Iterator, Optional


class StructuredLogger:
    """
    JSON-line logger with correlation ID support.

    One correlation ID ties together the events of a single dashboard
    recompute or tracker evaluation. Entries below the logger's effective
    level are never serialised.
    """

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)
        self._correlation_id: Optional[str] = None

    def set_correlation_id(self, correlation_id: str):
        """Set correlation ID for current context."""
        self._correlation_id = correlation_id

    def clear_correlation_id(self):
        """Clear correlation ID."""
        self._correlation_id = None

    def generate_correlation_id(self) -> str:
        """Generate new correlation ID."""
        return f"DASH_{uuid.uuid4().hex[:12]}"

    @contextmanager
    def correlation_scope(self, correlation_id: str | None = None) -> Iterator[str]:
        """
        Tag every entry logged inside the block with one correlation ID.

        A scope opened while another is active reuses the outer ID, so nested
        work (a tracker re-evaluation triggered from a store write) stays
        under the ID of the action that caused it.
        """
        if self._correlation_id is not None:
            yield self._correlation_id
            return
        self._correlation_id = correlation_id or self.generate_correlation_id()
        try:
            yield self._correlation_id
        finally:
            self._correlation_id = None

    def _entry(self, level: str, message: str, context: dict[str, Any]) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": level,
            "message": message,
            "correlation_id": self._correlation_id or "none",
        }
        if context:
            log_entry["context"] = context
        # Sets, enums and models in the context fall back to str()
        return json.dumps(log_entry, default=str)

    def _log(self, level: int, message: str, context: dict[str, Any]) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, self._entry(logging.getLevelName(level), message, context))

    def info(self, message: str, **kwargs: Any):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any):
        self._log(logging.ERROR, message, kwargs)

    def debug(self, message: str, **kwargs: Any):
        self._log(logging.DEBUG, message, kwargs)


def get_structured_logger(name: str) -> StructuredLogger:
    """Get or create structured logger."""
    return StructuredLogger(name)
