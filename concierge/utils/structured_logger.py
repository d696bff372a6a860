"""
Structured JSON logger for concierge conversation events.

Widget turns emit analytics-style events (intent detected, intent miss,
shortlist changes, ...) as single-line JSON so the surrounding system can ship
them to whatever pipeline it uses. Each entry has:
- timestamp (ISO 8601, UTC)
- level
- logger
- event_type
- message
- context (session_id, request_id, intent, ...)
"""
import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(str, Enum):
    """Log levels matching Python logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class StructuredLogger:
    """JSON event logger backed by a stdlib logger."""

    def __init__(self, name: str = "concierge.events", log_level: str = "INFO"):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level))
        self.logger.propagate = False

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            # The JSON line is the whole record
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)

    def _log(
        self,
        level: LogLevel,
        event_type: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "logger": self.name,
            "event_type": event_type,
            "message": message,
        }
        if context:
            # Drop empty keys so events stay compact
            entry["context"] = {k: v for k, v in context.items() if v is not None}

        line = json.dumps(entry, default=str)
        self.logger.log(getattr(logging, level.value), line)

    def debug(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.DEBUG, event_type, message, context)

    def info(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.INFO, event_type, message, context)

    def warning(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.WARNING, event_type, message, context)

    def error(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.ERROR, event_type, message, context)

    def track(self, event_type: str, **context: Any) -> None:
        """Record a conversation analytics event at INFO level."""
        self.info(event_type, event_type.replace("_", " "), context)


# Global event logger instance
event_logger = StructuredLogger()


def track_event(event_type: str, **context: Any) -> None:
    """Record a conversation analytics event."""
    event_logger.track(event_type, **context)
