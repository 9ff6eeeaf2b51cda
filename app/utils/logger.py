"""
Logging Utility.

Process-wide logging setup plus a structured (JSON per line) logger for
audit events such as rule changes, completion toggles and digest runs.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import json


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the API process or a job."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout,
    )


class StructuredLogger:
    """
    Emits one JSON document per event.

    Context bound with ``bind`` (a user id, a job run date) is merged into
    every event; per-call fields win on conflict.
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.context = dict(context or {})

    def bind(self, **context) -> "StructuredLogger":
        """A logger for the same component with extra fixed fields."""
        return StructuredLogger(self.logger.name, {**self.context, **context})

    def _emit(self, level: int, event: str, **fields):
        if not self.logger.isEnabledFor(level):
            return
        document = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": logging.getLevelName(level),
            "event": event,
            "component": self.logger.name,
            **self.context,
            **fields,
        }
        self.logger.log(level, json.dumps(document, default=str))

    def info(self, event: str, **fields):
        self._emit(logging.INFO, event, **fields)

    def warning(self, event: str, **fields):
        self._emit(logging.WARNING, event, **fields)

    def error(self, event: str, **fields):
        self._emit(logging.ERROR, event, **fields)


def get_logger(component: str) -> StructuredLogger:
    """Structured logger for a component, e.g. ``routine-tracker``."""
    return StructuredLogger(component)
