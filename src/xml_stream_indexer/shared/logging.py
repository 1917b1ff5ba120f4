"""Session-aware logging utilities for xml-stream-indexer.

Every component logs through a ``SessionLogger`` so that records emitted during a
parse carry the session id and the component name in their ``extra`` data.
"""

import logging
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(component)s] %(message)s"
_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class _ComponentDefaults(logging.Filter):
    """Fill in the structured fields for records not emitted via SessionLogger."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = record.name.split(".")[-1]
        if not hasattr(record, "session_id"):
            record.session_id = None
        return True


class SessionLogger:
    """Logger that adds session id and component information to each record."""

    def __init__(
        self,
        name: str,
        session_id: Optional[str] = None,
        component: Optional[str] = None
    ) -> None:
        """Initialize session logger.

        Args:
            name: Logger name (typically __name__)
            session_id: Optional id of the parse session being logged
            component: Component name for structured logging
        """
        self.logger = logging.getLogger(name)
        self.session_id = session_id
        self.component = component or name.split(".")[-1]

    def bind(self, session_id: Optional[str]) -> "SessionLogger":
        """Return a logger for the same component tied to another session."""
        return SessionLogger(self.logger.name, session_id, self.component)

    def _extra(self, extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        combined = {"component": self.component, "session_id": self.session_id}
        if extra:
            combined.update(extra)
        return combined

    def is_enabled_for(self, level: int) -> bool:
        """Check whether a level would be emitted."""
        return self.logger.isEnabledFor(level)

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self.logger.debug(message, extra=self._extra(extra))

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self.logger.info(message, extra=self._extra(extra))

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self.logger.warning(message, extra=self._extra(extra))

    def error(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = True
    ) -> None:
        self.logger.error(message, extra=self._extra(extra), exc_info=exc_info)

    def exception(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log an error message with the active traceback."""
        self.logger.exception(message, extra=self._extra(extra))


def get_logger(
    name: str,
    session_id: Optional[str] = None,
    component: Optional[str] = None
) -> SessionLogger:
    """Get a session-aware logger instance.

    Args:
        name: Logger name (typically __name__)
        session_id: Optional parse session id
        component: Component name for structured logging

    Returns:
        SessionLogger instance
    """
    return SessionLogger(name, session_id, component)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for command-line use.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL
    """
    level = level.upper()
    if level not in _VALID_LEVELS:
        raise ValueError(f"logging level must be one of {list(_VALID_LEVELS)}")

    handler = logging.StreamHandler()
    handler.addFilter(_ComponentDefaults())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
