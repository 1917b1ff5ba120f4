"""Exception hierarchy for xml-stream-indexer."""

from typing import List, Optional


class IndexerError(Exception):
    """Base exception for all indexer errors."""


class ConfigError(IndexerError):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


class EngineBusyError(IndexerError):
    """Raised when an engine is used while one of its parses is in flight."""


class ParseCancelledError(IndexerError):
    """Raised inside a parse loop once cancellation has been requested."""


class InputReadError(IndexerError):
    """Raised when the parse input cannot be obtained."""


class ExportError(IndexerError):
    """Raised when an exported payload fails output validation."""
