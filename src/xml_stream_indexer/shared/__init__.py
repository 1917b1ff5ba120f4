"""Shared utilities for xml-stream-indexer.

This module provides the configuration objects, session state and diagnostic
types, exceptions and logging helpers used across all components.
"""

from .errors import (
    ConfigError,
    ConfigValidationError,
    EngineBusyError,
    ExportError,
    IndexerError,
    InputReadError,
    ParseCancelledError,
)
from .result import (
    ErrorSeverity,
    ErrorType,
    ParseError,
    ParserState,
    ParseStatus,
    ParseWarning,
    PerformanceMetrics,
    WarningType,
)
from .config import (
    ClassifierConfig,
    DispatchConfig,
    ExportFormat,
    ExportOptions,
    GlobalConfig,
    IndexerConfig,
    ParseOptions,
    ScannerConfig,
    ValidationConfig,
)
from .logging import (
    SessionLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "EngineBusyError",
    "ExportError",
    "IndexerError",
    "InputReadError",
    "ParseCancelledError",
    "ErrorSeverity",
    "ErrorType",
    "ParseError",
    "ParserState",
    "ParseStatus",
    "ParseWarning",
    "PerformanceMetrics",
    "WarningType",
    "ClassifierConfig",
    "DispatchConfig",
    "ExportFormat",
    "ExportOptions",
    "GlobalConfig",
    "IndexerConfig",
    "ParseOptions",
    "ScannerConfig",
    "ValidationConfig",
    "SessionLogger",
    "configure_logging",
    "get_logger",
]
