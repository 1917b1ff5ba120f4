"""Session state, diagnostics and metrics types for xml-stream-indexer.

This module defines the records a parse session accumulates: the status and
progress snapshot handed to progress callbacks, the error and warning entries
collected while scanning, and the performance metrics of the last parse.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class ParseStatus(Enum):
    """Lifecycle status of a parse session."""

    IDLE = "idle"
    PARSING = "parsing"
    LOADING = "loading"
    COMPLETE = "complete"
    ERROR = "error"


class ErrorType(Enum):
    """Category of a parse error."""

    SYNTAX = "syntax"         # input could not be read at all, fatal
    SCHEMA = "schema"         # failed schema validation, reported only
    REFERENCE = "reference"   # cross-reference could not be resolved
    MEMORY = "memory"         # resource ceiling reached


class ErrorSeverity(Enum):
    """Severity attached to a parse error."""

    ERROR = "error"
    WARNING = "warning"


class WarningType(Enum):
    """Category of a parse warning."""

    DEPRECATED = "deprecated"
    MISSING = "missing"
    PERFORMANCE = "performance"
    MEMORY = "memory"


def new_diagnostic_id() -> str:
    """Create an identifier for an error or warning entry."""
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


@dataclass
class ParseError:
    """Single error recorded during a parse session."""

    type: ErrorType
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    line: Optional[int] = None
    column: Optional[int] = None
    path: Optional[str] = None
    id: str = field(default_factory=new_diagnostic_id)

    def __post_init__(self) -> None:
        """Validate error entry."""
        if not self.message:
            raise ValueError("Error message cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "message": self.message,
            "severity": self.severity.value,
        }
        if self.line is not None:
            result["line"] = self.line
        if self.column is not None:
            result["column"] = self.column
        if self.path is not None:
            result["path"] = self.path
        return result


@dataclass
class ParseWarning:
    """Single warning recorded during a parse session."""

    type: WarningType
    message: str
    line: Optional[int] = None
    path: Optional[str] = None
    id: str = field(default_factory=new_diagnostic_id)

    def __post_init__(self) -> None:
        """Validate warning entry."""
        if not self.message:
            raise ValueError("Warning message cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Convert warning to dictionary representation."""
        result: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "message": self.message,
        }
        if self.line is not None:
            result["line"] = self.line
        if self.path is not None:
            result["path"] = self.path
        return result


@dataclass
class ParserState:
    """Status snapshot of a parse session.

    The engine mutates one instance while parsing and hands out copies through
    ``snapshot()``, so callers never observe later changes.
    """

    status: ParseStatus = ParseStatus.IDLE
    progress: float = 0.0
    current_section: str = ""
    elements_processed: int = 0
    memory_usage: int = 0
    errors: List[ParseError] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate state values."""
        if not (0.0 <= self.progress <= 100.0):
            raise ValueError("Progress must be between 0 and 100")

    @property
    def error_count(self) -> int:
        """Number of recorded errors."""
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        """Number of recorded warnings."""
        return len(self.warnings)

    def snapshot(self) -> "ParserState":
        """Return a copy that does not share the error and warning lists."""
        return replace(self, errors=list(self.errors), warnings=list(self.warnings))

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to dictionary representation."""
        return {
            "status": self.status.value,
            "progress": self.progress,
            "currentSection": self.current_section,
            "elementsProcessed": self.elements_processed,
            "memoryUsage": self.memory_usage,
            "errors": [error.to_dict() for error in self.errors],
            "warnings": [warning.to_dict() for warning in self.warnings],
        }


@dataclass
class PerformanceMetrics:
    """Performance metrics of the last parse."""

    parse_time: float = 0.0        # milliseconds
    render_time: float = 0.0       # milliseconds
    memory_peak: int = 0           # bytes
    node_count: int = 0
    search_index_size: int = 0     # estimated bytes

    @property
    def nodes_per_second(self) -> float:
        """Retained elements produced per second of parse time."""
        if self.parse_time <= 0:
            return 0.0
        return (self.node_count * 1000.0) / self.parse_time

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary representation."""
        return {
            "parseTime": self.parse_time,
            "renderTime": self.render_time,
            "memoryPeak": self.memory_peak,
            "nodeCount": self.node_count,
            "searchIndexSize": self.search_index_size,
        }
