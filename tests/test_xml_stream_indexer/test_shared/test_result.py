"""Tests for session state, diagnostics and metrics types."""

import pytest

from xml_stream_indexer.shared.result import (
    ErrorSeverity,
    ErrorType,
    ParseError,
    ParserState,
    ParseStatus,
    ParseWarning,
    PerformanceMetrics,
    WarningType,
)


class TestParseError:
    """Test ParseError entries."""

    def test_defaults_and_unique_ids(self):
        """Test default severity and generated ids."""
        first = ParseError(type=ErrorType.SYNTAX, message="broken")
        second = ParseError(type=ErrorType.SYNTAX, message="broken")

        assert first.severity == ErrorSeverity.ERROR
        assert first.id != second.id

    def test_empty_message_raises(self):
        """Test that an empty message is rejected."""
        with pytest.raises(ValueError, match="Error message cannot be empty"):
            ParseError(type=ErrorType.SCHEMA, message="")

    def test_to_dict_omits_unknown_position(self):
        """Test that missing positions are left out of the dictionary."""
        error = ParseError(type=ErrorType.REFERENCE, message="no target",
                           severity=ErrorSeverity.WARNING, line=4)
        data = error.to_dict()

        assert data["type"] == "reference"
        assert data["severity"] == "warning"
        assert data["line"] == 4
        assert "column" not in data
        assert "path" not in data


class TestParseWarning:
    """Test ParseWarning entries."""

    def test_to_dict(self):
        """Test warning dictionary form."""
        warning = ParseWarning(type=WarningType.MEMORY, message="limit", line=12)
        data = warning.to_dict()

        assert data["type"] == "memory"
        assert data["line"] == 12
        assert data["message"] == "limit"

    def test_empty_message_raises(self):
        """Test that an empty message is rejected."""
        with pytest.raises(ValueError, match="Warning message cannot be empty"):
            ParseWarning(type=WarningType.PERFORMANCE, message="")


class TestParserState:
    """Test ParserState snapshots."""

    def test_default_state(self):
        """Test the idle state."""
        state = ParserState()
        assert state.status == ParseStatus.IDLE
        assert state.progress == 0.0
        assert state.error_count == 0
        assert state.warning_count == 0

    def test_progress_bounds(self):
        """Test that progress must stay within 0..100."""
        with pytest.raises(ValueError, match="Progress must be between 0 and 100"):
            ParserState(progress=101.0)

    def test_snapshot_does_not_share_lists(self):
        """Test that later changes are not visible through a snapshot."""
        state = ParserState(status=ParseStatus.PARSING)
        snapshot = state.snapshot()

        state.errors.append(ParseError(type=ErrorType.SYNTAX, message="late"))
        state.progress = 50.0

        assert snapshot.errors == []
        assert snapshot.progress == 0.0
        assert snapshot.status == ParseStatus.PARSING

    def test_to_dict(self):
        """Test state dictionary form."""
        state = ParserState(status=ParseStatus.COMPLETE, progress=100.0,
                            elements_processed=3)
        data = state.to_dict()

        assert data["status"] == "complete"
        assert data["elementsProcessed"] == 3
        assert data["errors"] == []


class TestPerformanceMetrics:
    """Test PerformanceMetrics."""

    def test_nodes_per_second(self):
        """Test throughput calculation."""
        metrics = PerformanceMetrics(parse_time=500.0, node_count=100)
        assert metrics.nodes_per_second == 200.0
        assert PerformanceMetrics().nodes_per_second == 0.0

    def test_to_dict(self):
        """Test metrics dictionary keys."""
        data = PerformanceMetrics(memory_peak=1024).to_dict()
        assert set(data) == {"parseTime", "renderTime", "memoryPeak",
                             "nodeCount", "searchIndexSize"}
        assert data["memoryPeak"] == 1024
