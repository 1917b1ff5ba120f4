"""Tests for session-aware logging."""

import logging

import pytest

from xml_stream_indexer.shared.logging import (
    SessionLogger,
    configure_logging,
    get_logger,
)


class TestSessionLogger:
    """Test SessionLogger records."""

    def test_records_carry_session_and_component(self, caplog):
        """Test that structured fields reach the log record."""
        logger = get_logger("xml_stream_indexer.test", "abc123", "tester")

        with caplog.at_level(logging.INFO, logger="xml_stream_indexer.test"):
            logger.info("Parsing", extra={"line_number": 7})

        record = caplog.records[-1]
        assert record.session_id == "abc123"
        assert record.component == "tester"
        assert record.line_number == 7

    def test_component_defaults_to_module_name(self):
        """Test the component fallback."""
        logger = SessionLogger("xml_stream_indexer.tree.builder")
        assert logger.component == "builder"

    def test_bind_keeps_component(self):
        """Test binding a logger to a new session."""
        logger = get_logger("xml_stream_indexer.test", component="tester")
        bound = logger.bind("session-2")

        assert bound.session_id == "session-2"
        assert bound.component == "tester"
        assert logger.session_id is None


class TestConfigureLogging:
    """Test root logging configuration."""

    def test_invalid_level(self):
        """Test that unknown levels are rejected."""
        with pytest.raises(ValueError, match="logging level"):
            configure_logging("LOUD")

    def test_sets_root_level(self):
        """Test that the root logger level is applied."""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("error")
            assert root.level == logging.ERROR
            assert len(root.handlers) == 1
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
