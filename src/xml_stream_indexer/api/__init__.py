"""Public API of xml-stream-indexer."""

from .engine import (
    InputType,
    ParseSession,
    StreamParserEngine,
    parse_file,
    parse_string,
    read_input,
)

__all__ = [
    "InputType",
    "ParseSession",
    "StreamParserEngine",
    "parse_file",
    "parse_string",
    "read_input",
]
