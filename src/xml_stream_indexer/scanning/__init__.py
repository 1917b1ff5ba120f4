"""Line scanning for xml-stream-indexer.

Key Components:
    LineScanner: Splits a buffer into lines and finds the tags on each one
    ScannedLine: All events found on a single source line
    ScanEvent: One opening, closing, self-closing, short-name or skip event
"""

from .scanner import (
    ATTRIBUTE_PATTERN,
    TAG_PATTERN,
    EventKind,
    LineScanner,
    ScanEvent,
    ScannedLine,
    extract_attributes,
    extract_namespace,
)

__all__ = [
    "ATTRIBUTE_PATTERN",
    "TAG_PATTERN",
    "EventKind",
    "LineScanner",
    "ScanEvent",
    "ScannedLine",
    "extract_attributes",
    "extract_namespace",
]
