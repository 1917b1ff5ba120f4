"""Operational tools for xml-stream-indexer.

This module provides process memory sampling used to report the memory peak of a
parse.
"""

from .memory import MemoryReport, MemorySample, MemorySampler, current_rss

__all__ = [
    "MemoryReport",
    "MemorySample",
    "MemorySampler",
    "current_rss",
]
