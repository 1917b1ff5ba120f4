"""Command-line interface module for xml-stream-indexer.

This module provides the ``xml-indexer`` tool for parse summaries, search and
export, with progress tracking and configuration files.
"""

from .main import main

__all__ = ["main"]
