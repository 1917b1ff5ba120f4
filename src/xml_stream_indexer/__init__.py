"""XML Stream Indexer.

A line-oriented streaming parser for large XML and AUTOSAR XML documents that
builds a navigable element tree, indexes it for ranked search and exports
selections as JSON, CSV or XML.

Progressive API Disclosure:
- Level 1: Simple functions - parse_string(), parse_file()
- Level 2: Session engine - StreamParserEngine with callbacks and cancellation
- Level 3: Configured engine - IndexerConfig presets and dispatch policies
"""

__version__ = "0.1.0"
__author__ = "XML Stream Indexer Team"

# Progressive API disclosure - Level 1: Simple functions
# Progressive API disclosure - Level 2: Session engine
from .api import StreamParserEngine, parse_file, parse_string

# Configuration classes for advanced usage
from .shared.config import ExportOptions, IndexerConfig, ParseOptions

# Core result objects for all API levels
from .shared.result import ParseError, ParserState, ParseStatus, PerformanceMetrics
from .indexing.index import SearchIndex
from .query.filters import TreeFilter
from .query.search import SearchResult
from .tree.builder import Element

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple parsing functions (progressive disclosure entry point)
    "parse_string",
    "parse_file",

    # Level 2: Session engine
    "StreamParserEngine",

    # Result objects and data structures
    "Element",
    "ParseError",
    "ParserState",
    "ParseStatus",
    "PerformanceMetrics",
    "SearchIndex",
    "SearchResult",
    "TreeFilter",

    # Configuration classes for advanced usage
    "ExportOptions",
    "IndexerConfig",
    "ParseOptions",
]
