"""Search index construction for xml-stream-indexer."""

from .index import SearchIndex, build_search_index, calculate_index_size

__all__ = [
    "SearchIndex",
    "build_search_index",
    "calculate_index_size",
]
