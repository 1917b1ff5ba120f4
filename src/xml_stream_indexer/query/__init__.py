"""Search and filtering over parsed elements.

Key Components:
    search_elements: Ranked name/type search over a SearchIndex
    calculate_search_score: Relevance score of one element for a query
    filter_elements: AND-combination of TreeFilter criteria
"""

from .filters import FilterType, TreeFilter, filter_elements
from .search import (
    SearchMatch,
    SearchResult,
    calculate_search_score,
    find_spans,
    search_elements,
)

__all__ = [
    "FilterType",
    "SearchMatch",
    "SearchResult",
    "TreeFilter",
    "calculate_search_score",
    "filter_elements",
    "find_spans",
    "search_elements",
]
