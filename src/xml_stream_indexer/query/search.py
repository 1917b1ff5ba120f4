"""Ranked, case-insensitive search over a ``SearchIndex``."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from xml_stream_indexer.indexing import SearchIndex
from xml_stream_indexer.tree import Element

EXACT_NAME_SCORE = 100
NAME_SCORE = 50
TYPE_SCORE = 30
PATH_SCORE = 20
ATTRIBUTE_SCORE = 10


@dataclass
class SearchMatch:
    """Field of an element that matched, with the query's positions in it."""

    field: str
    value: str
    indices: List[Tuple[int, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "value": self.value,
            "indices": [list(span) for span in self.indices],
        }


@dataclass
class SearchResult:
    """Single ranked search hit."""

    element: Element
    score: int
    matches: List[SearchMatch] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "element": self.element.to_dict(include_children=False),
            "score": self.score,
            "matches": [match.to_dict() for match in self.matches],
        }


def find_spans(value: str, query: str) -> List[Tuple[int, int]]:
    """Return ``(start, end)`` of every case-insensitive occurrence of ``query``."""
    haystack = value.lower()
    needle = query.lower()
    spans: List[Tuple[int, int]] = []
    if not needle:
        return spans
    start = haystack.find(needle)
    while start != -1:
        spans.append((start, start + len(needle)))
        start = haystack.find(needle, start + len(needle))
    return spans


def calculate_search_score(element: Element, query: str) -> int:
    """Score how well an element matches a query.

    Exact name 100, otherwise name substring 50; type substring 30; path
    substring 20; 10 for each attribute value containing the query.
    """
    lower_query = query.lower()
    name = element.name.lower()
    score = 0

    if name == lower_query:
        score += EXACT_NAME_SCORE
    elif lower_query in name:
        score += NAME_SCORE

    if lower_query in element.type.lower():
        score += TYPE_SCORE
    if lower_query in element.path.lower():
        score += PATH_SCORE

    for value in element.attributes.values():
        if lower_query in value.lower():
            score += ATTRIBUTE_SCORE

    return score


def search_elements(index: Optional[SearchIndex], query: str) -> List[SearchResult]:
    """Search names first, then type labels, and rank the hits.

    Elements already found by name are not added again by the type pass. Ties
    keep the order in which the hits were found.
    """
    if index is None or not query.strip():
        return []

    lower_query = query.lower()
    results: List[SearchResult] = []
    seen: Set[str] = set()

    for name, element_ids in index.name_index.items():
        if lower_query not in name:
            continue
        for element_id in element_ids:
            element = index.elements.get(element_id)
            if element is None or element_id in seen:
                continue
            seen.add(element_id)
            results.append(SearchResult(
                element=element,
                score=calculate_search_score(element, query),
                matches=[SearchMatch("name", element.name,
                                     find_spans(element.name, query))],
            ))

    for type_label, element_ids in index.type_index.items():
        if lower_query not in type_label.lower():
            continue
        for element_id in element_ids:
            element = index.elements.get(element_id)
            if element is None or element_id in seen:
                continue
            seen.add(element_id)
            results.append(SearchResult(
                element=element,
                score=calculate_search_score(element, query),
                matches=[SearchMatch("type", element.type,
                                     find_spans(element.type, query))],
            ))

    return sorted(results, key=lambda result: -result.score)
