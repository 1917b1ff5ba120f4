"""Search index over a retained element list.

The index is always rebuilt in full from the element list it is given; it is
never patched after a parse.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from xml_stream_indexer.tree import Element

# Per-entry byte estimates used for the reported index size
NAME_ENTRY_SIZE = 50
TYPE_ENTRY_SIZE = 50
PATH_ENTRY_SIZE = 100


@dataclass
class SearchIndex:
    """Lookup structures derived from one retained element list."""

    elements: Dict[str, Element] = field(default_factory=dict)
    name_index: Dict[str, List[str]] = field(default_factory=dict)
    type_index: Dict[str, List[str]] = field(default_factory=dict)
    path_index: Dict[str, str] = field(default_factory=dict)
    attribute_index: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.elements)

    def get(self, element_id: str) -> Optional[Element]:
        return self.elements.get(element_id)

    def ids_with_attribute(self, key: str, value: Optional[str] = None) -> List[str]:
        """Ids of elements carrying an attribute, optionally with a given value."""
        values = self.attribute_index.get(key, {})
        if value is not None:
            return list(values.get(value, []))
        return [element_id for ids in values.values() for element_id in ids]

    def to_dict(self) -> Dict[str, Any]:
        """Deterministic dictionary form; elements are listed by id."""
        return {
            "elements": list(self.elements),
            "nameIndex": {key: list(ids) for key, ids in self.name_index.items()},
            "typeIndex": {key: list(ids) for key, ids in self.type_index.items()},
            "pathIndex": dict(self.path_index),
            "attributeIndex": {
                key: {value: list(ids) for value, ids in values.items()}
                for key, values in self.attribute_index.items()
            },
        }


def build_search_index(elements: Iterable[Element]) -> SearchIndex:
    """Build the index in one pass over ``elements``."""
    index = SearchIndex()
    for element in elements:
        index.elements[element.id] = element
        if element.name:
            index.name_index.setdefault(element.name.lower(), []).append(element.id)
        index.type_index.setdefault(element.type, []).append(element.id)
        index.path_index[element.id] = element.path
        for key, value in element.attributes.items():
            index.attribute_index.setdefault(key, {}).setdefault(value, []).append(element.id)
    return index


def calculate_index_size(index: Optional[SearchIndex]) -> int:
    """Estimate the index size in bytes."""
    if index is None:
        return 0
    size = sum(len(ids) * NAME_ENTRY_SIZE for ids in index.name_index.values())
    size += sum(len(ids) * TYPE_ENTRY_SIZE for ids in index.type_index.values())
    size += len(index.path_index) * PATH_ENTRY_SIZE
    return size
