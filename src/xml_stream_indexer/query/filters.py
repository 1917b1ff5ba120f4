"""Attribute-style filtering of element lists."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Sequence

from xml_stream_indexer.tree import Element


class FilterType(Enum):
    """Criteria a ``TreeFilter`` can test."""

    ELEMENT_TYPE = "elementType"
    NAMESPACE = "namespace"
    ATTRIBUTE = "attribute"
    REFERENCE = "reference"


@dataclass
class TreeFilter:
    """Single filter criterion; disabled filters accept everything."""

    type: FilterType
    value: str
    enabled: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    def __post_init__(self) -> None:
        """Accept plain strings for the filter type."""
        if not isinstance(self.type, FilterType):
            self.type = FilterType(self.type)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TreeFilter":
        values = {
            "type": data["type"],
            "value": data.get("value", ""),
            "enabled": data.get("enabled", True),
        }
        if "id" in data:
            values["id"] = data["id"]
        return cls(**values)

    def matches(self, element: Element) -> bool:
        if not self.enabled:
            return True
        return _PREDICATES[self.type](element, self.value)


def _element_type(element: Element, value: str) -> bool:
    return element.type == value


def _namespace(element: Element, value: str) -> bool:
    return element.metadata.namespace == value


def _attribute(element: Element, value: str) -> bool:
    needle = value.lower()
    return any(needle in attr.lower() for attr in element.attributes.values())


def _reference(element: Element, value: str) -> bool:
    needle = value.lower()
    return any(needle in ref.target.lower() for ref in element.references or [])


_PREDICATES: Dict[FilterType, Callable[[Element, str], bool]] = {
    FilterType.ELEMENT_TYPE: _element_type,
    FilterType.NAMESPACE: _namespace,
    FilterType.ATTRIBUTE: _attribute,
    FilterType.REFERENCE: _reference,
}


def filter_elements(
    elements: Sequence[Element],
    filters: Sequence[TreeFilter]
) -> List[Element]:
    """Keep the elements that satisfy every enabled filter."""
    if not filters:
        return list(elements)
    return [
        element for element in elements
        if all(tree_filter.matches(element) for tree_filter in filters)
    ]
