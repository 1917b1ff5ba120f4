"""Cross-reference descriptors attached to elements.

Only extraction happens here. Targets are recorded as written in the document
and every descriptor stays unresolved.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

REFERENCE_SUFFIXES = ("-REF", "-TREF", "-IREF")
DEST_ATTRIBUTE = "DEST"


class ReferenceType(Enum):
    """Role of an element in a cross-reference."""

    REFERENCE = "reference"    # points at another element
    DEFINITION = "definition"  # can be pointed at


@dataclass
class ElementReference:
    """Cross-reference descriptor."""

    type: ReferenceType
    target: str
    path: str
    resolved: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "target": self.target,
            "path": self.path,
            "resolved": self.resolved,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementReference":
        return cls(
            type=ReferenceType(data["type"]),
            target=data["target"],
            path=data["path"],
            resolved=data.get("resolved", False),
        )


def is_reference_tag(tag_name: str, attributes: Mapping[str, str]) -> bool:
    """Check whether a tag points at another element."""
    return tag_name.upper().endswith(REFERENCE_SUFFIXES) or DEST_ATTRIBUTE in attributes


def extract_references(
    tag_name: str,
    attributes: Mapping[str, str],
    path: str,
    text: Optional[str] = None,
    short_name: Optional[str] = None
) -> List[ElementReference]:
    """Build the reference descriptors of one element.

    Args:
        tag_name: Raw tag name
        attributes: Parsed attributes of the tag
        path: Element path at creation time
        text: Inline text following the opening tag
        short_name: Short name that named the element, if any

    Returns:
        Descriptors in the order reference, definition
    """
    references: List[ElementReference] = []
    if is_reference_tag(tag_name, attributes):
        target = (text or "").strip() or attributes.get(DEST_ATTRIBUTE, "")
        references.append(ElementReference(ReferenceType.REFERENCE, target, path))
    if short_name:
        references.append(ElementReference(ReferenceType.DEFINITION, path, path))
    return references
