"""Tree assembly for xml-stream-indexer.

This module reconstructs the parent/child structure of a document from scanned
lines and keeps the elements the classifier marks for retention.

Key Components:
    TreeAssembler: Stack-based assembler driving scanner and classifier
    Element: Node of the reconstructed tree with metadata and references
    AssemblyResult: Retained elements plus the errors and warnings of a run
    SchemaValidator: Seam for optional schema validation of the raw input
"""

from .builder import (
    AssemblyProgress,
    AssemblyResult,
    Element,
    ElementMetadata,
    TreeAssembler,
)
from .references import (
    ElementReference,
    ReferenceType,
    extract_references,
    is_reference_tag,
)
from .validation import (
    LxmlSchemaValidator,
    NullSchemaValidator,
    SchemaValidator,
)

__all__ = [
    "AssemblyProgress",
    "AssemblyResult",
    "Element",
    "ElementMetadata",
    "ElementReference",
    "LxmlSchemaValidator",
    "NullSchemaValidator",
    "ReferenceType",
    "SchemaValidator",
    "TreeAssembler",
    "extract_references",
    "is_reference_tag",
]
