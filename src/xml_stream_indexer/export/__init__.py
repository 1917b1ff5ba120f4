"""Export of parsed elements for xml-stream-indexer."""

from .exporter import (
    CONTENT_TYPES,
    ExportPayload,
    Exporter,
    export_elements,
)

__all__ = [
    "CONTENT_TYPES",
    "ExportPayload",
    "Exporter",
    "export_elements",
]
