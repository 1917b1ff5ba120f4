"""Serialization of parsed elements to JSON, CSV and XML payloads."""

import csv
import io
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from lxml import etree

from xml_stream_indexer.shared import (
    ExportError,
    ExportFormat,
    ExportOptions,
    get_logger,
)
from xml_stream_indexer.tree import Element

CONTENT_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
    ExportFormat.XML: "application/xml",
}

CSV_HEADERS = ["ID", "Name", "Type", "Path"]
CSV_METADATA_HEADERS = ["Line Number", "Namespace", "Schema"]
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
XML_INDENT = "  "


@dataclass
class ExportPayload:
    """Encoded export output tagged with its content type."""

    data: bytes
    content_type: str
    format: ExportFormat
    element_count: int = 0

    def text(self) -> str:
        return self.data.decode("utf-8")


def _escape_attribute(value: str) -> str:
    return (value
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&#39;"))


def _escape_text(value: str) -> str:
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class Exporter:
    """Serializes elements to the format requested in ``ExportOptions``.

    A single element that cannot be serialized is logged and left out; it never
    aborts the export.
    """

    def __init__(self, session_id: Optional[str] = None) -> None:
        self.logger = get_logger(__name__, session_id, "exporter")

    def export(
        self,
        elements_by_id: Mapping[str, Element],
        ids: Sequence[str],
        options: Optional[ExportOptions] = None
    ) -> ExportPayload:
        """Export elements.

        Args:
            elements_by_id: Canonical element store in document order
            ids: Ids to export; unknown ids are dropped
            options: Export options (defaults to ``ExportOptions()``)

        Returns:
            ExportPayload with the encoded data

        Raises:
            ExportError: If ``validate_output`` is set and the payload does not parse
        """
        options = options or ExportOptions()
        if options.selected_only:
            elements = [elements_by_id[i] for i in ids if i in elements_by_id]
        else:
            elements = list(elements_by_id.values())

        if options.format == ExportFormat.JSON:
            export_format, data = ExportFormat.JSON, self._to_json(elements, options)
        elif options.format == ExportFormat.CSV:
            export_format, data = ExportFormat.CSV, self._to_csv(elements, options)
        else:
            export_format, data = ExportFormat.XML, self._to_xml(elements, options)

        if options.validate_output:
            self._validate(data, export_format)

        self.logger.info(
            "Export completed",
            extra={
                "format": export_format.value,
                "requested_format": options.format.value,
                "element_count": len(elements),
                "bytes": len(data),
            },
        )
        return ExportPayload(
            data=data.encode("utf-8"),
            content_type=CONTENT_TYPES[export_format],
            format=export_format,
            element_count=len(elements),
        )

    def _to_json(self, elements: List[Element], options: ExportOptions) -> str:
        records: List[Dict[str, Any]] = []
        for element in elements:
            try:
                record: Dict[str, Any] = {
                    "id": element.id,
                    "name": element.name,
                    "type": element.type,
                    "path": element.path,
                    "attributes": dict(element.attributes),
                }
                if options.include_metadata:
                    record["metadata"] = element.metadata.to_dict()
                if options.include_references:
                    record["references"] = [
                        ref.to_dict() for ref in element.references or []
                    ]
            except (AttributeError, TypeError, ValueError):
                self._skip(element)
                continue
            records.append(record)

        if options.pretty_print:
            return json.dumps(records, indent=2, ensure_ascii=False)
        return json.dumps(records, separators=(",", ":"), ensure_ascii=False)

    def _to_csv(self, elements: List[Element], options: ExportOptions) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        headers = list(CSV_HEADERS)
        if options.include_metadata:
            headers.extend(CSV_METADATA_HEADERS)
        writer.writerow(headers)

        for element in elements:
            try:
                row = [element.id, element.name, element.type, element.path]
                if options.include_metadata:
                    row.extend([
                        str(element.metadata.line_number),
                        element.metadata.namespace,
                        element.metadata.schema,
                    ])
            except (AttributeError, TypeError):
                self._skip(element)
                continue
            writer.writerow(row)

        # rows are joined by newlines, without a trailing one
        return buffer.getvalue().rstrip("\n")

    def _to_xml(self, elements: List[Element], options: ExportOptions) -> str:
        newline = "\n" if options.pretty_print else ""
        parts = [XML_DECLARATION, newline, f"<{options.root_tag}>", newline]
        for element in elements:
            try:
                parts.append(self._element_xml(element, 1, options.pretty_print))
            except (AttributeError, TypeError):
                self._skip(element)
        parts.append(f"</{options.root_tag}>")
        return "".join(parts)

    def _element_xml(self, element: Element, level: int, pretty: bool) -> str:
        indent = XML_INDENT * level if pretty else ""
        inner = XML_INDENT if pretty else ""
        newline = "\n" if pretty else ""
        attributes = " ".join(
            f'{key}="{_escape_attribute(value)}"'
            for key, value in element.attributes.items()
        )
        opening = f"{indent}<{element.type}{' ' + attributes if attributes else ''}"

        if not element.name and not element.children:
            return f"{opening} />{newline}"

        parts = [opening, ">", newline]
        if element.name:
            parts.append(
                f"{indent}{inner}<SHORT-NAME>{_escape_text(element.name)}</SHORT-NAME>{newline}"
            )
        for child in element.children:
            parts.append(self._element_xml(child, level + 1, pretty))
        parts.append(f"{indent}</{element.type}>{newline}")
        return "".join(parts)

    def _validate(self, data: str, export_format: ExportFormat) -> None:
        try:
            if export_format == ExportFormat.JSON:
                json.loads(data)
            elif export_format == ExportFormat.CSV:
                rows = list(csv.reader(io.StringIO(data)))
                widths = {len(row) for row in rows}
                if len(widths) > 1:
                    raise ValueError(f"Inconsistent column counts: {sorted(widths)}")
            else:
                etree.fromstring(
                    data.encode("utf-8"),
                    etree.XMLParser(resolve_entities=False, no_network=True),
                )
        except (ValueError, csv.Error, etree.XMLSyntaxError) as e:
            self.logger.error(
                "Export output validation failed",
                extra={"format": export_format.value},
                exc_info=True,
            )
            raise ExportError(
                f"Exported {export_format.value} payload is not valid: {e}"
            ) from e

    def _skip(self, element: Any) -> None:
        self.logger.warning(
            "Element could not be exported and was skipped",
            extra={"element_id": getattr(element, "id", None)},
        )


def export_elements(
    elements_by_id: Mapping[str, Element],
    ids: Sequence[str],
    options: Optional[ExportOptions] = None
) -> ExportPayload:
    """Export elements with a default ``Exporter``."""
    return Exporter().export(elements_by_id, ids, options)
