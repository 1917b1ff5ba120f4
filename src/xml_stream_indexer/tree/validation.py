"""Schema validation seam for the tree assembler.

The assembler never interprets a schema itself. When a parse asks for schema
validation it hands the raw text to a ``SchemaValidator`` and records every
problem the validator reports as a ``schema`` error.
"""

import time
from abc import ABC, abstractmethod
from typing import List, Optional

from lxml import etree

from xml_stream_indexer.shared import (
    ErrorSeverity,
    ErrorType,
    ParseError,
    ValidationConfig,
    get_logger,
)


class SchemaValidator(ABC):
    """Pluggable validator run over the raw input text."""

    @abstractmethod
    def validate(self, text: str) -> List[ParseError]:
        """Return one ``schema`` error per problem found (empty when valid)."""


class NullSchemaValidator(SchemaValidator):
    """Validator that accepts everything."""

    def validate(self, text: str) -> List[ParseError]:
        return []


class LxmlSchemaValidator(SchemaValidator):
    """Validator backed by lxml.

    Without a schema path only well-formedness is checked. With a path to an XSD
    file the document is also validated against that schema.
    """

    def __init__(
        self,
        schema_path: Optional[str] = None,
        max_reported_errors: int = 20,
        session_id: Optional[str] = None
    ) -> None:
        """Initialize validator.

        Args:
            schema_path: Optional path of an XSD file
            max_reported_errors: Upper bound on errors returned per document
            session_id: Optional parse session id for logging
        """
        self.schema_path = schema_path
        self.max_reported_errors = max_reported_errors
        self.logger = get_logger(__name__, session_id, "schema_validator")
        self._schema: Optional[etree.XMLSchema] = None

    @classmethod
    def from_config(
        cls,
        config: ValidationConfig,
        session_id: Optional[str] = None
    ) -> "LxmlSchemaValidator":
        return cls(config.schema_path, config.max_reported_errors, session_id)

    def _parser(self) -> etree.XMLParser:
        return etree.XMLParser(
            resolve_entities=False, no_network=True, huge_tree=True
        )

    def _load_schema(self) -> etree.XMLSchema:
        if self._schema is None:
            schema_doc = etree.parse(self.schema_path, self._parser())
            self._schema = etree.XMLSchema(schema_doc)
        return self._schema

    def validate(self, text: str) -> List[ParseError]:
        """Validate text and convert the lxml error log to parse errors."""
        start_time = time.time()
        errors: List[ParseError] = []

        try:
            document = etree.fromstring(text.encode("utf-8"), self._parser())
        except etree.XMLSyntaxError as e:
            errors.extend(self._from_log(e.error_log))
            if not errors:
                errors.append(self._error(str(e), e.lineno, e.offset))
        else:
            if self.schema_path:
                try:
                    schema = self._load_schema()
                except (OSError, etree.XMLSchemaParseError, etree.XMLSyntaxError) as e:
                    self.logger.error(
                        "Schema could not be loaded",
                        extra={"schema_path": self.schema_path},
                        exc_info=True,
                    )
                    errors.append(self._error(f"Schema could not be loaded: {e}"))
                else:
                    if not schema.validate(document):
                        errors.extend(self._from_log(schema.error_log))

        errors = errors[:self.max_reported_errors]
        self.logger.info(
            "Schema validation completed",
            extra={
                "error_count": len(errors),
                "schema_path": self.schema_path,
                "processing_time_ms": (time.time() - start_time) * 1000,
            },
        )
        return errors

    def _from_log(self, error_log: "etree._ListErrorLog") -> List[ParseError]:
        return [
            self._error(entry.message or "Schema violation", entry.line, entry.column)
            for entry in error_log
        ]

    @staticmethod
    def _error(
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None
    ) -> ParseError:
        return ParseError(
            type=ErrorType.SCHEMA,
            message=message,
            severity=ErrorSeverity.ERROR,
            line=line if line and line > 0 else None,
            column=column + 1 if column is not None and column >= 0 else None,
        )
