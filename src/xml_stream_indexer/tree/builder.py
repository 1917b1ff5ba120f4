"""Element model and stack-based tree assembler.

The assembler drives the line scanner and the classifier in one loop over the
input lines, links elements to their enclosing element, and stops early when a
resource ceiling is reached, returning the elements gathered so far.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from xml_stream_indexer.classification import Classifier
from xml_stream_indexer.scanning import (
    EventKind,
    LineScanner,
    ScanEvent,
    ScannedLine,
    extract_attributes,
    extract_namespace,
)
from xml_stream_indexer.shared import (
    ErrorSeverity,
    ErrorType,
    IndexerConfig,
    ParseCancelledError,
    ParseError,
    ParseOptions,
    ParseWarning,
    WarningType,
    get_logger,
)
from xml_stream_indexer.tree.references import (
    ElementReference,
    ReferenceType,
    extract_references,
)
from xml_stream_indexer.tree.validation import LxmlSchemaValidator, SchemaValidator

HOLDER_PREFIX = "struct"
PATH_SEPARATOR = "/"
# replaces the separator inside names so a path has one segment per level
SEGMENT_SEPARATOR_SUBSTITUTE = "_"


def path_segment(value: str) -> str:
    return value.replace(PATH_SEPARATOR, SEGMENT_SEPARATOR_SUBSTITUTE)


@dataclass
class ElementMetadata:
    """Source position and classification details of an element."""

    line_number: int
    byte_offset: int = 0
    size: int = 0
    namespace: str = ""
    schema: str = "xml"
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    depth: int = 0

    def __post_init__(self) -> None:
        """Validate metadata values."""
        if self.line_number < 1:
            raise ValueError("Line number must be >= 1")
        if self.depth < 0:
            raise ValueError("Depth must be >= 0")

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "lineNumber": self.line_number,
            "byteOffset": self.byte_offset,
            "size": self.size,
            "namespace": self.namespace,
            "schema": self.schema,
            "depth": self.depth,
        }
        if self.description is not None:
            result["description"] = self.description
        if self.tags:
            result["tags"] = list(self.tags)
        return result


@dataclass(eq=False)
class Element:
    """Node of the reconstructed document tree.

    Children are owned by their parent. ``parent`` holds only the id of the
    enclosing element, which may belong to an element that was not retained.
    """

    id: str
    name: str
    type: str
    tag_name: str
    path: str
    metadata: ElementMetadata
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Element"] = field(default_factory=list)
    parent: Optional[str] = None
    loaded: bool = True
    has_children: bool = False
    references: Optional[List[ElementReference]] = None
    text: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate element values."""
        if not self.id:
            raise ValueError("Element id cannot be empty")
        if not self.tag_name:
            raise ValueError("Element tag name cannot be empty")

    @property
    def depth(self) -> int:
        return self.metadata.depth

    @property
    def is_definition(self) -> bool:
        """Check whether the element was named by a short name."""
        return any(
            ref.type == ReferenceType.DEFINITION for ref in self.references or []
        )

    def add_child(self, child: "Element") -> None:
        """Append a child in document order and link it back by id."""
        child.parent = self.id
        self.children.append(child)
        self.has_children = True

    def iter_descendants(self) -> Iterator["Element"]:
        """Iterate over all descendants depth-first in document order."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def to_dict(self, include_children: bool = True) -> Dict[str, Any]:
        """Convert element to dictionary representation.

        Args:
            include_children: Nest child dictionaries; otherwise list child ids
        """
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "tagName": self.tag_name,
            "path": self.path,
            "attributes": dict(self.attributes),
            "parent": self.parent,
            "loaded": self.loaded,
            "hasChildren": self.has_children,
            "metadata": self.metadata.to_dict(),
        }
        if include_children:
            result["children"] = [child.to_dict() for child in self.children]
        else:
            result["children"] = [child.id for child in self.children]
        if self.references is not None:
            result["references"] = [ref.to_dict() for ref in self.references]
        if self.text is not None:
            result["text"] = self.text
        return result


@dataclass
class AssemblyProgress:
    """Progress report emitted at each progress boundary."""

    progress: float
    current_section: str
    elements_processed: int
    memory_usage: int


@dataclass
class AssemblyResult:
    """Outcome of assembling one document."""

    elements: List[Element] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)
    total_lines: int = 0
    lines_scanned: int = 0
    retained_before_filter: int = 0
    memory_usage: int = 0
    stopped_early: bool = False
    processing_time_ms: float = 0.0

    @property
    def element_count(self) -> int:
        return len(self.elements)

    def summary(self) -> Dict[str, Any]:
        return {
            "element_count": self.element_count,
            "retained_before_filter": self.retained_before_filter,
            "total_lines": self.total_lines,
            "lines_scanned": self.lines_scanned,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "stopped_early": self.stopped_early,
            "processing_time_ms": self.processing_time_ms,
        }


ProgressCallback = Callable[[AssemblyProgress], None]
CancelCheck = Callable[[], bool]


class _Run:
    """Mutable state of one assembly run."""

    def __init__(self, options: ParseOptions) -> None:
        self.options = options
        self.stack: List[Element] = []
        self.retained: List[Element] = []
        self.pending_name: Optional[str] = None
        self.stop = False
        self.result = AssemblyResult()


class TreeAssembler:
    """Builds the element tree from scanned lines.

    Each call to ``assemble`` works on fresh state, so one assembler may be used
    for several documents in sequence but not concurrently.
    """

    def __init__(
        self,
        config: Optional[IndexerConfig] = None,
        classifier: Optional[Classifier] = None,
        validator: Optional[SchemaValidator] = None,
        session_id: Optional[str] = None
    ) -> None:
        """Initialize tree assembler.

        Args:
            config: Engine configuration (defaults to ``IndexerConfig()``)
            classifier: Classifier to use instead of the configured preset
            validator: Schema validator to use when a parse requests validation
            session_id: Optional parse session id for logging
        """
        self.config = config or IndexerConfig()
        self.session_id = session_id
        self.logger = get_logger(__name__, session_id, "tree_assembler")
        self.classifier = classifier or Classifier.from_config(self.config.classifier)
        self.validator = validator or LxmlSchemaValidator.from_config(
            self.config.validation, session_id
        )
        self.scanner = LineScanner(self.config.scanner.short_name_tag)

    def assemble(
        self,
        text: str,
        options: Optional[ParseOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None
    ) -> AssemblyResult:
        """Assemble the element tree of a document.

        Args:
            text: Full document text
            options: Parse options (defaults to ``ParseOptions()``)
            on_progress: Called at every progress boundary
            should_cancel: Polled at every progress boundary

        Returns:
            AssemblyResult with the retained, filtered elements and diagnostics

        Raises:
            ParseCancelledError: If ``should_cancel`` returned True
        """
        start_time = time.time()
        run = _Run(options or ParseOptions())
        result = run.result
        lines = self.scanner.split(text)
        result.total_lines = len(lines)
        interval = self.config.scanner.progress_interval

        self.logger.info(
            "Starting tree assembly",
            extra={
                "line_count": result.total_lines,
                "preset": self.classifier.rules.name,
                "options": run.options.to_dict(),
            },
        )

        if run.options.validate_schema:
            self._report(on_progress, 0.0, "Validating schema", run)
            result.errors.extend(self.validator.validate(text))

        for scanned in self.scanner.scan_lines(lines):
            if scanned.number % interval == 0:
                if should_cancel is not None and should_cancel():
                    self.logger.info(
                        "Tree assembly cancelled",
                        extra={"line_number": scanned.number},
                    )
                    raise ParseCancelledError(
                        f"Parse cancelled at line {scanned.number}"
                    )
                self._report(
                    on_progress,
                    scanned.number * 100.0 / result.total_lines,
                    f"Parsing line {scanned.number} of {result.total_lines}",
                    run,
                )

            self._process_line(scanned, run)
            result.lines_scanned = scanned.number
            if run.stop:
                break

            memory_usage = self._memory_usage(run)
            if memory_usage > run.options.memory_limit:
                self.logger.warning(
                    "Memory limit reached, stopping parse",
                    extra={
                        "line_number": scanned.number,
                        "memory_usage": memory_usage,
                        "memory_limit": run.options.memory_limit,
                    },
                )
                result.warnings.append(ParseWarning(
                    type=WarningType.MEMORY,
                    message="Memory limit reached, stopping parse",
                    line=scanned.number,
                ))
                result.stopped_early = True
                break

        result.retained_before_filter = len(run.retained)
        result.memory_usage = self._memory_usage(run)
        result.elements = self._apply_filters(run.retained, run.options)
        result.processing_time_ms = (time.time() - start_time) * 1000

        self.logger.info("Tree assembly completed", extra=result.summary())
        return result

    def _process_line(self, scanned: ScannedLine, run: _Run) -> None:
        ordinal = 0
        for event in scanned.events:
            if event.kind == EventKind.SHORT_NAME:
                run.pending_name = event.text
            elif event.opens_element:
                self._open_element(event, scanned, ordinal, run)
                ordinal += 1
                if run.stop:
                    return
            elif event.kind == EventKind.CLOSE:
                self._close_element(event, run)

    def _open_element(
        self,
        event: ScanEvent,
        scanned: ScannedLine,
        ordinal: int,
        run: _Run
    ) -> None:
        options = run.options
        if options.max_elements is not None and len(run.retained) >= options.max_elements:
            self.logger.warning(
                "Element limit reached, stopping parse",
                extra={"line_number": scanned.number,
                       "max_elements": options.max_elements},
            )
            run.result.warnings.append(ParseWarning(
                type=WarningType.PERFORMANCE,
                message=f"Element limit of {options.max_elements} reached, stopping parse",
                line=scanned.number,
            ))
            run.result.stopped_early = True
            run.stop = True
            return

        attributes = extract_attributes(event.attribute_string)
        classification = self.classifier.classify(event.tag_name, attributes)
        depth = len(run.stack)
        parent = run.stack[-1] if run.stack else None
        too_deep = options.max_depth is not None and depth > options.max_depth
        retained = classification.retained and not too_deep

        short_name = run.pending_name if retained else None
        path = PATH_SEPARATOR.join(
            [path_segment(entry.name or entry.type) for entry in run.stack]
            + [event.tag_name]
        )
        namespace = extract_namespace(event.tag_name, attributes)
        if namespace is None:
            namespace = (
                parent.metadata.namespace if parent
                else self.config.classifier.default_namespace
            )

        prefix = classification.type if retained else HOLDER_PREFIX
        element = Element(
            id=self._element_id(prefix, scanned.number, ordinal),
            name=short_name or event.tag_name,
            type=classification.type,
            tag_name=event.tag_name,
            path=path,
            attributes=attributes,
            text=event.text,
            metadata=ElementMetadata(
                line_number=scanned.number,
                byte_offset=event.byte_offset,
                size=len(scanned.raw.strip()),
                namespace=namespace,
                schema=self.config.classifier.schema_label,
                description=classification.description,
                tags=classification.tags,
                depth=depth,
            ),
        )

        if retained:
            if parent is not None:
                parent.add_child(element)
            run.retained.append(element)
            run.pending_name = None
            if options.enable_references:
                element.references = extract_references(
                    event.tag_name, attributes, path, event.text, short_name
                )
                self._check_references(element, scanned, run)
        elif parent is not None:
            element.parent = parent.id

        if self.logger.is_enabled_for(logging.DEBUG):
            self.logger.debug(
                "Opened element",
                extra={"tag": event.tag_name, "line_number": scanned.number,
                       "depth": depth, "retained": retained},
            )

        if event.kind == EventKind.OPEN:
            run.stack.append(element)

    def _close_element(self, event: ScanEvent, run: _Run) -> None:
        if not run.stack:
            self.logger.debug(
                "Closing tag without open element ignored",
                extra={"tag": event.tag_name, "line_number": event.line_number},
            )
            return
        top = run.stack[-1]
        if event.tag_name in (top.name, top.tag_name, top.type):
            run.stack.pop()
        else:
            self.logger.debug(
                "Mismatched closing tag ignored",
                extra={"tag": event.tag_name, "open_tag": top.tag_name,
                       "line_number": event.line_number},
            )

    def _check_references(self, element: Element, scanned: ScannedLine, run: _Run) -> None:
        for reference in element.references or []:
            if reference.type == ReferenceType.REFERENCE and not reference.target:
                run.result.errors.append(ParseError(
                    type=ErrorType.REFERENCE,
                    message=f"Reference element {element.tag_name} has no target",
                    severity=ErrorSeverity.WARNING,
                    line=scanned.number,
                    path=element.path,
                ))

    def _memory_usage(self, run: _Run) -> int:
        return len(run.retained) * self.config.scanner.element_size_estimate

    def _report(
        self,
        on_progress: Optional[ProgressCallback],
        progress: float,
        section: str,
        run: _Run
    ) -> None:
        if on_progress is None:
            return
        on_progress(AssemblyProgress(
            progress=min(100.0, progress),
            current_section=section,
            elements_processed=len(run.retained),
            memory_usage=self._memory_usage(run),
        ))

    @staticmethod
    def _element_id(prefix: str, line_number: int, ordinal: int) -> str:
        millis = int(time.time() * 1000)
        return f"{prefix}_{line_number}_{ordinal}_{millis}_{uuid.uuid4().hex[:9]}"

    def _apply_filters(self, elements: List[Element], options: ParseOptions) -> List[Element]:
        filtered = elements
        if options.element_types:
            allowed = set(options.element_types)
            filtered = [element for element in filtered if element.type in allowed]
            self.logger.debug(
                "Applied element type filter",
                extra={"element_types": options.element_types,
                       "remaining": len(filtered)},
            )
        if options.packages:
            packages = {path_segment(package) for package in options.packages}
            filtered = [
                element for element in filtered
                if packages.intersection(element.path.split(PATH_SEPARATOR))
            ]
            self.logger.debug(
                "Applied package filter",
                extra={"packages": options.packages, "remaining": len(filtered)},
            )
        return filtered
