"""Parse session engine with progressive disclosure.

``StreamParserEngine`` owns one parse session: the element store, its search
index, the status snapshot and the metrics of the last parse. The module-level
``parse_string`` and ``parse_file`` helpers return an engine that has already
parsed its input.
"""

import os
import threading
import uuid
from dataclasses import replace
from pathlib import Path
from typing import (
    Any,
    BinaryIO,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    TextIO,
    Union,
)

from xml_stream_indexer.dispatch import (
    DispatchPolicy,
    EventSink,
    Executor,
    ParseOutcome,
    ParseTask,
    create_executor,
    policy_from_config,
)
from xml_stream_indexer.export import Exporter, ExportPayload
from xml_stream_indexer.indexing import SearchIndex
from xml_stream_indexer.query import (
    SearchResult,
    TreeFilter,
    filter_elements,
    search_elements,
)
from xml_stream_indexer.shared import (
    EngineBusyError,
    ErrorType,
    ExportOptions,
    IndexerConfig,
    InputReadError,
    ParseError,
    ParseOptions,
    ParserState,
    ParseStatus,
    PerformanceMetrics,
    get_logger,
)
from xml_stream_indexer.tree import AssemblyProgress, Element, SchemaValidator

InputType = Union[str, bytes, bytearray, Path, BinaryIO, TextIO]
ProgressCallback = Callable[[ParserState], None]
CompleteCallback = Callable[[List[Element]], None]
ErrorCallback = Callable[[ParseError], None]


class ParseSession:
    """Element store, index, state and metrics of one engine.

    ``reset`` discards everything; ``replace`` installs the outcome of a finished
    parse in one step.
    """

    def __init__(self) -> None:
        self.session_id: Optional[str] = None
        self.elements: Dict[str, Element] = {}
        self.index: Optional[SearchIndex] = None
        self.state = ParserState()
        self.metrics = PerformanceMetrics()
        self.busy = False
        self.cancelled = False

    def reset(self) -> None:
        self.session_id = None
        self.elements = {}
        self.index = None
        self.state = ParserState()
        self.metrics = PerformanceMetrics()

    def begin(self, session_id: str) -> None:
        """Start a new parse, discarding the previous session's data."""
        self.reset()
        self.session_id = session_id
        self.state.status = ParseStatus.PARSING
        self.state.current_section = "Reading input"
        self.busy = True
        self.cancelled = False

    def replace(self, outcome: ParseOutcome) -> None:
        self.elements = {element.id: element for element in outcome.elements}
        self.index = outcome.index
        self.metrics = outcome.metrics
        self.state.errors.extend(outcome.errors)
        self.state.warnings.extend(outcome.warnings)
        self.state.elements_processed = len(outcome.elements)
        self.state.memory_usage = outcome.memory_usage


def read_input(source: Any) -> str:
    """Obtain the document text from any supported input.

    Raises:
        InputReadError: If the input cannot be read or decoded
    """
    if isinstance(source, str):
        return source
    try:
        if isinstance(source, (bytes, bytearray)):
            data: Union[str, bytes] = bytes(source)
        elif isinstance(source, os.PathLike):
            data = Path(source).read_bytes()
        elif hasattr(source, "read"):
            data = source.read()
        else:
            raise InputReadError(f"Unsupported input type: {type(source).__name__}")
    except OSError as e:
        raise InputReadError(f"Input could not be read: {e}") from e

    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InputReadError(f"Input is not valid UTF-8: {e}") from e


class StreamParserEngine:
    """Streaming markup parser and indexer session.

    Examples:
        Parsing text and searching it:
        >>> engine = StreamParserEngine()
        >>> state = engine.parse_file('<A>\\n<B/>\\n</A>')
        >>> state.status.value
        'complete'
        >>> [r.element.name for r in engine.search_elements('b')]
        ['B']

        AUTOSAR XML with a worker process for large inputs:
        >>> engine = StreamParserEngine(IndexerConfig.arxml())
        >>> engine.parse_file(Path('system.arxml'), ParseOptions(memory_limit=MIB))
    """

    def __init__(
        self,
        config: Optional[IndexerConfig] = None,
        policy: Optional[DispatchPolicy] = None,
        validator: Optional[SchemaValidator] = None
    ) -> None:
        """Initialize engine.

        Args:
            config: Engine configuration (defaults to ``IndexerConfig()``)
            policy: Dispatch policy (defaults to the configured size threshold)
            validator: Schema validator used when a parse requests validation
        """
        self.config = config or IndexerConfig()
        self.policy = policy or policy_from_config(self.config.dispatch)
        self.validator = validator
        self.logger = get_logger(__name__, component="stream_parser_engine")
        self._session = ParseSession()
        self._lock = threading.Lock()
        self._executor: Optional[Executor] = None
        self._sink: Optional[EventSink] = None

    @property
    def is_busy(self) -> bool:
        return self._session.busy

    def parse_file(
        self,
        input_data: InputType,
        options: Optional[Union[ParseOptions, Mapping[str, Any]]] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None
    ) -> ParserState:
        """Parse a document and replace the session's elements and index.

        Args:
            input_data: Document text, bytes, a Path or a file-like object
            options: ParseOptions or a dictionary of option values
            on_progress: Called with a state snapshot, progress never decreasing
            on_complete: Called once with the retained elements on success
            on_error: Called once with the fatal error on failure

        Returns:
            Snapshot of the final session state

        Raises:
            EngineBusyError: If a parse is already running on this engine
        """
        if not isinstance(options, ParseOptions):
            options = ParseOptions.from_dict(dict(options or {}))

        with self._lock:
            if self._session.busy:
                raise EngineBusyError("A parse is already in progress on this engine")
            session_id = uuid.uuid4().hex[:12]
            self._session.begin(session_id)

        session = self._session
        logger = self.logger.bind(session_id)
        logger.info(
            "Starting parse",
            extra={"input_type": type(input_data).__name__,
                   "options": options.to_dict()},
        )
        if on_progress is not None:
            on_progress(session.state.snapshot())

        try:
            text = read_input(input_data)
        except InputReadError as e:
            logger.error("Input could not be obtained", exc_info=True)
            error = ParseError(type=ErrorType.SYNTAX, message=str(e))
            self._fail(session, error, on_error)
            return session.state.snapshot()

        task = ParseTask(text, options, self.config, session_id, self.validator)
        mode = self.policy.select(task.size)
        executor = create_executor(mode, self.config.dispatch, session_id)
        sink = EventSink(
            on_progress=lambda update: self._progress(session, sink, update, on_progress),
            on_complete=lambda outcome: self._complete(
                session, outcome, on_progress, on_complete
            ),
            on_error=lambda error: self._fail(session, error, on_error),
        )
        # cancel_parsing either sees the executor or leaves the flag set here
        with self._lock:
            if session.cancelled:
                session.busy = False
                session.state.status = ParseStatus.IDLE
                session.state.progress = 0.0
                session.state.current_section = ""
                logger.info("Parse cancelled before dispatch")
                return session.state.snapshot()
            self._executor, self._sink = executor, sink
        logger.info(
            "Dispatching parse",
            extra={"mode": mode.value, "input_bytes": task.size},
        )

        try:
            executor.execute(task, sink)
        finally:
            if self._executor is executor:
                self._executor, self._sink = None, None
            if session is self._session:
                session.busy = False

        state = session.state.snapshot()
        logger.info(
            "Parse finished",
            extra={
                "status": state.status.value,
                "element_count": len(session.elements),
                "error_count": state.error_count,
                "warning_count": state.warning_count,
            },
        )
        return state

    def _progress(
        self,
        session: ParseSession,
        sink: EventSink,
        update: AssemblyProgress,
        on_progress: Optional[ProgressCallback]
    ) -> None:
        if sink.cancelled:
            return
        state = session.state
        state.progress = update.progress
        state.current_section = update.current_section
        state.elements_processed = update.elements_processed
        state.memory_usage = update.memory_usage
        if on_progress is not None:
            on_progress(state.snapshot())

    def _complete(
        self,
        session: ParseSession,
        outcome: ParseOutcome,
        on_progress: Optional[ProgressCallback],
        on_complete: Optional[CompleteCallback]
    ) -> None:
        session.state.status = ParseStatus.LOADING
        session.state.current_section = "Loading elements"
        session.replace(outcome)
        session.state.progress = 100.0
        session.state.current_section = "Complete"
        session.state.status = ParseStatus.COMPLETE
        session.busy = False
        if on_progress is not None:
            on_progress(session.state.snapshot())
        if on_complete is not None:
            on_complete(list(outcome.elements))

    def _fail(
        self,
        session: ParseSession,
        error: ParseError,
        on_error: Optional[ErrorCallback]
    ) -> None:
        session.state.status = ParseStatus.ERROR
        session.state.current_section = "Failed"
        session.state.errors.append(error)
        session.busy = False
        if on_error is not None:
            on_error(error)

    def _ensure_idle(self) -> None:
        if self._session.busy:
            raise EngineBusyError("Session data cannot be used while a parse is running")

    def search_elements(self, query: str) -> List[SearchResult]:
        """Ranked search over names and type labels; blank queries return []."""
        self._ensure_idle()
        return search_elements(self._session.index, query)

    def filter_elements(
        self,
        elements: Sequence[Element],
        filters: Sequence[Union[TreeFilter, Mapping[str, Any]]]
    ) -> List[Element]:
        """Keep the elements that satisfy every enabled filter."""
        self._ensure_idle()
        tree_filters = [
            f if isinstance(f, TreeFilter) else TreeFilter.from_dict(dict(f))
            for f in filters
        ]
        return filter_elements(elements, tree_filters)

    def export_elements(
        self,
        element_ids: Sequence[str],
        options: Optional[Union[ExportOptions, Mapping[str, Any]]] = None
    ) -> ExportPayload:
        """Export elements of this session; unknown ids are dropped."""
        self._ensure_idle()
        if options is not None and not isinstance(options, ExportOptions):
            options = ExportOptions.from_dict(dict(options))
        exporter = Exporter(self._session.session_id)
        return exporter.export(self._session.elements, element_ids, options)

    def get_state(self) -> ParserState:
        return self._session.state.snapshot()

    def get_metrics(self) -> PerformanceMetrics:
        return replace(self._session.metrics)

    def get_elements(self) -> List[Element]:
        self._ensure_idle()
        return list(self._session.elements.values())

    def get_element(self, element_id: str) -> Optional[Element]:
        self._ensure_idle()
        return self._session.elements.get(element_id)

    def get_search_index(self) -> Optional[SearchIndex]:
        self._ensure_idle()
        return self._session.index

    def cancel_parsing(self) -> None:
        """Abort a running parse; no complete or error callback follows."""
        with self._lock:
            if not self._session.busy:
                return
            self._session.cancelled = True
            executor, sink = self._executor, self._sink
        if sink is not None:
            sink.cancel()
        if executor is not None:
            executor.cancel()
            self.logger.bind(self._session.session_id).info("Parse cancelled")

        state = self._session.state
        state.status = ParseStatus.IDLE
        state.progress = 0.0
        state.current_section = ""

    def clear_data(self) -> None:
        """Discard elements, index, state and metrics."""
        self._ensure_idle()
        self._session.reset()


def parse_string(
    text: str,
    options: Optional[Union[ParseOptions, Mapping[str, Any]]] = None,
    config: Optional[IndexerConfig] = None
) -> StreamParserEngine:
    """Parse document text and return the engine holding the result.

    Examples:
        >>> engine = parse_string('<A>\\n<B/>\\n</A>')
        >>> len(engine.get_elements())
        2
    """
    engine = StreamParserEngine(config)
    engine.parse_file(text, options)
    return engine


def parse_file(
    file_path: Union[str, Path],
    options: Optional[Union[ParseOptions, Mapping[str, Any]]] = None,
    config: Optional[IndexerConfig] = None
) -> StreamParserEngine:
    """Parse a file on disk and return the engine holding the result.

    Unlike ``StreamParserEngine.parse_file``, a ``str`` argument is a path here.
    Read failures are recorded in the engine state, they are not raised.
    """
    engine = StreamParserEngine(config)
    engine.parse_file(Path(file_path), options)
    return engine
