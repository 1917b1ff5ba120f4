"""The unit of work handed to an executor and the result it produces."""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from xml_stream_indexer.indexing import SearchIndex, build_search_index, calculate_index_size
from xml_stream_indexer.shared import (
    IndexerConfig,
    ParseError,
    ParseOptions,
    ParseWarning,
    PerformanceMetrics,
)
from xml_stream_indexer.tools.memory import MemorySampler
from xml_stream_indexer.tree import (
    AssemblyProgress,
    Element,
    SchemaValidator,
    TreeAssembler,
)


@dataclass
class ParseTask:
    """Everything needed to parse one document in any execution context."""

    text: str
    options: ParseOptions = field(default_factory=ParseOptions)
    config: IndexerConfig = field(default_factory=IndexerConfig)
    session_id: Optional[str] = None
    validator: Optional[SchemaValidator] = None

    @property
    def size(self) -> int:
        """Input size in bytes."""
        return len(self.text.encode("utf-8"))


@dataclass
class ParseOutcome:
    """Result of a finished parse."""

    elements: List[Element] = field(default_factory=list)
    index: SearchIndex = field(default_factory=SearchIndex)
    metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    errors: List[ParseError] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)
    memory_usage: int = 0
    stopped_early: bool = False


def run_parse_task(
    task: ParseTask,
    on_progress: Optional[Callable[[AssemblyProgress], None]] = None,
    should_cancel: Optional[Callable[[], bool]] = None
) -> ParseOutcome:
    """Assemble, index and measure one document.

    Raises:
        ParseCancelledError: If ``should_cancel`` returned True
    """
    start_time = time.time()
    sampler = MemorySampler(session_id=task.session_id).start()
    try:
        assembler = TreeAssembler(
            task.config, validator=task.validator, session_id=task.session_id
        )
        result = assembler.assemble(task.text, task.options, on_progress, should_cancel)
        index = build_search_index(result.elements)
    finally:
        report = sampler.stop()

    metrics = PerformanceMetrics(
        parse_time=(time.time() - start_time) * 1000,
        render_time=0.0,
        memory_peak=report.peak_rss,
        node_count=len(result.elements),
        search_index_size=calculate_index_size(index),
    )
    return ParseOutcome(
        elements=result.elements,
        index=index,
        metrics=metrics,
        errors=result.errors,
        warnings=result.warnings,
        memory_usage=result.memory_usage,
        stopped_early=result.stopped_early,
    )
