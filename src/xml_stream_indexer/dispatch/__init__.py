"""Dispatch of parse work to an execution context.

Key Components:
    DispatchPolicy: Chooses in-process or worker execution from the input size
    InProcessExecutor: Runs a parse on the calling thread
    ProcessExecutor: Runs a parse in a child process via message passing
    EventSink: Delivers progress, complete and error callbacks in order
"""

from typing import Optional

from xml_stream_indexer.shared import DispatchConfig

from .events import EventSink
from .executors import (
    Executor,
    InProcessExecutor,
    MessageKind,
    ProcessExecutor,
    WorkerMessage,
)
from .policy import (
    AlwaysInProcessPolicy,
    DispatchPolicy,
    ExecutionMode,
    SizeThresholdPolicy,
    policy_from_config,
)
from .task import ParseOutcome, ParseTask, run_parse_task


def create_executor(
    mode: ExecutionMode,
    config: Optional[DispatchConfig] = None,
    session_id: Optional[str] = None
) -> Executor:
    """Create the executor for an execution mode."""
    if mode == ExecutionMode.WORKER:
        return ProcessExecutor(config, session_id)
    return InProcessExecutor(session_id)


__all__ = [
    "AlwaysInProcessPolicy",
    "DispatchPolicy",
    "EventSink",
    "ExecutionMode",
    "Executor",
    "InProcessExecutor",
    "MessageKind",
    "ParseOutcome",
    "ParseTask",
    "ProcessExecutor",
    "SizeThresholdPolicy",
    "WorkerMessage",
    "create_executor",
    "policy_from_config",
    "run_parse_task",
]
