"""In-process and worker-process executors.

Both executors run a ``ParseTask`` to completion on the calling thread and
report through an ``EventSink``. The worker executor moves the parse into a
child process and talks to it with four message kinds over a pipe.
"""

import multiprocessing
import pickle
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from xml_stream_indexer.dispatch.events import EventSink
from xml_stream_indexer.dispatch.policy import ExecutionMode
from xml_stream_indexer.dispatch.task import ParseTask, run_parse_task
from xml_stream_indexer.shared import (
    DispatchConfig,
    ErrorType,
    ParseCancelledError,
    ParseError,
    get_logger,
)


class MessageKind(Enum):
    """Kinds of messages exchanged with a worker process."""

    PARSE = "parse"          # parent -> child: task
    PROGRESS = "progress"    # child -> parent: AssemblyProgress
    COMPLETE = "complete"    # child -> parent: ParseOutcome
    ERROR = "error"          # child -> parent: ParseError


@dataclass
class WorkerMessage:
    """Envelope sent over the worker pipe."""

    kind: MessageKind
    payload: Dict[str, Any] = field(default_factory=dict)


def syntax_error(message: str) -> ParseError:
    return ParseError(type=ErrorType.SYNTAX, message=message)


class Executor(ABC):
    """Runs a parse task and reports through an event sink."""

    mode: ExecutionMode

    def __init__(self, session_id: Optional[str] = None) -> None:
        self.session_id = session_id
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @abstractmethod
    def execute(self, task: ParseTask, sink: EventSink) -> None:
        """Run ``task`` until it completes, fails or is cancelled."""

    def cancel(self) -> None:
        """Request cancellation; safe to call from any thread."""
        self._cancel_event.set()


class InProcessExecutor(Executor):
    """Runs the parse on the calling thread."""

    mode = ExecutionMode.IN_PROCESS

    def __init__(self, session_id: Optional[str] = None) -> None:
        super().__init__(session_id)
        self.logger = get_logger(__name__, session_id, "in_process_executor")

    def execute(self, task: ParseTask, sink: EventSink) -> None:
        try:
            outcome = run_parse_task(task, sink.progress, lambda: self.cancelled)
        except ParseCancelledError:
            self.logger.info("Parse cancelled")
            return
        except Exception as e:
            self.logger.exception("Parse failed")
            sink.error(syntax_error(f"Parse failed: {e}"))
            return
        if self.cancelled:
            return
        sink.complete(outcome)


def _worker_main(connection: Any) -> None:
    """Entry point of the worker process."""
    def send_progress(update: Any) -> None:
        connection.send(WorkerMessage(MessageKind.PROGRESS, {"progress": update}))

    try:
        message = connection.recv()
    except EOFError:
        # the parent closed the pipe without sending a task
        connection.close()
        return

    try:
        if message.kind != MessageKind.PARSE:
            raise ValueError(f"Unexpected message kind: {message.kind.value}")
        outcome = run_parse_task(message.payload["task"], send_progress)
        connection.send(WorkerMessage(MessageKind.COMPLETE, {"outcome": outcome}))
    except Exception as e:
        connection.send(WorkerMessage(
            MessageKind.ERROR, {"error": syntax_error(f"Parse failed: {e}")}
        ))
    finally:
        connection.close()


class ProcessExecutor(Executor):
    """Runs the parse in a ``multiprocessing`` child process."""

    mode = ExecutionMode.WORKER

    def __init__(
        self,
        config: Optional[DispatchConfig] = None,
        session_id: Optional[str] = None
    ) -> None:
        super().__init__(session_id)
        self.config = config or DispatchConfig()
        self.logger = get_logger(__name__, session_id, "process_executor")
        self._context = multiprocessing.get_context(self.config.start_method)
        self._process: Optional[Any] = None
        self._process_lock = threading.Lock()

    def execute(self, task: ParseTask, sink: EventSink) -> None:
        parent_conn, child_conn = self._context.Pipe()
        process = self._context.Process(
            target=_worker_main, args=(child_conn,), daemon=True,
            name=f"xml-indexer-worker-{self.session_id or 'anonymous'}",
        )
        with self._process_lock:
            if self.cancelled:
                parent_conn.close()
                child_conn.close()
                return
            process.start()
            self._process = process
        child_conn.close()

        self.logger.info(
            "Worker process started",
            extra={"pid": process.pid, "input_bytes": task.size},
        )

        try:
            try:
                parent_conn.send(WorkerMessage(MessageKind.PARSE, {"task": task}))
            except (pickle.PicklingError, TypeError, AttributeError) as e:
                self.logger.error(
                    "Parse task could not be sent to the worker",
                    extra={"pid": process.pid}, exc_info=True,
                )
                sink.error(syntax_error(f"Parse task could not be sent to the worker: {e}"))
                return
            if self._receive(parent_conn, process, sink):
                return
        except (BrokenPipeError, EOFError, OSError):
            self.logger.debug("Worker pipe closed", extra={"pid": process.pid})
        finally:
            parent_conn.close()
            self._shutdown(process)

        if not self.cancelled:
            sink.error(syntax_error(
                f"Worker process exited without a result (exit code {process.exitcode})"
            ))

    def _receive(self, connection: Any, process: Any, sink: EventSink) -> bool:
        """Pump worker messages; True once a terminal message or cancel was seen."""
        interval = self.config.poll_interval_seconds
        while True:
            if self.cancelled:
                return True
            if not connection.poll(interval):
                if not process.is_alive() and not connection.poll():
                    return False
                continue

            message = connection.recv()
            if self.cancelled:
                return True
            if message.kind == MessageKind.PROGRESS:
                sink.progress(message.payload["progress"])
            elif message.kind == MessageKind.COMPLETE:
                sink.complete(message.payload["outcome"])
                return True
            elif message.kind == MessageKind.ERROR:
                sink.error(message.payload["error"])
                return True

    def _shutdown(self, process: Any) -> None:
        with self._process_lock:
            if not self.cancelled:
                process.join(timeout=self.config.poll_interval_seconds * 20)
            if process.is_alive():
                process.terminate()
            process.join(timeout=5)
            self._process = None
        self.logger.info(
            "Worker process finished",
            extra={"pid": process.pid, "exit_code": process.exitcode},
        )

    def cancel(self) -> None:
        """Terminate the worker immediately."""
        super().cancel()
        with self._process_lock:
            if self._process is not None and self._process.is_alive():
                self.logger.info("Terminating worker process",
                                 extra={"pid": self._process.pid})
                self._process.terminate()
