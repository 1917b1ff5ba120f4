"""Tests for in-process and worker-process executors."""

from unittest.mock import MagicMock

import pytest

from xml_stream_indexer.dispatch import (
    EventSink,
    InProcessExecutor,
    MessageKind,
    ParseTask,
    ProcessExecutor,
    WorkerMessage,
    run_parse_task,
)
from xml_stream_indexer.dispatch.executors import _worker_main
from xml_stream_indexer.shared import (
    DispatchConfig,
    ErrorType,
    IndexerConfig,
    ParseOptions,
)
from xml_stream_indexer.tree import NullSchemaValidator, SchemaValidator

DOCUMENT = "<ROOT>\n<SHORT-NAME>Engine</SHORT-NAME>\n<MODULE/>\n<PORT/>\n</ROOT>"


class FailingValidator(SchemaValidator):
    def validate(self, text):
        raise RuntimeError("validator crashed")


class UnpicklableValidator(NullSchemaValidator):
    def __init__(self):
        self.hook = lambda text: text


def make_task(text=DOCUMENT, validator=None, config=None, **option_values):
    options = ParseOptions(**option_values)
    return ParseTask(text, options, config or IndexerConfig(),
                     validator=validator or NullSchemaValidator())


class Recorder:
    def __init__(self):
        self.progress = []
        self.outcomes = []
        self.errors = []

    def sink(self):
        return EventSink(
            on_progress=lambda update: self.progress.append(update.progress),
            on_complete=self.outcomes.append,
            on_error=self.errors.append,
        )


class TestRunParseTask:
    """Test the executor-independent parse routine."""

    def test_outcome_and_metrics(self):
        """Test elements, index and metrics of a finished task."""
        outcome = run_parse_task(make_task())

        assert [e.name for e in outcome.elements] == ["ROOT", "Engine", "PORT"]
        assert set(outcome.index.elements) == {e.id for e in outcome.elements}
        assert outcome.metrics.node_count == 3
        assert outcome.metrics.memory_peak > 0
        assert outcome.metrics.search_index_size > 0
        assert outcome.memory_usage == 3 * 1024

    def test_task_size_in_bytes(self):
        """Test the UTF-8 size of the input."""
        assert make_task("ÄÖ").size == 4


class TestInProcessExecutor:
    """Test the in-process executor."""

    def test_complete(self):
        """Test a successful parse."""
        recorder = Recorder()
        InProcessExecutor().execute(make_task(), recorder.sink())

        assert len(recorder.outcomes) == 1
        assert recorder.errors == []

    def test_failure_becomes_syntax_error(self):
        """Test that an unexpected exception is reported once."""
        recorder = Recorder()
        task = make_task(validator=FailingValidator(), validate_schema=True)
        InProcessExecutor().execute(task, recorder.sink())

        assert recorder.outcomes == []
        assert len(recorder.errors) == 1
        assert recorder.errors[0].type == ErrorType.SYNTAX
        assert "validator crashed" in recorder.errors[0].message

    def test_cancel_before_start(self):
        """Test that a cancelled executor delivers no terminal event."""
        recorder = Recorder()
        config = IndexerConfig().override(scanner__progress_interval=1)
        executor = InProcessExecutor()
        executor.cancel()
        executor.execute(make_task(config=config), recorder.sink())

        assert recorder.outcomes == []
        assert recorder.errors == []
        assert executor.cancelled

    def test_progress_reports(self):
        """Test that progress passes through the sink."""
        recorder = Recorder()
        config = IndexerConfig().override(scanner__progress_interval=1)
        InProcessExecutor().execute(make_task(config=config), recorder.sink())

        assert recorder.progress == sorted(recorder.progress)
        assert recorder.progress[-1] == 100.0
        assert len(recorder.outcomes) == 1


class TestWorkerMain:
    """Test the worker entry point with a fake pipe end."""

    def test_complete_message(self):
        """Test that a parse request is answered with COMPLETE."""
        connection = MagicMock()
        connection.recv.return_value = WorkerMessage(MessageKind.PARSE, {"task": make_task()})

        _worker_main(connection)

        sent = [call.args[0] for call in connection.send.call_args_list]
        assert sent[-1].kind == MessageKind.COMPLETE
        assert len(sent[-1].payload["outcome"].elements) == 3
        connection.close.assert_called_once()

    def test_unexpected_message(self):
        """Test that an unknown request is answered with ERROR."""
        connection = MagicMock()
        connection.recv.return_value = WorkerMessage(MessageKind.PROGRESS)

        _worker_main(connection)

        message = connection.send.call_args.args[0]
        assert message.kind == MessageKind.ERROR
        assert message.payload["error"].type == ErrorType.SYNTAX

    def test_closed_pipe_before_request(self):
        """Test that a parent which never sends a task lets the worker exit quietly."""
        connection = MagicMock()
        connection.recv.side_effect = EOFError

        _worker_main(connection)

        connection.send.assert_not_called()
        connection.close.assert_called_once()


class TestProcessExecutor:
    """Test the worker-process executor with a real child process."""

    def test_parse_in_child_process(self):
        """Test that the outcome travels back from the child."""
        recorder = Recorder()
        config = IndexerConfig().override(scanner__progress_interval=1)
        executor = ProcessExecutor(DispatchConfig(worker_threshold_bytes=0))
        executor.execute(make_task(config=config), recorder.sink())

        assert recorder.errors == []
        assert len(recorder.outcomes) == 1
        assert [e.name for e in recorder.outcomes[0].elements] == ["ROOT", "Engine", "PORT"]
        assert recorder.progress

    def test_cancel_before_start(self):
        """Test that a cancelled worker executor never starts a child."""
        recorder = Recorder()
        executor = ProcessExecutor()
        executor.cancel()
        executor.execute(make_task(), recorder.sink())

        assert recorder.outcomes == []
        assert recorder.errors == []
        assert executor._process is None

    def test_unpicklable_task_becomes_syntax_error(self):
        """Test that a task which cannot cross the pipe is reported, not raised."""
        recorder = Recorder()
        executor = ProcessExecutor(DispatchConfig(worker_threshold_bytes=0))
        executor.execute(make_task(validator=UnpicklableValidator()), recorder.sink())

        assert recorder.outcomes == []
        assert len(recorder.errors) == 1
        assert recorder.errors[0].type == ErrorType.SYNTAX
        assert "could not be sent to the worker" in recorder.errors[0].message
        assert not executor._process.is_alive()
