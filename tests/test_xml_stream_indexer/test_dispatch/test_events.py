"""Tests for callback delivery through EventSink."""

from xml_stream_indexer.dispatch import EventSink
from xml_stream_indexer.shared import ErrorType, ParseError
from xml_stream_indexer.tree import AssemblyProgress


def progress(value):
    return AssemblyProgress(progress=value, current_section="", elements_processed=0,
                            memory_usage=0)


class Recorder:
    def __init__(self):
        self.events = []

    def sink(self):
        return EventSink(
            on_progress=lambda update: self.events.append(("progress", update.progress)),
            on_complete=lambda outcome: self.events.append(("complete", outcome)),
            on_error=lambda error: self.events.append(("error", error.message)),
        )


class TestEventSink:
    """Test the delivery contract."""

    def test_progress_never_decreases(self):
        """Test that lower progress values are clamped."""
        recorder = Recorder()
        sink = recorder.sink()

        for value in (10.0, 40.0, 20.0, 150.0):
            sink.progress(progress(value))

        assert recorder.events == [
            ("progress", 10.0), ("progress", 40.0), ("progress", 40.0), ("progress", 100.0),
        ]
        assert sink.last_progress == 100.0

    def test_single_terminal_event(self):
        """Test that only the first terminal event is delivered."""
        recorder = Recorder()
        sink = recorder.sink()

        assert sink.complete("done")
        assert not sink.error(ParseError(type=ErrorType.SYNTAX, message="late"))
        assert not sink.complete("again")
        sink.progress(progress(50.0))

        assert recorder.events == [("complete", "done")]
        assert sink.finished

    def test_error_is_terminal(self):
        """Test that nothing follows an error."""
        recorder = Recorder()
        sink = recorder.sink()

        sink.error(ParseError(type=ErrorType.SYNTAX, message="broken"))
        sink.complete("ignored")

        assert recorder.events == [("error", "broken")]

    def test_cancel_drops_everything(self):
        """Test that a cancelled sink delivers nothing."""
        recorder = Recorder()
        sink = recorder.sink()

        sink.progress(progress(5.0))
        sink.cancel()
        sink.progress(progress(50.0))
        sink.complete("done")
        sink.error(ParseError(type=ErrorType.SYNTAX, message="broken"))

        assert recorder.events == [("progress", 5.0)]
        assert sink.cancelled
        assert not sink.finished

    def test_missing_callbacks(self):
        """Test a sink without callbacks."""
        sink = EventSink()
        sink.progress(progress(10.0))
        assert sink.complete(None)
