"""Callback delivery shared by all executors.

``EventSink`` enforces the delivery contract: progress never decreases, exactly
one of complete or error is delivered, nothing follows it, and nothing at all is
delivered once the parse has been cancelled.
"""

import threading
from typing import Callable, Optional, TypeVar

from xml_stream_indexer.shared import ParseError
from xml_stream_indexer.tree import AssemblyProgress

T = TypeVar("T")

ProgressHandler = Callable[[AssemblyProgress], None]
ErrorHandler = Callable[[ParseError], None]


class EventSink:
    """Guards the three parse callbacks."""

    def __init__(
        self,
        on_progress: Optional[ProgressHandler] = None,
        on_complete: Optional[Callable[[T], None]] = None,
        on_error: Optional[ErrorHandler] = None
    ) -> None:
        self._on_progress = on_progress
        self._on_complete = on_complete
        self._on_error = on_error
        self._lock = threading.Lock()
        self._last_progress = 0.0
        self._finished = False
        self._cancelled = False

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def last_progress(self) -> float:
        return self._last_progress

    def cancel(self) -> None:
        """Drop every event delivered from now on."""
        with self._lock:
            self._cancelled = True

    def progress(self, update: AssemblyProgress) -> None:
        with self._lock:
            if self._finished or self._cancelled:
                return
            value = min(100.0, max(self._last_progress, update.progress))
            self._last_progress = value
        update.progress = value
        if self._on_progress is not None:
            self._on_progress(update)

    def complete(self, outcome: T) -> bool:
        """Deliver the terminal success event; False if it was dropped."""
        if not self._finish():
            return False
        if self._on_complete is not None:
            self._on_complete(outcome)
        return True

    def error(self, error: ParseError) -> bool:
        """Deliver the terminal error event; False if it was dropped."""
        if not self._finish():
            return False
        if self._on_error is not None:
            self._on_error(error)
        return True

    def _finish(self) -> bool:
        with self._lock:
            if self._finished or self._cancelled:
                return False
            self._finished = True
            return True
