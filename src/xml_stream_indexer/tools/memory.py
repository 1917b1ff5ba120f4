"""Process memory sampling for parse metrics.

Provides a small psutil-backed sampler that tracks the peak resident set size of
a process while a parse runs, either on demand or from a background thread.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import psutil

from xml_stream_indexer.shared.logging import get_logger


@dataclass
class MemorySample:
    """Resident and virtual memory of a process at one point in time."""

    rss: int
    vms: int

    def to_dict(self) -> Dict[str, Any]:
        return {"rss": self.rss, "vms": self.vms}


@dataclass
class MemoryReport:
    """Summary of the samples taken during one run."""

    peak_rss: int = 0
    start_rss: int = 0
    sample_count: int = 0
    samples: List[MemorySample] = field(default_factory=list)

    @property
    def growth(self) -> int:
        return max(0, self.peak_rss - self.start_rss)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peak_rss": self.peak_rss,
            "start_rss": self.start_rss,
            "growth": self.growth,
            "sample_count": self.sample_count,
        }


class MemorySampler:
    """Tracks peak RSS of a process.

    Examples:
        Sampling the current process around a block:
        >>> with MemorySampler(interval=0.05) as sampler:
        ...     build_index()
        >>> sampler.peak_rss > 0
        True
    """

    def __init__(
        self,
        pid: Optional[int] = None,
        interval: float = 0.1,
        keep_samples: int = 0,
        session_id: Optional[str] = None
    ) -> None:
        """Initialize sampler.

        Args:
            pid: Process to watch (defaults to the current process)
            interval: Seconds between background samples
            keep_samples: Number of most recent samples kept in the report
            session_id: Optional parse session id for logging
        """
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.interval = interval
        self.keep_samples = keep_samples
        self.logger = get_logger(__name__, session_id, "memory_sampler")
        self._process = psutil.Process(pid)
        self._report = MemoryReport()
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def peak_rss(self) -> int:
        with self._lock:
            return self._report.peak_rss

    def sample(self) -> Optional[MemorySample]:
        """Take one sample; returns None once the process has exited."""
        try:
            info = self._process.memory_info()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return None

        sample = MemorySample(rss=info.rss, vms=info.vms)
        with self._lock:
            report = self._report
            if report.sample_count == 0:
                report.start_rss = sample.rss
            report.sample_count += 1
            report.peak_rss = max(report.peak_rss, sample.rss)
            if self.keep_samples:
                report.samples.append(sample)
                del report.samples[:-self.keep_samples]
        return sample

    def start(self) -> "MemorySampler":
        """Take a first sample and start background sampling."""
        if self._thread is not None and self._thread.is_alive():
            self.logger.warning("Memory sampling is already running")
            return self
        self.sample()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sampling_loop, daemon=True, name="MemorySampler"
        )
        self._thread.start()
        return self

    def stop(self) -> MemoryReport:
        """Stop background sampling and return the report."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=max(1.0, self.interval * 2))
        self._thread = None
        self.sample()
        with self._lock:
            report = self._report
        self.logger.debug("Memory sampling stopped", extra=report.to_dict())
        return report

    def _sampling_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            if self.sample() is None:
                break

    def __enter__(self) -> "MemorySampler":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()


def current_rss() -> int:
    """Resident set size of the current process in bytes."""
    return psutil.Process().memory_info().rss
