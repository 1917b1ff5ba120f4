"""Policies deciding where a parse runs."""

from abc import ABC, abstractmethod
from enum import Enum

from xml_stream_indexer.shared.config import MIB, DispatchConfig


class ExecutionMode(Enum):
    """Execution context of a parse."""

    IN_PROCESS = "in_process"
    WORKER = "worker"


class DispatchPolicy(ABC):
    """Chooses the execution context for an input of a given size."""

    @abstractmethod
    def select(self, input_size: int) -> ExecutionMode:
        """Return the execution mode for ``input_size`` bytes of input."""


class SizeThresholdPolicy(DispatchPolicy):
    """Run inputs larger than the threshold in a worker process."""

    def __init__(self, threshold_bytes: int = 50 * MIB) -> None:
        if threshold_bytes < 0:
            raise ValueError("threshold_bytes must be >= 0")
        self.threshold_bytes = threshold_bytes

    def select(self, input_size: int) -> ExecutionMode:
        if input_size > self.threshold_bytes:
            return ExecutionMode.WORKER
        return ExecutionMode.IN_PROCESS

    def __repr__(self) -> str:
        return f"SizeThresholdPolicy(threshold_bytes={self.threshold_bytes})"


class AlwaysInProcessPolicy(DispatchPolicy):
    """Never leave the calling thread."""

    def select(self, input_size: int) -> ExecutionMode:
        return ExecutionMode.IN_PROCESS

    def __repr__(self) -> str:
        return "AlwaysInProcessPolicy()"


def policy_from_config(config: DispatchConfig) -> DispatchPolicy:
    """Build the policy described by a dispatch configuration."""
    if not config.enable_worker:
        return AlwaysInProcessPolicy()
    return SizeThresholdPolicy(config.worker_threshold_bytes)
