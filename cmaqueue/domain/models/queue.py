"""Domain models for queue jobs, retry policies and progress tracking."""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from .common import Operation, ProgressLabel

# Attempt number (1-based) -> seconds to wait before that retry
DelayStrategy = Callable[[int], float]


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a single work item is retried.

    Attributes:
        max_retries: Retries allowed after the first attempt (>= 0).
        delay_strategy: Maps the retry attempt number to a wait in seconds.
    """
    max_retries: int
    delay_strategy: DelayStrategy

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    def delay_for(self, attempt: int) -> float:
        return max(0.0, float(self.delay_strategy(attempt)))


@dataclass
class ProgressState:
    """Completed/total counters for one queue job. Completed only grows."""
    total: int
    completed: int = 0

    def advance(self) -> int:
        if self.completed >= self.total:
            raise RuntimeError(f"Progress already complete ({self.completed}/{self.total})")
        self.completed += 1
        return self.completed

    @property
    def remaining(self) -> int:
        return self.total - self.completed

    def __str__(self) -> str:
        return f"{self.completed}/{self.total}"


@dataclass
class QueueJob:
    """The materialized task set for one queueing call."""
    items: Sequence[Any]
    operation: Operation
    concurrency: int
    delay: float
    label: ProgressLabel
    policy: Optional[RetryPolicy] = None
    progress: ProgressState = field(init=False)
    results: List[Any] = field(init=False)
    failure: Optional[BaseException] = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")
        self.progress = ProgressState(total=len(self.items))
        self.results = [None] * len(self.items)

    @property
    def failed(self) -> bool:
        return self.failure is not None
