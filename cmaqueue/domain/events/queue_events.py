"""Domain Events related to queue jobs and retries.

Examples include events for when a job starts, an item settles, a retry is
scheduled, or the whole job fails.
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class QueueJobStarted(DomainEvent):
    """Event triggered when a queue job begins scheduling items."""
    label: str
    total: int
    concurrency: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class QueueItemSettled(DomainEvent):
    """Event triggered when one item finishes (success or terminal failure)."""
    label: str
    index: int
    succeeded: bool
    completed: int
    total: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a transient failure is about to be retried."""
    label: str
    attempt_number: int
    delay_seconds: float
    status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class QueueJobFailed(DomainEvent):
    """Event triggered when a job rejects on its first terminal failure."""
    label: str
    completed: int
    total: int
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class QueueJobCompleted(DomainEvent):
    """Event triggered when every item of a job succeeded."""
    label: str
    total: int
    duration_s: float
    timestamp: float = field(default_factory=time.time)


def dispatch_event(event: Any) -> None:
    """Publishes a domain event. Events are only logged for now."""
    logger.debug(f"EVENT: {event}")
