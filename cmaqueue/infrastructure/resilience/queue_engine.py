"""Bounded-concurrency queue for running one async operation per work item.

A fixed pool of worker coroutines pulls item positions from a shared
iterator, so no more than ``concurrency`` operations are ever in flight.
Each call goes through the ApiRetryService. Results are written to the slot
of their input position, which keeps the output in input order whatever
order the calls complete in.

On the first terminal failure no further items are started. Items already
in flight are left to finish; their results are discarded and the failure
is raised once they have settled.
"""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any, Iterator, List, Optional, Tuple

from cmaqueue.domain.events.queue_events import (
    QueueItemSettled,
    QueueJobCompleted,
    QueueJobFailed,
    QueueJobStarted,
    dispatch_event,
)
from cmaqueue.domain.exceptions import InvalidInputError
from cmaqueue.domain.interfaces.progress import ProgressReporter
from cmaqueue.domain.models.common import Operation, ProgressLabel
from cmaqueue.domain.models.queue import QueueJob, RetryPolicy
from cmaqueue.infrastructure.resilience.api_retry import ApiRetryService

logger = logging.getLogger(__name__)

DEFAULT_LABEL = ProgressLabel("Processing...")


def ensure_item_sequence(items: Any) -> Sequence:
    """Raises InvalidInputError unless items is an ordered, array-like sequence."""
    if isinstance(items, (str, bytes, bytearray, Mapping)) or not isinstance(items, Sequence):
        raise InvalidInputError(
            f"Items passed to the queue must be an array of items, got {type(items).__name__}"
        )
    return items


class BoundedQueue:
    """Runs an operation over many items with a concurrency cap and retries."""

    def __init__(
        self,
        retry_service: ApiRetryService,
        progress_reporter: ProgressReporter,
        concurrency: int = 5,
        delay: float = 0.0,
    ):
        """Initializes the queue.

        Args:
            retry_service: Wraps each item's call with classified retries.
            progress_reporter: Receives one tick per settled item.
            concurrency: Default maximum number of in-flight operations.
            delay: Default pause (seconds) after an item settles before the
                same worker starts the next one.
        """
        self.retry_service = retry_service
        self.progress_reporter = progress_reporter
        self.concurrency = concurrency
        self.delay = delay

    async def run(
        self,
        items: Sequence[Any],
        operation: Operation,
        *,
        concurrency: Optional[int] = None,
        delay: Optional[float] = None,
        label: str = DEFAULT_LABEL,
        policy: Optional[RetryPolicy] = None,
    ) -> List[Any]:
        """Applies ``operation`` to every item and returns results in input order.

        Raises:
            InvalidInputError: If items is not an array-like sequence. Raised
                before any operation is invoked.
            Exception: The first terminal failure of any item.
        """
        job = QueueJob(
            items=ensure_item_sequence(items),
            operation=operation,
            concurrency=self.concurrency if concurrency is None else concurrency,
            delay=self.delay if delay is None else delay,
            label=ProgressLabel(label),
            policy=policy,
        )
        return await self.run_job(job)

    async def run_job(self, job: QueueJob) -> List[Any]:
        total = job.progress.total
        logger.info(f"{job.label}: queueing {total} item(s) with concurrency={job.concurrency}, delay={job.delay}s")
        dispatch_event(QueueJobStarted(label=job.label, total=total, concurrency=job.concurrency))
        started = time.perf_counter()

        handle = self.progress_reporter.create(total, job.label)
        try:
            if total:
                positions = iter(enumerate(job.items))
                workers = min(job.concurrency, total)
                await asyncio.gather(*(self._worker(job, positions, handle) for _ in range(workers)))
        finally:
            self.progress_reporter.finish(handle)

        if job.failure is not None:
            error = job.failure
            logger.error(f"{job.label}: failed after {job.progress} item(s) settled: {type(error).__name__}")
            dispatch_event(QueueJobFailed(
                label=job.label,
                completed=job.progress.completed,
                total=total,
                error_type=type(error).__name__,
                error_message=str(error),
            ))
            error.add_note(f"{job.label}: {job.progress} items completed before failure")
            raise error

        duration = time.perf_counter() - started
        logger.info(f"{job.label}: {total} item(s) completed in {duration:.2f}s")
        dispatch_event(QueueJobCompleted(label=job.label, total=total, duration_s=duration))
        return job.results

    async def _worker(self, job: QueueJob, positions: Iterator[Tuple[int, Any]], handle: Any) -> None:
        while not job.failed:
            try:
                index, item = next(positions)
            except StopIteration:
                return

            succeeded = False
            try:
                job.results[index] = await self.retry_service.execute_with_retry(
                    job.operation, item, policy=job.policy, label=f"{job.label}[{index}]"
                )
                succeeded = True
            except Exception as e:
                if job.failure is None:
                    job.failure = e
                else:
                    logger.debug(f"{job.label}[{index}]: discarding later failure {type(e).__name__}")
            finally:
                job.progress.advance()
                self.progress_reporter.tick(handle)
                dispatch_event(QueueItemSettled(
                    label=job.label,
                    index=index,
                    succeeded=succeeded,
                    completed=job.progress.completed,
                    total=job.progress.total,
                ))

            if job.delay > 0 and not job.failed and job.progress.completed < job.progress.total:
                await asyncio.sleep(job.delay)
