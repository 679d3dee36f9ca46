"""Service for executing remote calls with automatic retries.

Implements exponential backoff for transient server errors (5xx). Every
failure is passed to the error classifier; only transient failures are
retried, terminal ones surface immediately in their compact form.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from cmaqueue.domain.events.queue_events import RetryScheduled, dispatch_event
from cmaqueue.domain.models.options import RetryOptions
from cmaqueue.domain.models.queue import DelayStrategy, RetryPolicy
from cmaqueue.infrastructure.resilience.error_classifier import classify

logger = logging.getLogger(__name__)


# --- Delay strategies ---

def exponential_backoff(
    min_timeout: float = 1.0,
    factor: float = 2.0,
    max_timeout: Optional[float] = None,
    randomize: bool = False,
) -> DelayStrategy:
    """Builds a delay strategy waiting min_timeout * factor ** (attempt - 1) seconds.

    Args:
        min_timeout: Delay before the first retry.
        factor: Multiplier applied for each further retry.
        max_timeout: Upper bound for any single delay (None for no bound).
        randomize: Multiply each delay by a random factor in [1, 2).
    """
    def strategy(attempt: int) -> float:
        delay = min_timeout * (factor ** max(0, attempt - 1))
        if randomize:
            delay *= 1 + random.random()
        if max_timeout is not None:
            delay = min(delay, max_timeout)
        return delay
    return strategy


def constant_delay(seconds: float) -> DelayStrategy:
    return lambda attempt: seconds


def policy_from_options(options: RetryOptions) -> RetryPolicy:
    """Builds the immutable RetryPolicy described by RetryOptions."""
    return RetryPolicy(
        max_retries=options.retries,
        delay_strategy=exponential_backoff(
            min_timeout=options.min_timeout,
            factor=options.factor,
            max_timeout=options.max_timeout,
            randomize=options.randomize,
        ),
    )


# --- Retry Service ---

class ApiRetryService:
    """Runs a single unit of work with bounded, classified retries."""

    def __init__(self, policy: RetryPolicy, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        """Initializes the ApiRetryService.

        Args:
            policy: Default retry policy, used when a call does not pass its own.
            sleep: Coroutine used to wait between attempts.
        """
        self.policy = policy
        self._sleep = sleep
        logger.info(f"ApiRetryService initialized: max_retries={policy.max_retries}")

    async def execute_with_retry(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        policy: Optional[RetryPolicy] = None,
        label: Optional[str] = None,
        **kwargs: Any
    ) -> Any:
        """Executes an async function, retrying transient failures.

        Args:
            func: The async function (remote call) to execute.
            *args: Positional arguments for the function.
            policy: Overrides the service's default policy for this call.
            label: Name used in logs and events (defaults to the function name).
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of the first successful call.

        Raises:
            ClassifiedRemoteError: On a terminal failure with a decodable payload.
            Exception: The raw error, when it is undecodable or when retries
                are exhausted on a transient failure.
        """
        effective_policy = policy or self.policy
        effective_label = label or getattr(func, "__name__", repr(func))
        attempt = 0

        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                classification = classify(e)

                if classification.is_terminal:
                    logger.error(f"Terminal error calling {effective_label} on attempt {attempt + 1}: {type(e).__name__}")
                    if classification.error is e:
                        raise
                    raise classification.error from None

                if attempt >= effective_policy.max_retries:
                    logger.error(
                        f"Max retries ({effective_policy.max_retries}) reached for {effective_label}. "
                        f"Last status: {classification.status}"
                    )
                    raise

                attempt += 1
                delay = effective_policy.delay_for(attempt)
                logger.warning(
                    f"Transient error ({classification.status}) calling {effective_label}, "
                    f"retry {attempt}/{effective_policy.max_retries} in {delay:.2f}s"
                )
                dispatch_event(RetryScheduled(
                    label=effective_label,
                    attempt_number=attempt,
                    delay_seconds=delay,
                    status=classification.status,
                ))
                await self._sleep(delay)
