import asyncio
import time

import pytest

from cmaqueue.domain.exceptions import ClassifiedRemoteError, InvalidInputError
from cmaqueue.domain.models.queue import RetryPolicy
from cmaqueue.infrastructure.resilience.api_retry import ApiRetryService, constant_delay
from cmaqueue.infrastructure.resilience.queue_engine import BoundedQueue, ensure_item_sequence


@pytest.fixture
def queue(no_wait_policy, progress_reporter):
    return BoundedQueue(ApiRetryService(no_wait_policy), progress_reporter, concurrency=2)


def test_results_follow_input_order_regardless_of_completion(queue: BoundedQueue):
    delays = {"a": 0.02, "b": 0.04, "c": 0.0}
    finished = []

    async def operation(item):
        await asyncio.sleep(delays[item])
        finished.append(item)
        return f"res{item.upper()}"

    queue.concurrency = 3
    results = asyncio.run(queue.run(["a", "b", "c"], operation))

    assert finished == ["c", "a", "b"]
    assert results == ["resA", "resB", "resC"]


@pytest.mark.parametrize("concurrency", [1, 2, 4])
def test_never_more_than_concurrency_in_flight(queue: BoundedQueue, concurrency: int):
    in_flight = 0
    peak = 0

    async def operation(item):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.005 * (item % 3))
        in_flight -= 1
        return item * 2

    results = asyncio.run(queue.run(list(range(10)), operation, concurrency=concurrency))

    assert results == [i * 2 for i in range(10)]
    assert peak == concurrency


def test_progress_ticks_once_per_item_despite_retries(queue: BoundedQueue, progress_reporter, remote_error):
    attempts = {}

    async def flaky(item):
        attempts[item] = attempts.get(item, 0) + 1
        if attempts[item] == 1:
            raise remote_error(503)
        return item

    results = asyncio.run(queue.run([1, 2, 3, 4], flaky, label="<Space.create_entry>"))

    assert results == [1, 2, 3, 4]
    assert attempts == {1: 2, 2: 2, 3: 2, 4: 2}
    assert progress_reporter.ticks == 4
    assert progress_reporter.created == [{'total': 4, 'label': "<Space.create_entry>", 'ticks': 4}]
    assert progress_reporter.finished == 1


def test_503_with_one_retry_invokes_twice_then_rejects_with_raw_error(queue: BoundedQueue, remote_error):
    error = remote_error(503, statusText="Service Unavailable")
    calls = []

    async def operation(item):
        calls.append(item)
        raise error

    with pytest.raises(type(error)) as exc_info:
        asyncio.run(queue.run(["only"], operation))

    assert calls == ["only", "only"]
    assert exc_info.value is error


def test_404_invokes_once_and_rejects_with_classified_error(queue: BoundedQueue, remote_error, progress_reporter):
    calls = []

    async def operation(item):
        calls.append(item)
        raise remote_error(404, statusText="Not Found")

    with pytest.raises(ClassifiedRemoteError) as exc_info:
        asyncio.run(queue.run(["only"], operation))

    assert calls == ["only"]
    assert exc_info.value.fields == {"status": 404, "statusText": "Not Found"}
    assert progress_reporter.ticks == 1


def test_failure_stops_scheduling_and_reports_progress(no_wait_policy, progress_reporter, remote_error):
    queue = BoundedQueue(ApiRetryService(no_wait_policy), progress_reporter, concurrency=1)
    started = []

    async def operation(item):
        started.append(item)
        if item == 2:
            raise remote_error(400, statusText="Bad Request")
        return item

    with pytest.raises(ClassifiedRemoteError) as exc_info:
        asyncio.run(queue.run([0, 1, 2, 3, 4], operation, label="job"))

    assert started == [0, 1, 2]
    assert exc_info.value.__notes__ == ["job: 3/5 items completed before failure"]
    assert progress_reporter.ticks == 3
    assert progress_reporter.finished == 1


def test_in_flight_siblings_finish_after_failure(no_wait_policy, progress_reporter, remote_error):
    queue = BoundedQueue(ApiRetryService(no_wait_policy), progress_reporter, concurrency=2)
    completed = []

    async def operation(item):
        if item == "fail":
            raise remote_error(422, statusText="Unprocessable Entity")
        await asyncio.sleep(0.02)
        completed.append(item)
        return item

    with pytest.raises(ClassifiedRemoteError):
        asyncio.run(queue.run(["slow", "fail", "never"], operation))

    assert completed == ["slow"]
    assert progress_reporter.ticks == 2


def test_first_terminal_error_wins(no_wait_policy, progress_reporter, remote_error):
    queue = BoundedQueue(ApiRetryService(no_wait_policy), progress_reporter, concurrency=2)

    async def operation(item):
        await asyncio.sleep(item)
        raise remote_error(400, statusText=f"failed {item}")

    with pytest.raises(ClassifiedRemoteError) as exc_info:
        asyncio.run(queue.run([0.0, 0.01], operation))

    assert exc_info.value.status_text == "failed 0.0"


def test_inter_item_delay_is_applied(no_wait_policy, progress_reporter):
    queue = BoundedQueue(ApiRetryService(no_wait_policy), progress_reporter, concurrency=1, delay=0.02)

    async def operation(item):
        return item

    started = time.perf_counter()
    results = asyncio.run(queue.run([1, 2, 3], operation))
    elapsed = time.perf_counter() - started

    assert results == [1, 2, 3]
    assert elapsed >= 0.04


def test_empty_items_return_empty_list(queue: BoundedQueue, progress_reporter):
    async def operation(item):
        raise AssertionError("should not be called")

    assert asyncio.run(queue.run([], operation)) == []
    assert progress_reporter.created == [{'total': 0, 'label': "Processing...", 'ticks': 0}]
    assert progress_reporter.finished == 1


@pytest.mark.parametrize("bad_items", [None, "abc", {"items": [1]}, 42, iter([1, 2])])
def test_non_sequence_items_rejected_before_any_call(queue: BoundedQueue, progress_reporter, bad_items):
    calls = []

    async def operation(item):
        calls.append(item)

    with pytest.raises(InvalidInputError):
        asyncio.run(queue.run(bad_items, operation))

    assert calls == []
    assert progress_reporter.created == []


def test_tuples_are_accepted():
    assert ensure_item_sequence((1, 2)) == (1, 2)


def test_invalid_concurrency_rejected(queue: BoundedQueue):
    async def operation(item):
        return item

    with pytest.raises(ValueError):
        asyncio.run(queue.run([1], operation, concurrency=0))


def test_items_are_not_mutated(queue: BoundedQueue):
    items = [{"title": "a"}, {"title": "b"}]
    snapshot = [dict(item) for item in items]

    async def operation(item):
        return {**item, "done": True}

    results = asyncio.run(queue.run(items, operation))
    assert items == snapshot
    assert results == [{"title": "a", "done": True}, {"title": "b", "done": True}]


def test_retry_policy_override_per_run(progress_reporter, remote_error):
    queue = BoundedQueue(ApiRetryService(RetryPolicy(max_retries=0, delay_strategy=constant_delay(0))), progress_reporter)
    attempts = []

    async def operation(item):
        attempts.append(item)
        if len(attempts) < 3:
            raise remote_error(500)
        return "ok"

    policy = RetryPolicy(max_retries=2, delay_strategy=constant_delay(0))
    assert asyncio.run(queue.run(["x"], operation, policy=policy)) == ["ok"]
    assert len(attempts) == 3
