import pytest

from errors import ReviewError
from models import RetryPolicy
from utils.retry import backoff_delay_ms, run_with_retry


class Flaky:
    """Fails with the queued errors in order, then succeeds."""

    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_backoff_doubles():
    policy = RetryPolicy(max_attempts=3, base_delay_ms=1000)
    assert [backoff_delay_ms(policy, k) for k in (1, 2, 3)] == [1000, 2000, 4000]


@pytest.mark.asyncio
async def test_delays_before_attempts_two_and_three(sleeps, fake_sleep):
    op = Flaky(ReviewError("boom", status=503), ReviewError("boom", status=503))
    result = await run_with_retry(op, RetryPolicy(max_attempts=3, base_delay_ms=1000), sleep=fake_sleep)

    assert result == "ok"
    assert op.calls == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_success_first_try_does_not_sleep(sleeps, fake_sleep):
    op = Flaky()
    assert await run_with_retry(op, RetryPolicy(max_attempts=5, base_delay_ms=10), sleep=fake_sleep) == "ok"
    assert op.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_non_retryable_raises_immediately(sleeps, fake_sleep):
    error = ReviewError("bad request", status=400)
    op = Flaky(error)

    with pytest.raises(ReviewError) as exc_info:
        await run_with_retry(op, RetryPolicy(max_attempts=3, base_delay_ms=10), sleep=fake_sleep)

    assert exc_info.value is error
    assert op.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_last_error_is_raised_unwrapped(sleeps, fake_sleep):
    first = ConnectionError("network unreachable")
    last = TimeoutError("read timeout")
    op = Flaky(first, last)

    with pytest.raises(TimeoutError) as exc_info:
        await run_with_retry(op, RetryPolicy(max_attempts=2, base_delay_ms=500), sleep=fake_sleep)

    assert exc_info.value is last
    assert op.calls == 2
    assert sleeps == [0.5]


@pytest.mark.asyncio
async def test_single_attempt_never_retries(fake_sleep):
    op = Flaky(ReviewError("slow down", status=429))
    with pytest.raises(ReviewError):
        await run_with_retry(op, RetryPolicy(max_attempts=1, base_delay_ms=0), sleep=fake_sleep)
    assert op.calls == 1


@pytest.mark.asyncio
async def test_connection_reset_is_retried(sleeps, fake_sleep):
    op = Flaky(ConnectionResetError(104, "Connection reset by peer"))

    result = await run_with_retry(op, RetryPolicy(max_attempts=2, base_delay_ms=100), sleep=fake_sleep)

    assert result == "ok"
    assert op.calls == 2
    assert sleeps == [0.1]
