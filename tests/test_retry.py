import httpx
import pytest

from constituant.config import ClassifierConfig
from constituant.utils.dedupe import dedupe_by_key
from constituant.utils.retry import RetryError, RetryPolicy, is_transient, retry_async


class TestRetryPolicy:
    def test_exponential_growth(self) -> None:
        policy = RetryPolicy(base_delay=1.0, jitter=False)
        assert policy.delay_for(0) == 1.0
        assert policy.delay_for(3) == 8.0

    def test_fixed_delay(self) -> None:
        assert RetryPolicy.fixed(3, 2.0).delay_for(5) == 2.0

    def test_max_delay_cap(self) -> None:
        assert RetryPolicy(base_delay=1.0, max_delay=30.0, jitter=False).delay_for(10) == 30.0

    def test_jitter_bounds(self) -> None:
        policy = RetryPolicy(base_delay=1.0)
        for _ in range(20):
            assert 1.0 <= policy.delay_for(1) <= 2.0

    def test_for_classifier(self) -> None:
        policy = RetryPolicy.for_classifier(ClassifierConfig(max_retries=4, retry_delay_seconds=1.5))
        assert policy.max_attempts == 4
        assert policy.delay_for(3) == 1.5


def test_is_transient() -> None:
    request = httpx.Request("GET", "https://example.org")
    assert is_transient(httpx.ConnectTimeout("timeout", request=request))
    server_error = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(503, request=request))
    assert is_transient(server_error)
    not_found = httpx.HTTPStatusError("nope", request=request, response=httpx.Response(404, request=request))
    assert not is_transient(not_found)
    assert is_transient(KeyError("x"), retryable_exceptions=(KeyError,))
    assert not is_transient(KeyError("x"))


async def test_retry_async_eventually_succeeds(recording_sleep, sleep_calls) -> None:
    attempts = []

    async def flaky() -> str:
        attempts.append(1)
        if len(attempts) < 3:
            raise ValueError("temporary")
        return "ok"

    result = await retry_async(
        flaky,
        RetryPolicy.fixed(3, 2.0),
        retryable_exceptions=(ValueError,),
        sleep=recording_sleep,
    )

    assert result == "ok"
    assert sleep_calls == [2.0, 2.0]


async def test_retry_async_exhausted(recording_sleep) -> None:
    async def always_fails() -> None:
        raise ValueError("still broken")

    with pytest.raises(RetryError) as excinfo:
        await retry_async(always_fails, RetryPolicy(max_attempts=2), retryable_exceptions=(ValueError,), sleep=recording_sleep)

    assert excinfo.value.attempts == 2
    assert isinstance(excinfo.value.last_exception, ValueError)


async def test_retry_async_non_retryable_propagates(recording_sleep, sleep_calls) -> None:
    async def broken() -> None:
        raise TypeError("bug")

    with pytest.raises(TypeError):
        await retry_async(broken, sleep=recording_sleep)
    assert sleep_calls == []


def test_dedupe_by_key() -> None:
    records = [("a", 1), ("b", 2), ("a", 3), (None, 4)]

    unique, removed = dedupe_by_key(records, lambda record: record[0])
    assert unique == [("a", 1), ("b", 2)]
    assert removed == 2

    last, _ = dedupe_by_key(records, lambda record: record[0], keep="last")
    assert last == [("a", 3), ("b", 2)]

    with pytest.raises(ValueError):
        dedupe_by_key(records, lambda record: record[0], keep="middle")
