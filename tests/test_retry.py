from __future__ import annotations

import asyncio

import pytest

from conftest import FakeSleep
from pyyolink._retry import RetryPolicy, retry
from pyyolink.exceptions import YoLinkConfigError, YoLinkTransportError


class Flaky:
    def __init__(self, failures: int, exc: Exception | None = None) -> None:
        self.failures = failures
        self.exc = exc or YoLinkTransportError("connection reset")
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


@pytest.mark.asyncio
async def test_retry_gives_up_after_configured_attempts() -> None:
    fn = Flaky(failures=10)
    sleep = FakeSleep()
    with pytest.raises(YoLinkTransportError):
        await retry(fn, RetryPolicy(retries=3, interval=5, increment=5, max_interval=30), sleep=sleep)
    assert fn.calls == 3
    assert sleep.delays == [5, 10]


@pytest.mark.asyncio
async def test_retry_interval_growth_is_capped() -> None:
    fn = Flaky(failures=5)
    sleep = FakeSleep()
    result = await retry(fn, RetryPolicy(retries=0, interval=15, increment=15, max_interval=60), sleep=sleep)
    assert result == "ok"
    assert fn.calls == 6
    assert sleep.delays == [15, 30, 45, 60, 60]


@pytest.mark.asyncio
async def test_fatal_error_is_not_retried() -> None:
    fn = Flaky(failures=1, exc=YoLinkConfigError("missing credentials"))
    sleep = FakeSleep()
    with pytest.raises(YoLinkConfigError):
        await retry(fn, RetryPolicy(retries=0), sleep=sleep)
    assert fn.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_single_attempt_policy_never_sleeps() -> None:
    fn = Flaky(failures=1)
    sleep = FakeSleep()
    with pytest.raises(YoLinkTransportError):
        await retry(fn, RetryPolicy(retries=1, interval=0, increment=0, max_interval=0), sleep=sleep)
    assert fn.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_cancellation_propagates() -> None:
    async def cancelled() -> None:
        raise asyncio.CancelledError

    with pytest.raises(asyncio.CancelledError):
        await retry(cancelled, RetryPolicy(retries=0), sleep=FakeSleep())
