import asyncio

import pytest
from structlog.testing import capture_logs

from bulk_import.exceptions import ConfigError, RetryExhaustedError, TransactionError
from bulk_import.recovery.retry import retry_operation


def flaky(failures: int, value="ok"):
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise TransactionError(f"failure {calls['count']}")
        return value

    return operation, calls


@pytest.mark.parametrize("failures", [0, 1, 2])
async def test_returns_value_after_transient_failures(failures, sleep):
    operation, calls = flaky(failures, value="committed")

    result = await retry_operation(operation, {"batch": 0}, max_attempts=3, base_delay=1.0, sleep=sleep)

    assert result == "committed"
    assert calls["count"] == failures + 1
    assert sleep.delays == [1.0 * attempt for attempt in range(1, failures + 1)]


async def test_raises_retry_exhausted_after_max_attempts(sleep):
    operation, calls = flaky(failures=10)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await retry_operation(operation, {"batch": 3}, max_attempts=4, base_delay=0.5, sleep=sleep)

    assert calls["count"] == 4
    assert exc_info.value.attempts == 4
    assert "after 4 attempts" in exc_info.value.message
    assert "failure 4" in exc_info.value.message
    assert isinstance(exc_info.value.__cause__, TransactionError)
    assert sleep.delays == [0.5, 1.0, 1.5]


async def test_single_attempt_never_sleeps(sleep):
    operation, calls = flaky(failures=1)

    with pytest.raises(RetryExhaustedError):
        await retry_operation(operation, max_attempts=1, base_delay=1.0, sleep=sleep)

    assert calls["count"] == 1
    assert sleep.delays == []


async def test_zero_delay_retries_immediately(sleep):
    operation, calls = flaky(failures=2)

    assert await retry_operation(operation, max_attempts=3, base_delay=0, sleep=sleep) == "ok"
    assert sleep.delays == [0, 0]


async def test_errors_outside_retry_on_propagate_immediately(sleep):
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        raise KeyError("_type")

    with pytest.raises(KeyError):
        await retry_operation(operation, retry_on=(TransactionError,), sleep=sleep)

    assert calls["count"] == 1
    assert sleep.delays == []


async def test_cancellation_during_delay_stops_further_attempts():
    operation, calls = flaky(failures=5)

    async def cancelled_sleep(delay):
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await retry_operation(operation, max_attempts=3, sleep=cancelled_sleep)

    assert calls["count"] == 1


@pytest.mark.parametrize("max_attempts, base_delay", [(0, 1.0), (-1, 1.0), (3, -0.1)])
async def test_invalid_settings_raise_config_error(max_attempts, base_delay):
    operation, calls = flaky(failures=0)

    with pytest.raises(ConfigError):
        await retry_operation(operation, max_attempts=max_attempts, base_delay=base_delay)

    assert calls["count"] == 0


async def test_each_failed_attempt_is_logged(sleep):
    operation, _ = flaky(failures=2)

    with capture_logs() as logs:
        await retry_operation(operation, {"batch": 7}, max_attempts=3, base_delay=1.0, sleep=sleep)

    failures = [entry for entry in logs if entry["event"] == "operation_failed"]
    assert [entry["attempt"] for entry in failures] == [1, 2]
    assert all(entry["context"] == {"batch": 7} for entry in failures)
    assert failures[0]["error"] == "failure 1"
