"""Bounded retry helper tests."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from retry import retry_async


def test_returns_first_success_without_sleeping():
    func = AsyncMock(return_value="ok")
    sleep = AsyncMock()
    assert asyncio.run(retry_async(func, 1, 2, sleep=sleep)) == "ok"
    func.assert_awaited_once_with(1, 2)
    sleep.assert_not_awaited()


def test_retries_with_fixed_delay_then_succeeds():
    func = AsyncMock(side_effect=[ValueError("bad"), "ok"])
    sleep = AsyncMock()
    result = asyncio.run(retry_async(func, max_attempts=2, delay=1.0, sleep=sleep))
    assert result == "ok"
    sleep.assert_awaited_once_with(1.0)


def test_reraises_after_max_attempts():
    func = AsyncMock(side_effect=ValueError("still bad"))
    sleep = AsyncMock()
    with pytest.raises(ValueError):
        asyncio.run(retry_async(func, max_attempts=3, delay=0.5, sleep=sleep))
    assert func.await_count == 3
    assert sleep.await_count == 2


def test_exponential_backoff():
    func = AsyncMock(side_effect=[OSError(), OSError(), OSError(), "ok"])
    sleep = AsyncMock()
    asyncio.run(retry_async(func, max_attempts=4, delay=1.0, backoff=2.0, sleep=sleep))
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 4.0]


def test_unlisted_exceptions_are_not_retried():
    func = AsyncMock(side_effect=KeyError("nope"))
    sleep = AsyncMock()
    with pytest.raises(KeyError):
        asyncio.run(retry_async(func, max_attempts=3, exceptions=(ValueError,), sleep=sleep))
    func.assert_awaited_once()


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        asyncio.run(retry_async(AsyncMock(), max_attempts=0))
