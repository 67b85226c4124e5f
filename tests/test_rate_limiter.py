# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the TokenBucketRateLimiter class.
"""

import asyncio
import math
from unittest.mock import AsyncMock, patch

import pytest

from tfe.rate_limiter import TokenBucketRateLimiter


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_init():
    """Test that TokenBucketRateLimiter initializes correctly."""
    # Arrange
    rate = 10
    period = 1.0
    max_tokens = 15

    # Act
    limiter = TokenBucketRateLimiter(rate=rate, period=period, max_tokens=max_tokens)

    # Assert
    assert limiter.rate == rate
    assert limiter.period == period
    assert limiter.max_tokens == max_tokens
    assert limiter.tokens == max_tokens


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_init_default_max_tokens():
    """Test that TokenBucketRateLimiter uses rate as default max_tokens."""
    # Act
    limiter = TokenBucketRateLimiter(rate=10, period=1.0)

    # Assert
    assert limiter.max_tokens == 10
    assert limiter.tokens == 10


def test_from_raw_limit_seeds_rate_and_burst():
    """Test that a server limit of 100 gives a rate of 66 and a burst of 33."""
    # Act
    limiter = TokenBucketRateLimiter.from_raw_limit("100")

    # Assert
    assert limiter.rate == pytest.approx(66.0)
    assert limiter.burst == 33
    assert limiter.tokens == 33
    assert not limiter.is_unlimited


@pytest.mark.parametrize("raw_limit", [None, "", "0", "-5", "abc"])
def test_from_raw_limit_without_usable_limit_is_unlimited(raw_limit):
    """Test that an absent or invalid limit disables pacing."""
    limiter = TokenBucketRateLimiter.from_raw_limit(raw_limit)

    assert limiter.is_unlimited
    assert math.isinf(limiter.rate)


@pytest.mark.asyncio
async def test_unlimited_never_blocks():
    """Test that an unlimited limiter admits any number of requests at once."""
    # Arrange
    limiter = TokenBucketRateLimiter.unlimited()

    # Act
    waits = [await limiter.acquire() for _ in range(1000)]

    # Assert
    assert set(waits) == {0.0}


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_refill():
    """Test that _refill method adds tokens correctly."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=10, period=1.0)
    limiter.tokens = 5
    limiter.last_refill = 0.0

    # Act
    with patch("time.monotonic", return_value=0.5):
        await limiter._refill()

    # Assert
    # After 0.5 seconds, should add 0.5 * (10/1.0) = 5 tokens
    assert limiter.tokens == 10.0


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_refill_max_tokens():
    """Test that _refill method respects max_tokens."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=10, period=1.0, max_tokens=15)
    limiter.tokens = 10
    limiter.last_refill = 0.0

    # Act
    with patch("time.monotonic", return_value=2.0):
        await limiter._refill()

    # Assert
    assert limiter.tokens == 15.0


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_acquire_tokens_available():
    """Test that acquire returns 0 when tokens are available."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=10, period=1.0)
    limiter.tokens = 5

    with patch.object(limiter, "_refill", AsyncMock()):
        # Act
        wait_time = await limiter.acquire(tokens=3)

    # Assert
    assert wait_time == 0.0
    assert limiter.tokens == 2


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_acquire_reserves_deficit():
    """Test that acquire reserves tokens it has to wait for."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=10, period=1.0)
    limiter.tokens = 3

    with patch.object(limiter, "_refill", AsyncMock()):
        # Act
        wait_time = await limiter.acquire(tokens=5)

    # Assert
    # Need 2 more tokens at rate 10 per period 1.0
    assert wait_time == pytest.approx(0.2)
    assert limiter.tokens == -2


@pytest.mark.asyncio
async def test_zero_burst_still_paces():
    """Test that a limit too small for a burst admits requests one at a time."""
    # Arrange
    limiter = TokenBucketRateLimiter.from_raw_limit("1")

    with patch.object(limiter, "_refill", AsyncMock()):
        # Act
        first = await limiter.acquire()
        second = await limiter.acquire()

    # Assert
    assert limiter.burst == 0
    assert first == pytest.approx(1 / 0.66)
    assert second == pytest.approx(2 / 0.66)


@pytest.mark.asyncio
async def test_concurrent_callers_queue_behind_each_other():
    """Test that callers beyond the burst get increasing waits."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=10, period=1.0)

    with patch.object(limiter, "_refill", AsyncMock()):
        # Act
        waits = await asyncio.gather(*(limiter.acquire() for _ in range(15)))

    # Assert
    assert waits.count(0.0) == 10
    assert sorted(w for w in waits if w > 0) == pytest.approx([0.1, 0.2, 0.3, 0.4, 0.5])


@pytest.mark.asyncio
async def test_cancelled_wait_returns_reservation():
    """Test that abandoning a wait hands the token back."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=1, period=1.0)
    limiter.tokens = 0

    with (
        patch.object(limiter, "_refill", AsyncMock()),
        patch("asyncio.sleep", AsyncMock(side_effect=asyncio.CancelledError)),
    ):
        # Act
        with pytest.raises(asyncio.CancelledError):
            await limiter.wait()

    # Assert
    assert limiter.tokens == 0


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_execute_no_wait():
    """Test that execute calls function immediately when tokens are available."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=10, period=1.0)
    mock_func = AsyncMock(return_value="result")

    with patch.object(limiter, "acquire", AsyncMock(return_value=0.0)):
        # Act
        result = await limiter.execute(mock_func, "arg1", "arg2", kwarg1="value1")

    # Assert
    mock_func.assert_called_once_with("arg1", "arg2", kwarg1="value1")
    assert result == "result"


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_execute_with_wait():
    """Test that execute waits before calling function when tokens are not available."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=10, period=1.0)
    mock_sleep = AsyncMock()
    mock_func = AsyncMock(return_value="result")

    with patch.object(limiter, "acquire", AsyncMock(return_value=0.2)):
        # Act
        with patch("asyncio.sleep", mock_sleep):
            result = await limiter.execute(mock_func, "arg1", "arg2", kwarg1="value1")

    # Assert
    mock_sleep.assert_called_once_with(0.2)
    mock_func.assert_called_once_with("arg1", "arg2", kwarg1="value1")
    assert result == "result"


@pytest.mark.asyncio
async def test_token_bucket_rate_limiter_integration():
    """Integration test for TokenBucketRateLimiter."""
    # Arrange
    limiter = TokenBucketRateLimiter(rate=10, period=1.0)

    # Act & Assert
    # First 10 calls should not be rate limited
    for _ in range(10):
        wait_time = await limiter.acquire()
        assert wait_time == 0.0

    # 11th call should be rate limited
    wait_time = await limiter.acquire()
    assert wait_time > 0.0
    assert wait_time <= 0.1
