# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Rate limiter implementation using the token bucket algorithm.

This module provides the TokenBucketRateLimiter class, which paces
outbound API requests. The client seeds it from the rate limit the server
reports on its ping endpoint: two thirds of the limit become the steady
rate and one third becomes the burst allowance.
"""

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

RATE_SHARE = 0.66
BURST_SHARE = 0.33


class TokenBucketRateLimiter:
    """
    Rate limiter using the token bucket algorithm.

    The token bucket algorithm allows for controlled bursts of requests
    while maintaining a long-term rate limit. Tokens are added to the
    bucket at a constant rate, and each request consumes one token.
    A request that finds the bucket empty reserves its token anyway and
    waits out the deficit, so concurrent callers queue up behind each
    other instead of all waking at once.

    A limiter with an infinite rate never blocks.

    Example:
        ```python
        # Seed from the server reported limit
        limiter = TokenBucketRateLimiter.from_raw_limit("30")

        # Execute a function with rate limiting
        result = await limiter.execute(my_async_function, arg1, kwarg1=value1)
        ```
    """

    def __init__(
        self, rate: float, period: float = 1.0, max_tokens: float | None = None
    ):
        """
        Initialize the rate limiter.

        Args:
            rate: Maximum number of tokens per period, or ``math.inf``.
            period: Time period in seconds.
            max_tokens: Maximum token bucket capacity (defaults to rate).
        """
        self.rate = rate
        self.period = period
        self.max_tokens = max_tokens if max_tokens is not None else rate
        self.tokens = self.max_tokens
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

        logger.debug(
            f"Initialized TokenBucketRateLimiter with rate={rate}, "
            f"period={period}, max_tokens={self.max_tokens}"
        )

    @classmethod
    def unlimited(cls) -> "TokenBucketRateLimiter":
        return cls(rate=math.inf, max_tokens=0)

    @classmethod
    def from_raw_limit(cls, raw_limit: str | None) -> "TokenBucketRateLimiter":
        """
        Build a limiter from the raw ``X-RateLimit-Limit`` header value.

        An absent, unparseable or non-positive value disables limiting.
        Otherwise the steady rate is 0.66 x limit per second and the burst
        is floor(0.33 x limit).
        """
        try:
            limit = float(raw_limit) if raw_limit else 0.0
        except ValueError:
            limit = 0.0

        if not limit > 0 or math.isinf(limit):
            logger.debug(f"Rate limiting disabled (raw limit: {raw_limit!r})")
            return cls.unlimited()

        return cls(rate=limit * RATE_SHARE, max_tokens=int(limit * BURST_SHARE))

    @property
    def is_unlimited(self) -> bool:
        return math.isinf(self.rate)

    @property
    def burst(self) -> int:
        return int(self.max_tokens)

    async def _refill(self) -> None:
        """
        Refill tokens based on elapsed time.

        This method calculates the number of tokens to add based on the
        time elapsed since the last refill, and adds them to the bucket
        up to the maximum capacity.
        """
        now = time.monotonic()
        elapsed = now - self.last_refill
        new_tokens = elapsed * (self.rate / self.period)

        if new_tokens > 0:
            self.tokens = min(self.tokens + new_tokens, self.max_tokens)
            self.last_refill = now
            logger.debug(
                f"Refilled {new_tokens:.2f} tokens, current tokens: {self.tokens:.2f}"
            )

    async def acquire(self, tokens: float = 1.0) -> float:
        """
        Reserve tokens from the bucket.

        Args:
            tokens: Number of tokens to acquire.

        Returns:
            Wait time in seconds before the reserved tokens may be used.
            Returns 0.0 if tokens are immediately available.
        """
        if self.is_unlimited:
            return 0.0

        async with self._lock:
            await self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                logger.debug(f"Acquired {tokens} tokens, remaining: {self.tokens:.2f}")
                return 0.0

            # Reserve the tokens now and wait for the deficit to refill
            deficit = tokens - self.tokens
            wait_time = deficit * self.period / self.rate
            self.tokens -= tokens

            logger.debug(
                f"Not enough tokens (requested: {tokens}, deficit: {deficit:.2f}), "
                f"wait time: {wait_time:.2f}s"
            )

            return wait_time

    async def wait(self) -> None:
        """
        Block until a token is available.

        Cancelling the waiting task abandons the wait; the request it was
        gating is never sent.
        """
        wait_time = await self.acquire()

        if wait_time > 0:
            logger.debug(f"Rate limited: waiting {wait_time:.2f}s before execution")
            try:
                await asyncio.sleep(wait_time)
            except asyncio.CancelledError:
                # Hand the reservation back for the callers queued behind us
                self.tokens = min(self.tokens + 1.0, self.max_tokens)
                raise

    async def execute(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """
        Execute a coroutine with rate limiting.

        Args:
            func: Async function to execute.
            *args: Positional arguments for func.
            **kwargs: Keyword arguments for func.

        Returns:
            Result from func.
        """
        await self.wait()

        logger.debug(f"Executing rate-limited function: {func.__name__}")
        return await func(*args, **kwargs)
