# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Retry policy for API requests.

This module decides, after every attempt of a logical request, whether the
request is sent again and how long to wait first. Throttled responses
(429) are always retried and wait for the server's limiter to reset;
transport errors and server errors (>= 500) are retried only when server
error retries are enabled.
"""

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .messages import Response

logger = logging.getLogger(__name__)

HEADER_RATE_RESET = "X-RateLimit-Reset"

RetryLogHook = Callable[[int, Response | None], None]

__all__ = (
    "Attempt",
    "RetryLogHook",
    "RetryPolicy",
    "linear_jitter_backoff",
    "parse_rate_reset",
    "rate_limit_backoff",
)


@dataclass
class Attempt:
    """State of one logical request's retry loop."""

    number: int = 0
    response: Response | None = None
    error: BaseException | None = None
    started: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started


def parse_rate_reset(response: Response | None) -> float | None:
    """Return the ``X-RateLimit-Reset`` seconds of a response, if present and numeric."""
    if response is None:
        return None
    raw = response.headers.get(HEADER_RATE_RESET)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.debug(f"Ignoring unparseable {HEADER_RATE_RESET} header: {raw!r}")
        return None


def rate_limit_backoff(
    min_wait: float, max_wait: float, response: Response | None
) -> float:
    """
    Compute the wait after a throttled response.

    The wait is the reset time reported by the server, when it is longer
    than ``min_wait``, plus a jitter in ``[0, max_wait - min_wait)`` so that
    clients throttled together do not retry together.
    """
    # This is not used for cryptographic purposes, just for jitter
    jitter = random.random() * (max_wait - min_wait)  # noqa: S311

    reset = parse_rate_reset(response)
    if reset is not None and reset > 0 and reset > min_wait:
        min_wait = reset

    return min_wait + jitter


def linear_jitter_backoff(min_wait: float, max_wait: float, attempt_num: int) -> float:
    """
    Compute a linearly growing wait with jitter.

    ``attempt_num`` starts at zero; the jittered base in
    ``[min_wait, max_wait)`` is multiplied by ``attempt_num + 1``.
    """
    attempt_num += 1
    if max_wait <= min_wait:
        return min_wait * attempt_num

    # This is not used for cryptographic purposes, just for jitter
    jitter = random.random() * (max_wait - min_wait)  # noqa: S311
    return (min_wait + jitter) * attempt_num


class RetryPolicy:
    """
    Retry decisions and backoff for the transport's retry loop.

    Example:
        ```python
        policy = RetryPolicy(retry_server_errors=True)

        if policy.check_retry(attempt):
            await asyncio.sleep(policy.backoff(attempt))
        ```
    """

    SERVICE_WAIT_MIN = 0.7
    SERVICE_WAIT_MAX = 0.9

    def __init__(
        self,
        retry_wait_min: float = 0.1,
        retry_wait_max: float = 0.4,
        max_retries: int = 30,
        retry_server_errors: bool = False,
        retry_log_hook: RetryLogHook | None = None,
    ):
        """
        Initialize the retry policy.

        Args:
            retry_wait_min: Lower bound in seconds for throttled waits.
            retry_wait_max: Upper bound in seconds of the throttle jitter.
            max_retries: Maximum number of retries after the first attempt.
            retry_server_errors: Also retry transport errors and >= 500 responses.
            retry_log_hook: Called with the attempt number and response
                before every backoff.
        """
        self.retry_wait_min = retry_wait_min
        self.retry_wait_max = retry_wait_max
        self.max_retries = max_retries
        self.retry_server_errors = retry_server_errors
        self.retry_log_hook = retry_log_hook

        logger.debug(
            f"Initialized RetryPolicy with wait=[{retry_wait_min}, {retry_wait_max}], "
            f"max_retries={max_retries}, retry_server_errors={retry_server_errors}"
        )

    def check_retry(self, attempt: Attempt) -> bool:
        """Return True when the completed attempt should be sent again."""
        if attempt.error is not None:
            return self.retry_server_errors
        response = attempt.response
        if response is None:
            return False
        if response.status == 429:
            return True
        return self.retry_server_errors and response.status >= 500

    def exhausted(self, attempt: Attempt) -> bool:
        return attempt.number >= self.max_retries

    def backoff(self, attempt: Attempt) -> float:
        """Return the seconds to wait before the next attempt."""
        if self.retry_log_hook is not None:
            self.retry_log_hook(attempt.number, attempt.response)

        if attempt.response is not None and attempt.response.status == 429:
            return rate_limit_backoff(
                self.retry_wait_min, self.retry_wait_max, attempt.response
            )

        return linear_jitter_backoff(
            self.SERVICE_WAIT_MIN, self.SERVICE_WAIT_MAX, attempt.number
        )
