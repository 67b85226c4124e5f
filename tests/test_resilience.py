# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the retry policy and backoff strategies.
"""

from unittest.mock import MagicMock, patch

import pytest

from tfe.errors import APIConnectionError
from tfe.resilience import (
    Attempt,
    RetryPolicy,
    linear_jitter_backoff,
    parse_rate_reset,
    rate_limit_backoff,
)


@pytest.mark.parametrize(
    "status, retry_server_errors, expected",
    [
        (200, False, False),
        (404, False, False),
        (429, False, True),
        (429, True, True),
        (500, False, False),
        (500, True, True),
        (503, True, True),
        (409, True, False),
    ],
)
def test_check_retry_responses(make_response, status, retry_server_errors, expected):
    """Test which responses are retried."""
    # Arrange
    policy = RetryPolicy(retry_server_errors=retry_server_errors)
    attempt = Attempt(response=make_response(status))

    # Act & Assert
    assert policy.check_retry(attempt) is expected


@pytest.mark.parametrize("retry_server_errors", [False, True])
def test_check_retry_transport_errors(retry_server_errors):
    """Test that transport errors are retried only when server errors are."""
    policy = RetryPolicy(retry_server_errors=retry_server_errors)
    attempt = Attempt(error=APIConnectionError("connection reset"))

    assert policy.check_retry(attempt) is retry_server_errors


def test_exhausted_counts_retries_after_first_attempt():
    """Test that max_retries bounds the retries, not the attempts."""
    policy = RetryPolicy(max_retries=30)

    assert not policy.exhausted(Attempt(number=29))
    assert policy.exhausted(Attempt(number=30))


def test_parse_rate_reset(make_response):
    """Test that the reset header is read as seconds."""
    assert parse_rate_reset(make_response(429, headers={"X-RateLimit-Reset": "2.5"})) == 2.5
    assert parse_rate_reset(make_response(429, headers={"X-RateLimit-Reset": "soon"})) is None
    assert parse_rate_reset(make_response(429)) is None
    assert parse_rate_reset(None) is None


def test_rate_limit_backoff_waits_for_reset(make_response):
    """Test that a 429 waits for the reset plus a bounded jitter."""
    # Arrange
    response = make_response(429, headers={"X-RateLimit-Reset": "2"})

    # Act
    waits = [rate_limit_backoff(0.1, 0.4, response) for _ in range(200)]

    # Assert
    assert all(2.0 <= w < 2.3 for w in waits)


@pytest.mark.parametrize("reset", [None, "0.05", "-1", "garbage"])
def test_rate_limit_backoff_falls_back_to_min(make_response, reset):
    """Test that a short, negative, missing or unparseable reset uses min_wait."""
    headers = {"X-RateLimit-Reset": reset} if reset is not None else {}
    response = make_response(429, headers=headers)

    waits = [rate_limit_backoff(0.1, 0.4, response) for _ in range(200)]

    assert all(0.1 <= w < 0.4 for w in waits)


def test_rate_limit_backoff_jitter_bounds(make_response):
    """Test the extremes of the jitter."""
    response = make_response(429, headers={"X-RateLimit-Reset": "2"})

    with patch("random.random", return_value=0.0):
        assert rate_limit_backoff(0.1, 0.4, response) == pytest.approx(2.0)
    with patch("random.random", return_value=0.5):
        assert rate_limit_backoff(0.1, 0.4, response) == pytest.approx(2.15)


def test_linear_jitter_backoff_grows_with_attempts():
    """Test that the jittered base is multiplied by attempt + 1."""
    # Act & Assert
    with patch("random.random", return_value=0.5):
        assert linear_jitter_backoff(0.7, 0.9, 0) == pytest.approx(0.8)
        assert linear_jitter_backoff(0.7, 0.9, 2) == pytest.approx(2.4)

    for attempt_num in range(5):
        wait = linear_jitter_backoff(0.7, 0.9, attempt_num)
        assert 0.7 * (attempt_num + 1) <= wait < 0.9 * (attempt_num + 1)


def test_linear_jitter_backoff_without_range():
    """Test that equal bounds disable jitter."""
    assert linear_jitter_backoff(0.5, 0.5, 3) == pytest.approx(2.0)
    assert linear_jitter_backoff(0.5, 0.1, 0) == pytest.approx(0.5)


def test_backoff_uses_rate_limit_strategy_for_429(make_response):
    """Test that throttled responses use the configured wait bounds."""
    policy = RetryPolicy(retry_wait_min=0.1, retry_wait_max=0.4)
    attempt = Attempt(number=5, response=make_response(429, headers={"X-RateLimit-Reset": "1"}))

    wait = policy.backoff(attempt)

    assert 1.0 <= wait < 1.3


def test_backoff_uses_linear_strategy_for_server_errors(make_response):
    """Test that server errors and transport errors wait linearly."""
    policy = RetryPolicy(retry_server_errors=True)

    server_wait = policy.backoff(Attempt(number=1, response=make_response(502)))
    transport_wait = policy.backoff(Attempt(number=0, error=APIConnectionError("boom")))

    assert 1.4 <= server_wait < 1.8
    assert 0.7 <= transport_wait < 0.9


def test_backoff_calls_log_hook(make_response):
    """Test that the hook sees the attempt number and response before each wait."""
    # Arrange
    hook = MagicMock()
    policy = RetryPolicy(retry_log_hook=hook)
    response = make_response(429)

    # Act
    policy.backoff(Attempt(number=3, response=response))

    # Assert
    hook.assert_called_once_with(3, response)


def test_attempt_elapsed():
    """Test that elapsed time is measured from the attempt start."""
    with patch("time.monotonic", return_value=12.0):
        attempt = Attempt(started=10.0)
        assert attempt.elapsed == pytest.approx(2.0)
