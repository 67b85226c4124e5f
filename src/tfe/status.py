# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Mapping of non-2xx responses to the client error taxonomy.

The server overloads 409 for several workspace lock conditions, so a 409
is further dispatched on the request path and, for unlock requests, on the
error messages in the payload.
"""

from typing import Any

import orjson
from pydantic import ValidationError

from .errors import (
    APIClientError,
    RateLimitError,
    RequestFailedError,
    ResourceNotFoundError,
    ServerError,
    UnauthorizedError,
    WorkspaceLockedByRunError,
    WorkspaceLockedError,
    WorkspaceNotLockedError,
)
from .jsonapi import unmarshal_errors
from .messages import Response
from .resilience import parse_rate_reset

__all__ = ("check_response_code", "classify_response", "decode_error_payload")

LOCKED_BY_RUN = "is locked by Run"


def decode_error_payload(body: bytes) -> list[str]:
    """
    Format the error objects of a response body as messages.

    Each message is the error's title, followed by a blank line and the
    detail when there is one.

    Raises:
        ValueError: If the body is not an error document or holds no errors.
    """
    errors = unmarshal_errors(body)
    if not errors:
        raise ValueError("error document holds no errors")

    messages = []
    for e in errors:
        title = e.title or ""
        messages.append(f"{title}\n\n{e.detail}" if e.detail else title)
    return messages


def _payload_messages(response: Response) -> list[str] | None:
    try:
        return decode_error_payload(response.body)
    except (ValidationError, ValueError):
        return None


def _response_data(response: Response) -> dict[str, Any] | None:
    try:
        data = orjson.loads(response.body)
    except orjson.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def classify_response(response: Response) -> APIClientError | None:
    """
    Return the error a response maps to, or None for a 2xx response.

    Args:
        response: The completed response, including the request it answers.
    """
    if response.ok:
        return None

    status = response.status
    headers = dict(response.headers)
    data = _response_data(response)
    context = {"headers": headers, "response_data": data}

    if status == 401:
        return UnauthorizedError(**context)
    if status == 404:
        return ResourceNotFoundError(**context)

    path = response.request.path
    if status == 409:
        if path.endswith("actions/lock"):
            return WorkspaceLockedError(**context)
        if path.endswith("actions/unlock"):
            messages = _payload_messages(response)
            if messages is None:
                return RequestFailedError(response.status_line, status, headers, data)
            if any(LOCKED_BY_RUN in m for m in messages):
                return WorkspaceLockedByRunError(**context)
            return WorkspaceNotLockedError(**context)
        if path.endswith("actions/force-unlock"):
            return WorkspaceNotLockedError(**context)

    messages = _payload_messages(response)
    message = "\n".join(messages) if messages else response.status_line

    if status == 429:
        return RateLimitError(
            message, status, headers, data, retry_after=parse_rate_reset(response)
        )
    if status >= 500:
        return ServerError(message, status, headers, data)
    return RequestFailedError(message, status, headers, data)


def check_response_code(response: Response) -> None:
    """
    Raise the mapped error for a non-2xx response.

    Raises:
        APIClientError: The classified error.
    """
    error = classify_response(response)
    if error is not None:
        raise error
