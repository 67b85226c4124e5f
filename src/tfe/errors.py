# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Error classes for the TFE API client.

This module defines the error taxonomy raised by the transport core:
cancellation and connection failures, authentication and lookup errors,
the workspace lock conflicts the server reports as HTTP 409, request body
encoding errors, response shape errors, and generic request failures that
carry the server supplied messages.
"""

from typing import Any


class APIClientError(Exception):
    """Base exception for all API client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        """
        Initialize the API client error.

        Args:
            message: The error message.
            status_code: The HTTP status code, if applicable.
            headers: The response headers, if applicable.
            response_data: The decoded response payload, if applicable.
        """
        self.message = message
        self.status_code = status_code
        self.headers = headers or {}
        self.response_data = response_data or {}
        super().__init__(message)


class RequestCancelledError(APIClientError):
    """Exception raised when a call's deadline fires before it completes."""


class APIConnectionError(APIClientError):
    """Exception raised when the request could not be sent or answered."""


class APITimeoutError(APIConnectionError):
    """Exception raised when the underlying HTTP session times out."""


class UnauthorizedError(APIClientError):
    """Exception raised when the token is rejected (401)."""

    def __init__(self, message: str = "unauthorized", **kwargs: Any):
        super().__init__(message, status_code=401, **kwargs)


class ResourceNotFoundError(APIClientError):
    """Exception raised when a resource is not found (404)."""

    def __init__(self, message: str = "resource not found", **kwargs: Any):
        super().__init__(message, status_code=404, **kwargs)


class WorkspaceLockError(APIClientError):
    """Base class for the workspace lock conflicts reported as 409."""

    default_message = "workspace lock conflict"

    def __init__(self, message: str | None = None, **kwargs: Any):
        super().__init__(message or self.default_message, status_code=409, **kwargs)


class WorkspaceLockedError(WorkspaceLockError):
    """Exception raised when locking a workspace that is already locked."""

    default_message = "workspace already locked"


class WorkspaceNotLockedError(WorkspaceLockError):
    """Exception raised when unlocking a workspace that is not locked."""

    default_message = "workspace already unlocked"


class WorkspaceLockedByRunError(WorkspaceLockError):
    """Exception raised when a workspace is held by a run and cannot be unlocked."""

    default_message = "unable to unlock workspace locked by run"


class EncodingError(APIClientError):
    """Base class for request bodies that cannot be encoded."""


class InvalidRequestBodyError(EncodingError):
    """Exception raised when the body is not a model or a list of models."""

    def __init__(self, message: str = "body must be a model or a list of models", **kwargs: Any):
        super().__init__(message, **kwargs)


class InvalidStructFormatError(EncodingError):
    """Exception raised when a model mixes resource-envelope and plain JSON fields."""

    def __init__(
        self,
        message: str = "model fields must be all resource-envelope or all plain JSON",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)


class DecodeShapeError(APIClientError):
    """Exception raised when a destination model violates the items/pagination contract."""


class JSONAPIError(APIClientError):
    """Exception raised when a resource envelope cannot be read or written."""


class RequestFailedError(APIClientError):
    """Exception raised for any other non-2xx response."""


class RateLimitError(RequestFailedError):
    """Exception raised when the server keeps throttling after retries are spent."""

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        headers: dict[str, str] | None = None,
        response_data: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ):
        """
        Initialize the rate limit error.

        Args:
            message: The error message.
            status_code: The HTTP status code (default: 429).
            headers: The response headers, if applicable.
            response_data: The decoded response payload, if applicable.
            retry_after: Seconds until the server side limiter resets.
        """
        super().__init__(message, status_code, headers, response_data)
        self.retry_after = retry_after


class ServerError(RequestFailedError):
    """Exception raised when a server error occurs (>= 500)."""


class PackError(APIClientError):
    """Base class for failures while packing a directory for upload."""


class PathNotFoundError(PackError):
    """Exception raised when the upload path does not exist."""


class PathUnreadableError(PackError):
    """Exception raised when the upload path exists but cannot be read."""


class MissingDirectoryError(PackError):
    """Exception raised when the upload path is not a directory."""

    def __init__(self, message: str = "path needs to be an existing directory", **kwargs: Any):
        super().__init__(message, **kwargs)
