# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
TFE API client.

This package provides an async client for the TFE JSON:API control plane
with server-seeded rate limiting, throttling-aware retries, dialect
inferring request encoding and shape-driven response decoding.
"""

from .client import Client, RawAPIMetadata
from .config import ClientConfig, Settings, settings
from .decoding import ListOptions, Pagination
from .errors import (
    APIClientError,
    APIConnectionError,
    APITimeoutError,
    DecodeShapeError,
    EncodingError,
    InvalidRequestBodyError,
    InvalidStructFormatError,
    JSONAPIError,
    MissingDirectoryError,
    PackError,
    PathNotFoundError,
    PathUnreadableError,
    RateLimitError,
    RequestCancelledError,
    RequestFailedError,
    ResourceNotFoundError,
    ServerError,
    UnauthorizedError,
    WorkspaceLockedByRunError,
    WorkspaceLockedError,
    WorkspaceLockError,
    WorkspaceNotLockedError,
)
from .jsonapi import Attr, Links, Primary, Relation
from .messages import Request, Response
from .rate_limiter import TokenBucketRateLimiter
from .resilience import Attempt, RetryPolicy

__all__ = [
    "APIClientError",
    "APIConnectionError",
    "APITimeoutError",
    "Attempt",
    "Attr",
    "Client",
    "ClientConfig",
    "DecodeShapeError",
    "EncodingError",
    "InvalidRequestBodyError",
    "InvalidStructFormatError",
    "JSONAPIError",
    "Links",
    "ListOptions",
    "MissingDirectoryError",
    "PackError",
    "Pagination",
    "PathNotFoundError",
    "PathUnreadableError",
    "Primary",
    "RateLimitError",
    "RawAPIMetadata",
    "Relation",
    "Request",
    "RequestCancelledError",
    "RequestFailedError",
    "ResourceNotFoundError",
    "Response",
    "RetryPolicy",
    "ServerError",
    "Settings",
    "TokenBucketRateLimiter",
    "UnauthorizedError",
    "WorkspaceLockError",
    "WorkspaceLockedByRunError",
    "WorkspaceLockedError",
    "WorkspaceNotLockedError",
    "settings",
]
