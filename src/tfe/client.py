# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
The TFE API client.

This module provides the Client class, which composes the query and body
encoders, the rate limiter, the retry policy, the status classifier and
the response decoder into a single request/response round trip that every
resource module builds on.
"""

import asyncio
import io
import logging
import os
from dataclasses import dataclass
from typing import Any, TypeVar
from urllib.parse import urljoin, urlsplit, urlunsplit

import aiohttp
from multidict import CIMultiDict
from pydantic import BaseModel

from .config import ClientConfig
from .decoding import ByteSink, unmarshal_response, write_response
from .encoding import serialize_request_body
from .errors import APIConnectionError, APITimeoutError, RequestCancelledError
from .messages import Request, Response
from .query import encode_query_params
from .rate_limiter import TokenBucketRateLimiter
from .resilience import Attempt, RetryPolicy
from .resources import (
    AdminRuns,
    IPRanges,
    Organizations,
    RegistryProviders,
    RegistryProviderVersions,
    Workspaces,
)
from .slug import pack_contents
from .status import check_response_code

M = TypeVar("M", bound=BaseModel)
logger = logging.getLogger(__name__)

HEADER_RATE_LIMIT = "X-RateLimit-Limit"
HEADER_API_VERSION = "TFP-API-Version"
PING_ENDPOINT = "ping"

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"

__all__ = ("Client", "RawAPIMetadata")


@dataclass
class RawAPIMetadata:
    """Values the server reports in the headers of the ping endpoint."""

    api_version: str = ""
    rate_limit: str = ""


class Client:
    """
    Async client for the TFE API.

    The client reads the server's rate limit and API version once, when it
    connects, and then paces, retries and classifies every request it
    sends.

    Example:
        ```python
        async with Client(token="...") as client:
            runs = await client.admin_runs.list()

        # Or manually:
        client = await Client.create(address="https://tfe.example.com", token="...")
        request = client.new_request("GET", "admin/runs", options)
        runs = await client.do(request, AdminRunList)
        await client.aclose()
        ```
    """

    def __init__(self, config: ClientConfig | None = None, **kwargs: Any):
        """
        Initialize the client.

        Args:
            config: The client configuration. When omitted, one is built
                from ``kwargs`` and the environment.
            **kwargs: ``ClientConfig`` fields, overriding ``config``.
        """
        if config is None:
            config = ClientConfig(**kwargs)
        elif kwargs:
            config = ClientConfig.model_validate({**dict(config), **kwargs})

        self.config = config
        self.base_url = config.base_url
        self.headers = CIMultiDict(config.headers)
        self._token = config.token.get_secret_value()
        self._session = config.http_session
        self._owns_session = config.http_session is None
        self._remote_api_version = ""

        self.limiter = TokenBucketRateLimiter.unlimited()
        self.retry_policy = RetryPolicy(
            retry_wait_min=config.retry_wait_min,
            retry_wait_max=config.retry_wait_max,
            max_retries=config.max_retries,
            retry_server_errors=config.retry_server_errors,
            retry_log_hook=config.retry_log_hook,
        )

        self.admin_runs = AdminRuns(self)
        self.ip_ranges = IPRanges(self)
        self.organizations = Organizations(self)
        self.registry_providers = RegistryProviders(self)
        self.registry_provider_versions = RegistryProviderVersions(self)
        self.workspaces = Workspaces(self)

        logger.debug(f"Initialized Client for {self.base_url}")

    @classmethod
    async def create(cls, config: ClientConfig | None = None, **kwargs: Any) -> "Client":
        """Construct a client and connect it to the server."""
        client = cls(config, **kwargs)
        try:
            return await client.connect()
        except BaseException:
            await client.aclose()
            raise

    @property
    def remote_api_version(self) -> str:
        """
        The API version the server declared when the client connected.

        Older servers do not report a version, in which case this is an
        empty string.
        """
        return self._remote_api_version

    def set_fake_remote_api_version(self, fake_api_version: str) -> None:
        """Override the reported API version. Intended for tests only."""
        self._remote_api_version = fake_api_version

    @property
    def retry_server_errors(self) -> bool:
        return self.retry_policy.retry_server_errors

    @retry_server_errors.setter
    def retry_server_errors(self, retry: bool) -> None:
        self.retry_policy.retry_server_errors = retry

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or (self._owns_session and self._session.closed):
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
        return self._session

    async def connect(self) -> "Client":
        """
        Read the server's metadata and configure the rate limiter.

        Returns:
            The client itself.
        """
        meta = await self._get_raw_api_metadata()
        self.limiter = TokenBucketRateLimiter.from_raw_limit(meta.rate_limit)
        self._remote_api_version = meta.api_version
        logger.debug(
            f"Connected to {self.base_url} (api version: {meta.api_version or 'unknown'}, "
            f"rate limit: {meta.rate_limit or 'none'})"
        )
        return self

    async def _get_raw_api_metadata(self) -> RawAPIMetadata:
        url = urljoin(self.base_url, PING_ENDPOINT)
        headers = CIMultiDict(self.headers)
        headers["Accept"] = JSONAPI_MEDIA_TYPE
        headers["Authorization"] = f"Bearer {self._token}"

        # A single request, neither paced nor retried
        try:
            async with self._get_session().request("GET", url, headers=headers) as resp:
                return RawAPIMetadata(
                    api_version=resp.headers.get(HEADER_API_VERSION, ""),
                    rate_limit=resp.headers.get(HEADER_RATE_LIMIT, ""),
                )
        except TimeoutError as e:
            raise APITimeoutError(f"GET {url} timed out") from e
        except aiohttp.ClientError as e:
            raise APIConnectionError(f"GET {url}: {e}") from e

    def new_request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Request:
        """
        Create an API request with proper headers and serialization.

        A relative path is resolved against the base URL and should not
        start with a slash; a leading slash bypasses the base path, and an
        absolute URL is used as given.

        Args:
            method: ``GET``, ``POST``, ``PATCH``, ``DELETE`` or ``PUT``.
            path: The endpoint path.
            payload: Query options for GET, a model or list of models for
                POST/PATCH/DELETE, raw bytes or a binary stream for PUT.
            headers: Request specific headers.

        Returns:
            The materialized request.
        """
        method = method.upper()
        url = urljoin(self.base_url, path)

        req_headers = CIMultiDict()
        req_headers["Authorization"] = f"Bearer {self._token}"

        body = None
        if method == "GET":
            req_headers["Accept"] = JSONAPI_MEDIA_TYPE
            if payload is not None:
                parts = urlsplit(url)
                url = urlunsplit(parts._replace(query=encode_query_params(payload)))
        elif method in ("DELETE", "PATCH", "POST"):
            req_headers["Accept"] = JSONAPI_MEDIA_TYPE
            req_headers["Content-Type"] = JSONAPI_MEDIA_TYPE
            if payload is not None:
                body = serialize_request_body(payload)
        elif method == "PUT":
            req_headers["Accept"] = "application/json"
            req_headers["Content-Type"] = "application/octet-stream"
            body = _read_binary(payload)
        else:
            raise ValueError(f"unsupported method: {method}")

        merged = CIMultiDict(self.headers)
        merged.update(req_headers)
        if headers:
            merged.update(headers)

        return Request(method=method, url=url, headers=merged, body=body)

    async def _send(self, request: Request) -> Response:
        try:
            async with self._get_session().request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body,
            ) as resp:
                body = await resp.read()
                return Response(
                    status=resp.status,
                    headers=resp.headers,
                    body=body,
                    request=request,
                    reason=resp.reason,
                )
        except TimeoutError as e:
            raise APITimeoutError(f"{request.method} {request.url} timed out") from e
        except aiohttp.ClientError as e:
            raise APIConnectionError(f"{request.method} {request.url}: {e}") from e

    async def _send_with_retries(self, request: Request) -> Response:
        attempt = Attempt()
        while True:
            attempt.response, attempt.error = None, None
            try:
                # Every attempt, retries included, takes its own token
                attempt.response = await self.limiter.execute(self._send, request)
            except APIConnectionError as e:
                attempt.error = e

            if not self.retry_policy.check_retry(attempt):
                break
            if self.retry_policy.exhausted(attempt):
                logger.debug(
                    f"Maximum retries ({self.retry_policy.max_retries}) reached for "
                    f"{request.method} {request.url}"
                )
                break

            wait = self.retry_policy.backoff(attempt)
            logger.debug(
                f"Retry {attempt.number + 1}/{self.retry_policy.max_retries} for "
                f"{request.method} {request.url} after {wait:.2f}s delay "
                f"({attempt.elapsed:.2f}s elapsed)"
            )
            await asyncio.sleep(wait)
            attempt.number += 1

        if attempt.error is not None:
            raise attempt.error
        return attempt.response

    async def send(self, request: Request, timeout: float | None = None) -> Response:
        """
        Send a request with pacing and retries, without classifying the response.

        Args:
            request: The request to send.
            timeout: Deadline in seconds for the whole call, retries included.

        Raises:
            RequestCancelledError: If the deadline fires.
            APIConnectionError: If the request could not be sent.
        """
        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                return await self._send_with_retries(request)
        except TimeoutError as e:
            if deadline.expired():
                raise RequestCancelledError(
                    f"{request.method} {request.url} cancelled: deadline of {timeout}s exceeded"
                ) from e
            raise

    async def do(
        self,
        request: Request,
        into: type[M] | ByteSink | None = None,
        timeout: float | None = None,
    ) -> M | ByteSink | None:
        """
        Send a request and decode its response.

        Args:
            request: The request to send.
            into: A model class to decode the response into, a byte sink
                receiving the raw body, or None to discard the body.
            timeout: Deadline in seconds for the whole call, retries included.

        Returns:
            The decoded model, the byte sink, or None.

        Raises:
            APIClientError: The classified error for a non-2xx response,
                or the transport, cancellation or decoding failure.
        """
        response = await self.send(request, timeout=timeout)
        check_response_code(response)

        if into is None:
            return None
        if not isinstance(into, type) and isinstance(into, ByteSink):
            return write_response(response.body, into)
        return unmarshal_response(response.body, into)

    async def upload(
        self, url: str, path: str | os.PathLike, timeout: float | None = None
    ) -> None:
        """
        Pack a directory and upload the archive to ``url``.

        Raises:
            PackError: If the directory cannot be packed.
        """
        body = await asyncio.to_thread(pack_contents, path)
        request = self.new_request("PUT", url, body)
        await self.do(request, timeout=timeout)

    async def aclose(self) -> None:
        """Close the HTTP session, unless it was supplied by the caller."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "Client":
        """
        Enter the async context manager.

        Returns:
            The connected client.
        """
        try:
            return await self.connect()
        except BaseException:
            await self.aclose()
            raise

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit the async context manager and release resources."""
        await self.aclose()


def _read_binary(payload: Any) -> bytes | None:
    if payload is None:
        return None
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    if isinstance(payload, io.IOBase) or hasattr(payload, "read"):
        # Read once so retried attempts resend the same bytes
        return payload.read()
    raise TypeError(f"PUT body must be bytes or a binary stream, not {type(payload).__name__}")
