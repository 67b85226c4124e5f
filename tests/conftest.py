# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Shared fixtures for the client tests.

The HTTP session is a ``MagicMock`` specced on ``aiohttp.ClientSession``;
each call to ``session.request`` hands out the next queued fake response.
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import orjson
import pytest
from multidict import CIMultiDict, CIMultiDictProxy

from tfe import Client
from tfe.messages import Request, Response

ADDRESS = "https://tfe.example.com"
TOKEN = "secret-token"


def _encode(body) -> bytes:
    if body is None:
        return b""
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    return orjson.dumps(body)


@pytest.fixture
def make_http_response():
    """Factory for fake aiohttp responses usable with ``async with``."""

    def _make(status=200, body=None, headers=None, reason=None):
        resp = MagicMock()
        resp.status = status
        resp.reason = reason
        resp.headers = CIMultiDictProxy(CIMultiDict(headers or {}))
        resp.read = AsyncMock(return_value=_encode(body))
        resp.__aenter__ = AsyncMock(return_value=resp)
        resp.__aexit__ = AsyncMock(return_value=None)
        return resp

    return _make


@pytest.fixture
def mock_session():
    session = MagicMock(spec=aiohttp.ClientSession)
    session.closed = False
    session.close = AsyncMock()
    return session


@pytest.fixture
def make_client(mock_session):
    """Factory for a client bound to the fake session."""

    def _make(**kwargs):
        kwargs.setdefault("address", ADDRESS)
        kwargs.setdefault("token", TOKEN)
        kwargs.setdefault("http_session", mock_session)
        return Client(**kwargs)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def make_response():
    """Factory for completed ``Response`` envelopes, for classifier tests."""

    def _make(status, body=None, method="GET", path="/api/v2/ping", headers=None, reason=None):
        request = Request(method=method, url=f"{ADDRESS}{path}")
        return Response(
            status=status,
            headers=CIMultiDict(headers or {}),
            body=_encode(body),
            request=request,
            reason=reason,
        )

    return _make
