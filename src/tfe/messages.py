# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Request and response envelopes passed between the transport components.
"""

from dataclasses import dataclass, field
from http import HTTPStatus
from urllib.parse import urlsplit

from multidict import CIMultiDict, CIMultiDictProxy


@dataclass
class Request:
    """A fully materialized outbound request."""

    method: str
    url: str
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    body: bytes | None = None

    @property
    def path(self) -> str:
        return urlsplit(self.url).path


@dataclass
class Response:
    """
    A completed round trip.

    The body is read in full when the attempt completes, so classification
    and decoding can both consume it.
    """

    status: int
    headers: CIMultiDictProxy | CIMultiDict
    body: bytes
    request: Request
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    @property
    def status_line(self) -> str:
        """The status code and reason phrase, e.g. ``404 Not Found``."""
        reason = self.reason
        if not reason:
            try:
                reason = HTTPStatus(self.status).phrase
            except ValueError:
                reason = ""
        return f"{self.status} {reason}".rstrip()
