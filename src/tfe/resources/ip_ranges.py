# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
IP ranges of the service.

Unlike every other endpoint this one answers in plain JSON and supports
conditional requests, so it reads the raw response instead of going
through the resource-envelope decoder.
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ..errors import RequestFailedError

if TYPE_CHECKING:
    from ..client import Client


class IPRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api: list[str] = Field(default_factory=list, alias="api")
    notifications: list[str] = Field(default_factory=list, alias="notifications")
    sentinel: list[str] = Field(default_factory=list, alias="sentinel")
    vcs: list[str] = Field(default_factory=list, alias="vcs")


class IPRanges:
    """Read the IP ranges of the platform's outbound services."""

    def __init__(self, client: "Client"):
        self.client = client

    async def read(self, modified_since: str = "") -> IPRange | None:
        """
        Read the IP ranges.

        Args:
            modified_since: An HTTP date; when the ranges have not changed
                since then, None is returned.
        """
        headers = {"If-Modified-Since": modified_since} if modified_since else None
        request = self.client.new_request("GET", "/api/meta/ip-ranges", headers=headers)
        response = await self.client.send(request)

        if response.status == 304:
            return None
        if not response.ok:
            raise RequestFailedError(
                f"error HTTP response while retrieving IP ranges: {response.status}",
                status_code=response.status,
                headers=dict(response.headers),
            )
        return IPRange.model_validate_json(response.body)
