# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from datetime import datetime
from typing import TYPE_CHECKING, Annotated
from urllib.parse import quote

from pydantic import BaseModel

from ..jsonapi import Attr, Primary

if TYPE_CHECKING:
    from ..client import Client


class Organization(BaseModel):
    name: Annotated[str, Primary("organizations")] = ""
    email: Annotated[str, Attr("email")] = ""
    external_id: Annotated[str, Attr("external-id")] = ""
    created_at: Annotated[datetime | None, Attr("created-at", iso8601=True)] = None


class Organizations:

    def __init__(self, client: "Client"):
        self.client = client

    async def read(self, organization: str) -> Organization:
        request = self.client.new_request(
            "GET", f"organizations/{quote(organization, safe='')}"
        )
        return await self.client.do(request, Organization)
