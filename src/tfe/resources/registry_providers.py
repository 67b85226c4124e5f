# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from enum import Enum
from typing import TYPE_CHECKING, Annotated
from urllib.parse import quote

from pydantic import BaseModel

from ..jsonapi import Attr, Primary, Relation
from .organizations import Organization

if TYPE_CHECKING:
    from ..client import Client


class RegistryName(str, Enum):
    PRIVATE = "private"
    PUBLIC = "public"


class RegistryProviderPermissions(BaseModel):
    can_delete: Annotated[bool, Attr("can-delete")] = False


class RegistryProvider(BaseModel):
    id: Annotated[str, Primary("registry-providers")] = ""
    namespace: Annotated[str, Attr("namespace")] = ""
    name: Annotated[str, Attr("name")] = ""
    registry_name: Annotated[RegistryName | None, Attr("registry-name")] = None
    permissions: Annotated[
        RegistryProviderPermissions | None, Attr("permissions")
    ] = None
    created_at: Annotated[str, Attr("created-at")] = ""
    updated_at: Annotated[str, Attr("updated-at")] = ""

    # Relations
    organization: Annotated[Organization | None, Relation("organization")] = None


class RegistryProviderCreateOptions(BaseModel):
    # Sets the resource type of the request document; never user supplied.
    type: Annotated[str, Primary("registry-providers")] = ""

    namespace: Annotated[str | None, Attr("namespace")] = None
    name: Annotated[str | None, Attr("name")] = None
    registry_name: Annotated[RegistryName | None, Attr("registry-name")] = None


class RegistryProviders:

    def __init__(self, client: "Client"):
        self.client = client

    async def create(
        self, organization: str, options: RegistryProviderCreateOptions
    ) -> RegistryProvider:
        """Create a registry provider in an organization."""
        request = self.client.new_request(
            "POST",
            f"organizations/{quote(organization, safe='')}/registry-providers",
            options,
        )
        return await self.client.do(request, RegistryProvider)
