# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from typing import TYPE_CHECKING, Annotated, Any
from urllib.parse import quote

from pydantic import BaseModel, Field

from ..decoding import ListOptions, Pagination
from ..jsonapi import Attr, Links, Primary, Relation
from .registry_providers import RegistryName, RegistryProvider

if TYPE_CHECKING:
    from ..client import Client


class RegistryProviderID(BaseModel):
    """The multi-part key addressing a registry provider."""

    organization_name: str
    registry_name: RegistryName
    namespace: str
    name: str

    @property
    def path(self) -> str:
        return "/".join(
            quote(part, safe="")
            for part in (
                "organizations",
                self.organization_name,
                "registry-providers",
                self.registry_name.value,
                self.namespace,
                self.name,
            )
        )


class RegistryProviderPlatform(BaseModel):
    id: Annotated[str, Primary("registry-provider-platforms")] = ""
    os: Annotated[str, Attr("os")] = ""
    arch: Annotated[str, Attr("arch")] = ""
    filename: Annotated[str, Attr("filename")] = ""
    shasum: Annotated[str, Attr("shasum")] = ""

    links: Annotated[dict[str, Any] | None, Links()] = None


class RegistryProviderVersion(BaseModel):
    id: Annotated[str, Primary("registry-provider-versions")] = ""
    version: Annotated[str, Attr("version")] = ""
    key_id: Annotated[str, Attr("key-id")] = ""
    protocols: Annotated[list[str], Attr("protocols", omitempty=True)] = Field(
        default_factory=list
    )
    created_at: Annotated[str, Attr("created-at")] = ""
    updated_at: Annotated[str, Attr("updated-at")] = ""

    # Relations
    registry_provider: Annotated[
        RegistryProvider | None, Relation("registry-provider")
    ] = None
    registry_provider_platforms: Annotated[
        list[RegistryProviderPlatform], Relation("registry-provider-platforms")
    ] = Field(default_factory=list)

    links: Annotated[dict[str, Any] | None, Links()] = None


class RegistryProviderVersionList(BaseModel):
    items: list[RegistryProviderVersion] = Field(default_factory=list)
    pagination: Pagination | None = None


class RegistryProviderVersionListOptions(ListOptions):
    pass


class RegistryProviderVersionCreateOptions(BaseModel):
    type: Annotated[str, Primary("registry-provider-versions")] = ""

    version: Annotated[str, Attr("version")] = ""
    key_id: Annotated[str, Attr("key-id")] = ""
    protocols: Annotated[list[str], Attr("protocols", omitempty=True)] = Field(
        default_factory=list
    )


class RegistryProviderVersions:

    def __init__(self, client: "Client"):
        self.client = client

    async def list(
        self,
        provider_id: RegistryProviderID,
        options: RegistryProviderVersionListOptions | None = None,
    ) -> RegistryProviderVersionList:
        """List the versions of a registry provider."""
        request = self.client.new_request("GET", f"{provider_id.path}/versions", options)
        return await self.client.do(request, RegistryProviderVersionList)

    async def create(
        self,
        provider_id: RegistryProviderID,
        options: RegistryProviderVersionCreateOptions,
    ) -> RegistryProviderVersion:
        """Create a version of a registry provider."""
        request = self.client.new_request("POST", f"{provider_id.path}/versions", options)
        return await self.client.do(request, RegistryProviderVersion)
