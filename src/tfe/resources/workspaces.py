# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Workspace reads and lock management.

Lock conflicts surface as ``WorkspaceLockedError``,
``WorkspaceNotLockedError`` and ``WorkspaceLockedByRunError``.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Annotated
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from ..jsonapi import Attr, Primary, Relation
from .organizations import Organization

if TYPE_CHECKING:
    from ..client import Client


class Workspace(BaseModel):
    id: Annotated[str, Primary("workspaces")] = ""
    name: Annotated[str, Attr("name")] = ""
    locked: Annotated[bool, Attr("locked")] = False
    auto_apply: Annotated[bool, Attr("auto-apply")] = False
    terraform_version: Annotated[str, Attr("terraform-version")] = ""
    working_directory: Annotated[str, Attr("working-directory")] = ""
    created_at: Annotated[datetime | None, Attr("created-at", iso8601=True)] = None

    # Relations
    organization: Annotated[Organization | None, Relation("organization")] = None


class WorkspaceLockOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reason: str | None = Field(default=None, alias="reason")


class Workspaces:
    """Workspace reads and lock management."""

    def __init__(self, client: "Client"):
        self.client = client

    async def read(self, organization: str, workspace: str) -> Workspace:
        """Read a workspace by its organization and name."""
        request = self.client.new_request(
            "GET",
            f"organizations/{quote(organization, safe='')}/workspaces/{quote(workspace, safe='')}",
        )
        return await self.client.do(request, Workspace)

    async def lock(
        self, workspace_id: str, options: WorkspaceLockOptions | None = None
    ) -> Workspace:
        """Lock a workspace, raising WorkspaceLockedError if it already is."""
        request = self.client.new_request(
            "POST",
            f"workspaces/{quote(workspace_id, safe='')}/actions/lock",
            options or WorkspaceLockOptions(),
        )
        return await self.client.do(request, Workspace)

    async def unlock(self, workspace_id: str) -> Workspace:
        """Unlock a workspace locked by the caller."""
        request = self.client.new_request(
            "POST", f"workspaces/{quote(workspace_id, safe='')}/actions/unlock"
        )
        return await self.client.do(request, Workspace)

    async def force_unlock(self, workspace_id: str) -> Workspace:
        """Unlock a workspace regardless of who holds the lock."""
        request = self.client.new_request(
            "POST", f"workspaces/{quote(workspace_id, safe='')}/actions/force-unlock"
        )
        return await self.client.do(request, Workspace)
