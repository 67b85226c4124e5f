# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Admin runs: site-wide run listing and force-cancel for administrators.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Annotated
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from ..decoding import ListOptions, Pagination
from ..jsonapi import Attr, Primary, Relation

if TYPE_CHECKING:
    from ..client import Client


class RunStatus(str, Enum):
    APPLIED = "applied"
    APPLY_QUEUED = "apply_queued"
    APPLYING = "applying"
    CANCELED = "canceled"
    CONFIRMED = "confirmed"
    COST_ESTIMATE = "cost_estimate"
    COST_ESTIMATING = "cost_estimating"
    DISCARDED = "discarded"
    ERRORED = "errored"
    PENDING = "pending"
    PLAN_QUEUED = "plan_queued"
    PLANNED = "planned"
    PLANNED_AND_FINISHED = "planned_and_finished"
    PLANNING = "planning"
    POLICY_CHECKED = "policy_checked"
    POLICY_CHECKING = "policy_checking"
    POLICY_OVERRIDE = "policy_override"
    POLICY_SOFT_FAILED = "policy_soft_failed"


class AdminRunIncludeOpt(str, Enum):
    WORKSPACE = "workspace"
    WORKSPACE_ORG = "workspace.organization"
    WORKSPACE_ORG_OWNERS = "workspace.organization.owners"


class RunStatusTimestamps(BaseModel):
    plan_queued_at: Annotated[datetime | None, Attr("plan-queued-at", iso8601=True)] = None
    planned_at: Annotated[datetime | None, Attr("planned-at", iso8601=True)] = None
    applied_at: Annotated[datetime | None, Attr("applied-at", iso8601=True)] = None
    errored_at: Annotated[datetime | None, Attr("errored-at", iso8601=True)] = None
    canceled_at: Annotated[datetime | None, Attr("canceled-at", iso8601=True)] = None


class AdminOrganization(BaseModel):
    name: Annotated[str, Primary("organizations")] = ""
    access_beta_tools: Annotated[bool, Attr("access-beta-tools")] = False
    is_disabled: Annotated[bool, Attr("is-disabled")] = False


class AdminWorkspace(BaseModel):
    id: Annotated[str, Primary("workspaces")] = ""
    name: Annotated[str, Attr("name")] = ""
    locked: Annotated[bool, Attr("locked")] = False


class AdminRun(BaseModel):
    id: Annotated[str, Primary("runs")] = ""
    created_at: Annotated[datetime | None, Attr("created-at", iso8601=True)] = None
    has_changes: Annotated[bool, Attr("has-changes")] = False
    status: Annotated[str, Attr("status")] = ""
    status_timestamps: Annotated[
        RunStatusTimestamps | None, Attr("status-timestamps")
    ] = None

    # Relations
    workspace: Annotated[AdminWorkspace | None, Relation("workspace")] = None
    organization: Annotated[
        AdminOrganization | None, Relation("workspace.organization")
    ] = None


class AdminRunList(BaseModel):
    items: list[AdminRun] = Field(default_factory=list)
    pagination: Pagination | None = None


class AdminRunListOptions(ListOptions):
    run_status: str | None = Field(default=None, alias="filter[status]")
    query: str | None = Field(default=None, alias="q")
    include: list[AdminRunIncludeOpt] | None = Field(default=None, alias="include")


class AdminRunForceCancelOptions(BaseModel):
    """An optional comment explaining the reason for the force-cancel."""

    model_config = ConfigDict(populate_by_name=True)

    comment: str | None = Field(default=None, alias="comment")


class AdminRuns:
    """Admin run endpoints, available on Terraform Enterprise only."""

    def __init__(self, client: "Client"):
        self.client = client

    async def list(self, options: AdminRunListOptions | None = None) -> AdminRunList:
        """List all the runs of the installation."""
        request = self.client.new_request("GET", "admin/runs", options)
        return await self.client.do(request, AdminRunList)

    async def force_cancel(
        self, run_id: str, options: AdminRunForceCancelOptions | None = None
    ) -> None:
        """Force a run into the canceled state."""
        request = self.client.new_request(
            "POST",
            f"admin/runs/{quote(run_id, safe='')}/actions/force-cancel",
            options or AdminRunForceCancelOptions(),
        )
        await self.client.do(request)
