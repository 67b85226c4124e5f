# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Resource modules built on the client transport.

Each module follows the same template: build a path, attach options or a
payload, call ``Client.do`` with the destination model.
"""

from .admin_runs import (
    AdminOrganization,
    AdminRun,
    AdminRunForceCancelOptions,
    AdminRunIncludeOpt,
    AdminRunList,
    AdminRunListOptions,
    AdminRuns,
    AdminWorkspace,
    RunStatus,
    RunStatusTimestamps,
)
from .ip_ranges import IPRange, IPRanges
from .organizations import Organization, Organizations
from .registry_provider_versions import (
    RegistryProviderID,
    RegistryProviderPlatform,
    RegistryProviderVersion,
    RegistryProviderVersionCreateOptions,
    RegistryProviderVersionList,
    RegistryProviderVersionListOptions,
    RegistryProviderVersions,
)
from .registry_providers import (
    RegistryName,
    RegistryProvider,
    RegistryProviderCreateOptions,
    RegistryProviderPermissions,
    RegistryProviders,
)
from .workspaces import Workspace, WorkspaceLockOptions, Workspaces

__all__ = [
    "AdminOrganization",
    "AdminRun",
    "AdminRunForceCancelOptions",
    "AdminRunIncludeOpt",
    "AdminRunList",
    "AdminRunListOptions",
    "AdminRuns",
    "AdminWorkspace",
    "IPRange",
    "IPRanges",
    "Organization",
    "Organizations",
    "RegistryName",
    "RegistryProvider",
    "RegistryProviderCreateOptions",
    "RegistryProviderID",
    "RegistryProviderPermissions",
    "RegistryProviderPlatform",
    "RegistryProviderVersion",
    "RegistryProviderVersionCreateOptions",
    "RegistryProviderVersionList",
    "RegistryProviderVersionListOptions",
    "RegistryProviderVersions",
    "RegistryProviders",
    "RunStatus",
    "RunStatusTimestamps",
    "Workspace",
    "WorkspaceLockOptions",
    "Workspaces",
]
