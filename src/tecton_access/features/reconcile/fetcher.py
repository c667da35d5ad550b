"""Build the actual policy of a principal from backend grant records."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from tecton_access.common.logging import log_context
from tecton_access.core.errors import BackendParseError
from tecton_access.core.interfaces import GrantRecord, ResourceType, RoleQuery
from tecton_access.core.policy import Policy, Scope
from tecton_access.core.principal import Principal
from tecton_access.core.roles import ADMIN_ROLE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    policy: Policy
    exists: bool
    records: tuple[GrantRecord, ...] = ()


def aggregate_grants(
    principal: Principal,
    records: Iterable[GrantRecord],
    *,
    direct_only: bool = False,
) -> Policy:
    """Fold raw grant records into a policy.

    Organization-level ``admin`` sets the admin flag, other organization-level
    roles form the baseline, and workspace-level roles are bucketed by
    workspace name. Role sets are unordered; display order is applied when a
    policy is rendered.
    """

    admin = False
    baseline: list[str] = []
    workspaces: dict[str, list[str]] = {}

    for record in records:
        if direct_only and not record.is_direct:
            continue
        if record.resource_type is ResourceType.ORGANIZATION:
            if record.role == ADMIN_ROLE:
                admin = True
            elif record.role not in baseline:
                baseline.append(record.role)
        elif record.resource_type is ResourceType.WORKSPACE:
            if not record.workspace_name:
                raise BackendParseError(
                    f"Workspace grant for role '{record.role}' has no workspace name",
                    principal=principal,
                    role=record.role,
                )
            if record.role == ADMIN_ROLE:
                raise BackendParseError(
                    f"Workspace '{record.workspace_name}' reports the unscoped '{ADMIN_ROLE}' role",
                    principal=principal,
                    scope=Scope.for_workspace(record.workspace_name),
                    role=record.role,
                )
            bucket = workspaces.setdefault(record.workspace_name, [])
            if record.role not in bucket:
                bucket.append(record.role)

    return Policy.build(
        principal,
        admin=admin,
        baseline_roles=baseline,
        workspace_roles=workspaces,
    )


class StateFetcher:
    """Fetch and aggregate the grants a principal actually holds."""

    def __init__(self, query: RoleQuery, *, direct_only: bool = False) -> None:
        self._query = query
        self._direct_only = direct_only

    def fetch(self, principal: Principal) -> FetchResult:
        listing = self._query.fetch_roles(principal)
        records = listing.records
        policy = aggregate_grants(principal, records, direct_only=self._direct_only)
        logger.debug(
            "reconcile.fetch",
            extra=log_context(
                principal=principal.policy_id,
                records=len(records),
                admin=policy.admin,
                workspaces=len(policy.workspace_roles),
            ),
        )
        return FetchResult(policy=policy, exists=listing.exists, records=records)


__all__ = ["FetchResult", "StateFetcher", "aggregate_grants"]
