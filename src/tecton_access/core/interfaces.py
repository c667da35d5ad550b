"""Capabilities the reconciler needs from the permission backend.

Implementations live in ``tecton_access.adapters``; tests substitute an
in-memory backend.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from .principal import Principal

if TYPE_CHECKING:
    from tecton_access.features.workspaces.directory import WorkspaceDirectory

DIRECT_ASSIGNMENT = "DIRECT"


class ResourceType(str, enum.Enum):
    ORGANIZATION = "ORGANIZATION"
    WORKSPACE = "WORKSPACE"


@dataclass(frozen=True)
class GrantRecord:
    """One role granted to a principal, as reported by the backend."""

    resource_type: ResourceType
    role: str
    workspace_name: str | None = None
    assignment_sources: tuple[str, ...] = ()

    @property
    def is_direct(self) -> bool:
        # Records without source information are treated as direct.
        return not self.assignment_sources or DIRECT_ASSIGNMENT in self.assignment_sources


@dataclass(frozen=True)
class RoleListing:
    """Grant records for one principal plus the number of raw backend entries.

    ``entries`` also counts entries that carried no organization or workspace
    role (other resource types, empty role lists); they produce no records but
    still mean the backend knows about the principal.
    """

    records: tuple[GrantRecord, ...] = ()
    entries: int = 0

    @property
    def exists(self) -> bool:
        return self.entries > 0 or bool(self.records)


class RoleQuery(Protocol):
    def fetch_roles(self, principal: Principal) -> RoleListing:
        """Return every grant held by ``principal``; empty when it has none."""
        ...


class RoleMutator(Protocol):
    def set_role(
        self,
        principal: Principal,
        role: str,
        workspace: str | None,
        grant: bool,
    ) -> None:
        """Grant or revoke a single role.

        ``workspace=None`` targets the baseline; ``role="admin"`` targets the
        unscoped admin capability.
        """
        ...


class WorkspaceLister(Protocol):
    def list_workspaces(self) -> WorkspaceDirectory: ...


__all__ = [
    "DIRECT_ASSIGNMENT",
    "GrantRecord",
    "ResourceType",
    "RoleListing",
    "RoleMutator",
    "RoleQuery",
    "WorkspaceLister",
]
