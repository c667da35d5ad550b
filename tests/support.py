"""In-memory permission backend used across tests."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from tecton_access.core.errors import BackendUnavailableError
from tecton_access.core.interfaces import GrantRecord, ResourceType, RoleListing
from tecton_access.core.policy import Policy
from tecton_access.core.principal import Principal
from tecton_access.core.roles import ADMIN_ROLE
from tecton_access.features.workspaces.directory import WorkspaceDirectory


@dataclass
class _Grants:
    admin: bool = False
    baseline: set[str] = field(default_factory=set)
    workspaces: dict[str, set[str]] = field(default_factory=dict)

    def snapshot(self) -> dict[str | None, frozenset[str]]:
        view: dict[str | None, frozenset[str]] = {None: frozenset(self.baseline)}
        for name, roles in self.workspaces.items():
            view[name] = frozenset(roles)
        return view


@dataclass(frozen=True)
class Call:
    principal: Principal
    role: str
    workspace: str | None
    grant: bool


class InMemoryBackend:
    """Records every mutation and the grants observed after it."""

    def __init__(
        self,
        *,
        live: Iterable[str] = ("prod",),
        development: Iterable[str] = ("dev", "foo"),
    ) -> None:
        self._grants: dict[Principal, _Grants] = {}
        self._sources: dict[tuple[Principal, str | None, str], tuple[str, ...]] = {}
        self._roleless_entries: dict[Principal, int] = {}
        self.calls: list[Call] = []
        self.history: list[dict[str | None, frozenset[str]]] = []
        self.fetch_count = 0
        self.list_count = 0
        self.fail_on: set[tuple[bool, str, str | None]] = set()
        self.directory = WorkspaceDirectory.of(live=live, development=development)

    def seed(self, policy: Policy) -> None:
        grants = self._grants.setdefault(policy.principal, _Grants())
        grants.admin = policy.admin
        grants.baseline = set(policy.baseline_roles)
        grants.workspaces = {name: set(roles) for name, roles in policy.workspace_roles.items()}

    def set_sources(
        self,
        principal: Principal,
        workspace: str | None,
        role: str,
        sources: tuple[str, ...],
    ) -> None:
        self._sources[(principal, workspace, role)] = sources

    def add_roleless_entry(self, principal: Principal) -> None:
        """Report a backend entry for ``principal`` that grants no scoped role."""
        self._roleless_entries[principal] = self._roleless_entries.get(principal, 0) + 1

    def fail(self, *, grant: bool, role: str, workspace: str | None = None) -> None:
        self.fail_on.add((grant, role, workspace))

    def state(self, principal: Principal) -> Policy:
        grants = self._grants.get(principal, _Grants())
        return Policy.build(
            principal,
            admin=grants.admin,
            baseline_roles=grants.baseline,
            workspace_roles=grants.workspaces,
        )

    # RoleQuery

    def fetch_roles(self, principal: Principal) -> RoleListing:
        self.fetch_count += 1
        roleless = self._roleless_entries.get(principal, 0)
        grants = self._grants.get(principal)
        if grants is None:
            return RoleListing(entries=roleless)
        records: list[GrantRecord] = []
        if grants.admin:
            records.append(GrantRecord(ResourceType.ORGANIZATION, ADMIN_ROLE))
        for role in sorted(grants.baseline):
            records.append(
                GrantRecord(
                    ResourceType.ORGANIZATION,
                    role,
                    assignment_sources=self._sources.get((principal, None, role), ("DIRECT",)),
                )
            )
        for name in sorted(grants.workspaces):
            for role in sorted(grants.workspaces[name]):
                records.append(
                    GrantRecord(
                        ResourceType.WORKSPACE,
                        role,
                        workspace_name=name,
                        assignment_sources=self._sources.get((principal, name, role), ("DIRECT",)),
                    )
                )
        return RoleListing(records=tuple(records), entries=len(records) + roleless)

    # RoleMutator

    def set_role(
        self,
        principal: Principal,
        role: str,
        workspace: str | None,
        grant: bool,
    ) -> None:
        if (grant, role, workspace) in self.fail_on:
            verb = "assign-role" if grant else "unassign-role"
            raise BackendUnavailableError(
                f"Command to {verb} '{role}' failed with exit code 1.",
                output="Error: backend rejected the request",
            )
        self.calls.append(Call(principal, role, workspace, grant))
        grants = self._grants.setdefault(principal, _Grants())
        if role == ADMIN_ROLE:
            grants.admin = grant
        else:
            if workspace is None:
                bucket = grants.baseline
            else:
                bucket = grants.workspaces.setdefault(workspace, set())
            if grant:
                bucket.add(role)
            else:
                bucket.discard(role)
                if workspace is not None and not bucket:
                    del grants.workspaces[workspace]
        self.history.append(grants.snapshot())

    # WorkspaceLister

    def list_workspaces(self) -> WorkspaceDirectory:
        self.list_count += 1
        return self.directory
