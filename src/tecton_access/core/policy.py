"""Access policy data model and the per-scope diff engine."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from .principal import Principal
from .roles import ADMIN_ROLE, sort_roles


class ScopeKind(str, enum.Enum):
    BASELINE = "baseline"
    WORKSPACE = "workspace"


@dataclass(frozen=True)
class Scope:
    """Baseline (every workspace) or a single named workspace."""

    workspace: str | None = None

    @classmethod
    def baseline(cls) -> Scope:
        return cls(None)

    @classmethod
    def for_workspace(cls, name: str) -> Scope:
        if not name:
            raise ValueError("Workspace scope requires a workspace name")
        return cls(name)

    @property
    def kind(self) -> ScopeKind:
        return ScopeKind.BASELINE if self.workspace is None else ScopeKind.WORKSPACE

    @property
    def label(self) -> str:
        if self.workspace is None:
            return ScopeKind.BASELINE.value
        return f"{ScopeKind.WORKSPACE.value}:{self.workspace}"


BASELINE = Scope.baseline()


@dataclass(frozen=True)
class Policy:
    """Admin flag plus baseline and per-workspace role sets for one principal.

    Used both for the declared (desired) policy and for the policy fetched from
    the backend (actual). Workspaces with no roles are not stored.
    """

    principal: Principal
    admin: bool = False
    baseline_roles: frozenset[str] = frozenset()
    workspace_roles: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        principal: Principal,
        *,
        admin: bool = False,
        baseline_roles: Iterable[str] = (),
        workspace_roles: Mapping[str, Iterable[str]] | None = None,
    ) -> Policy:
        workspaces: dict[str, frozenset[str]] = {}
        for name, roles in (workspace_roles or {}).items():
            role_set = frozenset(str(role) for role in roles)
            if role_set:
                workspaces[name] = role_set
        baseline = frozenset(str(role) for role in baseline_roles)
        if ADMIN_ROLE in baseline or any(ADMIN_ROLE in roles for roles in workspaces.values()):
            raise ValueError("'admin' is an unscoped capability and cannot be part of a role set")
        return cls(
            principal=principal,
            admin=bool(admin),
            baseline_roles=baseline,
            workspace_roles=workspaces,
        )

    @classmethod
    def empty(cls, principal: Principal) -> Policy:
        return cls(principal=principal)

    @property
    def is_empty(self) -> bool:
        return not self.admin and not self.baseline_roles and not self.workspace_roles

    def roles_for(self, scope: Scope) -> frozenset[str]:
        if scope.workspace is None:
            return self.baseline_roles
        return self.workspace_roles.get(scope.workspace, frozenset())

    def scopes(self) -> list[Scope]:
        return [BASELINE, *(Scope.for_workspace(name) for name in sorted(self.workspace_roles))]

    def to_dict(self) -> dict[str, object]:
        """Render with roles in display order."""

        return {
            "principal": {"kind": self.principal.kind.value, "id": self.principal.id},
            "admin": self.admin,
            "all_workspaces": sort_roles(self.baseline_roles),
            "workspaces": {
                name: sort_roles(self.workspace_roles[name])
                for name in sorted(self.workspace_roles)
            },
        }


@dataclass(frozen=True)
class RoleDiff:
    scope: Scope
    to_grant: frozenset[str] = frozenset()
    to_revoke: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.to_grant and not self.to_revoke


def diff_roles(
    desired: Iterable[str],
    actual: Iterable[str],
) -> tuple[frozenset[str], frozenset[str]]:
    """Return ``(to_grant, to_revoke)`` for one scope."""

    desired_set = frozenset(desired)
    actual_set = frozenset(actual)
    return desired_set - actual_set, actual_set - desired_set


def diff_admin(desired: bool, actual: bool) -> bool | None:
    """Return the admin value to set, or ``None`` when no toggle is needed."""

    if bool(desired) == bool(actual):
        return None
    return bool(desired)


def reconcile_scopes(desired: Policy, actual: Policy) -> list[Scope]:
    """Scopes a pass must visit, in processing order.

    Baseline first, then workspaces present in the desired policy, then
    workspaces only present in the actual policy (revoke-only).
    """

    desired_names = sorted(desired.workspace_roles)
    dropped_names = sorted(set(actual.workspace_roles) - set(desired.workspace_roles))
    return [
        BASELINE,
        *(Scope.for_workspace(name) for name in desired_names),
        *(Scope.for_workspace(name) for name in dropped_names),
    ]


def diff_policies(desired: Policy, actual: Policy) -> list[RoleDiff]:
    if desired.principal != actual.principal:
        raise ValueError(
            f"Cannot diff policies of different principals: "
            f"{desired.principal.label} vs {actual.principal.label}"
        )
    diffs: list[RoleDiff] = []
    for scope in reconcile_scopes(desired, actual):
        to_grant, to_revoke = diff_roles(desired.roles_for(scope), actual.roles_for(scope))
        diffs.append(RoleDiff(scope=scope, to_grant=to_grant, to_revoke=to_revoke))
    return diffs


@dataclass(frozen=True)
class Operation:
    """A single-role grant or revoke against the backend."""

    principal: Principal
    scope: Scope
    role: str
    grant: bool

    @property
    def verb(self) -> str:
        return "grant" if self.grant else "revoke"

    @property
    def is_admin_toggle(self) -> bool:
        return self.role == ADMIN_ROLE

    def describe(self) -> str:
        if self.is_admin_toggle:
            return f"{self.verb} admin"
        return f"{self.verb} {self.role} on {self.scope.label}"


@dataclass(frozen=True)
class Plan:
    """Ordered operations for one reconciliation pass."""

    principal: Principal
    operations: tuple[Operation, ...] = ()

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    @property
    def grants(self) -> tuple[Operation, ...]:
        return tuple(op for op in self.operations if op.grant)

    @property
    def revokes(self) -> tuple[Operation, ...]:
        return tuple(op for op in self.operations if not op.grant)


__all__ = [
    "BASELINE",
    "Operation",
    "Plan",
    "Policy",
    "RoleDiff",
    "Scope",
    "ScopeKind",
    "diff_admin",
    "diff_policies",
    "diff_roles",
    "reconcile_scopes",
]
