"""Access policy model, diff engine and backend contracts."""

from .errors import (
    AccessPolicyError,
    BackendError,
    BackendParseError,
    BackendUnavailableError,
    ConfigurationError,
    InvalidIdentifierError,
    PartialApplyError,
    PolicyAlreadyExistsError,
    UnknownWorkspaceError,
)
from .interfaces import (
    GrantRecord,
    ResourceType,
    RoleListing,
    RoleMutator,
    RoleQuery,
    WorkspaceLister,
)
from .policy import (
    BASELINE,
    Operation,
    Plan,
    Policy,
    RoleDiff,
    Scope,
    ScopeKind,
    diff_admin,
    diff_policies,
    diff_roles,
)
from .principal import Principal, PrincipalKind, parse_policy_id
from .roles import ADMIN_ROLE, VALID_ROLES, Role, sort_roles

__all__ = [
    "ADMIN_ROLE",
    "BASELINE",
    "VALID_ROLES",
    "AccessPolicyError",
    "BackendError",
    "BackendParseError",
    "BackendUnavailableError",
    "ConfigurationError",
    "GrantRecord",
    "InvalidIdentifierError",
    "Operation",
    "PartialApplyError",
    "Plan",
    "Policy",
    "PolicyAlreadyExistsError",
    "Principal",
    "PrincipalKind",
    "ResourceType",
    "Role",
    "RoleDiff",
    "RoleListing",
    "RoleMutator",
    "RoleQuery",
    "Scope",
    "ScopeKind",
    "UnknownWorkspaceError",
    "WorkspaceLister",
    "diff_admin",
    "diff_policies",
    "diff_roles",
    "parse_policy_id",
    "sort_roles",
]
