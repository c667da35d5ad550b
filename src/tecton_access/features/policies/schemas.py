"""Declared access policies and their rendered state."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from tecton_access.core.errors import ConfigurationError
from tecton_access.core.policy import Policy
from tecton_access.core.principal import Principal, PrincipalKind, parse_policy_id
from tecton_access.core.roles import VALID_ROLES, is_known_role, sort_roles

USER_ID_PATTERN = r"^[a-zA-Z0-9_.@-]+$"
SERVICE_ACCOUNT_ID_PATTERN = r"^[a-zA-Z0-9]+$"


class BaseSchema(BaseModel):
    """Base class for declaration schemas."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


def _validate_role_list(values: list[str], *, field: str) -> list[str]:
    invalid = [value for value in values if not is_known_role(value)]
    if invalid:
        allowed = ", ".join(VALID_ROLES)
        raise ValueError(f"{field} contains invalid role(s) {invalid}; expected one of: {allowed}")
    seen: set[str] = set()
    for value in values:
        if value in seen:
            raise ValueError(f"{field} contains duplicate role '{value}'")
        seen.add(value)
    return values


class AccessPolicyDeclaration(BaseSchema):
    """Roles declared for exactly one user or service account."""

    user_id: str | None = Field(default=None, pattern=USER_ID_PATTERN)
    service_account_id: str | None = Field(default=None, pattern=SERVICE_ACCOUNT_ID_PATTERN)
    admin: bool | None = None
    all_workspaces: list[str] | None = None
    workspaces: dict[str, list[str]] | None = None

    @field_validator("all_workspaces")
    @classmethod
    def _check_all_workspaces(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return _validate_role_list(value, field="all_workspaces")

    @field_validator("workspaces")
    @classmethod
    def _check_workspaces(cls, value: dict[str, list[str]] | None) -> dict[str, list[str]] | None:
        if value is None:
            return None
        for name, roles in value.items():
            if not name:
                raise ValueError("workspaces keys must be non-empty workspace names")
            _validate_role_list(roles, field=f"workspaces[{name!r}]")
        return value

    @model_validator(mode="after")
    def _check_shape(self) -> AccessPolicyDeclaration:
        if (self.user_id is None) == (self.service_account_id is None):
            raise ValueError("exactly one of user_id or service_account_id must be set")
        if self.admin is None and self.all_workspaces is None and self.workspaces is None:
            raise ValueError("at least one of admin, all_workspaces or workspaces must be set")
        return self

    @property
    def principal(self) -> Principal:
        if self.user_id is not None:
            return Principal.user(self.user_id)
        return Principal.service_account(str(self.service_account_id))

    @property
    def policy_id(self) -> str:
        return self.principal.policy_id

    def to_policy(self) -> Policy:
        return Policy.build(
            self.principal,
            admin=bool(self.admin),
            baseline_roles=self.all_workspaces or (),
            workspace_roles=self.workspaces or {},
        )


class AccessPolicyState(BaseSchema):
    """An access policy as last read from or written to the backend."""

    model_config = ConfigDict(extra="ignore")

    id: str
    last_updated: str | None = None
    user_id: str | None = None
    service_account_id: str | None = None
    admin: bool = False
    all_workspaces: list[str] = Field(default_factory=list)
    workspaces: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def from_policy(cls, policy: Policy, *, last_updated: str | None = None) -> AccessPolicyState:
        principal = policy.principal
        is_user = principal.kind is PrincipalKind.USER
        return cls(
            id=principal.policy_id,
            last_updated=last_updated,
            user_id=principal.id if is_user else None,
            service_account_id=None if is_user else principal.id,
            admin=policy.admin,
            all_workspaces=sort_roles(policy.baseline_roles),
            workspaces={
                name: sort_roles(policy.workspace_roles[name])
                for name in sorted(policy.workspace_roles)
            },
        )

    @property
    def principal(self) -> Principal:
        return parse_policy_id(self.id)


def _format_validation_error(exc: ValidationError, *, source: str) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return f"Invalid access policy in {source}: " + "; ".join(parts)


def parse_declaration(data: Any, *, source: str = "<input>") -> AccessPolicyDeclaration:
    try:
        return AccessPolicyDeclaration.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_error(exc, source=source)) from exc


def parse_declarations(data: Any, *, source: str = "<input>") -> list[AccessPolicyDeclaration]:
    """Parse one declaration object or a list of them.

    Two declarations for the same principal are rejected.
    """

    items: Iterable[Any] = data if isinstance(data, list) else [data]
    declarations: list[AccessPolicyDeclaration] = []
    seen: set[str] = set()
    for index, item in enumerate(items):
        declaration = parse_declaration(item, source=f"{source}[{index}]")
        if declaration.policy_id in seen:
            raise ConfigurationError(
                f"Duplicate access policy for {declaration.principal.label} in {source}",
                principal=declaration.principal,
            )
        seen.add(declaration.policy_id)
        declarations.append(declaration)
    return declarations


def load_declarations(path: Path) -> list[AccessPolicyDeclaration]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Unable to read {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc
    return parse_declarations(data, source=str(path))


__all__ = [
    "AccessPolicyDeclaration",
    "AccessPolicyState",
    "BaseSchema",
    "load_declarations",
    "parse_declaration",
    "parse_declarations",
]
