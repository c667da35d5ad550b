"""Exceptions raised while reading or reconciling access policies."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .policy import Operation, Scope
    from .principal import Principal


class AccessPolicyError(Exception):
    """Base class for access policy errors.

    Carries whatever is known about where the failure happened so callers can
    report the principal, scope, role and operation involved.
    """

    def __init__(
        self,
        message: str,
        *,
        principal: Principal | None = None,
        scope: Scope | None = None,
        role: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.principal = principal
        self.scope = scope
        self.role = role
        self.operation = operation

    def context(self) -> dict[str, str]:
        ctx: dict[str, str] = {}
        if self.principal is not None:
            ctx["principal"] = self.principal.label
        if self.scope is not None:
            ctx["scope"] = self.scope.label
        if self.role is not None:
            ctx["role"] = self.role
        if self.operation is not None:
            ctx["operation"] = self.operation
        return ctx

    def __str__(self) -> str:
        ctx = self.context()
        if not ctx:
            return self.message
        details = " ".join(f"{key}={value}" for key, value in ctx.items())
        return f"{self.message} ({details})"


class ConfigurationError(AccessPolicyError):
    """Raised when a policy declaration is invalid; no backend call has been made."""


class UnknownWorkspaceError(ConfigurationError):
    """Raised when a declaration references a workspace missing from the directory."""


class InvalidIdentifierError(AccessPolicyError):
    """Raised when an access policy id has an unrecognized prefix."""


class BackendError(AccessPolicyError):
    """Base class for failures reported by the permission backend."""

    def __init__(self, message: str, *, output: str | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.output = output

    def __str__(self) -> str:
        rendered = super().__str__()
        if self.output:
            return f"{rendered}\nOutput: {self.output.rstrip()}"
        return rendered


class BackendUnavailableError(BackendError):
    """Raised when invoking the backend failed; keeps the raw output."""


class BackendParseError(BackendError):
    """Raised when backend output does not have the expected shape."""


class PolicyAlreadyExistsError(AccessPolicyError):
    """Raised by the creation guard when the principal already holds grants."""


class PartialApplyError(AccessPolicyError):
    """Raised when a mutation fails mid-pass. Earlier mutations are not rolled back."""

    def __init__(
        self,
        message: str,
        *,
        applied: Sequence[Operation],
        failed: Operation,
    ) -> None:
        super().__init__(
            message,
            principal=failed.principal,
            scope=failed.scope,
            role=failed.role,
            operation=failed.verb,
        )
        self.applied = tuple(applied)
        self.failed = failed


__all__ = [
    "AccessPolicyError",
    "BackendError",
    "BackendParseError",
    "BackendUnavailableError",
    "ConfigurationError",
    "InvalidIdentifierError",
    "PartialApplyError",
    "PolicyAlreadyExistsError",
    "UnknownWorkspaceError",
]
