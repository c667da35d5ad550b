"""Helpers shared by the tecton-access CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Protocol

import typer

from tecton_access.adapters.tecton_cli import TectonCli
from tecton_access.core.errors import (
    AccessPolicyError,
    ConfigurationError,
    InvalidIdentifierError,
)
from tecton_access.core.interfaces import RoleMutator, RoleQuery, WorkspaceLister
from tecton_access.core.policy import Operation, Plan
from tecton_access.features.policies.service import AccessPolicyService
from tecton_access.features.reconcile.fetcher import StateFetcher
from tecton_access.features.reconcile.service import Reconciler
from tecton_access.features.workspaces.directory import WorkspaceDirectory
from tecton_access.settings import Settings, get_settings

EXIT_FAILURE = 1
EXIT_USAGE = 2


class Backend(RoleQuery, RoleMutator, WorkspaceLister, Protocol):
    """Everything the CLI needs from the permission backend."""


def build_backend(settings: Settings) -> Backend:
    return TectonCli.from_settings(settings)


@dataclass
class CommandContext:
    """Backend, settings and the run's workspace snapshot for one CLI invocation."""

    settings: Settings
    backend: Backend
    _directory: WorkspaceDirectory | None = field(default=None, init=False)

    @property
    def directory(self) -> WorkspaceDirectory:
        # Fetched at most once per run and never refreshed.
        if self._directory is None:
            self._directory = self.backend.list_workspaces()
        return self._directory

    def fetcher(self) -> StateFetcher:
        return StateFetcher(self.backend, direct_only=self.settings.direct_grants_only)

    def policy_service(self, *, validate_workspaces: bool = True) -> AccessPolicyService:
        directory = self.directory if validate_workspaces else None
        reconciler = Reconciler(self.fetcher(), self.backend, directory=directory)
        return AccessPolicyService(reconciler)


@contextmanager
def command_context() -> Iterator[CommandContext]:
    """Yield a ``CommandContext`` and turn access policy errors into exit codes."""

    with handle_errors():
        settings = get_settings()
        yield CommandContext(settings=settings, backend=build_backend(settings))


@contextmanager
def handle_errors() -> Iterator[None]:
    try:
        yield
    except (ConfigurationError, InvalidIdentifierError) as exc:
        echo_error(str(exc))
        raise typer.Exit(code=EXIT_USAGE) from exc
    except AccessPolicyError as exc:
        echo_error(str(exc))
        raise typer.Exit(code=EXIT_FAILURE) from exc


def echo_error(message: str) -> None:
    typer.echo(f"error: {message}", err=True)


def emit_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def operation_line(operation: Operation) -> str:
    sign = "+" if operation.grant else "-"
    if operation.is_admin_toggle:
        return f"  {sign} admin"
    return f"  {sign} {operation.role} @ {operation.scope.label}"


def plan_payload(plan: Plan) -> dict[str, object]:
    return {
        "id": plan.principal.policy_id,
        "operations": [
            {
                "action": op.verb,
                "role": op.role,
                "scope": op.scope.label,
            }
            for op in plan
        ],
    }


__all__ = [
    "Backend",
    "CommandContext",
    "EXIT_FAILURE",
    "EXIT_USAGE",
    "build_backend",
    "command_context",
    "echo_error",
    "emit_json",
    "handle_errors",
    "operation_line",
    "plan_payload",
]
