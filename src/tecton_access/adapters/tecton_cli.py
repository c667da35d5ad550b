"""Permission backend backed by the ``tecton`` command-line client.

Implements the role query, role mutation and workspace listing capabilities by
running ``tecton access-control ...`` and ``tecton workspace list`` and parsing
their output.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from typing import Any

from tecton_access.common.logging import log_context
from tecton_access.core.errors import BackendParseError, BackendUnavailableError
from tecton_access.core.interfaces import GrantRecord, ResourceType, RoleListing
from tecton_access.core.policy import BASELINE, Scope
from tecton_access.core.principal import Principal
from tecton_access.features.workspaces.directory import WorkspaceDirectory
from tecton_access.settings import Settings

logger = logging.getLogger(__name__)

_LIVE_HEADER = "Live Workspaces:"
_DEV_HEADER = "Development Workspaces:"


def require_executable(command: str) -> str:
    """Resolve ``command`` on ``PATH`` or fail with an install hint."""

    found = shutil.which(command)
    if found:
        return found
    raise BackendUnavailableError(
        f"Didn't find '{command}' executable, which is required to manage access policies. "
        "Please install it via `pip install tecton`."
    )


def parse_get_roles_output(output: str) -> RoleListing:
    """Parse the JSON printed by ``tecton access-control get-roles --json-out``."""

    try:
        payload = json.loads(output)
    except json.JSONDecodeError as exc:
        raise BackendParseError(
            "Failed to parse output of `tecton access-control get-roles`.",
            output=output,
        ) from exc
    if payload is None:
        return RoleListing()
    if not isinstance(payload, list):
        raise BackendParseError(
            "Expected a JSON list from `tecton access-control get-roles`.",
            output=output,
        )

    records: list[GrantRecord] = []
    for policy in payload:
        records.extend(_records_from_policy(policy, output=output))
    return RoleListing(records=tuple(records), entries=len(payload))


def _records_from_policy(policy: Any, *, output: str) -> list[GrantRecord]:
    if not isinstance(policy, dict):
        raise BackendParseError("Unexpected policy entry in get-roles output.", output=output)
    raw_type = policy.get("resource_type")
    try:
        resource_type = ResourceType(raw_type)
    except ValueError:
        # Other resource types do not carry organization or workspace roles.
        logger.debug("tecton.get_roles.skip", extra=log_context(resource_type=raw_type))
        return []

    workspace_name = policy.get("workspace_name") or None
    roles_granted = policy.get("roles_granted") or []
    if not isinstance(roles_granted, list):
        raise BackendParseError("Expected 'roles_granted' to be a list.", output=output)

    records: list[GrantRecord] = []
    for granted in roles_granted:
        if not isinstance(granted, dict) or not isinstance(granted.get("role"), str):
            raise BackendParseError("Granted role entry is missing 'role'.", output=output)
        sources = tuple(
            str(source.get("assignment_type"))
            for source in granted.get("assignment_sources") or []
            if isinstance(source, dict) and source.get("assignment_type")
        )
        records.append(
            GrantRecord(
                resource_type=resource_type,
                role=granted["role"],
                workspace_name=workspace_name,
                assignment_sources=sources,
            )
        )
    return records


def parse_workspace_list(output: str) -> WorkspaceDirectory:
    """Parse the text printed by ``tecton workspace list``.

    The current workspace is marked with a leading ``*``. Both section headers
    must be present, live first; lines before the live header are ignored.
    """

    live: list[str] = []
    development: list[str] = []
    section: list[str] | None = None
    seen_live = seen_development = False
    for line in output.splitlines():
        if line.startswith(_LIVE_HEADER) and not seen_live:
            section, seen_live = live, True
            continue
        if line.startswith(_DEV_HEADER) and seen_live and not seen_development:
            section, seen_development = development, True
            continue
        name = line.removeprefix("*").strip()
        if not name or section is None:
            continue
        section.append(name)

    if not (seen_live and seen_development):
        raise BackendParseError(
            "`tecton workspace list` returned unexpected output. "
            f"Expected a '{_LIVE_HEADER}' section followed by a '{_DEV_HEADER}' section.",
            output=output,
        )
    return WorkspaceDirectory.of(live=live, development=development)


class TectonCli:
    """Run ``tecton`` subcommands for one configured cluster."""

    def __init__(
        self,
        executable: str = "tecton",
        *,
        env: Mapping[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.executable = executable
        self.env = dict(env) if env is not None else None
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> TectonCli:
        executable = require_executable(settings.cli_path)
        return cls(
            executable,
            env=settings.command_env(dict(os.environ)),
            timeout_seconds=settings.timeout_seconds,
        )

    def run(self, args: Sequence[str], *, description: str) -> str:
        """Run ``tecton <args>`` and return its combined stdout and stderr."""

        command = [self.executable, *args]
        logger.debug("tecton.run", extra=log_context(command=" ".join(command)))
        try:
            completed = subprocess.run(
                command,
                env=self.env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            output = exc.output if isinstance(exc.output, str) else None
            raise BackendUnavailableError(
                f"Command to {description} timed out after {self.timeout_seconds}s.",
                output=output,
            ) from exc
        except OSError as exc:
            raise BackendUnavailableError(f"Command to {description} failed: {exc}") from exc

        output = completed.stdout or ""
        if completed.returncode != 0:
            raise BackendUnavailableError(
                f"Command to {description} failed with exit code {completed.returncode}.",
                output=output,
            )
        return output

    def fetch_roles(self, principal: Principal) -> RoleListing:
        subject = [principal.kind.cli_flag, principal.id]
        logger.info("tecton.get_roles", extra=log_context(principal=principal.policy_id))
        try:
            output = self.run(
                ["access-control", "get-roles", "--json-out", *subject],
                description=f"read roles for '{' '.join(subject)}'",
            )
            return parse_get_roles_output(output)
        except (BackendUnavailableError, BackendParseError) as exc:
            exc.principal = principal
            exc.operation = "get-roles"
            raise

    def set_role(
        self,
        principal: Principal,
        role: str,
        workspace: str | None,
        grant: bool,
    ) -> None:
        subcommand = "assign-role" if grant else "unassign-role"
        args = ["access-control", subcommand, "--role", role]
        if workspace:
            args.extend(["--workspace", workspace])
        args.extend([principal.kind.cli_flag, principal.id])
        scope = Scope.for_workspace(workspace) if workspace else BASELINE
        logger.info(
            f"tecton.{subcommand}",
            extra=log_context(principal=principal.policy_id, scope=scope.label, role=role),
        )
        try:
            self.run(args, description=f"{subcommand} '{role}'")
        except BackendUnavailableError as exc:
            exc.principal = principal
            exc.scope = scope
            exc.role = role
            exc.operation = subcommand
            raise

    def list_workspaces(self) -> WorkspaceDirectory:
        output = self.run(["workspace", "list"], description="list workspaces")
        return parse_workspace_list(output)


__all__ = [
    "TectonCli",
    "parse_get_roles_output",
    "parse_workspace_list",
    "require_executable",
]
