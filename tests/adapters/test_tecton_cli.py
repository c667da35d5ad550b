from __future__ import annotations

import json
import subprocess
from textwrap import dedent

import pytest

from tecton_access.adapters import tecton_cli
from tecton_access.adapters.tecton_cli import (
    TectonCli,
    parse_get_roles_output,
    parse_workspace_list,
    require_executable,
)
from tecton_access.core.errors import BackendParseError, BackendUnavailableError
from tecton_access.core.interfaces import GrantRecord, ResourceType, RoleListing
from tecton_access.core.principal import Principal
from tecton_access.settings import Settings

GET_ROLES_OUTPUT = json.dumps(
    [
        {
            "resource_type": "ORGANIZATION",
            "roles_granted": [
                {"role": "admin", "assignment_sources": [{"assignment_type": "DIRECT"}]},
                {"role": "viewer", "assignment_sources": [{"assignment_type": "PRINCIPAL_GROUP"}]},
            ],
        },
        {
            "resource_type": "WORKSPACE",
            "workspace_name": "dev",
            "roles_granted": [
                {"role": "editor", "assignment_sources": [{"assignment_type": "DIRECT"}]}
            ],
        },
    ]
)

WORKSPACE_LIST_OUTPUT = dedent(
    """\
    Live Workspaces:
      prod
    * staging

    Development Workspaces:
      dev
      scratch
    """
)


class FakeRun:
    """Stands in for ``subprocess.run`` and records every command."""

    def __init__(self, *, stdout: str = "", returncode: int = 0) -> None:
        self.stdout = stdout
        self.returncode = returncode
        self.commands: list[list[str]] = []
        self.kwargs: list[dict] = []

    def __call__(self, command, **kwargs):
        self.commands.append(list(command))
        self.kwargs.append(kwargs)
        return subprocess.CompletedProcess(command, self.returncode, stdout=self.stdout)


@pytest.fixture()
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeRun:
    fake = FakeRun()
    monkeypatch.setattr(tecton_cli.subprocess, "run", fake)
    return fake


def test_parse_get_roles_output() -> None:
    listing = parse_get_roles_output(GET_ROLES_OUTPUT)

    assert listing.entries == 2
    assert listing.records == (
        GrantRecord(ResourceType.ORGANIZATION, "admin", assignment_sources=("DIRECT",)),
        GrantRecord(ResourceType.ORGANIZATION, "viewer", assignment_sources=("PRINCIPAL_GROUP",)),
        GrantRecord(ResourceType.WORKSPACE, "editor", "dev", ("DIRECT",)),
    )


@pytest.mark.parametrize("output", ["[]", "null"])
def test_parse_get_roles_tolerates_no_grants(output: str) -> None:
    listing = parse_get_roles_output(output)
    assert listing == RoleListing()
    assert listing.exists is False


@pytest.mark.parametrize(
    "output",
    [
        "Error: not logged in",
        json.dumps({"resource_type": "ORGANIZATION"}),
        json.dumps([{"resource_type": "WORKSPACE", "roles_granted": [{"name": "viewer"}]}]),
        json.dumps([{"resource_type": "WORKSPACE", "roles_granted": "viewer"}]),
    ],
)
def test_parse_get_roles_rejects_unexpected_shapes(output: str) -> None:
    with pytest.raises(BackendParseError) as excinfo:
        parse_get_roles_output(output)
    assert excinfo.value.output == output


def test_parse_get_roles_skips_other_resource_types() -> None:
    output = json.dumps(
        [{"resource_type": "SERVICE_ACCOUNT", "roles_granted": [{"role": "owner"}]}]
    )
    listing = parse_get_roles_output(output)

    assert listing.records == ()
    assert listing.exists is True


def test_parse_get_roles_counts_entries_without_roles() -> None:
    output = json.dumps(
        [{"resource_type": "WORKSPACE", "workspace_name": "dev", "roles_granted": []}]
    )

    listing = parse_get_roles_output(output)

    assert listing.records == ()
    assert listing.entries == 1
    assert listing.exists is True


def test_parse_workspace_list() -> None:
    directory = parse_workspace_list(WORKSPACE_LIST_OUTPUT)

    assert directory.live == {"prod", "staging"}
    assert directory.development == {"dev", "scratch"}


def test_parse_workspace_list_with_empty_live_section() -> None:
    directory = parse_workspace_list("Live Workspaces:\n\nDevelopment Workspaces:\n* dev\n")

    assert directory.live == frozenset()
    assert directory.development == {"dev"}


def test_parse_workspace_list_rejects_unexpected_output() -> None:
    with pytest.raises(BackendParseError, match="unexpected output"):
        parse_workspace_list("Workspaces:\n  prod\n")


def test_parse_workspace_list_without_development_section_fails_fast() -> None:
    output = "Live Workspaces:\n" + "".join(f"  ws{index}\n" for index in range(30))

    with pytest.raises(BackendParseError, match="Development Workspaces") as excinfo:
        parse_workspace_list(output)

    assert excinfo.value.output == output


def test_parse_workspace_list_requires_live_section_first() -> None:
    with pytest.raises(BackendParseError):
        parse_workspace_list("Development Workspaces:\n  dev\n\nLive Workspaces:\n  prod\n")


def test_parse_workspace_list_ignores_preamble() -> None:
    directory = parse_workspace_list("Using profile default\n" + WORKSPACE_LIST_OUTPUT)

    assert directory.names == {"prod", "staging", "dev", "scratch"}


def test_fetch_roles_invokes_get_roles(fake_run: FakeRun) -> None:
    fake_run.stdout = GET_ROLES_OUTPUT
    cli = TectonCli("tecton", env={"TECTON_API_KEY": "k"})

    listing = cli.fetch_roles(Principal.user("alice@example.com"))

    assert len(listing.records) == 3
    assert fake_run.commands == [
        ["tecton", "access-control", "get-roles", "--json-out", "--user", "alice@example.com"]
    ]
    assert fake_run.kwargs[0]["env"] == {"TECTON_API_KEY": "k"}
    assert fake_run.kwargs[0]["stderr"] is subprocess.STDOUT


def test_fetch_roles_for_service_account(fake_run: FakeRun) -> None:
    fake_run.stdout = "[]"

    TectonCli().fetch_roles(Principal.service_account("bot1"))

    assert fake_run.commands[0][-2:] == ["--service-account", "bot1"]


@pytest.mark.parametrize(
    ("role", "workspace", "grant", "expected"),
    [
        ("viewer", None, True, ["assign-role", "--role", "viewer", "--user", "alice"]),
        (
            "owner",
            "prod",
            False,
            ["unassign-role", "--role", "owner", "--workspace", "prod", "--user", "alice"],
        ),
        ("admin", None, False, ["unassign-role", "--role", "admin", "--user", "alice"]),
    ],
)
def test_set_role_arguments(fake_run: FakeRun, role, workspace, grant, expected) -> None:
    TectonCli().set_role(Principal.user("alice"), role, workspace, grant)

    assert fake_run.commands == [["tecton", "access-control", *expected]]


def test_failed_command_keeps_output(fake_run: FakeRun) -> None:
    fake_run.returncode = 1
    fake_run.stdout = "Error: workspace 'prod' not found"

    with pytest.raises(BackendUnavailableError) as excinfo:
        TectonCli().set_role(Principal.user("alice"), "viewer", "prod", True)

    error = excinfo.value
    assert error.output == "Error: workspace 'prod' not found"
    assert error.role == "viewer"
    assert error.operation == "assign-role"
    assert error.scope is not None and error.scope.label == "workspace:prod"
    assert "workspace 'prod' not found" in str(error)


def test_failed_query_is_backend_unavailable(fake_run: FakeRun) -> None:
    fake_run.returncode = 2
    fake_run.stdout = "connection refused"

    with pytest.raises(BackendUnavailableError, match="exit code 2") as excinfo:
        TectonCli().fetch_roles(Principal.user("alice"))

    assert excinfo.value.principal == Principal.user("alice")


def test_timeout_is_backend_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    def _timeout(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr(tecton_cli.subprocess, "run", _timeout)

    with pytest.raises(BackendUnavailableError, match="timed out"):
        TectonCli(timeout_seconds=5).list_workspaces()


def test_list_workspaces(fake_run: FakeRun) -> None:
    fake_run.stdout = WORKSPACE_LIST_OUTPUT

    directory = TectonCli().list_workspaces()

    assert fake_run.commands == [["tecton", "workspace", "list"]]
    assert directory.is_live("staging") is True


def test_require_executable_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tecton_cli.shutil, "which", lambda command: None)
    with pytest.raises(BackendUnavailableError, match="pip install tecton"):
        require_executable("tecton")


def test_from_settings_builds_command_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tecton_cli.shutil, "which", lambda command: f"/usr/bin/{command}")
    monkeypatch.setenv("PATH", "/usr/bin")
    settings = Settings(url="https://example.tecton.ai/", api_key="secret", timeout_seconds=30)

    cli = TectonCli.from_settings(settings)

    assert cli.executable == "/usr/bin/tecton"
    assert cli.timeout_seconds == 30
    assert cli.env is not None
    assert cli.env["TECTON_API_KEY"] == "secret"
    assert cli.env["API_SERVICE"] == "https://example.tecton.ai/api"
    assert cli.env["PATH"] == "/usr/bin"
