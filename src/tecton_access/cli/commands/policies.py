"""Access policy commands: plan, apply, show and destroy."""

from __future__ import annotations

from pathlib import Path

import typer

from tecton_access.features.policies.schemas import load_declarations

from ..shared import (
    command_context,
    emit_json,
    handle_errors,
    operation_line,
    plan_payload,
)


def _plan(*, path: Path, json_output: bool) -> None:
    with handle_errors():
        declarations = load_declarations(path)
    with command_context() as ctx:
        service = ctx.policy_service(validate_workspaces=False)
        plans = [service.plan(declaration) for declaration in declarations]

    if json_output:
        emit_json([plan_payload(plan) for plan in plans])
        return

    for plan in plans:
        if plan.is_empty:
            typer.echo(f"{plan.principal.policy_id}: up to date")
            continue
        typer.echo(f"{plan.principal.policy_id}: {len(plan)} operation(s)")
        for operation in plan:
            typer.echo(operation_line(operation))


def _apply(*, path: Path, create: bool, json_output: bool) -> None:
    with handle_errors():
        declarations = load_declarations(path)
    states = []
    with command_context() as ctx:
        service = ctx.policy_service()
        for declaration in declarations:
            if create:
                state = service.create(declaration)
            else:
                state = service.update(declaration)
            states.append(state)
            if not json_output:
                typer.echo(f"{state.id}: applied ({state.last_updated})")

    if json_output:
        emit_json([state.model_dump() for state in states])


def _show(*, policy_id: str, json_output: bool) -> None:
    with command_context() as ctx:
        state = ctx.policy_service(validate_workspaces=False).read(policy_id)

    if json_output:
        emit_json(state.model_dump(exclude_none=True))
        return

    typer.echo(f"id: {state.id}")
    typer.echo(f"  admin: {'yes' if state.admin else 'no'}")
    typer.echo(f"  all workspaces: {', '.join(state.all_workspaces) or '-'}")
    if not state.workspaces:
        typer.echo("  workspaces: -")
        return
    typer.echo("  workspaces:")
    for name, roles in state.workspaces.items():
        typer.echo(f"    {name}: {', '.join(roles)}")


def _destroy(*, policy_id: str, yes: bool) -> None:
    if not yes:
        typer.confirm(f"Revoke every role held by '{policy_id}'?", abort=True)
    with command_context() as ctx:
        result = ctx.policy_service(validate_workspaces=False).delete(policy_id)

    if not result.changed:
        typer.echo(f"{policy_id}: nothing to revoke")
        return
    typer.echo(f"{policy_id}: {len(result.applied)} operation(s) applied")
    for operation in result.applied:
        typer.echo(operation_line(operation))


def register(app: typer.Typer) -> None:
    @app.command("plan", help="Show the grants and revokes needed to match a declaration file.")
    def plan(
        path: Path = typer.Argument(..., help="JSON file with one or more access policies."),
        json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
    ) -> None:
        _plan(path=path, json_output=json_output)

    @app.command("apply", help="Reconcile the backend with a declaration file.")
    def apply(
        path: Path = typer.Argument(..., help="JSON file with one or more access policies."),
        create: bool = typer.Option(
            False,
            "--create",
            help="Fail instead of adopting principals that already hold roles.",
        ),
        json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
    ) -> None:
        _apply(path=path, create=create, json_output=json_output)

    @app.command("show", help="Read (import) the access policy behind an id.")
    def show(
        policy_id: str = typer.Argument(..., help="Policy id: user-<id> or service-<id>."),
        json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
    ) -> None:
        _show(policy_id=policy_id, json_output=json_output)

    @app.command("destroy", help="Revoke every role held by a principal.")
    def destroy(
        policy_id: str = typer.Argument(..., help="Policy id: user-<id> or service-<id>."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    ) -> None:
        _destroy(policy_id=policy_id, yes=yes)
