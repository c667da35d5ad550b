"""Workspace directory command."""

from __future__ import annotations

import typer

from ..shared import command_context, emit_json


def _list_workspaces(*, json_output: bool) -> None:
    with command_context() as ctx:
        directory = ctx.directory

    if json_output:
        emit_json(directory.to_dict())
        return

    typer.echo("Live Workspaces:")
    for name in sorted(directory.live):
        typer.echo(f"  {name}")
    typer.echo("")
    typer.echo("Development Workspaces:")
    for name in sorted(directory.development):
        typer.echo(f"  {name}")


def register(app: typer.Typer) -> None:
    @app.command("workspaces", help="List the workspaces known to the backend.")
    def workspaces(
        json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
    ) -> None:
        _list_workspaces(json_output=json_output)
