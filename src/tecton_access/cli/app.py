"""tecton-access CLI app."""

from __future__ import annotations

from uuid import uuid4

import typer
from pydantic import ValidationError

from tecton_access.common.logging import bind_run_context, setup_logging
from tecton_access.settings import get_settings

from .commands import register_all
from .shared import EXIT_USAGE, echo_error

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Reconcile Tecton access policies (plan, apply, show, destroy, workspaces).",
)


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        return
    try:
        settings = get_settings()
    except ValidationError as exc:
        echo_error(f"invalid settings: {exc}")
        raise typer.Exit(code=EXIT_USAGE) from exc
    setup_logging(settings)
    bind_run_context(uuid4().hex[:8])


register_all(app)
