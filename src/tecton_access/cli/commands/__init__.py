"""tecton-access command registration."""

from __future__ import annotations

import typer

from . import policies, workspaces


def register_all(app: typer.Typer) -> None:
    for module in (policies, workspaces):
        module.register(app)
