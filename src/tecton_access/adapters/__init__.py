"""Backend adapters."""

from .tecton_cli import TectonCli

__all__ = ["TectonCli"]
