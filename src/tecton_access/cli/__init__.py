"""Command-line interface for tecton-access."""

from .app import app

__all__ = ["app"]
