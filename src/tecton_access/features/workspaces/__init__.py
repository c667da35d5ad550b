"""Workspace directory consumed by the reconciler."""

from .directory import WorkspaceDirectory

__all__ = ["WorkspaceDirectory"]
