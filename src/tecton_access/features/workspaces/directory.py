"""Immutable snapshot of the workspaces known to the backend."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from tecton_access.core.errors import UnknownWorkspaceError
from tecton_access.core.policy import Scope


@dataclass(frozen=True)
class WorkspaceDirectory:
    """Live and development workspace names, fetched once per run.

    The snapshot is never refreshed; a workspace removed by someone else after
    it was taken surfaces later as a mutation failure.
    """

    live: frozenset[str] = frozenset()
    development: frozenset[str] = frozenset()

    @classmethod
    def of(cls, *, live: Iterable[str] = (), development: Iterable[str] = ()) -> WorkspaceDirectory:
        return cls(live=frozenset(live), development=frozenset(development))

    @property
    def names(self) -> frozenset[str]:
        return self.live | self.development

    def __contains__(self, name: object) -> bool:
        return name in self.live or name in self.development

    def is_live(self, name: str) -> bool:
        """Return whether ``name`` is a live workspace.

        Raises ``UnknownWorkspaceError`` when the workspace does not exist.
        """

        # A name listed in both sections is reported as development.
        if name in self.development:
            return False
        if name in self.live:
            return True
        raise UnknownWorkspaceError(
            f"Workspace with name '{name}' does not exist.",
            scope=Scope.for_workspace(name),
        )

    def require(self, names: Iterable[str]) -> None:
        missing = sorted(name for name in set(names) if name not in self)
        if not missing:
            return
        if len(missing) == 1:
            raise UnknownWorkspaceError(
                f"Workspace with name '{missing[0]}' does not exist.",
                scope=Scope.for_workspace(missing[0]),
            )
        raise UnknownWorkspaceError(f"Workspaces do not exist: {', '.join(missing)}.")

    def to_dict(self) -> dict[str, list[str]]:
        return {"live": sorted(self.live), "development": sorted(self.development)}


__all__ = ["WorkspaceDirectory"]
