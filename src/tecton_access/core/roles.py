"""Canonical role vocabulary and its presentation order."""

from __future__ import annotations

import enum
from collections.abc import Iterable

ADMIN_ROLE = "admin"


class Role(str, enum.Enum):
    """Scoped roles, declared in order of increasing power."""

    VIEWER = "viewer"
    OPERATOR = "operator"
    EDITOR = "editor"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return _RANKS[self.value]


_RANKS: dict[str, int] = {role.value: index for index, role in enumerate(Role)}

VALID_ROLES: tuple[str, ...] = tuple(role.value for role in Role)


def is_known_role(value: str) -> bool:
    return value in _RANKS


def role_rank(role: str | Role) -> int | None:
    """Return the power rank of ``role`` or ``None`` for unrecognized roles."""

    key = role.value if isinstance(role, Role) else str(role)
    return _RANKS.get(key)


def sort_roles(roles: Iterable[str | Role]) -> list[str]:
    """Order roles by increasing power for display.

    Recognized roles are sorted among the positions they already occupy;
    unrecognized roles keep their index. Sets have no index to keep, so they
    are put in name order first. Sorting is cosmetic and diffing never depends
    on it.
    """

    values = [role.value if isinstance(role, Role) else str(role) for role in roles]
    if isinstance(roles, (set, frozenset)):
        values.sort()
    slots = [index for index, value in enumerate(values) if value in _RANKS]
    ordered = sorted((values[index] for index in slots), key=_RANKS.__getitem__)
    for index, value in zip(slots, ordered):
        values[index] = value
    return values


__all__ = [
    "ADMIN_ROLE",
    "Role",
    "VALID_ROLES",
    "is_known_role",
    "role_rank",
    "sort_roles",
]
