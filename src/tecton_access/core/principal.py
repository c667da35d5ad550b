"""Principals that can hold role grants, and their access policy ids."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .errors import InvalidIdentifierError


class PrincipalKind(str, enum.Enum):
    USER = "user"
    SERVICE_ACCOUNT = "service_account"

    @property
    def id_prefix(self) -> str:
        return _ID_PREFIXES[self]

    @property
    def cli_flag(self) -> str:
        return _CLI_FLAGS[self]


_ID_PREFIXES: dict[PrincipalKind, str] = {
    PrincipalKind.USER: "user-",
    PrincipalKind.SERVICE_ACCOUNT: "service-",
}

_CLI_FLAGS: dict[PrincipalKind, str] = {
    PrincipalKind.USER: "--user",
    PrincipalKind.SERVICE_ACCOUNT: "--service-account",
}


@dataclass(frozen=True)
class Principal:
    """A user or a service account."""

    kind: PrincipalKind
    id: str

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Principal id must not be empty")

    @classmethod
    def user(cls, user_id: str) -> Principal:
        return cls(PrincipalKind.USER, user_id)

    @classmethod
    def service_account(cls, service_account_id: str) -> Principal:
        return cls(PrincipalKind.SERVICE_ACCOUNT, service_account_id)

    @property
    def policy_id(self) -> str:
        """Stable id of this principal's access policy (``user-<id>`` or ``service-<id>``)."""

        return f"{self.kind.id_prefix}{self.id}"

    @property
    def label(self) -> str:
        if self.kind is PrincipalKind.USER:
            return f"user '{self.id}'"
        return f"service '{self.id}'"


def parse_policy_id(policy_id: str) -> Principal:
    """Recover the principal from an access policy id."""

    for kind in PrincipalKind:
        prefix = kind.id_prefix
        if policy_id.startswith(prefix) and len(policy_id) > len(prefix):
            return Principal(kind, policy_id[len(prefix) :])
    raise InvalidIdentifierError(
        f"Expected either 'user-' or 'service-' as a prefix, got: {policy_id!r}"
    )


__all__ = ["Principal", "PrincipalKind", "parse_policy_id"]
