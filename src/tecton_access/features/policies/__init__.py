"""Declared access policies."""

from .schemas import (
    AccessPolicyDeclaration,
    AccessPolicyState,
    load_declarations,
    parse_declaration,
    parse_declarations,
)
from .service import AccessPolicyService

__all__ = [
    "AccessPolicyDeclaration",
    "AccessPolicyService",
    "AccessPolicyState",
    "load_declarations",
    "parse_declaration",
    "parse_declarations",
]
