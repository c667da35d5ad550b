"""Declarative access policies for Tecton principals."""

from .core import Policy, Principal, Role
from .features.policies import AccessPolicyDeclaration, AccessPolicyService
from .features.reconcile import Reconciler, StateFetcher
from .settings import Settings, get_settings, reload_settings

__all__ = [
    "AccessPolicyDeclaration",
    "AccessPolicyService",
    "Policy",
    "Principal",
    "Reconciler",
    "Role",
    "Settings",
    "StateFetcher",
    "get_settings",
    "reload_settings",
]
