"""Create, read, update, delete and import declared access policies."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from tecton_access.common.logging import log_context
from tecton_access.core.policy import Plan
from tecton_access.core.principal import parse_policy_id
from tecton_access.features.reconcile.service import ReconcileResult, Reconciler

from .schemas import AccessPolicyDeclaration, AccessPolicyState

logger = logging.getLogger(__name__)

# Go's RFC 850 layout ("Monday, 02-Jan-06 15:04:05 MST").
LAST_UPDATED_FORMAT = "%A, %d-%b-%y %H:%M:%S %Z"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class AccessPolicyService:
    """Lifecycle of access policies on top of the reconciler."""

    def __init__(
        self,
        reconciler: Reconciler,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._reconciler = reconciler
        self._clock = clock

    def _stamp(self) -> str:
        return self._clock().strftime(LAST_UPDATED_FORMAT)

    def plan(self, declaration: AccessPolicyDeclaration) -> Plan:
        return self._reconciler.plan(declaration.to_policy())

    def create(self, declaration: AccessPolicyDeclaration) -> AccessPolicyState:
        desired = declaration.to_policy()
        logger.info("policy.create", extra=log_context(principal=declaration.policy_id))
        self._reconciler.create(desired)
        return AccessPolicyState.from_policy(desired, last_updated=self._stamp())

    def update(self, declaration: AccessPolicyDeclaration) -> AccessPolicyState:
        desired = declaration.to_policy()
        logger.info("policy.update", extra=log_context(principal=declaration.policy_id))
        self._reconciler.reconcile(desired)
        return AccessPolicyState.from_policy(desired, last_updated=self._stamp())

    def read(self, policy_id: str) -> AccessPolicyState:
        """Fetch the actual policy behind ``policy_id``.

        This is also the import path: an existing principal is adopted by
        reading its grants under the id, never by creating it.
        """

        principal = parse_policy_id(policy_id)
        fetched = self._reconciler.fetcher.fetch(principal)
        logger.info(
            "policy.read",
            extra=log_context(principal=principal.policy_id, exists=fetched.exists),
        )
        return AccessPolicyState.from_policy(fetched.policy)

    def delete(self, policy_id: str) -> ReconcileResult:
        principal = parse_policy_id(policy_id)
        logger.info("policy.delete", extra=log_context(principal=principal.policy_id))
        return self._reconciler.delete(principal)


__all__ = ["AccessPolicyService", "LAST_UPDATED_FORMAT"]
