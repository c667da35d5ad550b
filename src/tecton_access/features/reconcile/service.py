"""Drive the backend to a declared access policy without permission gaps.

Each backend mutation grants or revokes exactly one role and there is no
multi-role transaction. Within every scope all grants are applied before any
revoke, so at every instant the principal holds at least ``desired ∩ before``
and at most ``desired ∪ before``.

A pass is not transactional: the first failing mutation aborts it and the
mutations already applied stand. Re-running the pass re-fetches the actual
policy and replays only what is still missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tecton_access.common.logging import log_context
from tecton_access.core.errors import (
    BackendError,
    PartialApplyError,
    PolicyAlreadyExistsError,
)
from tecton_access.core.interfaces import RoleMutator
from tecton_access.core.policy import (
    BASELINE,
    Operation,
    Plan,
    Policy,
    diff_admin,
    diff_policies,
)
from tecton_access.core.principal import Principal
from tecton_access.core.roles import ADMIN_ROLE, sort_roles
from tecton_access.features.workspaces.directory import WorkspaceDirectory

from .fetcher import StateFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a successful pass."""

    principal: Principal
    before: Policy
    plan: Plan

    @property
    def applied(self) -> tuple[Operation, ...]:
        return self.plan.operations

    @property
    def changed(self) -> bool:
        return not self.plan.is_empty


def build_plan(desired: Policy, actual: Policy) -> Plan:
    """Order the operations that move ``actual`` to ``desired``.

    Admin toggle first, then baseline, then the desired workspaces, then the
    workspaces dropped from the declaration. Inside a scope every grant comes
    before every revoke.
    """

    principal = desired.principal
    operations: list[Operation] = []

    admin = diff_admin(desired.admin, actual.admin)
    if admin is not None:
        operations.append(Operation(principal, BASELINE, ADMIN_ROLE, grant=admin))

    for diff in diff_policies(desired, actual):
        for role in sort_roles(diff.to_grant):
            operations.append(Operation(principal, diff.scope, role, grant=True))
        for role in sort_roles(diff.to_revoke):
            operations.append(Operation(principal, diff.scope, role, grant=False))

    return Plan(principal=principal, operations=tuple(operations))


class Reconciler:
    """Fetch, diff and apply access policies for one principal at a time.

    ``directory`` is the workspace snapshot of the current run. When given,
    workspaces named by the desired policy are checked against it before any
    mutation is issued.
    """

    def __init__(
        self,
        fetcher: StateFetcher,
        mutator: RoleMutator,
        *,
        directory: WorkspaceDirectory | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._mutator = mutator
        self._directory = directory

    @property
    def fetcher(self) -> StateFetcher:
        return self._fetcher

    def plan(self, desired: Policy) -> Plan:
        """Return the operations a pass would issue right now, without applying them."""

        actual = self._fetcher.fetch(desired.principal).policy
        return build_plan(desired, actual)

    def reconcile(self, desired: Policy) -> ReconcileResult:
        actual = self._fetcher.fetch(desired.principal).policy
        return self._apply(desired, actual)

    def create(self, desired: Policy) -> ReconcileResult:
        """Reconcile a newly declared principal.

        Fails with ``PolicyAlreadyExistsError`` when the principal already holds
        any grant; existing grants must be adopted through an import instead.
        """

        principal = desired.principal
        fetched = self._fetcher.fetch(principal)
        if fetched.exists:
            logger.warning(
                "reconcile.create.already_exists",
                extra=log_context(principal=principal.policy_id, records=len(fetched.records)),
            )
            raise PolicyAlreadyExistsError(
                f"An access policy already exists for {principal.label}. Import it "
                f"(id '{principal.policy_id}') so that no permissions are accidentally deleted.",
                principal=principal,
                operation="create",
            )
        return self._apply(desired, fetched.policy)

    def delete(self, principal: Principal) -> ReconcileResult:
        return self.reconcile(Policy.empty(principal))

    def _apply(self, desired: Policy, actual: Policy) -> ReconcileResult:
        principal = desired.principal
        if self._directory is not None:
            self._directory.require(desired.workspace_roles)

        plan = build_plan(desired, actual)
        logger.info(
            "reconcile.plan",
            extra=log_context(
                principal=principal.policy_id,
                grants=len(plan.grants),
                revokes=len(plan.revokes),
            ),
        )

        applied: list[Operation] = []
        for operation in plan:
            try:
                self._mutator.set_role(
                    principal,
                    operation.role,
                    operation.scope.workspace,
                    operation.grant,
                )
            except BackendError as exc:
                logger.error(
                    f"reconcile.{operation.verb}.failed",
                    extra=log_context(
                        principal=principal.policy_id,
                        scope=operation.scope.label,
                        role=operation.role,
                        applied=len(applied),
                    ),
                )
                raise PartialApplyError(
                    f"Failed to {operation.describe()} for {principal.label} after "
                    f"{len(applied)} of {len(plan)} operations: {exc}",
                    applied=applied,
                    failed=operation,
                ) from exc
            applied.append(operation)
            logger.info(
                f"reconcile.{operation.verb}",
                extra=log_context(
                    principal=principal.policy_id,
                    scope=operation.scope.label,
                    role=operation.role,
                ),
            )

        return ReconcileResult(principal=principal, before=actual, plan=plan)


__all__ = ["ReconcileResult", "Reconciler", "build_plan"]
