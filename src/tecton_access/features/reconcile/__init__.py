"""Access policy reconciliation."""

from .fetcher import FetchResult, StateFetcher, aggregate_grants
from .service import ReconcileResult, Reconciler, build_plan

__all__ = [
    "FetchResult",
    "ReconcileResult",
    "Reconciler",
    "StateFetcher",
    "aggregate_grants",
    "build_plan",
]
