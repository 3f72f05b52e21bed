"""
Reconciliation package.

Compares replayed balances with observed live balances and escalates
disagreements to a bounded live refresh.
"""
from .reconciliation import Reconciler
from .snapshot_cache import BalanceSnapshotCache, FileSnapshotCache, RedisSnapshotCache
from .stats_guard import StatsGuard, validate_stats
from .verdict import Discrepancy, ReconcileStatus, ReconciliationReport

__all__ = [
    "Reconciler",
    "BalanceSnapshotCache",
    "FileSnapshotCache",
    "RedisSnapshotCache",
    "StatsGuard",
    "validate_stats",
    "Discrepancy",
    "ReconcileStatus",
    "ReconciliationReport",
]
