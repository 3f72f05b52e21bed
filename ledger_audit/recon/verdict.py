"""
Reconciliation outcome types.

A mismatch is a normal, reportable result, never an exception.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set

from ..core.identity import Principal


class ReconcileStatus(str, Enum):
    VERIFIED = "VERIFIED"
    DISCREPANCIES = "DISCREPANCIES"


@dataclass(frozen=True)
class Discrepancy:
    """
    One account whose replayed balance is not confirmed by the snapshot.
    observed is None when the snapshot has never seen the account.
    """
    identity: Principal
    expected: int
    observed: Optional[int]

    @property
    def delta(self) -> Optional[int]:
        if self.observed is None:
            return None
        return self.expected - self.observed


@dataclass
class ReconciliationReport:
    """
    Result of a reconcile (or verify) run.
    """
    checked: int
    discrepancies: Dict[Principal, Discrepancy] = field(default_factory=dict)
    refreshed: Set[Principal] = field(default_factory=set)
    unreachable: Set[Principal] = field(default_factory=set)

    @property
    def mismatches(self) -> Set[Principal]:
        return set(self.discrepancies)

    @property
    def status(self) -> ReconcileStatus:
        return ReconcileStatus.DISCREPANCIES if self.discrepancies else ReconcileStatus.VERIFIED

    def is_verified(self) -> bool:
        return self.status == ReconcileStatus.VERIFIED

    def summary(self) -> str:
        if self.is_verified():
            return f"VERIFIED: all {self.checked} balances match the snapshot"
        return (
            f"DISCREPANCIES: {len(self.discrepancies)} of {self.checked} balances differ "
            f"({len(self.refreshed)} refreshed, {len(self.unreachable)} unreachable)"
        )
