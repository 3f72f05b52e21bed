from typing import Set

from ..core.errors import LedgerAuditError
from ..core.identity import Principal
from ..core.logger import get_logger
from ..core.types import LedgerState
from .snapshot_cache import BalanceSnapshotCache
from .verdict import Discrepancy, ReconciliationReport

logger = get_logger("Reconciler")


class Reconciler:
    """
    Truth enforcement: replayed balances vs observed live balances.
    Comparison is exact integer equality; these are discrete token counts.
    """

    def reconcile(self, ledger: LedgerState, snapshot: BalanceSnapshotCache) -> Set[Principal]:
        """
        Every ledger identity that is absent from the snapshot or whose
        snapshot balance differs.
        """
        return self.compare(ledger, snapshot).mismatches

    def compare(self, ledger: LedgerState, snapshot: BalanceSnapshotCache) -> ReconciliationReport:
        observed_balances = snapshot.load()
        report = ReconciliationReport(checked=len(ledger))

        for identity in sorted(ledger):
            expected = ledger[identity]
            observed = observed_balances.get(identity)
            if observed is None or observed != expected:
                report.discrepancies[identity] = Discrepancy(identity=identity, expected=expected, observed=observed)

        logger.info("reconciliation_pass", checked=report.checked, mismatches=len(report.discrepancies))
        return report

    def verify(self, ledger: LedgerState, snapshot: BalanceSnapshotCache) -> ReconciliationReport:
        """
        Reconcile, refresh exactly the disputed accounts from the live
        source, reconcile once more. Whatever still differs after that single
        escalation round is a genuine discrepancy; there is no further retry.
        """
        first = self.compare(ledger, snapshot)
        if first.is_verified():
            logger.info("reconciliation_verified", checked=first.checked)
            return first

        logger.info("refreshing_mismatched_balances", count=len(first.discrepancies))
        refreshed = set()
        unreachable = set()
        for identity in sorted(first.mismatches):
            try:
                snapshot.refresh_one(identity)
                refreshed.add(identity)
            except LedgerAuditError as e:
                # Stays a mismatch; recorded rather than aborting the run.
                logger.warning("balance_refresh_failed", identity=identity.to_text(), error=str(e))
                unreachable.add(identity)

        final = self.compare(ledger, snapshot)
        final.refreshed = refreshed
        final.unreachable = unreachable

        for discrepancy in final.discrepancies.values():
            logger.error(
                "balance_discrepancy",
                identity=discrepancy.identity.to_text(),
                expected=str(discrepancy.expected),
                observed=None if discrepancy.observed is None else str(discrepancy.observed),
                delta=None if discrepancy.delta is None else str(discrepancy.delta),
            )

        if final.is_verified():
            logger.info("reconciliation_verified_after_refresh", checked=final.checked, refreshed=len(refreshed))
        return final
