from typing import Dict, Optional

from ..core.errors import StatsCheckFailed
from ..core.logger import get_logger
from ..core.types import LedgerStats

logger = get_logger("StatsGuard")


def validate_stats(stats: LedgerStats, stored_count: Optional[int] = None) -> Dict[str, bool]:
    """
    Named sanity checks over the remote aggregate counters.
    True means the check passed.
    """
    checks = {
        # Reserve held by the ledger must cover the circulating supply.
        "balance_greater_than_supply": stats.balance > stats.supply,
    }
    if stored_count is not None:
        # Append-only: the remote can never have fewer events than we copied.
        checks["history_not_behind_store"] = stats.history_events >= stored_count
    return checks


class StatsGuard:
    """
    Fails loudly: a failed check raises StatsCheckFailed, never passes silently.
    """

    def check(self, stats: LedgerStats, stored_count: Optional[int] = None) -> Dict[str, bool]:
        checks = validate_stats(stats, stored_count)
        failed = sorted(name for name, passed in checks.items() if not passed)

        if failed:
            logger.error(
                "stats_check_failed",
                failed=failed,
                balance=str(stats.balance),
                supply=str(stats.supply),
                history_events=stats.history_events,
                stored_count=stored_count,
            )
            raise StatsCheckFailed(f"Stats check failed: {', '.join(failed)}")

        logger.info("stats_check_passed", checks=checks)
        return checks
