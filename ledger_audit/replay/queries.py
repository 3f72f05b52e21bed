"""
Read-only views over stored history and replayed balances.
"""
from typing import Final, List, Tuple

from ..core.identity import Principal
from ..core.types import LedgerState

CYCLES_PER_XTC: Final[int] = 10 ** 12
WHALE_THRESHOLD: Final[int] = 100 * CYCLES_PER_XTC


def whales(ledger: LedgerState, threshold: int = WHALE_THRESHOLD) -> List[Tuple[Principal, int]]:
    """
    Accounts holding strictly more than `threshold`, largest first.
    Ties are broken by identity text so the listing is stable.
    """
    holders = [(principal, amount) for principal, amount in ledger.items() if amount > threshold]
    return sorted(holders, key=lambda item: (-item[1], item[0].to_text()))


def format_xtc(cycles: int) -> str:
    # Whole XTC, truncated.
    return f"{cycles // CYCLES_PER_XTC} XTC"
