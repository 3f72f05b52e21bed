"""
Debit policies.

How much leaves the sender's balance for a debiting event. The recorded
`fee` is either charged on top of `cycles` or already folded into it; the
history alone does not say which. Reconciliation against live balances
decides, so the rule is a named, swappable function.
"""
from typing import Callable, Dict

DebitPolicy = Callable[[int, int], int]


def cycles_plus_fee(cycles: int, fee: int) -> int:
    """Fee charged on top of the principal value (default)."""
    return cycles + fee


def cycles_only(cycles: int, fee: int) -> int:
    """Fee assumed already included in `cycles`."""
    return cycles


DEBIT_POLICIES: Dict[str, DebitPolicy] = {
    "cycles_plus_fee": cycles_plus_fee,
    "cycles_only": cycles_only,
}

DEFAULT_DEBIT_POLICY = "cycles_plus_fee"


def get_debit_policy(name: str) -> DebitPolicy:
    try:
        return DEBIT_POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown debit policy {name!r}; expected one of {sorted(DEBIT_POLICIES)}") from None
