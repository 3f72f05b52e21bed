"""
Ledger replay package.

Deterministic fold of the stored transaction history into balances.
"""
from .history_reader import HistoryReader
from .policy import DEBIT_POLICIES, DebitPolicy, cycles_only, cycles_plus_fee, get_debit_policy
from .queries import format_xtc, whales
from .replay_engine import LedgerReplayEngine, ReplayResult
from .state_hasher import LedgerHasher

__all__ = [
    "HistoryReader",
    "DEBIT_POLICIES",
    "DebitPolicy",
    "cycles_only",
    "cycles_plus_fee",
    "get_debit_policy",
    "format_xtc",
    "whales",
    "LedgerReplayEngine",
    "ReplayResult",
    "LedgerHasher",
]
