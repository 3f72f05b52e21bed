"""
Ledger replay engine.

Folds the stored history into per-account balances.
Processes events ONE AT A TIME, in ascending index order.
NO ASYNC. NO NETWORK. The result is a pure function of the stored prefix.
"""
from dataclasses import dataclass
from typing import Optional

from ..core.codec import TransactionCodec
from ..core.errors import MalformedEvent
from ..core.history_store import HistoryStore
from ..core.logger import get_logger
from ..core.types import (
    Approve,
    Burn,
    CanisterCalled,
    CanisterCreated,
    LedgerState,
    Mint,
    Transfer,
    TransactionEvent,
    TransferFrom,
)
from .history_reader import HistoryReader
from .policy import DebitPolicy, cycles_plus_fee
from .state_hasher import LedgerHasher

logger = get_logger("LedgerReplayEngine")


@dataclass
class ReplayResult:
    ledger: LedgerState
    events_replayed: int
    digest: str
    last_index: Optional[int] = None

    def summary(self) -> str:
        return f"Replayed {self.events_replayed} events into {len(self.ledger)} accounts (digest {self.digest[:16]})"


class LedgerReplayEngine:
    """
    Invariant: one event in -> its credit/debit applied -> next event.
    The ledger mapping is owned by a single replay() call; nothing shared
    escapes between runs.
    """
    def __init__(
        self,
        store: HistoryStore,
        codec: Optional[TransactionCodec] = None,
        debit_policy: DebitPolicy = cycles_plus_fee,
    ):
        self.reader = HistoryReader(store, codec)
        self.debit_policy = debit_policy

    def replay(self) -> LedgerState:
        return self.run().ledger

    def run(self) -> ReplayResult:
        ledger: LedgerState = {}
        processed = 0
        last_index = None

        for event in self.reader:
            if event.index != processed:
                raise MalformedEvent(f"Out-of-order event #{event.index}, expected #{processed}", index=event.index)
            self.apply(ledger, event)
            last_index = event.index
            processed += 1

        result = ReplayResult(
            ledger=ledger,
            events_replayed=processed,
            digest=LedgerHasher.hash_ledger(ledger),
            last_index=last_index,
        )
        logger.info("replay_complete", events=processed, accounts=len(ledger), digest=result.digest)
        return result

    def apply(self, ledger: LedgerState, event: TransactionEvent):
        """
        Apply exactly ONE event to `ledger` in place.
        """
        kind = event.kind

        if isinstance(kind, Mint):
            self._credit(ledger, kind.to, event.cycles)
        elif isinstance(kind, Transfer):
            self._credit(ledger, kind.to, event.cycles)
            self._debit(ledger, kind.from_, event)
        elif isinstance(kind, (Burn, CanisterCreated, CanisterCalled)):
            self._debit(ledger, kind.from_, event)
        elif isinstance(kind, (Approve, TransferFrom)):
            # Approval bookkeeping only, no balance effect.
            pass
        else:
            raise MalformedEvent(f"No replay rule for kind {type(kind).__name__}", index=event.index)

    @staticmethod
    def _credit(ledger: LedgerState, account, amount: int):
        ledger[account] = ledger.get(account, 0) + amount

    def _debit(self, ledger: LedgerState, account, event: TransactionEvent):
        ledger[account] = ledger.get(account, 0) - self.debit_policy(event.cycles, event.fee)
