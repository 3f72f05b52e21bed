from typing import Dict, Iterable, List, Optional

from ..core.errors import UpstreamUnavailable
from ..core.identity import Principal
from ..core.logger import get_logger
from ..core.types import LedgerStats, TransactionEvent
from .source_interface import RemoteHistorySource

logger = get_logger("InMemoryHistorySource")


class InMemoryHistorySource(RemoteHistorySource):
    """
    Deterministic in-process source for fixtures and offline runs.
    Supports fault injection: `fail_at` makes get_transaction raise
    UpstreamUnavailable for that index, `holes` makes it report no event.
    """
    def __init__(
        self,
        events: Iterable[TransactionEvent] = (),
        balances: Optional[Dict[Principal, int]] = None,
        supply: int = 0,
        reserve: int = 0,
        caller: Optional[Principal] = None,
    ):
        self._events: Dict[int, TransactionEvent] = {e.index: e for e in events}
        self.balances: Dict[Principal, int] = dict(balances or {})
        self.supply = supply
        self.reserve = reserve
        self.caller = caller
        self.fail_at: Optional[int] = None
        self.holes: set = set()
        self.unreachable: set = set()

        # Call accounting, for asserting exactly-once fetches.
        self.fetched: List[int] = []
        self.balance_calls: List[Optional[Principal]] = []

    def add(self, event: TransactionEvent):
        self._events[event.index] = event

    def stats(self) -> LedgerStats:
        return LedgerStats(
            history_events=len(self._events),
            balance=self.reserve,
            supply=self.supply,
        )

    def get_transaction(self, index: int) -> Optional[TransactionEvent]:
        if self.fail_at is not None and index == self.fail_at:
            logger.warning("injected_fetch_failure", index=index)
            raise UpstreamUnavailable("Injected transport failure", index=index)
        self.fetched.append(index)
        if index in self.holes:
            return None
        return self._events.get(index)

    def events(self, from_index: int, limit: int) -> List[TransactionEvent]:
        page = []
        for index in range(from_index, from_index + limit):
            if self.fail_at is not None and index == self.fail_at:
                if page:
                    break
                raise UpstreamUnavailable("Injected transport failure", index=index)
            if index in self.holes or index not in self._events:
                break
            self.fetched.append(index)
            page.append(self._events[index])
        return page

    def balance(self, identity: Optional[Principal] = None) -> int:
        self.balance_calls.append(identity)
        target = identity if identity is not None else self.caller
        if target in self.unreachable:
            raise UpstreamUnavailable("Injected balance failure", identity=str(target))
        return self.balances.get(target, 0)
