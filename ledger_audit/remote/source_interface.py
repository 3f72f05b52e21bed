from abc import ABC, abstractmethod
from typing import List, Optional

from ..core.identity import Principal
from ..core.types import LedgerStats, TransactionEvent


class RemoteHistorySource(ABC):
    """
    Abstract read-only view of the authoritative ledger.
    Every method is a blocking request-response with no implicit retry;
    transport failures raise UpstreamUnavailable.
    """

    @abstractmethod
    def stats(self) -> LedgerStats:
        """
        Aggregate counters, including history_events (sync target).
        """
        pass

    @abstractmethod
    def get_transaction(self, index: int) -> Optional[TransactionEvent]:
        """
        Point fetch by dense index. None if the source has no event there.
        """
        pass

    @abstractmethod
    def events(self, from_index: int, limit: int) -> List[TransactionEvent]:
        """
        Page of consecutive events starting at from_index, ascending.
        May return fewer than `limit` at the end of the history.
        """
        pass

    @abstractmethod
    def balance(self, identity: Optional[Principal] = None) -> int:
        """
        Live balance for `identity`, or for the caller when None.
        """
        pass

    def close(self):
        pass
