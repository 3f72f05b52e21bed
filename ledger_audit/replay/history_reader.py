from typing import Iterator, Optional

from ..core.codec import TransactionCodec
from ..core.history_store import HistoryStore
from ..core.identity import Principal
from ..core.types import TransactionEvent


class HistoryReader:
    """
    Streams decoded events from the HistoryStore in index order.
    Only the gap-free prefix is visible; decode errors propagate.
    """
    def __init__(self, store: HistoryStore, codec: Optional[TransactionCodec] = None):
        self.store = store
        self.codec = codec or TransactionCodec()

    def __iter__(self) -> Iterator[TransactionEvent]:
        return self.read(0)

    def read(self, from_index: int = 0) -> Iterator[TransactionEvent]:
        for index, record in self.store.iterate(from_index):
            yield self.codec.decode(record, index)

    def events_for(self, identity: Principal) -> Iterator[TransactionEvent]:
        """Every stored event in which `identity` takes part, in any role."""
        for event in self:
            if event.involves(identity):
                yield event
