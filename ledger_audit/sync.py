import time
from dataclasses import dataclass
from typing import Callable, Optional

from .core.codec import TransactionCodec
from .core.errors import LedgerAuditError, UpstreamGap
from .core.history_store import HistoryStore
from .core.logger import get_logger
from .core.types import TransactionEvent
from .remote.source_interface import RemoteHistorySource

logger = get_logger("HistorySyncer")

# (index just stored, target_count)
ProgressCallback = Callable[[int, int], None]


@dataclass
class SyncReport:
    start_index: int
    target_count: int
    fetched: int
    elapsed_s: float

    @property
    def complete(self) -> bool:
        return self.start_index + self.fetched >= self.target_count

    def summary(self) -> str:
        if self.fetched == 0:
            return f"Already synced: {self.target_count} events stored"
        return (
            f"Stored #{self.start_index}..#{self.start_index + self.fetched - 1} "
            f"({self.fetched} events) of {self.target_count} in {self.elapsed_s:.1f}s"
        )


class HistorySyncer:
    """
    Copies the remote history into the HistoryStore, strictly in ascending
    index order. Each record is written before the next fetch starts, so an
    aborted run always leaves a gap-free, resumable prefix.
    """
    def __init__(
        self,
        source: RemoteHistorySource,
        store: HistoryStore,
        codec: Optional[TransactionCodec] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.source = source
        self.store = store
        self.codec = codec or TransactionCodec()
        self.on_progress = on_progress

    def sync_to(self, target_count: Optional[int] = None, page_size: int = 1) -> SyncReport:
        """
        Fetch and persist [next_index, target_count).
        target_count defaults to the remote history_events, read once.
        page_size > 1 switches to the paged events() fetch.
        """
        if target_count is None:
            target_count = self.source.stats().history_events
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        start = self.store.next_index()
        started_at = time.monotonic()
        logger.info("sync_started", start_index=start, target_count=target_count, page_size=page_size)

        if start > 0:
            logger.info("sync_resuming", previously_synced_to=start - 1)

        index = start
        try:
            while index < target_count:
                if page_size == 1:
                    event = self.source.get_transaction(index)
                    if event is None:
                        raise UpstreamGap("Remote reports no event below its stated count", index=index)
                    self._store(index, event, target_count)
                    index += 1
                else:
                    limit = min(page_size, target_count - index)
                    page = self.source.events(index, limit)
                    if not page:
                        raise UpstreamGap("Remote returned an empty page below its stated count", index=index)
                    # Never store past the requested window, whatever the source sent.
                    for event in page[:limit]:
                        self._store(index, event, target_count)
                        index += 1
        except LedgerAuditError as e:
            logger.error(
                "sync_aborted",
                failed_index=index,
                stored_through=index - 1 if index > 0 else None,
                target_count=target_count,
                error=str(e),
            )
            raise

        report = SyncReport(
            start_index=start,
            target_count=target_count,
            fetched=index - start,
            elapsed_s=time.monotonic() - started_at,
        )
        logger.info("sync_complete", fetched=report.fetched, target_count=target_count)
        return report

    def _store(self, index: int, event: TransactionEvent, target_count: int):
        if event.index != index:
            raise UpstreamGap(f"Remote returned event #{event.index} when #{index} was requested", index=index)

        self.store.put(index, self.codec.encode(event))
        logger.debug("record_stored", index=index, target_count=target_count)

        if self.on_progress is not None:
            self.on_progress(index, target_count)
