from typing import Iterator, List, Optional, Tuple

from .core.config import AuditConfig
from .core.errors import UpstreamUnavailable
from .core.history_store import HistoryStore
from .core.identity import Principal
from .core.logger import get_logger
from .core.types import LedgerStats, TransactionEvent
from .recon.reconciliation import Reconciler
from .recon.snapshot_cache import BalanceSnapshotCache, FileSnapshotCache, RedisSnapshotCache
from .recon.stats_guard import StatsGuard
from .recon.verdict import ReconciliationReport
from .remote.http_source import HttpHistorySource
from .remote.source_interface import RemoteHistorySource
from .replay.history_reader import HistoryReader
from .replay.policy import get_debit_policy
from .replay.queries import WHALE_THRESHOLD, whales
from .replay.replay_engine import LedgerReplayEngine, ReplayResult
from .sync import HistorySyncer, ProgressCallback, SyncReport

logger = get_logger("AuditRunner")


class AuditRunner:
    """
    The single composition point.
    Each operation is independently invocable; only sync, check_stats and
    the refresh step of reconcile touch the network.
    """
    def __init__(
        self,
        config: AuditConfig,
        source: Optional[RemoteHistorySource] = None,
        snapshot: Optional[BalanceSnapshotCache] = None,
    ):
        self.config = config
        self.store = HistoryStore(config.backup_dir)
        self.debit_policy = get_debit_policy(config.debit_policy)
        self._source = source
        self._snapshot = snapshot

    @property
    def source(self) -> RemoteHistorySource:
        if self._source is None:
            if not self.config.source_url:
                raise UpstreamUnavailable("No remote source configured (set LEDGER_AUDIT_SOURCE_URL or --source-url)")
            self._source = HttpHistorySource(self.config.source_url, timeout=self.config.request_timeout)
        return self._source

    @property
    def snapshot(self) -> BalanceSnapshotCache:
        if self._snapshot is None:
            if self.config.redis_url:
                self._snapshot = RedisSnapshotCache(self.config.redis_url)
            else:
                self._snapshot = FileSnapshotCache(self.config.snapshot_dir)
        return self._snapshot

    def sync(
        self,
        target_count: Optional[int] = None,
        page_size: int = 1,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SyncReport:
        syncer = HistorySyncer(self.source, self.store, on_progress=on_progress)
        return syncer.sync_to(target_count, page_size=page_size)

    def replay(self) -> ReplayResult:
        engine = LedgerReplayEngine(self.store, debit_policy=self.debit_policy)
        return engine.run()

    def reconcile(self, ledger=None) -> ReconciliationReport:
        """
        Replay (unless a ledger is given), then verify against the snapshot
        with one live refresh round for the disputed accounts.
        """
        if ledger is None:
            ledger = self.replay().ledger

        snapshot = self.snapshot
        if snapshot.source is None:
            try:
                snapshot.source = self.source
            except UpstreamUnavailable:
                logger.warning("reconcile_without_source", detail="mismatches cannot be refreshed")
        return Reconciler().verify(ledger, snapshot)

    def check_stats(self) -> LedgerStats:
        stats = self.source.stats()
        StatsGuard().check(stats, stored_count=self.store.next_index())
        return stats

    def user_history(self, identity: Principal) -> Iterator[TransactionEvent]:
        return HistoryReader(self.store).events_for(identity)

    def whales(self, threshold: int = WHALE_THRESHOLD) -> List[Tuple[Principal, int]]:
        return whales(self.replay().ledger, threshold)

    def close(self):
        if self._source is not None:
            self._source.close()
