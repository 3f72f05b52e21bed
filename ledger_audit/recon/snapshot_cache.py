"""
Balance snapshot cache.

Durable copy of previously observed live balances:
identity text -> tagged big-integer text ("48n"). Grows monotonically;
refreshing an identity overwrites its stale entry.
"""
import json
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

import redis

from ..core.codec import decode_bigint, encode_bigint
from ..core.errors import UpstreamUnavailable
from ..core.identity import Principal
from ..core.logger import get_logger
from ..remote.source_interface import RemoteHistorySource

logger = get_logger("BalanceSnapshotCache")

SNAPSHOT_FILE = "balances.json"
REDIS_KEY = "ledger_audit:balances"


class BalanceSnapshotCache(ABC):
    """
    Backend-independent cache logic. Subclasses persist raw
    text -> tagged-text entries.
    """
    def __init__(self, source: Optional[RemoteHistorySource] = None):
        self.source = source

    @abstractmethod
    def _read_all(self) -> Dict[str, str]:
        pass

    @abstractmethod
    def _read_one(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def _write_one(self, key: str, value: str):
        """Persist a single entry durably before returning."""
        pass

    def load(self) -> Dict[Principal, int]:
        """Full snapshot; empty if nothing has been persisted yet."""
        return {
            Principal.from_text(key): decode_bigint(value, f"balance[{key}]")
            for key, value in self._read_all().items()
        }

    def get(self, identity: Principal) -> Optional[int]:
        """Read without refreshing."""
        key = identity.to_text()
        value = self._read_one(key)
        if value is None:
            return None
        return decode_bigint(value, f"balance[{key}]")

    def put(self, identity: Principal, amount: int):
        self._write_one(identity.to_text(), encode_bigint(amount))

    def refresh(self, identities: Iterable[Principal]) -> Dict[Principal, int]:
        """
        Fetch each live balance and persist it immediately, one at a time.
        A failure propagates after everything fetched before it is saved.
        """
        if self.source is None:
            raise UpstreamUnavailable("Snapshot cache has no remote source to refresh from")

        identities = list(identities)
        for count, identity in enumerate(identities, start=1):
            self.refresh_one(identity)
            logger.info("balance_refreshed", identity=identity.to_text(), progress=f"{count}/{len(identities)}")
        return self.load()

    def refresh_one(self, identity: Principal) -> int:
        """Fetch and persist a single live balance; returns it without reloading the snapshot."""
        if self.source is None:
            raise UpstreamUnavailable("Snapshot cache has no remote source to refresh from", identity=identity.to_text())
        amount = self.source.balance(identity)
        self.put(identity, amount)
        return amount


class FileSnapshotCache(BalanceSnapshotCache):
    """
    Single JSON file, <directory>/balances.json, rewritten atomically after
    every update.
    """
    def __init__(self, directory: str = "snapshot", source: Optional[RemoteHistorySource] = None):
        super().__init__(source)
        self.directory = directory
        self.path = os.path.join(directory, SNAPSHOT_FILE)

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r") as f:
            return json.load(f)

    def _read_one(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def _write_one(self, key: str, value: str):
        os.makedirs(self.directory, exist_ok=True)
        balances = self._read_all()
        balances[key] = value

        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".balances.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(balances, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class RedisSnapshotCache(BalanceSnapshotCache):
    """
    Redis hash backend. One HSET per update.
    """
    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        source: Optional[RemoteHistorySource] = None,
        key: str = REDIS_KEY,
        client=None,
    ):
        super().__init__(source)
        self.redis = client if client is not None else redis.from_url(redis_url, decode_responses=True)
        self.key = key

    def _read_all(self) -> Dict[str, str]:
        return dict(self.redis.hgetall(self.key))

    def _read_one(self, key: str) -> Optional[str]:
        return self.redis.hget(self.key, key)

    def _write_one(self, key: str, value: str):
        self.redis.hset(self.key, key, value)
