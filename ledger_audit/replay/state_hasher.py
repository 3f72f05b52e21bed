"""
Deterministic digest of a replayed ledger.
Two replays of the same stored prefix must produce the same digest.
"""
import hashlib
import json
from typing import Dict

from ..core.types import LedgerState


class LedgerHasher:

    @staticmethod
    def canonical(ledger: LedgerState) -> Dict[str, str]:
        """
        Identity text -> decimal string, so JSON never sees a big int.
        """
        return {principal.to_text(): str(amount) for principal, amount in ledger.items()}

    @staticmethod
    def hash_ledger(ledger: LedgerState) -> str:
        serialized = json.dumps(LedgerHasher.canonical(ledger), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()
