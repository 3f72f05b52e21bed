"""
Run configuration.

Resolved once per process: defaults, then LEDGER_AUDIT_* environment
variables, then explicit overrides (CLI flags).
"""
import hashlib
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

ENV_PREFIX = "LEDGER_AUDIT_"


@dataclass(frozen=True)
class AuditConfig:
    """
    Immutable configuration for a sync / replay / reconcile run.
    """
    backup_dir: str = "backup"            # HistoryStore directory, one <index>.json per event
    snapshot_dir: str = "snapshot"        # BalanceSnapshotCache directory (file backend)
    source_url: Optional[str] = None      # JSON gateway in front of the ledger canister
    redis_url: Optional[str] = None       # switches the snapshot cache to the redis backend
    debit_policy: str = "cycles_plus_fee"
    log_level: str = "INFO"
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "AuditConfig":
        """
        Overrides whose value is None are ignored, so argparse namespaces
        can be passed straight through.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is not None and raw != "":
                values[f.name] = float(raw) if f.name == "request_timeout" else raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def config_hash(self) -> str:
        data = ":".join(f"{f.name}={getattr(self, f.name)}" for f in fields(self))
        return hashlib.sha256(data.encode()).hexdigest()[:16]
