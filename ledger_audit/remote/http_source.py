from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..core.codec import TransactionCodec, decode_bigint
from ..core.errors import MalformedEvent, UpstreamUnavailable
from ..core.identity import Principal
from ..core.logger import get_logger
from ..core.types import LedgerStats, TransactionEvent
from .source_interface import RemoteHistorySource

logger = get_logger("HttpHistorySource")


class HttpHistorySource(RemoteHistorySource):
    """
    Read-only client for a JSON gateway in front of the ledger canister.

    Endpoints (integers are tagged text, "123n"):
        GET /stats                      -> {"history_events": "..n", "balance": "..n", "supply": "..n", ...}
        GET /transactions/{index}       -> transaction record, 404 when absent
        GET /events?from=&limit=        -> {"data": [record, ...]}
        GET /balance[?principal=<text>] -> {"amount": "..n"}

    Transaction records use the codec's durable form; the gateway may omit
    "format" and "index".
    """
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.codec = TransactionCodec()
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None, allow_missing: bool = False) -> Optional[Any]:
        try:
            response = self.client.get(path, params=params)
            if allow_missing and response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error("upstream_request_failed", path=path, error=str(e))
            raise UpstreamUnavailable(f"GET {path} failed: {e}") from e
        except ValueError as e:
            logger.error("upstream_invalid_json", path=path, error=str(e))
            raise UpstreamUnavailable(f"GET {path} returned invalid JSON: {e}") from e

    def stats(self) -> LedgerStats:
        data = self._get("/stats")
        if not isinstance(data, dict):
            raise UpstreamUnavailable(f"GET /stats returned {type(data).__name__}, expected an object")
        try:
            values = {
                key: decode_bigint(value, key) if isinstance(value, str) else value
                for key, value in data.items()
            }
            return LedgerStats.model_validate(values)
        except (MalformedEvent, ValidationError) as e:
            logger.error("upstream_invalid_stats", error=str(e))
            raise UpstreamUnavailable(f"GET /stats returned invalid stats: {e}") from e

    def get_transaction(self, index: int) -> Optional[TransactionEvent]:
        record = self._get(f"/transactions/{index}", allow_missing=True)
        if record is None:
            return None
        return self.codec.decode(record, index)

    def events(self, from_index: int, limit: int) -> List[TransactionEvent]:
        data = self._get("/events", params={"from": from_index, "limit": limit})
        records = data.get("data", []) if isinstance(data, dict) else []
        return [self.codec.decode(record, from_index + offset) for offset, record in enumerate(records)]

    def balance(self, identity: Optional[Principal] = None) -> int:
        params = {"principal": identity.to_text()} if identity is not None else None
        data = self._get("/balance", params=params)
        try:
            return decode_bigint(data.get("amount") if isinstance(data, dict) else data, "amount")
        except MalformedEvent as e:
            logger.error("upstream_invalid_balance", params=params, error=str(e))
            raise UpstreamUnavailable(f"GET /balance returned an invalid amount: {e}") from e

    def close(self):
        self.client.close()
