"""
Transaction codec.

Converts TransactionEvent <-> durable, human-inspectable dict (JSON-ready).
Principals become canonical text; integers become tagged text ("1000n") so
that no JSON reader can round them through a float.

Durable record, format 1:

    {
      "format": 1,
      "index": "42n",
      "timestamp": "1634567890000n",
      "cycles": "100n",
      "fee": "1n",
      "kind": {"Transfer": {"to": "...", "from": "..."}}
    }

Records without "format" are legacy (format 0) backups: same tags, no
"index" (the store key supplies it).
"""
import re
from typing import Any, Dict, Final, Optional

from pydantic import ValidationError

from .errors import InvalidIdentity, MalformedEvent
from .identity import Principal
from .types import KIND_REGISTRY, TransactionEvent, field_attr

FORMAT_VERSION: Final[int] = 1
LEGACY_FORMAT_VERSION: Final[int] = 0
SUPPORTED_FORMATS: Final[frozenset] = frozenset({LEGACY_FORMAT_VERSION, FORMAT_VERSION})

BIGINT_SUFFIX: Final[str] = "n"
_BIGINT_RE = re.compile(r"-?[0-9]+")

AMOUNT_FIELDS: Final[tuple] = ("timestamp", "cycles", "fee")


def encode_bigint(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected int, got {type(value).__name__}")
    return f"{value}{BIGINT_SUFFIX}"


def decode_bigint(text: Any, field: str = "value", index: Optional[int] = None) -> int:
    """
    Parses tagged big-integer text. Untagged values, including plain JSON
    numbers, are rejected.
    """
    if not isinstance(text, str) or not text.endswith(BIGINT_SUFFIX):
        raise MalformedEvent(f"Field '{field}' is not a tagged big integer: {text!r}", index=index)
    digits = text[:-len(BIGINT_SUFFIX)]
    if not _BIGINT_RE.fullmatch(digits):
        raise MalformedEvent(f"Field '{field}' has invalid digits: {text!r}", index=index)
    return int(digits)


class TransactionCodec:
    """
    Bidirectional, total over the closed kind registry.
    decode(encode(e)) == e for every representable event.
    """

    def encode(self, event: TransactionEvent) -> Dict[str, Any]:
        kind = event.kind
        registered = KIND_REGISTRY.get(getattr(kind, "tag", None))
        if registered is None or type(kind) is not registered:
            raise MalformedEvent(f"Unregistered transaction kind: {type(kind).__name__}", index=event.index)

        body = {name: getattr(kind, field_attr(name)).to_text() for name in kind.identity_fields}
        record: Dict[str, Any] = {
            "format": FORMAT_VERSION,
            "index": encode_bigint(event.index),
        }
        for field in AMOUNT_FIELDS:
            record[field] = encode_bigint(getattr(event, field))
        record["kind"] = {kind.tag: body}
        return record

    def decode(self, record: Any, index: Optional[int] = None) -> TransactionEvent:
        """
        `index` is the store key; required for legacy records that do not
        embed one, and cross-checked against the embedded index otherwise.
        """
        if not isinstance(record, dict):
            raise MalformedEvent(f"Record is not an object: {type(record).__name__}", index=index)

        version = record.get("format", LEGACY_FORMAT_VERSION)
        if isinstance(version, bool) or not isinstance(version, int) or version not in SUPPORTED_FORMATS:
            raise MalformedEvent(f"Unsupported record format: {version!r}", index=index)

        event_index = self._decode_index(record, index)
        amounts = {field: decode_bigint(record.get(field), field, event_index) for field in AMOUNT_FIELDS}
        kind = self._decode_kind(record.get("kind"), event_index)

        try:
            return TransactionEvent(index=event_index, kind=kind, **amounts)
        except ValidationError as e:
            raise MalformedEvent(f"Invalid transaction values: {e}", index=event_index) from e

    def _decode_index(self, record: Dict[str, Any], index: Optional[int]) -> int:
        if "index" not in record:
            if index is None:
                raise MalformedEvent("Record has no index and none was supplied")
            return index

        embedded = decode_bigint(record["index"], "index", index)
        if index is not None and embedded != index:
            raise MalformedEvent(f"Embedded index {embedded} does not match record key", index=index)
        return embedded

    def _decode_kind(self, kind: Any, index: int):
        if not isinstance(kind, dict) or not kind:
            raise MalformedEvent("Not a transaction, no kind property", index=index)
        if len(kind) != 1:
            raise MalformedEvent(f"Ambiguous transaction kind: {sorted(kind)}", index=index)

        (tag, body), = kind.items()
        variant = KIND_REGISTRY.get(tag)
        if variant is None:
            raise MalformedEvent(f"Unknown transaction kind - {tag!r}", index=index)
        if not isinstance(body, dict):
            raise MalformedEvent(f"Kind '{tag}' body is not an object", index=index)

        unexpected = set(body) - set(variant.identity_fields)
        if unexpected:
            raise MalformedEvent(f"Kind '{tag}' has unexpected fields: {sorted(unexpected)}", index=index)

        fields = {}
        for name in variant.identity_fields:
            if name not in body:
                raise MalformedEvent(f"Kind '{tag}' is missing field '{name}'", index=index)
            try:
                fields[name] = Principal.from_text(body[name])
            except InvalidIdentity as e:
                raise InvalidIdentity(f"Kind '{tag}' field '{name}' is not a valid principal", index=index, identity=str(body[name])) from e
        return variant.model_validate(fields)
