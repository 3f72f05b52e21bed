"""
Principal identities.

Text form: base32(crc32(raw) || raw), lowercase, unpadded, grouped by five
characters with dashes, e.g. ``aaaaa-aa`` (management canister) or
``2vxsx-fae`` (anonymous).
"""
import base64
import binascii
import zlib
from typing import Final

from .errors import InvalidIdentity

MAX_PRINCIPAL_BYTES: Final[int] = 29
CHECKSUM_BYTES: Final[int] = 4
GROUP_SIZE: Final[int] = 5


class Principal:
    """
    Immutable, hashable account / canister address.
    """
    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        if len(raw) > MAX_PRINCIPAL_BYTES:
            raise InvalidIdentity(f"Principal too long: {len(raw)} bytes")
        object.__setattr__(self, "_raw", bytes(raw))

    def __setattr__(self, name, value):
        raise AttributeError("Principal is immutable")

    @classmethod
    def from_text(cls, text: str) -> "Principal":
        """
        Canonical parse. Anything that does not re-encode to exactly `text`
        (bad checksum, wrong grouping, uppercase, bad alphabet) is rejected.
        """
        if not isinstance(text, str) or not text:
            raise InvalidIdentity(f"Not a principal: {text!r}", identity=repr(text))

        compact = text.replace("-", "").upper()
        padding = "=" * (-len(compact) % 8)
        try:
            decoded = base64.b32decode(compact + padding)
        except (binascii.Error, ValueError) as e:
            raise InvalidIdentity(f"Invalid base32 in principal: {e}", identity=text) from e

        if len(decoded) < CHECKSUM_BYTES:
            raise InvalidIdentity("Principal text too short", identity=text)

        checksum, raw = decoded[:CHECKSUM_BYTES], decoded[CHECKSUM_BYTES:]
        if zlib.crc32(raw).to_bytes(CHECKSUM_BYTES, "big") != checksum:
            raise InvalidIdentity("Principal checksum mismatch", identity=text)

        principal = cls(raw)
        if principal.to_text() != text:
            raise InvalidIdentity("Principal text is not canonical", identity=text)
        return principal

    def to_text(self) -> str:
        checksum = zlib.crc32(self._raw).to_bytes(CHECKSUM_BYTES, "big")
        encoded = base64.b32encode(checksum + self._raw).decode("ascii").lower().rstrip("=")
        return "-".join(encoded[i:i + GROUP_SIZE] for i in range(0, len(encoded), GROUP_SIZE))

    @property
    def raw(self) -> bytes:
        return self._raw

    def __eq__(self, other) -> bool:
        if not isinstance(other, Principal):
            return NotImplemented
        return self._raw == other._raw

    def __lt__(self, other: "Principal") -> bool:
        return self.to_text() < other.to_text()

    def __hash__(self) -> int:
        return hash(self._raw)

    def __str__(self) -> str:
        return self.to_text()

    def __repr__(self) -> str:
        return f"Principal({self.to_text()!r})"
