from typing import ClassVar, Dict, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .identity import Principal

# Cycles / token quantity. Python int, unbounded.
Amount = int

# Replayed balances. Built fresh on every replay, never persisted.
LedgerState = Dict[Principal, int]


def field_attr(wire_name: str) -> str:
    """Python attribute for a wire field name (`from` is reserved)."""
    return "from_" if wire_name == "from" else wire_name


class EventKind(BaseModel):
    """
    One variant of the closed transaction-kind union.
    `tag` is the durable/wire name, `identity_fields` the wire names of its
    principal fields in encoding order.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, populate_by_name=True)

    tag: ClassVar[str]
    identity_fields: ClassVar[Tuple[str, ...]]

    def participants(self) -> Tuple[Principal, ...]:
        return tuple(getattr(self, field_attr(name)) for name in self.identity_fields)


class Mint(EventKind):
    tag: ClassVar[str] = "Mint"
    identity_fields: ClassVar[Tuple[str, ...]] = ("to",)
    to: Principal


class Burn(EventKind):
    tag: ClassVar[str] = "Burn"
    identity_fields: ClassVar[Tuple[str, ...]] = ("to", "from")
    to: Principal
    from_: Principal = Field(alias="from")


class Transfer(EventKind):
    tag: ClassVar[str] = "Transfer"
    identity_fields: ClassVar[Tuple[str, ...]] = ("to", "from")
    to: Principal
    from_: Principal = Field(alias="from")


class CanisterCreated(EventKind):
    tag: ClassVar[str] = "CanisterCreated"
    identity_fields: ClassVar[Tuple[str, ...]] = ("canister", "from")
    canister: Principal
    from_: Principal = Field(alias="from")


class CanisterCalled(EventKind):
    tag: ClassVar[str] = "CanisterCalled"
    identity_fields: ClassVar[Tuple[str, ...]] = ("canister", "from")
    canister: Principal
    from_: Principal = Field(alias="from")


class Approve(EventKind):
    tag: ClassVar[str] = "Approve"
    identity_fields: ClassVar[Tuple[str, ...]] = ("to", "from")
    to: Principal
    from_: Principal = Field(alias="from")


class TransferFrom(EventKind):
    tag: ClassVar[str] = "TransferFrom"
    identity_fields: ClassVar[Tuple[str, ...]] = ("to", "from", "caller")
    to: Principal
    from_: Principal = Field(alias="from")
    caller: Principal


TransactionKind = Union[Mint, Burn, Transfer, CanisterCreated, CanisterCalled, Approve, TransferFrom]

# Closed registry: durable tag -> variant class.
KIND_REGISTRY: Dict[str, type] = {
    kind.tag: kind
    for kind in (Mint, Burn, Transfer, CanisterCreated, CanisterCalled, Approve, TransferFrom)
}


class TransactionEvent(BaseModel):
    """
    One historical ledger operation. Immutable once created.
    """
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)  # dense, zero-based position in the global history
    fee: int = Field(ge=0)
    cycles: int = Field(ge=0)
    timestamp: int  # opaque ordering value, not reprocessed
    kind: TransactionKind

    def involves(self, identity: Principal) -> bool:
        return identity in self.kind.participants()


class LedgerStats(BaseModel):
    """
    Aggregate counters reported by the remote ledger.
    Only history_events, balance and supply are consumed here.
    """
    model_config = ConfigDict(extra="allow")

    history_events: int = Field(ge=0)
    balance: int = Field(ge=0)  # reserve held by the ledger canister
    supply: int = Field(ge=0)  # tokens in circulation
    transfers_count: int = 0
    mints_count: int = 0
    burns_count: int = 0
    proxy_calls_count: int = 0
    canisters_created_count: int = 0
