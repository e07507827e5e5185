# src/usm/runtime/events.py
from __future__ import annotations

"""Ledger events.

Events are observable facts emitted by successful calls. They are never used
for control flow inside the ledger; the executor persists them and the API
exposes them read-only.

Shapes:
  Transfer{from, to, amount}           mint => from is the zero address
  Approval{owner, spender, amount}
  Burn{from, amount}
  BurnRateProposed{rate, effective_at}
  BurnRateUpdated{rate}                only on execute
  BurnRateUpdateCancelled{rate, cancelled_rate}
  TransferWithBurnToggled{enabled}
  Paused{by} / Unpaused{by}
  OwnershipTransferred{previous_owner, new_owner}
"""

from dataclasses import dataclass
from typing import Any, Dict

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class Transfer:
    from_address: str
    to_address: str
    amount: int

    name = "Transfer"

    def to_json(self) -> Json:
        return {"event": self.name, "from": self.from_address, "to": self.to_address, "amount": int(self.amount)}


@dataclass(frozen=True, slots=True)
class Approval:
    owner: str
    spender: str
    amount: int

    name = "Approval"

    def to_json(self) -> Json:
        return {"event": self.name, "owner": self.owner, "spender": self.spender, "amount": int(self.amount)}


@dataclass(frozen=True, slots=True)
class Burn:
    from_address: str
    amount: int

    name = "Burn"

    def to_json(self) -> Json:
        return {"event": self.name, "from": self.from_address, "amount": int(self.amount)}


@dataclass(frozen=True, slots=True)
class BurnRateProposed:
    rate: int
    effective_at: int

    name = "BurnRateProposed"

    def to_json(self) -> Json:
        return {"event": self.name, "rate": int(self.rate), "effective_at": int(self.effective_at)}


@dataclass(frozen=True, slots=True)
class BurnRateUpdated:
    rate: int

    name = "BurnRateUpdated"

    def to_json(self) -> Json:
        return {"event": self.name, "rate": int(self.rate)}


@dataclass(frozen=True, slots=True)
class BurnRateUpdateCancelled:
    """Pending proposal discarded; `rate` is the unchanged committed rate."""

    rate: int
    cancelled_rate: int

    name = "BurnRateUpdateCancelled"

    def to_json(self) -> Json:
        return {"event": self.name, "rate": int(self.rate), "cancelled_rate": int(self.cancelled_rate)}


@dataclass(frozen=True, slots=True)
class TransferWithBurnToggled:
    enabled: bool

    name = "TransferWithBurnToggled"

    def to_json(self) -> Json:
        return {"event": self.name, "enabled": bool(self.enabled)}


@dataclass(frozen=True, slots=True)
class Paused:
    by: str

    name = "Paused"

    def to_json(self) -> Json:
        return {"event": self.name, "by": self.by}


@dataclass(frozen=True, slots=True)
class Unpaused:
    by: str

    name = "Unpaused"

    def to_json(self) -> Json:
        return {"event": self.name, "by": self.by}


@dataclass(frozen=True, slots=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str

    name = "OwnershipTransferred"

    def to_json(self) -> Json:
        return {"event": self.name, "previous_owner": self.previous_owner, "new_owner": self.new_owner}


__all__ = [
    "Approval",
    "Burn",
    "BurnRateProposed",
    "BurnRateUpdateCancelled",
    "BurnRateUpdated",
    "OwnershipTransferred",
    "Paused",
    "Transfer",
    "TransferWithBurnToggled",
    "Unpaused",
]
