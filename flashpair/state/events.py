"""Event types emitted by ledgers, pools and executors.

Events are buffered by the runtime and delivered to subscribers only after the
outermost call commits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Mapping


@unique
class EventKind(Enum):
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
    MINT = "Mint"
    BURN = "Burn"
    SWAP = "Swap"
    FLASH_SWAP = "FlashSwap"
    SYNC = "Sync"
    POOL_CREATED = "PoolCreated"
    ARBITRAGE = "Arbitrage"


@dataclass(frozen=True)
class Event:
    """One notification: what happened, which contract emitted it, and its fields."""

    kind: EventKind
    emitter: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]
