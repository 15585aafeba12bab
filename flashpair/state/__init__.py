"""
State records for the flashpair engine.
"""

from .balances import Address, Amount, BalanceTable, PoolId
from .events import Event, EventKind
from .pools import PoolState, canonical_pair, compute_pool_id
from .state_root import compute_state_root

__all__ = [
    "Address",
    "Amount",
    "BalanceTable",
    "PoolId",
    "Event",
    "EventKind",
    "PoolState",
    "canonical_pair",
    "compute_pool_id",
    "compute_state_root",
]
