"""
Pool factory: one pool per unordered token pair.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..exceptions import PoolValidationError
from ..state.balances import Address
from ..state.events import EventKind
from ..state.pools import canonical_pair
from ..utils.logger import get_logger
from .pool import Pool
from .runtime import Contract, Runtime, external


logger = get_logger(__name__)


class PoolFactory(Contract):
    label = "factory"

    def __init__(self, runtime: Runtime) -> None:
        super().__init__(runtime)
        self._pools: Dict[Tuple[Address, Address], Pool] = {}

    def snapshot(self) -> Dict[Tuple[Address, Address], Pool]:
        return dict(self._pools)

    def restore(self, snapshot: Dict[Tuple[Address, Address], Pool]) -> None:
        self._pools = dict(snapshot)

    @external
    def create_pool(self, token_a: Address, token_b: Address) -> Pool:
        """
        Create the pool for a pair, or return the existing one.

        (a, b) and (b, a) resolve to the same pool.

        Raises:
            PoolValidationError: Identical tokens, or either token is not a token contract
        """
        pair = canonical_pair(token_a, token_b)
        existing = self._pools.get(pair)
        if existing is not None:
            return existing
        pool = Pool(self.runtime, *pair)
        self._pools[pair] = pool
        self.emit(
            EventKind.POOL_CREATED,
            pool=pool.address,
            pool_id=pool.pool_id,
            token_low=pool.token_low,
            token_high=pool.token_high,
        )
        logger.info("created pool %s for (%s, %s)", pool.pool_id[:16], pool.token_low, pool.token_high)
        return pool

    def get_pool(self, token_a: Address, token_b: Address) -> Optional[Pool]:
        try:
            pair = canonical_pair(token_a, token_b)
        except PoolValidationError:
            return None
        return self._pools.get(pair)

    @property
    def pools(self) -> List[Pool]:
        return sorted(self._pools.values(), key=lambda p: p.pool_id)
