"""
Pool state for constant-product pairs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..exceptions import PoolValidationError
from .balances import Address, Amount, PoolId
from .canonical import canonical_address, domain_sep_bytes, hex_to_bytes_fixed, sha256_hex


def canonical_pair(token_a: Address, token_b: Address) -> Tuple[Address, Address]:
    """
    Order a token pair canonically (ascending address).

    Both orderings of the same unordered pair map to the same result.

    Raises:
        PoolValidationError: If the tokens are identical or malformed
    """
    try:
        a = canonical_address(token_a, name="token_a")
        b = canonical_address(token_b, name="token_b")
    except (TypeError, ValueError) as exc:
        raise PoolValidationError(str(exc)) from exc
    if a == b:
        raise PoolValidationError(f"identical tokens: {a}")
    return (a, b) if a < b else (b, a)


def compute_pool_id(token_low: Address, token_high: Address) -> PoolId:
    """
    Deterministically compute a pool_id for a canonically ordered pair:
        pool_id = sha256(domain("pool") || token_low || token_high)
    """
    if token_low >= token_high:
        raise PoolValidationError(f"Tokens must be in canonical order: {token_low} < {token_high}")
    payload = (
        domain_sep_bytes("pool")
        + hex_to_bytes_fixed(token_low, nbytes=20, name="token_low")
        + hex_to_bytes_fixed(token_high, nbytes=20, name="token_high")
    )
    return sha256_hex(payload)


@dataclass
class PoolState:
    """
    Reserves of one constant-product pair.

    Attributes:
        pool_id: 32-byte pool identifier (hex string)
        token_low: Lower token address (canonical order)
        token_high: Higher token address
        reserve_low: Recorded reserve of token_low
        reserve_high: Recorded reserve of token_high
    """
    pool_id: PoolId
    token_low: Address
    token_high: Address
    reserve_low: Amount = 0
    reserve_high: Amount = 0

    def __post_init__(self):
        """Validate pool state invariants."""
        if self.token_low >= self.token_high:
            raise PoolValidationError(
                f"Tokens must be in canonical order: {self.token_low} < {self.token_high}"
            )
        if self.reserve_low < 0 or self.reserve_high < 0:
            raise PoolValidationError(
                f"Reserves must be non-negative: ({self.reserve_low}, {self.reserve_high})"
            )

    def get_reserve(self, token: Address) -> Amount:
        """
        Get reserve for a member token.

        Raises:
            PoolValidationError: If token is not in this pool
        """
        if token == self.token_low:
            return self.reserve_low
        if token == self.token_high:
            return self.reserve_high
        raise PoolValidationError(f"Token {token} not in pool {self.pool_id}")

    def set_reserve(self, token: Address, amount: Amount) -> None:
        if amount < 0:
            raise PoolValidationError(f"Reserve cannot be negative: {amount}")
        if token == self.token_low:
            self.reserve_low = amount
        elif token == self.token_high:
            self.reserve_high = amount
        else:
            raise PoolValidationError(f"Token {token} not in pool {self.pool_id}")

    def get_constant_product(self) -> int:
        """k = reserve_low * reserve_high."""
        return self.reserve_low * self.reserve_high

    def verify_invariant(self, min_k: int = 0) -> bool:
        return self.get_constant_product() >= min_k

    def copy(self) -> "PoolState":
        return PoolState(
            pool_id=self.pool_id,
            token_low=self.token_low,
            token_high=self.token_high,
            reserve_low=self.reserve_low,
            reserve_high=self.reserve_high,
        )

    def __repr__(self) -> str:
        return (
            f"PoolState(pool_id={self.pool_id[:16]}..., "
            f"tokens=({self.token_low[:10]}..., {self.token_high[:10]}...), "
            f"reserves=({self.reserve_low}, {self.reserve_high}))"
        )
