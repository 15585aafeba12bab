"""
Liquidity math kernel.

Pure functions with explicit rounding rules:
- ratio-preserving deposit selection (via `quote`),
- share minting (geometric mean for the first mint, conservative ratio afterwards),
- share redemption against measured pool balances.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ...exceptions import PoolValidationError
from .cpmm_swap import quote


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_non_negative(name: str, value: int) -> None:
    _require_int(name, value)
    if value < 0:
        raise PoolValidationError(f"{name} must be non-negative: {value}")


@dataclass(frozen=True)
class OptimalLiquidityResult:
    amount0_used: int
    amount1_used: int
    amount0_refund: int
    amount1_refund: int


@dataclass(frozen=True)
class BurnLiquidityResult:
    amount0_out: int
    amount1_out: int


def optimal_liquidity(
    *,
    reserve0: int,
    reserve1: int,
    amount0_desired: int,
    amount1_desired: int,
) -> OptimalLiquidityResult:
    """
    Compute ratio-preserving used amounts and refunds.

    For an empty pool (both reserves zero) the offered amounts set the initial
    price and are used as given.
    """
    for name, v in (
        ("reserve0", reserve0),
        ("reserve1", reserve1),
        ("amount0_desired", amount0_desired),
        ("amount1_desired", amount1_desired),
    ):
        _require_non_negative(name, v)

    if amount0_desired == 0 or amount1_desired == 0:
        raise PoolValidationError("desired amounts must be positive")

    if reserve0 == 0 and reserve1 == 0:
        return OptimalLiquidityResult(
            amount0_used=amount0_desired,
            amount1_used=amount1_desired,
            amount0_refund=0,
            amount1_refund=0,
        )

    amount1_optimal = quote(amount_a=amount0_desired, reserve_a=reserve0, reserve_b=reserve1)
    if amount1_optimal <= amount1_desired:
        amount0_used = amount0_desired
        amount1_used = amount1_optimal
    else:
        amount0_used = quote(amount_a=amount1_desired, reserve_a=reserve1, reserve_b=reserve0)
        amount1_used = amount1_desired

    if amount0_used > amount0_desired or amount1_used > amount1_desired:
        raise AssertionError("used amounts exceed desired amounts")

    return OptimalLiquidityResult(
        amount0_used=amount0_used,
        amount1_used=amount1_used,
        amount0_refund=amount0_desired - amount0_used,
        amount1_refund=amount1_desired - amount1_used,
    )


def mint_liquidity_initial(*, amount0: int, amount1: int) -> int:
    """
    First mint: `floor(sqrt(amount0 * amount1))`.

    Uses `math.isqrt` so the result is exact for arbitrarily large products.
    """
    _require_non_negative("amount0", amount0)
    _require_non_negative("amount1", amount1)
    return math.isqrt(amount0 * amount1)


def mint_liquidity(
    *,
    amount0: int,
    amount1: int,
    reserve0: int,
    reserve1: int,
    total_supply: int,
) -> int:
    """
    Shares to mint for measured deposit deltas `(amount0, amount1)`.

    Subsequent mints take the smaller of the two proportional claims, so an
    imbalanced deposit never extracts value from existing holders.
    """
    for name, v in (
        ("amount0", amount0),
        ("amount1", amount1),
        ("reserve0", reserve0),
        ("reserve1", reserve1),
        ("total_supply", total_supply),
    ):
        _require_non_negative(name, v)

    if total_supply == 0:
        minted = mint_liquidity_initial(amount0=amount0, amount1=amount1)
    else:
        if reserve0 == 0 or reserve1 == 0:
            raise PoolValidationError("cannot mint against an empty reserve when shares exist")
        minted = min((amount0 * total_supply) // reserve0, (amount1 * total_supply) // reserve1)

    if minted == 0:
        raise PoolValidationError("insufficient liquidity minted (deposit too small)")
    return minted


def burn_liquidity(*, lp_amount: int, balance0: int, balance1: int, total_supply: int) -> BurnLiquidityResult:
    """
    Redeem `lp_amount` shares against the pool's measured balances (floor rounding).
    """
    for name, v in (
        ("lp_amount", lp_amount),
        ("balance0", balance0),
        ("balance1", balance1),
        ("total_supply", total_supply),
    ):
        _require_non_negative(name, v)

    if lp_amount == 0:
        raise PoolValidationError("lp_amount must be positive")
    if total_supply == 0:
        raise PoolValidationError("no shares outstanding")
    if lp_amount > total_supply:
        raise PoolValidationError(f"cannot burn more than total supply: {lp_amount} > {total_supply}")

    amount0_out = (lp_amount * balance0) // total_supply
    amount1_out = (lp_amount * balance1) // total_supply
    if amount0_out == 0 or amount1_out == 0:
        raise PoolValidationError("insufficient liquidity burned (zero output)")
    return BurnLiquidityResult(amount0_out=amount0_out, amount1_out=amount1_out)
