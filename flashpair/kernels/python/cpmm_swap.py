"""
Constant-product swap kernel.

Pricing is fee-free and rounds in favour of the pool:
- exact-in: the post-trade output reserve is the integer ceiling of
  `reserve_in * reserve_out / (reserve_in + amount_in)`, computed as
  `(reserve_in * reserve_out - 1) // (reserve_in + amount_in) + 1`. The output
  reserve therefore never reaches zero and `k` never decreases.
- exact-out: the required input is `ceil(reserve_in * amount_out / (reserve_out - amount_out))`.

The fee-adjusted variants implement the fixed-fee (basis points) constant-product
quote for callers that price against fee-charging venues.
"""

from __future__ import annotations

from dataclasses import dataclass

from ...exceptions import PoolArithmeticError, PoolValidationError


BPS_DENOM = 10_000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_non_negative(name: str, value: int) -> None:
    _require_int(name, value)
    if value < 0:
        raise PoolValidationError(f"{name} must be non-negative: {value}")


def _ceil_div_nonneg(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise PoolArithmeticError("denominator must be positive")
    if numerator < 0:
        raise PoolArithmeticError("numerator must be non-negative")
    return (numerator + denominator - 1) // denominator


@dataclass(frozen=True)
class SwapExactInResult:
    amount_in: int
    amount_out: int
    new_reserve_in: int
    new_reserve_out: int
    k_before: int
    k_after: int


@dataclass(frozen=True)
class SwapExactOutResult:
    amount_in: int
    amount_out: int
    new_reserve_in: int
    new_reserve_out: int
    k_before: int
    k_after: int


def quote(*, amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """
    Equivalent amount of B for `amount_a` of A at the current price: `floor(amount_a * reserve_b / reserve_a)`.
    """
    for name, v in (("amount_a", amount_a), ("reserve_a", reserve_a), ("reserve_b", reserve_b)):
        _require_non_negative(name, v)
    if amount_a == 0:
        raise PoolValidationError("insufficient amount: amount_a is zero")
    if reserve_a == 0 or reserve_b == 0:
        raise PoolValidationError("insufficient liquidity: empty reserve")
    return (amount_a * reserve_b) // reserve_a


def swap_exact_in(*, reserve_in: int, reserve_out: int, amount_in: int) -> SwapExactInResult:
    """
    Exact-in swap quote + post-state.

    Raises PoolArithmeticError on a zero input, an empty reserve, or an output
    that would drain the output reserve.
    """
    for name, v in (("reserve_in", reserve_in), ("reserve_out", reserve_out), ("amount_in", amount_in)):
        _require_non_negative(name, v)

    if amount_in == 0:
        raise PoolArithmeticError("insufficient input amount: amount_in is zero")
    if reserve_in == 0 or reserve_out == 0:
        raise PoolArithmeticError("insufficient liquidity: empty reserve")

    k_before = reserve_in * reserve_out
    new_reserve_in = reserve_in + amount_in
    # One-unit margin: ceil(k / new_reserve_in) via the floor of (k - 1), plus one.
    new_reserve_out = (k_before - 1) // new_reserve_in + 1
    amount_out = reserve_out - new_reserve_out

    if amount_out >= reserve_out:
        raise PoolArithmeticError(
            f"insufficient liquidity: amount_out ({amount_out}) >= reserve_out ({reserve_out})"
        )

    return SwapExactInResult(
        amount_in=amount_in,
        amount_out=amount_out,
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
        k_before=k_before,
        k_after=new_reserve_in * new_reserve_out,
    )


def swap_exact_out(*, reserve_in: int, reserve_out: int, amount_out: int) -> SwapExactOutResult:
    """
    Minimal input that buys exactly `amount_out` without decreasing `k`.
    """
    for name, v in (("reserve_in", reserve_in), ("reserve_out", reserve_out), ("amount_out", amount_out)):
        _require_non_negative(name, v)

    if amount_out == 0:
        raise PoolArithmeticError("insufficient output amount: amount_out is zero")
    if reserve_in == 0 or reserve_out == 0:
        raise PoolArithmeticError("insufficient liquidity: empty reserve")
    if amount_out >= reserve_out:
        raise PoolArithmeticError(
            f"insufficient liquidity: amount_out ({amount_out}) >= reserve_out ({reserve_out})"
        )

    # amount_in = ceil(reserve_in * amount_out / (reserve_out - amount_out))
    amount_in = _ceil_div_nonneg(reserve_in * amount_out, reserve_out - amount_out)

    new_reserve_in = reserve_in + amount_in
    new_reserve_out = reserve_out - amount_out
    return SwapExactOutResult(
        amount_in=amount_in,
        amount_out=amount_out,
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
        k_before=reserve_in * reserve_out,
        k_after=new_reserve_in * new_reserve_out,
    )


def fee_adjusted_amount_out(*, amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """
    Fixed-fee exact-in quote:
        in_with_fee = amount_in * (10_000 - fee_bps)
        amount_out = floor(in_with_fee * reserve_out / (reserve_in * 10_000 + in_with_fee))
    """
    for name, v in (("amount_in", amount_in), ("reserve_in", reserve_in), ("reserve_out", reserve_out)):
        _require_non_negative(name, v)
    _require_int("fee_bps", fee_bps)
    if not (0 <= fee_bps < BPS_DENOM):
        raise PoolValidationError(f"fee_bps must be in [0, {BPS_DENOM})")
    if amount_in == 0:
        raise PoolArithmeticError("insufficient input amount: amount_in is zero")
    if reserve_in == 0 or reserve_out == 0:
        raise PoolArithmeticError("insufficient liquidity: empty reserve")

    in_with_fee = amount_in * (BPS_DENOM - fee_bps)
    return (in_with_fee * reserve_out) // (reserve_in * BPS_DENOM + in_with_fee)


def fee_adjusted_amount_in(*, amount_out: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """
    Fixed-fee exact-out quote:
        amount_in = ceil(reserve_in * amount_out * 10_000 / ((reserve_out - amount_out) * (10_000 - fee_bps)))
    """
    for name, v in (("amount_out", amount_out), ("reserve_in", reserve_in), ("reserve_out", reserve_out)):
        _require_non_negative(name, v)
    _require_int("fee_bps", fee_bps)
    if not (0 <= fee_bps < BPS_DENOM):
        raise PoolValidationError(f"fee_bps must be in [0, {BPS_DENOM})")
    if amount_out == 0:
        raise PoolArithmeticError("insufficient output amount: amount_out is zero")
    if reserve_in == 0 or reserve_out == 0:
        raise PoolArithmeticError("insufficient liquidity: empty reserve")
    if amount_out >= reserve_out:
        raise PoolArithmeticError(
            f"insufficient liquidity: amount_out ({amount_out}) >= reserve_out ({reserve_out})"
        )

    numerator = reserve_in * amount_out * BPS_DENOM
    denominator = (reserve_out - amount_out) * (BPS_DENOM - fee_bps)
    return _ceil_div_nonneg(numerator, denominator)
