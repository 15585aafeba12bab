"""
Constant Product Market Maker (CPMM) pricing.

Pure pricing functions of the swap engine. They wrap the integer kernels and
re-check the consensus-critical invariant on every result.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) per quote
- Invariant: (reserve_in + amount_in) * (reserve_out - amount_out) >= reserve_in * reserve_out
"""

from ..config import DEFAULT_FEE_BPS
from ..exceptions import PoolArithmeticError
from ..state.balances import Amount
from ..kernels.python.cpmm_swap import fee_adjusted_amount_in as _kernel_fee_adjusted_amount_in
from ..kernels.python.cpmm_swap import fee_adjusted_amount_out as _kernel_fee_adjusted_amount_out
from ..kernels.python.cpmm_swap import quote as _kernel_quote
from ..kernels.python.cpmm_swap import swap_exact_in as _kernel_swap_exact_in
from ..kernels.python.cpmm_swap import swap_exact_out as _kernel_swap_exact_out


def quote(amount_a: Amount, reserve_a: Amount, reserve_b: Amount) -> Amount:
    """
    Price-equivalent amount of B: floor(amount_a * reserve_b / reserve_a).

    Raises:
        PoolValidationError: If amount_a is zero or either reserve is empty
    """
    return _kernel_quote(amount_a=amount_a, reserve_a=reserve_a, reserve_b=reserve_b)


def amount_out(amount_in: Amount, reserve_in: Amount, reserve_out: Amount) -> Amount:
    """
    Output for an exact input.

    Formula:
        k = reserve_in * reserve_out - 1
        amount_out = reserve_out - (k // (reserve_in + amount_in) + 1)

    The output reserve keeps at least one unit, so successive minimal trades can
    never drive it to zero.

    Raises:
        PoolArithmeticError: On a zero input, an empty reserve, or a draining output
    """
    res = _kernel_swap_exact_in(reserve_in=reserve_in, reserve_out=reserve_out, amount_in=amount_in)
    if res.k_after < res.k_before:
        raise PoolArithmeticError(f"Invariant violation: new_k ({res.k_after}) < old_k ({res.k_before})")
    return res.amount_out


def amount_in(amount_out: Amount, reserve_in: Amount, reserve_out: Amount) -> Amount:
    """
    Minimal input that buys exactly `amount_out` (inverse of `amount_out`).

    Formula:
        amount_in = ceil(reserve_in * amount_out / (reserve_out - amount_out))

    Raises:
        PoolArithmeticError: On a zero output, an empty reserve, or amount_out >= reserve_out
    """
    res = _kernel_swap_exact_out(reserve_in=reserve_in, reserve_out=reserve_out, amount_out=amount_out)
    if res.k_after < res.k_before:
        raise PoolArithmeticError(f"Invariant violation: new_k ({res.k_after}) < old_k ({res.k_before})")
    return res.amount_in


def amount_out_with_fee(
    amount_in: Amount,
    reserve_in: Amount,
    reserve_out: Amount,
    fee_bps: int = DEFAULT_FEE_BPS,
) -> Amount:
    """Fixed-fee exact-in quote (input charged `fee_bps` before pricing)."""
    return _kernel_fee_adjusted_amount_out(
        amount_in=amount_in,
        reserve_in=reserve_in,
        reserve_out=reserve_out,
        fee_bps=fee_bps,
    )


def amount_in_with_fee(
    amount_out: Amount,
    reserve_in: Amount,
    reserve_out: Amount,
    fee_bps: int = DEFAULT_FEE_BPS,
) -> Amount:
    """Fixed-fee exact-out quote."""
    return _kernel_fee_adjusted_amount_in(
        amount_out=amount_out,
        reserve_in=reserve_in,
        reserve_out=reserve_out,
        fee_bps=fee_bps,
    )
