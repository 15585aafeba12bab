"""
Liquidity planning: ratio-preserving deposits, share mints and redemptions.

These functions are pure; `Pool.add_liquidity` / `Pool.remove_liquidity` move the
tokens and feed the measured balance deltas back in.
"""

from dataclasses import dataclass

from ..state.balances import Amount
from ..state.pools import PoolState
from ..kernels.python.lp_math import burn_liquidity, mint_liquidity, optimal_liquidity


@dataclass(frozen=True)
class DepositPlan:
    """Amounts to pull from the provider, in canonical (low, high) order."""
    amount_low: Amount
    amount_high: Amount


@dataclass(frozen=True)
class LiquidityReceipt:
    """Measured outcome of a deposit."""
    amount_low: Amount
    amount_high: Amount
    liquidity: Amount


@dataclass(frozen=True)
class WithdrawalReceipt:
    liquidity: Amount
    amount_low: Amount
    amount_high: Amount


def plan_deposit(pool_state: PoolState, amount_low_desired: Amount, amount_high_desired: Amount) -> DepositPlan:
    """
    Choose the pairing to pull for a deposit.

    An empty pool takes both amounts as offered; they set the initial price.
    Otherwise the pairing keeps the current price ratio and never exceeds either
    offered amount:
        quoted_high = quote(amount_low_desired, reserve_low, reserve_high)
        if quoted_high <= amount_high_desired: (amount_low_desired, quoted_high)
        else: (quote(amount_high_desired, reserve_high, reserve_low), amount_high_desired)

    Raises:
        PoolValidationError: If an amount is zero or exactly one reserve is empty
    """
    opt = optimal_liquidity(
        reserve0=pool_state.reserve_low,
        reserve1=pool_state.reserve_high,
        amount0_desired=amount_low_desired,
        amount1_desired=amount_high_desired,
    )
    return DepositPlan(amount_low=opt.amount0_used, amount_high=opt.amount1_used)


def shares_for_deposit(
    pool_state: PoolState,
    measured_low: Amount,
    measured_high: Amount,
    total_shares: Amount,
) -> Amount:
    """
    Shares to mint for measured deposit deltas.

    First mint: floor(sqrt(measured_low * measured_high)).
    Later mints: min(measured_low * total / reserve_low, measured_high * total / reserve_high).

    Raises:
        PoolValidationError: If the mint rounds to zero
    """
    return mint_liquidity(
        amount0=measured_low,
        amount1=measured_high,
        reserve0=pool_state.reserve_low,
        reserve1=pool_state.reserve_high,
        total_supply=total_shares,
    )


def amounts_for_withdrawal(
    liquidity: Amount,
    balance_low: Amount,
    balance_high: Amount,
    total_shares: Amount,
) -> WithdrawalReceipt:
    """
    Redemption value of `liquidity` shares against measured balances (floor rounding).

    Raises:
        PoolValidationError: If either output rounds to zero
    """
    res = burn_liquidity(
        lp_amount=liquidity,
        balance0=balance_low,
        balance1=balance_high,
        total_supply=total_shares,
    )
    return WithdrawalReceipt(liquidity=liquidity, amount_low=res.amount0_out, amount_high=res.amount1_out)
