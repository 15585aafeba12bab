"""
Pool engine: runtime, token ledgers, pricing, pools and the arbitrage executor.
"""

from .cpmm import (
    quote,
    amount_out,
    amount_in,
    amount_out_with_fee,
    amount_in_with_fee,
)
from .liquidity import (
    DepositPlan,
    LiquidityReceipt,
    WithdrawalReceipt,
    plan_deposit,
    shares_for_deposit,
    amounts_for_withdrawal,
)
from .runtime import Contract, Runtime, external
from .ledger import FeeOnTransferToken, FungibleLedger, LPShareLedger, Token, resolve_ledger, safe_call
from .callback import FlashBorrower
from .pool import Pool, pool_at
from .factory import PoolFactory
from .arbitrage import ArbitrageExecutor, ArbitrageResult, CallbackContext

__all__ = [
    # Pricing
    "quote",
    "amount_out",
    "amount_in",
    "amount_out_with_fee",
    "amount_in_with_fee",
    # Liquidity planning
    "DepositPlan",
    "LiquidityReceipt",
    "WithdrawalReceipt",
    "plan_deposit",
    "shares_for_deposit",
    "amounts_for_withdrawal",
    # Runtime
    "Contract",
    "Runtime",
    "external",
    # Ledgers
    "FungibleLedger",
    "Token",
    "FeeOnTransferToken",
    "LPShareLedger",
    "resolve_ledger",
    "safe_call",
    # Pools
    "FlashBorrower",
    "Pool",
    "pool_at",
    "PoolFactory",
    # Arbitrage
    "ArbitrageExecutor",
    "ArbitrageResult",
    "CallbackContext",
]
