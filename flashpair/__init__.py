"""
flashpair: constant-product pools with flash-swap arbitrage settlement.
"""

from .config import AmmConfig, RuntimeConfig
from .exceptions import (
    AmmError,
    CallbackAuthorizationFailure,
    PoolArithmeticError,
    PoolValidationError,
    TransferFailure,
)
from .core import (
    ArbitrageExecutor,
    ArbitrageResult,
    CallbackContext,
    FeeOnTransferToken,
    FlashBorrower,
    Pool,
    PoolFactory,
    Runtime,
    Token,
)

__version__ = "0.1.0"

__all__ = [
    "AmmConfig",
    "RuntimeConfig",
    "AmmError",
    "CallbackAuthorizationFailure",
    "PoolArithmeticError",
    "PoolValidationError",
    "TransferFailure",
    "ArbitrageExecutor",
    "ArbitrageResult",
    "CallbackContext",
    "FeeOnTransferToken",
    "FlashBorrower",
    "Pool",
    "PoolFactory",
    "Runtime",
    "Token",
]
