"""
Flash-swap arbitrage executor.

One `execute` call is a single atomic chain:

    BORROW      executor -> pool_low.flash_swap(borrow_amount, to=executor, data=context)
    CALLBACK    pool_low -> executor.on_flash_callback
                    executor -> pool_high.swap(borrow_token -> debt_token)
                    executor -> debt_token.transfer(pool_low, debt_amount)
    SETTLEMENT  pool_low measures its balances; k must not have decreased

Both pools are priced once, when the context is planned. Nothing is re-checked
mid-chain: a path that cannot repay fails settlement (TransferFailure or
PoolArithmeticError) and the runtime savepoint unwinds every leg.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Optional

from ..exceptions import CallbackAuthorizationFailure, PoolArithmeticError, PoolValidationError
from ..state.balances import Address, Amount
from ..state.canonical import canonical_address, canonical_json_bytes, canonical_json_loads
from ..state.events import EventKind
from ..utils.logger import get_logger
from . import cpmm
from .ledger import resolve_ledger, safe_call
from .pool import Pool, pool_at
from .runtime import Contract, Runtime, external


logger = get_logger(__name__)

_ADDRESS_FIELDS = ("borrow_pool", "target_pool", "borrow_token", "debt_token")
_AMOUNT_FIELDS = ("borrow_amount", "debt_amount", "debt_amount_out")


@dataclass(frozen=True)
class CallbackContext:
    """
    Everything the callback needs, priced at planning time.

    Attributes:
        borrow_pool: Pool lending `borrow_token` (pool_low)
        target_pool: Pool the borrowed amount is sold into (pool_high)
        borrow_token: Token borrowed from borrow_pool
        debt_token: Token owed back to borrow_pool
        borrow_amount: Amount of borrow_token lent out
        debt_amount: Repayment owed to borrow_pool, via the exact-out inverse
        debt_amount_out: Expected proceeds of selling borrow_amount into target_pool
    """
    borrow_pool: Address
    target_pool: Address
    borrow_token: Address
    debt_token: Address
    borrow_amount: Amount
    debt_amount: Amount
    debt_amount_out: Amount

    @property
    def expected_profit(self) -> int:
        return self.debt_amount_out - self.debt_amount

    def encode(self) -> bytes:
        """Canonical JSON bytes, passed through the pool as opaque callback data."""
        return canonical_json_bytes(asdict(self))

    @classmethod
    def decode(cls, data: bytes) -> "CallbackContext":
        """
        Raises:
            PoolValidationError: If `data` is not an encoded context
        """
        try:
            raw = canonical_json_loads(bytes(data))
        except (TypeError, ValueError) as exc:
            raise PoolValidationError(f"malformed callback data: {exc}") from exc
        if not isinstance(raw, dict) or set(raw) != {f.name for f in fields(cls)}:
            raise PoolValidationError("malformed callback data: unexpected keys")
        for name in _AMOUNT_FIELDS:
            value = raw[name]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise PoolValidationError(f"malformed callback data: {name}")
        try:
            for name in _ADDRESS_FIELDS:
                raw[name] = canonical_address(raw[name], name=name)
        except (TypeError, ValueError) as exc:
            raise PoolValidationError(f"malformed callback data: {exc}") from exc
        return cls(**raw)


@dataclass(frozen=True)
class ArbitrageResult:
    context: CallbackContext
    # Debt-token proceeds actually received from target_pool.
    amount_received: Amount
    # Swept to the caller of execute().
    profit: Amount


class ArbitrageExecutor(Contract):
    """
    Borrows from one pool, sells into another pool of the same pair, repays
    the first and forwards the remainder to its caller.
    """

    label = "arbitrage"

    def __init__(self, runtime: Runtime) -> None:
        super().__init__(runtime)
        # Pool whose callback is expected; set only while a borrow is in flight.
        self._pending: Optional[Address] = None
        self._received: Amount = 0

    def snapshot(self):
        return (self._pending, self._received)

    def restore(self, snapshot) -> None:
        self._pending, self._received = snapshot

    def plan(
        self,
        pool_low: Address,
        pool_high: Address,
        borrow_amount: Amount,
        borrow_token: Optional[Address] = None,
    ) -> CallbackContext:
        """
        Price a borrow of `borrow_amount` from pool_low sold into pool_high.

        Both pools are read under the runtime lock, so the two reserve pairs
        come from the same committed state.

        Raises:
            PoolValidationError: Same pool twice, different pairs, non-member borrow token, zero amount
            PoolArithmeticError: borrow_amount would drain pool_low
        """
        with self.runtime.serialized():
            low = pool_at(self.runtime, pool_low)
            high = pool_at(self.runtime, pool_high)
            if low.address == high.address:
                raise PoolValidationError("pool_low and pool_high must be distinct pools")
            if (low.token_low, low.token_high) != (high.token_low, high.token_high):
                raise PoolValidationError("pool_low and pool_high must trade the same pair")
            if not isinstance(borrow_amount, int) or isinstance(borrow_amount, bool):
                raise TypeError("borrow_amount must be an int")
            if borrow_amount <= 0:
                raise PoolValidationError(f"borrow_amount must be positive: {borrow_amount}")

            borrow = low.token_low if borrow_token is None else low.require_member(borrow_token)
            debt = low.other(borrow)

            debt_amount = cpmm.amount_in(borrow_amount, low.reserve_of(debt), low.reserve_of(borrow))
            debt_amount_out = cpmm.amount_out(borrow_amount, high.reserve_of(borrow), high.reserve_of(debt))
            return CallbackContext(
                borrow_pool=low.address,
                target_pool=high.address,
                borrow_token=borrow,
                debt_token=debt,
                borrow_amount=borrow_amount,
                debt_amount=debt_amount,
                debt_amount_out=debt_amount_out,
            )

    @external
    def execute(
        self,
        pool_low: Address,
        pool_high: Address,
        borrow_amount: Amount,
        borrow_token: Optional[Address] = None,
    ) -> ArbitrageResult:
        """
        Run borrow -> trade -> repay and sweep the profit to the caller.

        Raises:
            TransferFailure: Proceeds do not cover the repayment
            PoolArithmeticError: pool_low settlement failed, or the run lost value
            PoolValidationError: Invalid pools or amounts
        """
        caller = self.runtime.msg_sender
        ctx = self.plan(pool_low, pool_high, borrow_amount, borrow_token)
        low = pool_at(self.runtime, ctx.borrow_pool)
        debt_ledger = resolve_ledger(self.runtime, ctx.debt_token)
        balance_before = debt_ledger.balance_of(self.address)

        if ctx.borrow_token == low.token_low:
            amount_low_out, amount_high_out = ctx.borrow_amount, 0
        else:
            amount_low_out, amount_high_out = 0, ctx.borrow_amount

        self._pending = low.address
        self._received = 0
        with self.runtime.call(self.address):
            low.flash_swap(amount_low_out, amount_high_out, self.address, ctx.encode())
        if self._pending is not None:
            raise PoolValidationError("flash callback was not invoked")

        profit = debt_ledger.balance_of(self.address) - balance_before
        if profit < 0:
            raise PoolArithmeticError(f"arbitrage lost {-profit} of {ctx.debt_token}")
        if profit:
            safe_call(self.runtime, self.address, debt_ledger, "transfer", caller, profit)

        result = ArbitrageResult(context=ctx, amount_received=self._received, profit=profit)
        self.emit(
            EventKind.ARBITRAGE,
            sender=caller,
            borrow_pool=ctx.borrow_pool,
            target_pool=ctx.target_pool,
            borrow_token=ctx.borrow_token,
            borrow_amount=ctx.borrow_amount,
            debt_amount=ctx.debt_amount,
            profit=profit,
        )
        logger.info(
            "arbitrage %s -> %s: borrowed %d, repaid %d, profit %d",
            ctx.borrow_pool,
            ctx.target_pool,
            ctx.borrow_amount,
            ctx.debt_amount,
            profit,
        )
        return result

    @external
    def on_flash_callback(
        self,
        initiator: Address,
        amount_low_out: Amount,
        amount_high_out: Amount,
        data: bytes,
    ) -> None:
        """
        Sell the borrowed amount into the target pool and repay the lender.

        Accepted only from the pool this executor is currently borrowing from,
        for a borrow this executor initiated.

        Raises:
            CallbackAuthorizationFailure: Unexpected caller or initiator
        """
        caller = self.runtime.msg_sender
        if self._pending is None or caller != self._pending:
            raise CallbackAuthorizationFailure(caller, self._pending)
        if initiator != self.address:
            raise CallbackAuthorizationFailure(initiator, self.address)
        ctx = CallbackContext.decode(data)
        if ctx.borrow_pool != caller:
            raise CallbackAuthorizationFailure(caller, ctx.borrow_pool)
        self._pending = None

        lender: Pool = pool_at(self.runtime, ctx.borrow_pool)
        delivered = amount_low_out if ctx.borrow_token == lender.token_low else amount_high_out
        if delivered != ctx.borrow_amount:
            raise PoolValidationError(f"delivered {delivered} != borrowed {ctx.borrow_amount}")

        target = pool_at(self.runtime, ctx.target_pool)
        borrow_ledger = resolve_ledger(self.runtime, ctx.borrow_token)
        debt_ledger = resolve_ledger(self.runtime, ctx.debt_token)

        safe_call(self.runtime, self.address, borrow_ledger, "approve", target.address, ctx.borrow_amount)
        with self.runtime.call(self.address):
            self._received = target.swap(ctx.borrow_token, ctx.debt_token, ctx.borrow_amount)
        safe_call(self.runtime, self.address, debt_ledger, "transfer", lender.address, ctx.debt_amount)
