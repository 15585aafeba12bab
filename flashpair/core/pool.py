"""
Constant-product pool contract.

Operations:
- swap: exact-in trade against the current reserves
- flash_swap: deliver outputs first, settle against measured balances after an optional callback
- add_liquidity / remove_liquidity: proportional deposits and redemptions
- sync: force reserves to the measured balances

Ordering inside every mutating operation:
    1. validate and price against the recorded reserves
    2. write the new reserves
    3. call out to token ledgers (and, for flash swaps, the borrower)
    4. re-measure balances, check the constant product, record the measured balances

Any failure in steps 1-4 raises and the enclosing savepoint restores every
contract touched by the call chain.
"""

from __future__ import annotations

from typing import Optional, Tuple

from ..exceptions import PoolArithmeticError, PoolValidationError
from ..state.balances import Address, Amount, PoolId
from ..state.canonical import canonical_address
from ..state.events import EventKind
from ..state.pools import PoolState, canonical_pair, compute_pool_id
from ..utils.logger import get_logger
from . import cpmm
from .callback import FlashBorrower
from .ledger import FungibleLedger, LPShareLedger, resolve_ledger, safe_call
from .liquidity import (
    LiquidityReceipt,
    WithdrawalReceipt,
    amounts_for_withdrawal,
    plan_deposit,
    shares_for_deposit,
)
from .runtime import Contract, Runtime, external


logger = get_logger(__name__)


def _require_amount(name: str, value: object) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise PoolValidationError(f"{name} must be non-negative: {value}")
    return value


class Pool(Contract):
    """
    One constant-product pair.

    The pool owns its reserve record (`state`) and an independent LP share
    ledger (`shares`); share supply changes only through this contract.
    """

    label = "pool"

    def __init__(self, runtime: Runtime, token_a: Address, token_b: Address) -> None:
        token_low, token_high = canonical_pair(token_a, token_b)
        self._ledger_low = resolve_ledger(runtime, token_low)
        self._ledger_high = resolve_ledger(runtime, token_high)
        super().__init__(runtime)
        self.state = PoolState(
            pool_id=compute_pool_id(token_low, token_high),
            token_low=token_low,
            token_high=token_high,
        )
        self.shares = LPShareLedger(runtime, owner=self.address)

    def snapshot(self) -> PoolState:
        return self.state.copy()

    def restore(self, snapshot: PoolState) -> None:
        self.state = snapshot.copy()

    # -- views ---------------------------------------------------------------

    @property
    def pool_id(self) -> PoolId:
        return self.state.pool_id

    @property
    def token_low(self) -> Address:
        return self.state.token_low

    @property
    def token_high(self) -> Address:
        return self.state.token_high

    @property
    def total_shares(self) -> Amount:
        return self.shares.total_supply

    def get_reserves(self) -> Tuple[Amount, Amount]:
        """Recorded `(reserve_low, reserve_high)`."""
        return self.state.reserve_low, self.state.reserve_high

    def reserve_of(self, token: Address) -> Amount:
        return self.state.get_reserve(self.require_member(token))

    def other(self, token: Address) -> Address:
        """The counter-token of a member token."""
        token = self.require_member(token)
        return self.token_high if token == self.token_low else self.token_low

    def require_member(self, token: Address) -> Address:
        """Canonical form of `token`; PoolValidationError unless it is one of the pair."""
        try:
            token = canonical_address(token, name="token")
        except (TypeError, ValueError) as exc:
            raise PoolValidationError(str(exc)) from exc
        if token not in (self.token_low, self.token_high):
            raise PoolValidationError(f"Token {token} not in pool {self.pool_id}")
        return token

    def _ledger(self, token: Address) -> FungibleLedger:
        return self._ledger_low if token == self.token_low else self._ledger_high

    def _balances(self) -> Tuple[Amount, Amount]:
        """Measured `(balance_low, balance_high)` held by the pool."""
        return (
            self._ledger_low.balance_of(self.address),
            self._ledger_high.balance_of(self.address),
        )

    def _record_balances(self) -> Tuple[Amount, Amount]:
        balance_low, balance_high = self._balances()
        self.state.reserve_low = balance_low
        self.state.reserve_high = balance_high
        self.emit(EventKind.SYNC, reserve_low=balance_low, reserve_high=balance_high)
        return balance_low, balance_high

    def _settle(self, k_before: int) -> Tuple[Amount, Amount]:
        balance_low, balance_high = self._balances()
        measured = PoolState(
            pool_id=self.pool_id,
            token_low=self.token_low,
            token_high=self.token_high,
            reserve_low=balance_low,
            reserve_high=balance_high,
        )
        if not measured.verify_invariant(k_before):
            raise PoolArithmeticError(
                f"Invariant violation: measured k ({measured.get_constant_product()}) < k_before ({k_before})"
            )
        return self._record_balances()

    # -- swaps ---------------------------------------------------------------

    @external
    def swap(self, token_in: Address, token_out: Address, amount_in: Amount) -> Amount:
        """
        Exact-in swap of `amount_in` of `token_in` for `token_out`, paid to the caller.

        Returns:
            Amount of token_out sent to the caller

        Raises:
            PoolValidationError: Identical or non-member tokens, or a zero output
            PoolArithmeticError: Zero input, empty reserve, or a draining output
            TransferFailure: Either ledger call failed
        """
        caller = self.runtime.msg_sender
        token_in = self.require_member(token_in)
        token_out = self.require_member(token_out)
        if token_in == token_out:
            raise PoolValidationError(f"identical tokens: {token_in}")

        reserve_in = self.state.get_reserve(token_in)
        reserve_out = self.state.get_reserve(token_out)
        k_before = self.state.get_constant_product()
        amount_out = cpmm.amount_out(amount_in, reserve_in, reserve_out)
        if amount_out == 0:
            raise PoolValidationError("insufficient output amount")

        # Reserves move before any external call.
        self.state.set_reserve(token_in, reserve_in + amount_in)
        self.state.set_reserve(token_out, reserve_out - amount_out)

        safe_call(self.runtime, self.address, self._ledger(token_in), "transfer_from", caller, self.address, amount_in)
        safe_call(self.runtime, self.address, self._ledger(token_out), "transfer", caller, amount_out)

        self._settle(k_before)
        self.emit(
            EventKind.SWAP,
            sender=caller,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=amount_out,
        )
        logger.debug("swap %s: %d %s -> %d %s", self.pool_id[:16], amount_in, token_in, amount_out, token_out)
        return amount_out

    @external
    def flash_swap(
        self,
        amount_low_out: Amount,
        amount_high_out: Amount,
        to: Address,
        data: bytes = b"",
    ) -> Tuple[Amount, Amount]:
        """
        Send outputs to `to` first and settle afterwards.

        With a non-empty `data`, `to` must be a contract implementing
        `on_flash_callback`; it is called as this pool before settlement. On
        return the pool measures its balances: something must have been paid
        in, and the measured product must not be below the pre-call product.

        Returns:
            `(amount_low_in, amount_high_in)` measured at settlement

        Raises:
            PoolValidationError: Both outputs zero, bad recipient, missing callback capability
            PoolArithmeticError: Output drains a reserve, nothing repaid, or k decreased
        """
        caller = self.runtime.msg_sender
        amount_low_out = _require_amount("amount_low_out", amount_low_out)
        amount_high_out = _require_amount("amount_high_out", amount_high_out)
        if amount_low_out == 0 and amount_high_out == 0:
            raise PoolValidationError("insufficient output amount")
        try:
            to = canonical_address(to, name="to")
        except (TypeError, ValueError) as exc:
            raise PoolValidationError(str(exc)) from exc
        if to in (self.token_low, self.token_high):
            raise PoolValidationError(f"invalid recipient: {to}")
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("data must be bytes")

        reserve_low, reserve_high = self.get_reserves()
        if amount_low_out >= reserve_low or amount_high_out >= reserve_high:
            raise PoolArithmeticError(
                f"insufficient liquidity: outputs ({amount_low_out}, {amount_high_out}) "
                f">= reserves ({reserve_low}, {reserve_high})"
            )
        k_before = reserve_low * reserve_high

        # Optimistic decrement: nested calls during the callback see the lent-out reserves.
        self.state.reserve_low = reserve_low - amount_low_out
        self.state.reserve_high = reserve_high - amount_high_out

        if amount_low_out:
            safe_call(self.runtime, self.address, self._ledger_low, "transfer", to, amount_low_out)
        if amount_high_out:
            safe_call(self.runtime, self.address, self._ledger_high, "transfer", to, amount_high_out)

        if data:
            borrower = self.runtime.contract(to)
            if not isinstance(borrower, FlashBorrower):
                raise PoolValidationError(f"recipient {to} does not implement on_flash_callback")
            with self.runtime.call(self.address):
                borrower.on_flash_callback(caller, amount_low_out, amount_high_out, bytes(data))

        balance_low, balance_high = self._balances()
        amount_low_in = max(0, balance_low - (reserve_low - amount_low_out))
        amount_high_in = max(0, balance_high - (reserve_high - amount_high_out))
        if amount_low_in == 0 and amount_high_in == 0:
            raise PoolArithmeticError("insufficient input amount: flash swap was not repaid")

        self._settle(k_before)
        self.emit(
            EventKind.FLASH_SWAP,
            sender=caller,
            to=to,
            amount_low_out=amount_low_out,
            amount_high_out=amount_high_out,
            amount_low_in=amount_low_in,
            amount_high_in=amount_high_in,
        )
        logger.debug(
            "flash swap %s: out (%d, %d) in (%d, %d)",
            self.pool_id[:16],
            amount_low_out,
            amount_high_out,
            amount_low_in,
            amount_high_in,
        )
        return amount_low_in, amount_high_in

    @external
    def sync(self) -> Tuple[Amount, Amount]:
        """Record the measured balances as reserves."""
        return self._record_balances()

    # -- liquidity -----------------------------------------------------------

    @external
    def add_liquidity(self, amount_low_in: Amount, amount_high_in: Amount) -> LiquidityReceipt:
        """
        Deposit both tokens and mint shares to the caller.

        The deposit pairing preserves the current price (an empty pool accepts
        the offered amounts as its initial price). Shares are minted from the
        balance deltas measured after both pulls, not from the requested amounts.

        Raises:
            PoolValidationError: Zero amounts, one-sided reserves, or a zero-share mint
            TransferFailure: Either pull failed
        """
        caller = self.runtime.msg_sender
        plan = plan_deposit(self.state, amount_low_in, amount_high_in)

        safe_call(self.runtime, self.address, self._ledger_low, "transfer_from", caller, self.address, plan.amount_low)
        safe_call(self.runtime, self.address, self._ledger_high, "transfer_from", caller, self.address, plan.amount_high)

        balance_low, balance_high = self._balances()
        measured_low = balance_low - self.state.reserve_low
        measured_high = balance_high - self.state.reserve_high
        liquidity = shares_for_deposit(self.state, measured_low, measured_high, self.total_shares)

        safe_call(self.runtime, self.address, self.shares, "mint", caller, liquidity)
        self._record_balances()
        self.emit(
            EventKind.MINT,
            sender=caller,
            amount_low=measured_low,
            amount_high=measured_high,
            liquidity=liquidity,
        )
        logger.info(
            "add_liquidity %s: (%d, %d) -> %d shares",
            self.pool_id[:16],
            measured_low,
            measured_high,
            liquidity,
        )
        return LiquidityReceipt(amount_low=measured_low, amount_high=measured_high, liquidity=liquidity)

    @external
    def remove_liquidity(self, liquidity: Amount) -> WithdrawalReceipt:
        """
        Burn `liquidity` of the caller's shares and pay out the proportional slice
        of the pool's measured balances.

        Raises:
            PoolValidationError: Zero or excess liquidity, or a zero output leg
            TransferFailure: Either payout failed
        """
        caller = self.runtime.msg_sender
        liquidity = _require_amount("liquidity", liquidity)
        held = self.shares.balance_of(caller)
        if liquidity > held:
            raise PoolValidationError(f"insufficient shares: {liquidity} > {held}")

        balance_low, balance_high = self._balances()
        receipt = amounts_for_withdrawal(liquidity, balance_low, balance_high, self.total_shares)

        safe_call(self.runtime, self.address, self.shares, "burn", caller, liquidity)
        safe_call(self.runtime, self.address, self._ledger_low, "transfer", caller, receipt.amount_low)
        safe_call(self.runtime, self.address, self._ledger_high, "transfer", caller, receipt.amount_high)

        self._record_balances()
        self.emit(
            EventKind.BURN,
            sender=caller,
            amount_low=receipt.amount_low,
            amount_high=receipt.amount_high,
            liquidity=liquidity,
        )
        logger.info(
            "remove_liquidity %s: %d shares -> (%d, %d)",
            self.pool_id[:16],
            liquidity,
            receipt.amount_low,
            receipt.amount_high,
        )
        return receipt

    def __repr__(self) -> str:
        return f"Pool({self.address}, {self.state!r}, shares={self.total_shares})"


def pool_at(runtime: Runtime, address: Optional[Address]) -> Pool:
    """Resolve an address to a Pool, or fail with PoolValidationError."""
    pool = runtime.contract(address) if address is not None else None
    if not isinstance(pool, Pool):
        raise PoolValidationError(f"{address} is not a pool")
    return pool
