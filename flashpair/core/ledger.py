"""
In-memory fungible ledgers.

`FungibleLedger` is the token capability the pools consume
(`transfer`, `transfer_from`, `balance_of`). Insufficient balance or allowance
returns False and changes nothing, like non-reverting ERC-20 tokens; callers must
treat a False return as a failed transfer (see `safe_call`).
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from ..config import BPS_DENOM
from ..exceptions import PoolValidationError, TransferFailure
from ..state.balances import Address, Amount, BalanceTable
from ..state.canonical import canonical_address
from ..state.events import EventKind
from ..utils.logger import get_logger
from .runtime import Contract, Runtime, external


logger = get_logger(__name__)


def _require_amount(name: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise PoolValidationError(f"{name} must be non-negative: {value}")
    return value


def _address(value: Any, name: str) -> Address:
    try:
        return canonical_address(value, name=name)
    except (TypeError, ValueError) as exc:
        raise PoolValidationError(str(exc)) from exc


class FungibleLedger(Contract):
    """Balances, allowances and total supply of one fungible token."""

    label = "ledger"

    def __init__(self, runtime: Runtime, symbol: str, decimals: int = 18) -> None:
        super().__init__(runtime)
        self.symbol = symbol
        self.decimals = decimals
        self._balances = BalanceTable()
        self._allowances: Dict[Tuple[Address, Address], Amount] = {}
        self._total_supply: Amount = 0

    # -- rollback ------------------------------------------------------------

    def snapshot(self) -> Any:
        return (self._balances.copy(), dict(self._allowances), self._total_supply)

    def restore(self, snapshot: Any) -> None:
        balances, allowances, total_supply = snapshot
        self._balances = balances.copy()
        self._allowances = dict(allowances)
        self._total_supply = total_supply

    # -- views ---------------------------------------------------------------

    @property
    def total_supply(self) -> Amount:
        return self._total_supply

    def balance_of(self, holder: Address) -> Amount:
        return self._balances.get(_address(holder, "holder"))

    def allowance(self, owner: Address, spender: Address) -> Amount:
        return self._allowances.get((_address(owner, "owner"), _address(spender, "spender")), 0)

    def balances_table(self) -> BalanceTable:
        return self._balances.copy()

    # -- external ------------------------------------------------------------

    @external
    def transfer(self, to: Address, amount: Amount) -> bool:
        return self._move(self.runtime.msg_sender, _address(to, "to"), _require_amount("amount", amount))

    @external
    def approve(self, spender: Address, amount: Amount) -> bool:
        owner = self.runtime.msg_sender
        spender = _address(spender, "spender")
        self._allowances[(owner, spender)] = _require_amount("amount", amount)
        self.emit(EventKind.APPROVAL, owner=owner, spender=spender, value=amount)
        return True

    @external
    def transfer_from(self, owner: Address, to: Address, amount: Amount) -> bool:
        spender = self.runtime.msg_sender
        owner = _address(owner, "owner")
        amount = _require_amount("amount", amount)
        allowed = self._allowances.get((owner, spender), 0)
        if allowed < amount:
            logger.debug("%s: allowance %d < %d for %s -> %s", self.symbol, allowed, amount, owner, spender)
            return False
        if not self._move(owner, _address(to, "to"), amount):
            return False
        self._allowances[(owner, spender)] = allowed - amount
        return True

    # -- internals -----------------------------------------------------------

    def _move(self, sender: Address, to: Address, amount: Amount) -> bool:
        balance = self._balances.get(sender)
        if balance < amount:
            logger.debug("%s: balance %d < %d for %s", self.symbol, balance, amount, sender)
            return False
        self._apply_transfer(sender, to, amount)
        return True

    def _apply_transfer(self, sender: Address, to: Address, amount: Amount) -> None:
        self._balances.subtract(sender, amount)
        self._balances.add(to, amount)
        self.emit(EventKind.TRANSFER, sender=sender, to=to, value=amount)

    def _mint(self, to: Address, amount: Amount) -> None:
        self._balances.add(to, amount)
        self._total_supply += amount
        self.emit(EventKind.MINT, to=to, value=amount)

    def _burn(self, holder: Address, amount: Amount) -> bool:
        if self._balances.get(holder) < amount:
            return False
        self._balances.subtract(holder, amount)
        self._total_supply -= amount
        self.emit(EventKind.BURN, holder=holder, value=amount)
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol}, {self.address})"


class Token(FungibleLedger):
    """Plain token with an open faucet for bootstrapping accounts."""

    label = "token"

    @external
    def mint(self, to: Address, amount: Amount) -> bool:
        self._mint(_address(to, "to"), _require_amount("amount", amount))
        return True


class FeeOnTransferToken(Token):
    """Deflationary token: every transfer burns `fee_bps` of the moved amount."""

    label = "fee_token"

    def __init__(self, runtime: Runtime, symbol: str, fee_bps: int, decimals: int = 18) -> None:
        if not isinstance(fee_bps, int) or isinstance(fee_bps, bool) or not (0 <= fee_bps < BPS_DENOM):
            raise PoolValidationError(f"fee_bps must be in [0, {BPS_DENOM}): {fee_bps!r}")
        super().__init__(runtime, symbol, decimals)
        self.fee_bps = fee_bps

    def _apply_transfer(self, sender: Address, to: Address, amount: Amount) -> None:
        fee = (amount * self.fee_bps) // BPS_DENOM
        self._balances.subtract(sender, amount)
        self._balances.add(to, amount - fee)
        self._total_supply -= fee
        self.emit(EventKind.TRANSFER, sender=sender, to=to, value=amount - fee)
        if fee:
            self.emit(EventKind.BURN, holder=sender, value=fee)


class LPShareLedger(FungibleLedger):
    """
    LP shares of one pool.

    A normal fungible ledger whose supply only the owning pool can change.
    """

    label = "lp"

    def __init__(self, runtime: Runtime, owner: Address, symbol: str = "FP-LP") -> None:
        super().__init__(runtime, symbol)
        self.owner = owner

    def _require_owner(self) -> None:
        if self.runtime.msg_sender != self.owner:
            raise PoolValidationError(f"only pool {self.owner} may change the share supply")

    @external
    def mint(self, to: Address, amount: Amount) -> bool:
        self._require_owner()
        self._mint(_address(to, "to"), _require_amount("amount", amount))
        return True

    @external
    def burn(self, holder: Address, amount: Amount) -> bool:
        self._require_owner()
        return self._burn(_address(holder, "holder"), _require_amount("amount", amount))


def safe_call(runtime: Runtime, caller: Address, ledger: Any, op: str, *args: Any) -> None:
    """
    Call `ledger.<op>(*args)` as `caller`; a False return or any raised error is a TransferFailure.
    """
    if not isinstance(ledger, FungibleLedger):
        raise TransferFailure(str(getattr(ledger, "address", ledger)), "not a token ledger")
    try:
        with runtime.call(caller):
            ok = getattr(ledger, op)(*args)
    except Exception as exc:
        raise TransferFailure(ledger.address, f"{op} raised {type(exc).__name__}: {exc}") from exc
    if ok is not True:
        raise TransferFailure(ledger.address, f"{op} returned {ok!r}")


def resolve_ledger(runtime: Runtime, token: Address) -> FungibleLedger:
    """Resolve a token address to its ledger, or fail with PoolValidationError."""
    ledger = runtime.contract(token)
    if not isinstance(ledger, FungibleLedger):
        raise PoolValidationError(f"{token} is not a token contract")
    return ledger


