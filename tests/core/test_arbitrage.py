# [TESTER] v1

from __future__ import annotations

import pytest

from flashpair.core import ArbitrageExecutor, CallbackContext, Contract, PoolFactory, Token, external
from flashpair.exceptions import (
    CallbackAuthorizationFailure,
    PoolArithmeticError,
    PoolValidationError,
    TransferFailure,
)
from flashpair.state import EventKind


@pytest.fixture
def venues(market):
    """Same pair on two venues: token_low is cheap on `cheap` and dear on `dear`."""
    x, y = market.token_x.address, market.token_y.address
    cheap = market.factory.create_pool(x, y)
    dear = PoolFactory(market.runtime).create_pool(x, y)
    market.seed(cheap, 1_000_000, 1_000_000)
    market.seed(dear, 1_000_000, 2_000_000)
    return cheap, dear


@pytest.fixture
def executor(market) -> ArbitrageExecutor:
    return ArbitrageExecutor(market.runtime)


def test_plan_prices_both_legs(market, venues, executor) -> None:
    cheap, dear = venues
    root = market.runtime.state_root()
    ctx = executor.plan(cheap.address, dear.address, 100_000)

    assert ctx.borrow_token == cheap.token_low
    assert ctx.debt_token == cheap.token_high
    assert ctx.debt_amount == 111_112
    assert ctx.debt_amount_out == 181_818
    assert ctx.expected_profit == 70_706
    assert market.runtime.state_root() == root


def test_state_root_tracks_each_venue_of_a_pair(market, venues) -> None:
    cheap, dear = venues
    assert cheap.pool_id == dear.pool_id
    market.fund(market.alice, cheap.token_low, 500)
    market.runtime.transact(market.alice, market.ledger(cheap.token_low).transfer, cheap.address, 500)

    root = market.runtime.state_root()
    market.runtime.transact(market.bob, cheap.sync)

    assert cheap.get_reserves()[0] == 1_000_500
    assert dear.get_reserves()[0] == 1_000_000
    assert market.runtime.state_root() != root

def test_plan_validates_pools(market, venues, executor) -> None:
    cheap, dear = venues
    with pytest.raises(PoolValidationError, match="distinct"):
        executor.plan(cheap.address, cheap.address, 1)
    with pytest.raises(PoolValidationError, match="not a pool"):
        executor.plan(cheap.address, market.token_x.address, 1)
    with pytest.raises(PoolValidationError, match="positive"):
        executor.plan(cheap.address, dear.address, 0)
    with pytest.raises(PoolValidationError, match="not in pool"):
        executor.plan(cheap.address, dear.address, 1, borrow_token=market.alice)
    with pytest.raises(PoolArithmeticError):
        executor.plan(cheap.address, dear.address, 1_000_000)


def test_plan_rejects_different_pairs(market, venues, executor) -> None:
    cheap, _ = venues
    z = Token(market.runtime, "Z")
    other = market.factory.create_pool(market.token_x.address, z.address)
    with pytest.raises(PoolValidationError, match="same pair"):
        executor.plan(cheap.address, other.address, 1)


def test_profitable_arbitrage_settles_and_sweeps_profit(market, venues, executor) -> None:
    cheap, dear = venues
    seen = []
    market.runtime.subscribe(seen.append)

    result = market.runtime.transact(market.bob, executor.execute, cheap.address, dear.address, 100_000)

    assert result.profit == 70_706
    assert result.amount_received == 181_818
    assert cheap.get_reserves() == (900_000, 1_111_112)
    assert dear.get_reserves() == (1_100_000, 1_818_182)
    for pool in venues:
        reserve_low, reserve_high = pool.get_reserves()
        assert (reserve_low, reserve_high) == (
            market.ledger(pool.token_low).balance_of(pool.address),
            market.ledger(pool.token_high).balance_of(pool.address),
        )
    debt = market.ledger(cheap.token_high)
    assert debt.balance_of(market.bob) == 70_706
    assert debt.balance_of(executor.address) == 0
    assert market.ledger(cheap.token_low).balance_of(executor.address) == 0

    kinds = [e.kind for e in seen if e.emitter in (cheap.address, executor.address)]
    assert EventKind.FLASH_SWAP in kinds
    assert kinds[-1] is EventKind.ARBITRAGE


def test_borrowing_the_high_token(market, venues, executor) -> None:
    cheap, dear = venues
    # token_high is cheap on `dear`: borrow it there, sell it on `cheap`.
    result = market.runtime.transact(
        market.bob, executor.execute, dear.address, cheap.address, 100_000, cheap.token_high
    )
    assert result.context.borrow_token == cheap.token_high
    assert result.profit > 0
    assert market.ledger(cheap.token_low).balance_of(market.bob) == result.profit


def test_unprofitable_arbitrage_reverts_everything(market, venues, executor) -> None:
    cheap, dear = venues
    ctx = executor.plan(dear.address, cheap.address, 100_000)
    assert ctx.debt_amount_out < ctx.debt_amount

    root = market.runtime.state_root()
    reserves = (cheap.get_reserves(), dear.get_reserves())
    seen = []
    market.runtime.subscribe(seen.append)

    with pytest.raises((TransferFailure, PoolArithmeticError)):
        market.runtime.transact(market.bob, executor.execute, dear.address, cheap.address, 100_000)

    assert market.runtime.state_root() == root
    assert (cheap.get_reserves(), dear.get_reserves()) == reserves
    assert seen == []
    # The executor is ready for the next run.
    assert market.runtime.transact(market.bob, executor.execute, cheap.address, dear.address, 100_000).profit > 0


def test_spoofed_callback_rejected(market, venues, executor) -> None:
    cheap, dear = venues
    data = executor.plan(cheap.address, dear.address, 100_000).encode()
    with pytest.raises(CallbackAuthorizationFailure):
        market.runtime.transact(market.alice, executor.on_flash_callback, executor.address, 100_000, 0, data)


def test_unsolicited_flash_callback_rejected(market, venues, executor) -> None:
    cheap, dear = venues
    data = executor.plan(cheap.address, dear.address, 100_000).encode()
    root = market.runtime.state_root()
    # A pool the executor never borrowed from pushes funds at it.
    with pytest.raises(CallbackAuthorizationFailure):
        market.runtime.transact(market.alice, dear.flash_swap, 100_000, 0, executor.address, data)
    assert market.runtime.state_root() == root


def test_flash_swap_to_account_without_callback_fails(market, venues) -> None:
    cheap, _ = venues
    with pytest.raises(PoolValidationError, match="on_flash_callback"):
        market.runtime.transact(market.alice, cheap.flash_swap, 10, 0, market.alice, b"\x01")


def test_flash_swap_argument_checks(market, venues) -> None:
    cheap, _ = venues
    rt = market.runtime
    with pytest.raises(PoolValidationError, match="insufficient output"):
        rt.transact(market.alice, cheap.flash_swap, 0, 0, market.alice)
    with pytest.raises(PoolArithmeticError, match="insufficient liquidity"):
        rt.transact(market.alice, cheap.flash_swap, 1_000_000, 0, market.alice)
    with pytest.raises(PoolValidationError, match="invalid recipient"):
        rt.transact(market.alice, cheap.flash_swap, 10, 0, cheap.token_low)
    # No callback and nothing paid back.
    with pytest.raises(PoolArithmeticError, match="not repaid"):
        rt.transact(market.alice, cheap.flash_swap, 10, 0, market.alice)


def test_flash_swap_without_callback_can_be_repaid_in_same_transaction(market, venues) -> None:
    cheap, _ = venues
    rt = market.runtime
    high = market.ledger(cheap.token_high)
    market.fund(market.alice, cheap.token_high, 20)

    def borrow_and_repay():
        high.transfer(cheap.address, 20)
        return cheap.flash_swap(10, 0, market.alice)

    assert rt.transact(market.alice, borrow_and_repay) == (0, 20)
    assert market.ledger(cheap.token_low).balance_of(market.alice) == 10


class SwapBackBorrower(Contract):
    """Swaps the borrowed token straight back into the lending pool from inside the callback."""

    label = "borrower"

    def __init__(self, runtime, pool, repay):
        super().__init__(runtime)
        self.pool = pool
        self.repay = repay
        self.seen_reserves = None
        self.second_out = None

    def snapshot(self):
        return (self.seen_reserves, self.second_out)

    def restore(self, snapshot):
        self.seen_reserves, self.second_out = snapshot

    @external
    def on_flash_callback(self, initiator, amount_low_out, amount_high_out, data):
        pool = self.pool
        low = self.runtime.contract(pool.token_low)
        high = self.runtime.contract(pool.token_high)
        self.seen_reserves = pool.get_reserves()
        with self.runtime.call(self.address):
            low.approve(pool.address, amount_low_out)
            self.second_out = pool.swap(pool.token_low, pool.token_high, amount_low_out)
            if self.repay:
                high.transfer(pool.address, self.second_out)


def test_reentrant_swap_sees_decremented_reserves(market, venues) -> None:
    cheap, _ = venues
    borrower = SwapBackBorrower(market.runtime, cheap, repay=True)
    market.runtime.transact(market.alice, cheap.flash_swap, 100_000, 0, borrower.address, b"go")

    assert borrower.seen_reserves == (900_000, 1_000_000)
    # Priced against (900_000, 1_000_000), not the pre-borrow (1_000_000, 1_000_000).
    assert borrower.second_out == 100_000
    assert cheap.get_reserves() == (1_000_000, 1_000_000)
    assert market.ledger(cheap.token_low).balance_of(borrower.address) == 0
    assert market.ledger(cheap.token_high).balance_of(borrower.address) == 0


def test_reentrant_swap_cannot_double_spend_borrowed_liquidity(market, venues) -> None:
    cheap, _ = venues
    borrower = SwapBackBorrower(market.runtime, cheap, repay=False)
    root = market.runtime.state_root()
    with pytest.raises(PoolArithmeticError):
        market.runtime.transact(market.alice, cheap.flash_swap, 100_000, 0, borrower.address, b"go")
    assert market.runtime.state_root() == root
    assert borrower.seen_reserves is None


def test_callback_context_encoding(market, venues, executor) -> None:
    cheap, dear = venues
    ctx = executor.plan(cheap.address, dear.address, 100_000)
    assert CallbackContext.decode(ctx.encode()) == ctx
    with pytest.raises(PoolValidationError):
        CallbackContext.decode(b'{"borrow_amount":1}')
    with pytest.raises(PoolValidationError):
        CallbackContext.decode(ctx.encode().replace(b'"borrow_amount":100000', b'"borrow_amount":-1'))
    with pytest.raises(PoolValidationError):
        CallbackContext.decode(b"not json")
