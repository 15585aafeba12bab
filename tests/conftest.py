# [TESTER] v1

from __future__ import annotations

from dataclasses import dataclass

import pytest

from flashpair.core import FungibleLedger, Pool, PoolFactory, Runtime, Token


@dataclass
class Market:
    """Two tokens, a factory and a few funded accounts in one runtime."""

    runtime: Runtime
    factory: PoolFactory
    token_x: Token
    token_y: Token
    alice: str
    bob: str
    lp: str

    def ledger(self, token: str) -> FungibleLedger:
        ledger = self.runtime.contract(token)
        assert isinstance(ledger, FungibleLedger)
        return ledger

    def fund(self, holder: str, token: str, amount: int) -> None:
        self.runtime.transact(holder, self.ledger(token).mint, holder, amount)

    def approve(self, holder: str, token: str, spender: str, amount: int) -> None:
        assert self.runtime.transact(holder, self.ledger(token).approve, spender, amount) is True

    def seed(self, pool: Pool, amount_low: int, amount_high: int, provider: str | None = None):
        provider = provider or self.lp
        for token, amount in ((pool.token_low, amount_low), (pool.token_high, amount_high)):
            self.fund(provider, token, amount)
            self.approve(provider, token, pool.address, amount)
        return self.runtime.transact(provider, pool.add_liquidity, amount_low, amount_high)


@pytest.fixture
def runtime() -> Runtime:
    return Runtime()


@pytest.fixture
def market(runtime: Runtime) -> Market:
    return Market(
        runtime=runtime,
        factory=PoolFactory(runtime),
        token_x=Token(runtime, "USDC", decimals=6),
        token_y=Token(runtime, "WETH"),
        alice=runtime.new_account("alice"),
        bob=runtime.new_account("bob"),
        lp=runtime.new_account("lp"),
    )


@pytest.fixture
def pool(market: Market) -> Pool:
    return market.factory.create_pool(market.token_x.address, market.token_y.address)
