# [TESTER] v1

from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import given, settings

from flashpair.core import PoolFactory, Runtime, Token
from flashpair.exceptions import PoolValidationError


def _pool_with_liquidity(reserve_low: int, reserve_high: int):
    rt = Runtime()
    x, y = Token(rt, "X"), Token(rt, "Y")
    pool = PoolFactory(rt).create_pool(x.address, y.address)
    lp = rt.new_account("lp")
    _deposit(rt, pool, lp, reserve_low, reserve_high)
    return rt, pool


def _deposit(rt, pool, provider, amount_low, amount_high):
    for token, amount in ((pool.token_low, amount_low), (pool.token_high, amount_high)):
        ledger = rt.contract(token)
        rt.transact(provider, ledger.mint, provider, amount)
        rt.transact(provider, ledger.approve, pool.address, amount)
    return rt.transact(provider, pool.add_liquidity, amount_low, amount_high)


amounts = st.integers(min_value=1, max_value=10**21)


@settings(max_examples=150, deadline=None)
@given(reserve_low=amounts, reserve_high=amounts, offer_low=amounts, offer_high=amounts)
def test_add_then_remove_returns_at_most_deposit(
    reserve_low: int, reserve_high: int, offer_low: int, offer_high: int
) -> None:
    rt, pool = _pool_with_liquidity(reserve_low, reserve_high)
    bob = rt.new_account("bob")
    try:
        receipt = _deposit(rt, pool, bob, offer_low, offer_high)
    except PoolValidationError:
        return
    try:
        withdrawal = rt.transact(bob, pool.remove_liquidity, receipt.liquidity)
    except PoolValidationError:
        return
    assert withdrawal.amount_low <= receipt.amount_low
    assert withdrawal.amount_high <= receipt.amount_high


@settings(max_examples=150, deadline=None)
@given(reserve_low=amounts, reserve_high=amounts, offer_low=amounts, offer_high=amounts)
def test_deposit_never_dilutes_existing_shares(
    reserve_low: int, reserve_high: int, offer_low: int, offer_high: int
) -> None:
    rt, pool = _pool_with_liquidity(reserve_low, reserve_high)
    total_before = pool.total_shares
    low_before, high_before = pool.get_reserves()
    try:
        _deposit(rt, pool, rt.new_account("bob"), offer_low, offer_high)
    except PoolValidationError:
        return
    total_after = pool.total_shares
    low_after, high_after = pool.get_reserves()
    # Per-share backing of each token does not decrease.
    assert low_after * total_before >= low_before * total_after
    assert high_after * total_before >= high_before * total_after
