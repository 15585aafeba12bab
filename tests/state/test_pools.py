# [TESTER] v1

from __future__ import annotations

import pytest

from flashpair.exceptions import PoolValidationError
from flashpair.state import PoolState, canonical_pair, compute_pool_id


A = "0x" + "0a" * 20
B = "0x" + "0b" * 20


def test_canonical_pair_orders_both_ways() -> None:
    assert canonical_pair(A, B) == (A, B)
    assert canonical_pair(B, A) == (A, B)
    assert canonical_pair(B.upper().replace("0X", "0x"), A) == (A, B)


def test_canonical_pair_rejects_identical_and_malformed() -> None:
    with pytest.raises(PoolValidationError, match="identical"):
        canonical_pair(A, A)
    with pytest.raises(PoolValidationError):
        canonical_pair(A, "0x00")


def test_pool_id_requires_canonical_order() -> None:
    assert compute_pool_id(A, B) == compute_pool_id(*canonical_pair(B, A))
    assert compute_pool_id(A, B).startswith("0x") and len(compute_pool_id(A, B)) == 66
    with pytest.raises(PoolValidationError):
        compute_pool_id(B, A)


def test_pool_state_validation_and_reserves() -> None:
    state = PoolState(pool_id=compute_pool_id(A, B), token_low=A, token_high=B, reserve_low=3, reserve_high=5)
    assert state.get_reserve(A) == 3
    assert state.get_constant_product() == 15
    assert state.verify_invariant(15) and not state.verify_invariant(16)

    copy = state.copy()
    copy.set_reserve(B, 7)
    assert state.reserve_high == 5

    with pytest.raises(PoolValidationError):
        state.set_reserve(A, -1)
    with pytest.raises(PoolValidationError, match="not in pool"):
        state.get_reserve("0x" + "0c" * 20)
    with pytest.raises(PoolValidationError, match="canonical order"):
        PoolState(pool_id="0x00", token_low=B, token_high=A)
    with pytest.raises(PoolValidationError, match="non-negative"):
        PoolState(pool_id="0x00", token_low=A, token_high=B, reserve_low=-1)
