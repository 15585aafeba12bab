# [TESTER] v1

from __future__ import annotations

from flashpair.state import BalanceTable, PoolState, compute_pool_id
from flashpair.state.state_root import compute_state_root


A = "0x" + "0a" * 20
B = "0x" + "0b" * 20
HOLDER_1 = "0x" + "11" * 20
HOLDER_2 = "0x" + "22" * 20
P1 = "0x" + "a1" * 20
P2 = "0x" + "a2" * 20


def _balances(*entries) -> BalanceTable:
    table = BalanceTable()
    for holder, amount in entries:
        table.set(holder, amount)
    return table


def _pool(reserve_low: int, reserve_high: int) -> PoolState:
    return PoolState(
        pool_id=compute_pool_id(A, B),
        token_low=A,
        token_high=B,
        reserve_low=reserve_low,
        reserve_high=reserve_high,
    )


def test_state_root_is_insertion_order_independent() -> None:
    pool = _pool(10, 20)
    root_1 = compute_state_root(
        ledgers={A: (_balances((HOLDER_1, 5), (HOLDER_2, 7)), 12), B: (_balances((HOLDER_1, 3)), 3)},
        pools={P1: (pool, 14)},
    )
    root_2 = compute_state_root(
        ledgers={B: (_balances((HOLDER_1, 3)), 3), A: (_balances((HOLDER_2, 7), (HOLDER_1, 5)), 12)},
        pools={P1: (pool.copy(), 14)},
    )
    assert root_1 == root_2


def test_state_root_sees_every_field() -> None:
    base = dict(ledgers={A: (_balances((HOLDER_1, 5)), 5)}, pools={P1: (_pool(10, 20), 14)})
    root = compute_state_root(**base)

    assert compute_state_root(ledgers={A: (_balances((HOLDER_1, 6)), 5)}, pools=base["pools"]) != root
    assert compute_state_root(ledgers={A: (_balances((HOLDER_1, 5)), 6)}, pools=base["pools"]) != root
    assert compute_state_root(ledgers={A: (_balances((HOLDER_2, 5)), 5)}, pools=base["pools"]) != root
    assert compute_state_root(ledgers=base["ledgers"], pools={P1: (_pool(10, 21), 14)}) != root
    assert compute_state_root(ledgers=base["ledgers"], pools={P1: (_pool(10, 20), 15)}) != root


def test_zero_balances_do_not_change_root() -> None:
    table = _balances((HOLDER_1, 5))
    table.set(HOLDER_2, 0)
    assert compute_state_root(ledgers={A: (table, 5)}, pools={}) == compute_state_root(
        ledgers={A: (_balances((HOLDER_1, 5)), 5)}, pools={}
    )


def test_pools_of_the_same_pair_are_committed_separately() -> None:
    ledgers = {A: (_balances((HOLDER_1, 5)), 5)}
    root = compute_state_root(ledgers=ledgers, pools={P1: (_pool(10, 20), 14), P2: (_pool(10, 40), 20)})

    assert compute_state_root(ledgers=ledgers, pools={P1: (_pool(11, 20), 14), P2: (_pool(10, 40), 20)}) != root
    assert compute_state_root(ledgers=ledgers, pools={P1: (_pool(10, 20), 14), P2: (_pool(11, 40), 20)}) != root
    assert compute_state_root(ledgers=ledgers, pools={P2: (_pool(10, 20), 14), P1: (_pool(10, 40), 20)}) != root
