"""
Deterministic state root hashing.

Used to check that a failed call chain left every ledger and pool exactly as it
was (compare two roots) and for audit logging.
"""

from __future__ import annotations

from typing import Mapping, Tuple

from .balances import Address, Amount, BalanceTable
from .canonical import domain_sep_bytes, encode_bytes, encode_uvarint, hex_to_bytes_fixed, sha256_hex
from .pools import PoolState


STATE_ROOT_VERSION = 2

LedgerEntry = Tuple[BalanceTable, Amount]  # (balances, total_supply)
PoolEntry = Tuple[PoolState, Amount]  # (state, total_shares)


def _sorted_balance_entries(balances: BalanceTable) -> list[tuple[bytes, int]]:
    entries: list[tuple[bytes, int]] = []
    for holder, amount in balances.get_all_balances().items():
        holder_b = hex_to_bytes_fixed(holder, nbytes=20, name="holder")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"invalid balance amount: {amount!r}")
        entries.append((holder_b, amount))
    entries.sort(key=lambda t: t[0])
    return entries


def _encode_ledgers_section(ledgers: Mapping[Address, LedgerEntry]) -> bytes:
    out = bytearray()
    items = sorted(
        ((hex_to_bytes_fixed(addr, nbytes=20, name="ledger"), entry) for addr, entry in ledgers.items()),
        key=lambda t: t[0],
    )
    out += encode_uvarint(len(items))
    for addr_b, (balances, total_supply) in items:
        entries = _sorted_balance_entries(balances)
        out += addr_b
        out += encode_uvarint(total_supply)
        out += encode_uvarint(len(entries))
        for holder_b, amount in entries:
            out += holder_b
            out += encode_uvarint(amount)
    return bytes(out)


def _encode_pools_section(pools: Mapping[Address, PoolEntry]) -> bytes:
    # Keyed by pool address: several pools may share a pool_id (same pair).
    out = bytearray()
    items = sorted(
        ((hex_to_bytes_fixed(addr, nbytes=20, name="pool"), entry) for addr, entry in pools.items()),
        key=lambda t: t[0],
    )
    out += encode_uvarint(len(items))
    for addr_b, (pool, total_shares) in items:
        out += addr_b
        out += hex_to_bytes_fixed(pool.pool_id, nbytes=32, name="pool_id")
        out += hex_to_bytes_fixed(pool.token_low, nbytes=20, name="token_low")
        out += hex_to_bytes_fixed(pool.token_high, nbytes=20, name="token_high")
        out += encode_uvarint(pool.reserve_low)
        out += encode_uvarint(pool.reserve_high)
        out += encode_uvarint(total_shares)
    return bytes(out)


def compute_state_root(
    *,
    ledgers: Mapping[Address, LedgerEntry],
    pools: Mapping[Address, PoolEntry],
) -> str:
    """
    Compute a deterministic state root over ledger balances and pool reserves.

    Returns a 0x-prefixed sha256 digest.
    """
    payload = (
        domain_sep_bytes("state_root", version=STATE_ROOT_VERSION)
        + b"LED"
        + encode_bytes(_encode_ledgers_section(ledgers))
        + b"POL"
        + encode_bytes(_encode_pools_section(pools))
    )
    return sha256_hex(payload)
