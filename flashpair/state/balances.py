"""
Single-asset balance tracking.

Implements BalanceTable[Address] -> Amount for one fungible ledger.
"""

from typing import Dict


# Type aliases
Address = str  # 20-byte hex string (0x...)
PoolId = str  # 32-byte hex string (0x...)
Amount = int  # Non-negative integer (arbitrary precision)


class BalanceTable:
    """
    Balance table mapping holder -> amount.

    Note: this class stores balances in a plain dict. Do not rely on dict
    iteration order for hashing; callers sort keys explicitly at serialization
    boundaries (see `state_root.py`).
    """

    def __init__(self):
        self._balances: Dict[Address, Amount] = {}

    def get(self, holder: Address) -> Amount:
        """Get balance for holder. Returns 0 if not found."""
        return self._balances.get(holder, 0)

    def set(self, holder: Address, amount: Amount) -> None:
        """
        Set balance for holder.

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop(holder, None)
        else:
            self._balances[holder] = amount

    def add(self, holder: Address, delta: Amount) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(holder)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(holder, new_balance)

    def subtract(self, holder: Address, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(holder, -delta)

    def get_all_balances(self) -> Dict[Address, Amount]:
        """Get all non-zero balances as a dictionary."""
        return dict(self._balances)

    def copy(self) -> "BalanceTable":
        clone = BalanceTable()
        clone._balances = dict(self._balances)
        return clone

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
