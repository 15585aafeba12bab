"""Flash-callback capability.

A contract that receives a flash swap with a non-empty payload must implement
`on_flash_callback`. The pool invokes it synchronously, as itself, after the
borrowed amounts have been transferred and before settlement is checked.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..state.balances import Address, Amount


@runtime_checkable
class FlashBorrower(Protocol):
    def on_flash_callback(
        self,
        initiator: Address,
        amount_low_out: Amount,
        amount_high_out: Amount,
        data: bytes,
    ) -> None:
        """
        Use the borrowed amounts and repay the calling pool before returning.

        Args:
            initiator: Address that called the pool's flash swap
            amount_low_out: Amount of the pool's token_low delivered
            amount_high_out: Amount of the pool's token_high delivered
            data: Opaque payload passed through from the initiator
        """
        ...
