"""Exception types for the flashpair engine.

Every failure is fatal to the enclosing unit of work: the runtime restores the
pre-call snapshot and the exception propagates to the original caller unchanged.
"""

from __future__ import annotations


class AmmError(Exception):
    """Base class for all engine failures."""


class PoolValidationError(AmmError, ValueError):
    """Invalid input: identical or unknown tokens, zero amounts, dust mints, missing capability."""


class PoolArithmeticError(AmmError, ArithmeticError):
    """Reserve underflow, division by an empty reserve, or an output that would drain the pool."""


class TransferFailure(AmmError):
    """A token ledger call returned False or raised."""

    def __init__(self, token: str, reason: str) -> None:
        self.token = token
        self.reason = reason
        super().__init__(f"transfer failed on {token}: {reason}")


class CallbackAuthorizationFailure(AmmError):
    """The flash callback was invoked by a caller the borrower did not expect."""

    def __init__(self, caller: str | None, expected: str | None) -> None:
        self.caller = caller
        self.expected = expected
        super().__init__(f"unauthorized flash callback from {caller} (expected {expected})")
