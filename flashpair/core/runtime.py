"""
Call-frame runtime for the pool engine.

Every contract (token ledgers, LP ledgers, pools, executors) is registered in a
`Runtime` under a deterministic address. The runtime provides:

- call frames: `call(sender)` pushes the address making a call, and
  `msg_sender` is the innermost frame's sender, so a callee always sees its
  true caller (contracts call out as themselves);
- serialization: one re-entrant lock; a whole call chain holds it and other
  threads wait until the outermost call returns;
- savepoints: each `@external` method snapshots all registered contracts on entry
  and restores them if it raises, so a failure anywhere unwinds the complete
  chain to its pre-call state;
- deferred events: events emitted inside a call are delivered to subscribers only
  after the outermost savepoint commits.
"""

from __future__ import annotations

import functools
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

from ..config import AmmConfig, RuntimeConfig
from ..exceptions import PoolValidationError
from ..state.balances import Address
from ..state.canonical import canonical_address, derive_address
from ..state.events import Event, EventKind
from ..state.state_root import compute_state_root
from ..utils.logger import get_logger, set_log_level


logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
Subscriber = Callable[[Event], None]


class Contract:
    """
    Base class for anything that lives at an address in a `Runtime`.

    Subclasses hold their mutable state in plain attributes and implement
    `snapshot()` / `restore()` so the runtime can roll them back.
    """

    label = "contract"

    def __init__(self, runtime: "Runtime") -> None:
        self.runtime = runtime
        self.address: Address = runtime.register(self)

    def snapshot(self) -> Any:
        return None

    def restore(self, snapshot: Any) -> None:
        return None

    def emit(self, kind: EventKind, **fields: Any) -> None:
        self.runtime.emit(Event(kind=kind, emitter=self.address, fields=fields))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


def external(fn: F) -> F:
    """Run a contract method inside a runtime savepoint (all-or-nothing)."""

    @functools.wraps(fn)
    def wrapper(self: Contract, *args: Any, **kwargs: Any) -> Any:
        with self.runtime.savepoint(f"{type(self).__name__}.{fn.__name__}"):
            return fn(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


_Snapshot = Tuple[Dict[Address, Tuple[Contract, Any]], int, List[Event]]


class Runtime:
    """Registry, call stack and transactional store for one simulated chain."""

    def __init__(self, config: Optional[RuntimeConfig] = None) -> None:
        self.config = config or RuntimeConfig()
        self._lock = threading.RLock()
        self._contracts: Dict[Address, Contract] = {}
        self._nonce = 0
        self._frames: List[Address] = []
        self._depth = 0
        self._pending: List[Event] = []
        self._subscribers: List[Subscriber] = []

    @classmethod
    def from_config(cls, config: AmmConfig) -> "Runtime":
        """Build a runtime from an engine config and apply its log level."""
        set_log_level("flashpair", config.log_level.upper())
        return cls(config.runtime)

    # -- registry ------------------------------------------------------------

    def _next_address(self, label: str) -> Address:
        self._nonce += 1
        return derive_address(label, self._nonce)

    def register(self, contract: Contract) -> Address:
        with self._lock:
            address = self._next_address(contract.label)
            self._contracts[address] = contract
            return address

    def new_account(self, label: str = "account") -> Address:
        """Allocate an externally-owned account address (no code)."""
        with self._lock:
            return self._next_address(label)

    def contract(self, address: Address) -> Optional[Contract]:
        """Resolve an address to its contract, or None for accounts and unknown addresses."""
        try:
            key = canonical_address(address)
        except (TypeError, ValueError):
            return None
        return self._contracts.get(key)

    def contracts(self) -> List[Contract]:
        return [self._contracts[a] for a in sorted(self._contracts)]

    # -- call frames ---------------------------------------------------------

    @property
    def msg_sender(self) -> Address:
        if not self._frames:
            raise PoolValidationError("no active call frame")
        return self._frames[-1]

    @property
    def call_depth(self) -> int:
        return len(self._frames)

    @contextmanager
    def call(self, sender: Address) -> Iterator[None]:
        """Make calls as `sender` for the duration of the block."""
        try:
            sender_norm = canonical_address(sender, name="sender")
        except (TypeError, ValueError) as exc:
            raise PoolValidationError(str(exc)) from exc
        with self._lock:
            if len(self._frames) >= self.config.max_call_depth:
                raise PoolValidationError(f"call depth limit reached ({self.config.max_call_depth})")
            self._frames.append(sender_norm)
            try:
                yield
            finally:
                self._frames.pop()

    def transact(self, sender: Address, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Top-level entrypoint: call `fn` as `sender` in one atomic unit of work.

        `fn` may perform several contract calls; they commit or roll back together.
        """
        with self.call(sender):
            with self.savepoint(getattr(fn, "__qualname__", "transact")):
                return fn(*args, **kwargs)

    @contextmanager
    def serialized(self) -> Iterator[None]:
        """Hold the runtime lock for a consistent multi-contract read."""
        with self._lock:
            yield

    # -- savepoints ----------------------------------------------------------

    def _capture(self) -> _Snapshot:
        contracts = {addr: (c, c.snapshot()) for addr, c in self._contracts.items()}
        return contracts, self._nonce, list(self._pending)

    def _restore(self, snap: _Snapshot) -> None:
        contracts, nonce, pending = snap
        self._contracts = {addr: c for addr, (c, _) in contracts.items()}
        for contract, state in contracts.values():
            contract.restore(state)
        self._nonce = nonce
        self._pending = list(pending)

    @contextmanager
    def savepoint(self, label: str = "call") -> Iterator[None]:
        with self._lock:
            snap = self._capture()
            self._depth += 1
            try:
                yield
            except BaseException as exc:
                self._depth -= 1
                self._restore(snap)
                if self._depth == 0:
                    logger.warning("rolled back %s: %s: %s", label, type(exc).__name__, exc)
                raise
            self._depth -= 1
            if self._depth == 0:
                self._flush()

    @property
    def in_savepoint(self) -> bool:
        return self._depth > 0

    # -- events --------------------------------------------------------------

    def emit(self, event: Event) -> None:
        with self._lock:
            self._pending.append(event)
            if self._depth == 0:
                self._flush()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Receive committed events. Returns an unsubscribe callable."""
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    def _flush(self) -> None:
        events, self._pending = self._pending, []
        if not self.config.deliver_events:
            return
        for event in events:
            for subscriber in list(self._subscribers):
                subscriber(event)

    # -- commitments ---------------------------------------------------------

    def state_root(self) -> str:
        """sha256 over every ledger's balances and every pool's reserves and share supply."""
        from .ledger import FungibleLedger
        from .pool import Pool

        with self._lock:
            ledgers = {}
            pools = {}
            for address, contract in self._contracts.items():
                if isinstance(contract, FungibleLedger):
                    ledgers[address] = (contract.balances_table(), contract.total_supply)
                elif isinstance(contract, Pool):
                    pools[address] = (contract.state.copy(), contract.total_shares)
            return compute_state_root(ledgers=ledgers, pools=pools)
