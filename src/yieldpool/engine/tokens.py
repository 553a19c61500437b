"""External collaborators: token ledgers, time source and sequence source.

The pool only talks to these through the small protocols below. The
in-memory implementations back the tests and the scenario simulator.
"""

from typing import Any, Callable, Dict, List, Optional, Protocol

from ..errors import InsufficientBalance, ZeroAmount


class TokenLedger(Protocol):
    """Fungible token as seen by the pool that custodies it.

    snapshot() / restore() let the pool undo movements made earlier in a
    transition that later fails.
    """

    def transfer_in(self, payer: str, amount: int) -> None: ...

    def transfer_out(self, recipient: str, amount: int) -> None: ...

    def mint(self, recipient: str, amount: int) -> None: ...

    def balance_of(self, holder: str) -> int: ...

    def snapshot(self) -> Any: ...

    def restore(self, state: Any) -> None: ...


class Clock(Protocol):
    def now(self) -> int: ...


class SequenceSource(Protocol):
    def current(self) -> int: ...


TransferHook = Callable[[str, str, str, int], None]


class InMemoryTokenLedger:
    """Balance map for one token, custodied on behalf of a single pool.

    Hooks are invoked before every balance change with
    (action, source, destination, amount); they let callers re-enter the
    pool from inside a token movement. A hook that raises aborts the movement.
    """

    def __init__(self, symbol: str, custodian: str):
        self.symbol = symbol
        self.custodian = custodian
        self.balances: Dict[str, int] = {}
        self.total_supply = 0
        self.hooks: List[TransferHook] = []

    def credit(self, holder: str, amount: int) -> None:
        """Give an account tokens from outside the pool (test faucet)."""
        self.balances[holder] = self.balances.get(holder, 0) + amount
        self.total_supply += amount

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def snapshot(self):
        return dict(self.balances), self.total_supply

    def restore(self, state) -> None:
        balances, total_supply = state
        self.balances = dict(balances)
        self.total_supply = total_supply

    def _move(self, source: str, destination: str, amount: int) -> None:
        if amount <= 0:
            raise ZeroAmount(f"{self.symbol} transfer amount must be positive")
        available = self.balances.get(source, 0)
        if available < amount:
            raise InsufficientBalance(
                f"{self.symbol} balance too low",
                details=f"holder={source}, balance={available}, amount={amount}",
            )
        self.balances[source] = available - amount
        self.balances[destination] = self.balances.get(destination, 0) + amount

    def _notify(self, action: str, source: str, destination: str, amount: int) -> None:
        for hook in list(self.hooks):
            hook(action, source, destination, amount)

    def transfer_in(self, payer: str, amount: int) -> None:
        self._notify("transfer_in", payer, self.custodian, amount)
        self._move(payer, self.custodian, amount)

    def transfer_out(self, recipient: str, amount: int) -> None:
        self._notify("transfer_out", self.custodian, recipient, amount)
        self._move(self.custodian, recipient, amount)

    def mint(self, recipient: str, amount: int) -> None:
        if amount <= 0:
            raise ZeroAmount(f"{self.symbol} mint amount must be positive")
        self._notify("mint", "", recipient, amount)
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        self.total_supply += amount


class ManualClock:
    """Monotonic seconds counter advanced explicitly."""

    def __init__(self, start: int = 0):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError("clock cannot move backwards")
        self._now = timestamp
        return self._now


class SequenceCounter:
    """Monotonic integer counter with its own cadence (block-number style)."""

    def __init__(self, start: int = 0):
        self._value = start

    def current(self) -> int:
        return self._value

    def advance(self, steps: int = 1) -> int:
        if steps < 0:
            raise ValueError("sequence cannot move backwards")
        self._value += steps
        return self._value


def ledgers_for(custodian: str, reward_is_principal: bool,
                principal_symbol: str = "STK", reward_symbol: Optional[str] = "RWD"):
    """Build (principal_ledger, reward_ledger); one shared ledger when tokens coincide."""
    principal = InMemoryTokenLedger(principal_symbol, custodian)
    if reward_is_principal:
        return principal, principal
    return principal, InMemoryTokenLedger(reward_symbol, custodian)
