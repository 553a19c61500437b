"""Position Ledger & Pool State - Per-account principal and global accumulators.

Key Concepts:
- All amounts are integers in fixed point, scale PRECISION (10^18)
- pending reward = principal * acc_per_share // PRECISION - debt
- Conservation: total_staked == sum(position.principal)
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

PRECISION = 10**18
BPS = 10_000
SECONDS_PER_YEAR = 365 * 24 * 3600

STREAM_A = "a"
STREAM_B = "b"


@dataclass
class Position:
    """Stake of a single account."""
    principal: int = 0
    debt_a: int = 0
    debt_b: int = 0

    def accrued(self, acc_per_share: int) -> int:
        """Gross reward earned by the current principal against an accumulator."""
        return self.principal * acc_per_share // PRECISION

    def debt_at(self, acc_per_share: int) -> int:
        """Debt baseline for the current principal, rounded up."""
        return -(-self.principal * acc_per_share // PRECISION)

    def rebaseline(self, acc_per_share_a: int, acc_per_share_b: int) -> None:
        """Reset both debts so that nothing is pending at the given accumulators.

        Accrual rounds down and debt rounds up, so the sum of all payouts
        never exceeds what the accumulators were credited with.
        """
        self.debt_a = self.debt_at(acc_per_share_a)
        self.debt_b = self.debt_at(acc_per_share_b)


@dataclass
class PoolState:
    """Global pool totals.

    reserved_b is stream-B reward already credited to acc_per_share_b but
    not yet paid out; it stays in the reward pot until claimed.
    """
    total_staked: int = 0
    acc_per_share_a: int = 0
    acc_per_share_b: int = 0
    last_accrual_time: int = 0
    rate_per_second_a: int = 0
    reserved_b: int = 0

    def acc_per_share(self, stream: str) -> int:
        if stream == STREAM_A:
            return self.acc_per_share_a
        if stream == STREAM_B:
            return self.acc_per_share_b
        raise ValueError(f"Unknown reward stream: {stream}")


class PositionLedger:
    """Position map keyed by account.

    Positions are created on first access for writing and never removed;
    a fully withdrawn position is zeroed instead.
    """

    def __init__(self):
        self._positions: Dict[str, Position] = {}

    def get(self, account: str) -> Optional[Position]:
        return self._positions.get(account)

    def get_or_create(self, account: str) -> Position:
        position = self._positions.get(account)
        if position is None:
            position = Position()
            self._positions[account] = position
        return position

    def items(self) -> Iterator[Tuple[str, Position]]:
        return iter(list(self._positions.items()))

    def total_principal(self) -> int:
        return sum(p.principal for p in self._positions.values())

    def __len__(self) -> int:
        return len(self._positions)

    def validate_conservation(self, pool: PoolState) -> Tuple[bool, Optional[str]]:
        """
        Validate that pool.total_staked equals the sum of all principals.

        Returns:
            (is_valid, error_message)
        """
        computed = self.total_principal()
        if computed != pool.total_staked:
            return False, (
                f"Conservation violation: total_staked={pool.total_staked}, "
                f"sum(principal)={computed}, diff={pool.total_staked - computed}"
            )
        return True, None

    def validate_zero_debt(self) -> Tuple[bool, Optional[str]]:
        """Validate that every empty position carries no debt."""
        for account, position in self._positions.items():
            if position.principal == 0 and (position.debt_a or position.debt_b):
                return False, (
                    f"Empty position for {account} still carries debt "
                    f"(debt_a={position.debt_a}, debt_b={position.debt_b})"
                )
        return True, None
