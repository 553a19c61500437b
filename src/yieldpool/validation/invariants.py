"""Invariant checks for pool state and pool histories."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..engine.pool import YieldPool


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "conservation", "monotonicity", "solvency"
    message: str
    details: Optional[str] = None


class InvariantChecker:
    """Run invariant checks on a live pool."""

    def __init__(self, pool: YieldPool):
        """Initialize with the pool to inspect."""
        self.pool = pool

    def check_state(self) -> List[ValidationWarning]:
        """
        Check the current pool state.

        Returns:
            List of validation warnings
        """
        warnings = []
        engine = self.pool.engine
        state = engine.pool

        is_valid, error_msg = engine.positions.validate_conservation(state)
        if not is_valid:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message="total_staked differs from the sum of principals",
                details=error_msg
            ))

        is_valid, error_msg = engine.positions.validate_zero_debt()
        if not is_valid:
            warnings.append(ValidationWarning(
                severity="error",
                category="positions",
                message="Empty position carries reward debt",
                details=error_msg
            ))

        for account, position in engine.positions.items():
            if 0 < position.principal < engine.minimum_stake:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="dust",
                    message=f"Position of {account} is below the minimum stake",
                    details=f"principal={position.principal}, minimum={engine.minimum_stake}"
                ))

        # Skip solvency after an emergency sweep: the pot is expected to be empty.
        if not self.pool.safety.emergency_swept:
            reward_balance = engine.reward_ledger.balance_of(engine.custodian)
            if engine.reward_is_principal:
                reward_balance -= state.total_staked
            if reward_balance < state.reserved_b:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="solvency",
                    message="Reward pot cannot cover allocated stream-B rewards",
                    details=f"pot={reward_balance}, reserved_b={state.reserved_b}"
                ))

            principal_balance = engine.principal_ledger.balance_of(engine.custodian)
            if principal_balance < state.total_staked:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="solvency",
                    message="Pool holds less principal than total_staked",
                    details=f"balance={principal_balance}, total_staked={state.total_staked}"
                ))

        return warnings

    def check_transition(
        self,
        before: Dict[str, Any],
        after: Dict[str, Any]
    ) -> List[ValidationWarning]:
        """
        Check monotonicity between two pool_info() snapshots.

        Args:
            before: Earlier snapshot
            after: Later snapshot

        Returns:
            List of validation warnings
        """
        warnings = []
        for key in ('acc_per_share_a', 'acc_per_share_b', 'last_accrual_time'):
            if after[key] < before[key]:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="monotonicity",
                    message=f"{key} decreased",
                    details=f"before={before[key]}, after={after[key]}"
                ))
        return warnings


def validate_pool_history(
    pool: YieldPool,
    snapshots: List[Dict[str, Any]]
) -> List[ValidationWarning]:
    """
    Validate a pool together with the pool_info() snapshots recorded over its life.

    Args:
        pool: Pool in its final state
        snapshots: pool_info() dicts in chronological order

    Returns:
        List of all validation warnings
    """
    checker = InvariantChecker(pool)
    warnings = checker.check_state()
    for before, after in zip(snapshots, snapshots[1:]):
        warnings.extend(checker.check_transition(before, after))
    return warnings
