"""Module D: Governance Timelock - Two-phase commit for the target annual yield.

A value takes effect only when the same value is submitted again at a
strictly later sequence number, no more than `window` sequences after the
proposal. Any other submission (re)starts the proposal, so the parameter
can never get stuck.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_WINDOW = 100


@dataclass
class PendingParameter:
    """Proposal awaiting its confirming submission."""
    proposed_value: int = 0
    proposed_at_sequence: int = 0
    in_progress: bool = False


class GovernanceTimelock:
    """Propose-then-confirm state machine (Idle / Proposed)."""

    def __init__(self, window: int = DEFAULT_WINDOW):
        """
        Initialize timelock.

        Args:
            window: Maximum sequence distance between proposal and confirmation
        """
        if window <= 0:
            raise ValueError("governance window must be positive")
        self.window = window
        self.pending = PendingParameter()

    def would_commit(self, value: int, current_sequence: int) -> bool:
        """Whether submitting value at current_sequence commits it."""
        pending = self.pending
        if not pending.in_progress or pending.proposed_value != value:
            return False
        distance = current_sequence - pending.proposed_at_sequence
        return 0 < distance <= self.window

    def submit(self, value: int, current_sequence: int) -> Optional[int]:
        """
        Submit a value.

        Args:
            value: Proposed target (bps)
            current_sequence: Current sequence number

        Returns:
            The committed value, or None if the submission (re)started a proposal
        """
        if self.would_commit(value, current_sequence):
            self.pending = PendingParameter()
            return value

        self.pending = PendingParameter(
            proposed_value=value,
            proposed_at_sequence=current_sequence,
            in_progress=True
        )
        return None

    def info(self) -> dict:
        return {
            'proposed_value': self.pending.proposed_value,
            'proposed_at_sequence': self.pending.proposed_at_sequence,
            'in_progress': self.pending.in_progress,
            'window': self.window,
        }
