"""Error taxonomy for rejected pool transitions.

Every error is raised before any state is mutated, or inside a transition
whose internal state is rolled back by the pool facade. No error is retried.
"""

from typing import Any, Optional


class YieldPoolError(ValueError):
    """Base class for all rejected pool transitions."""

    code = "yieldpool_error"

    def __init__(self, reason: str, details: Optional[Any] = None):
        super().__init__(reason)
        self.reason = reason
        self.details = details

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class InvalidAddress(YieldPoolError):
    code = "invalid_address"


class ParameterOutOfRange(YieldPoolError):
    code = "parameter_out_of_range"


class Unauthorized(YieldPoolError):
    code = "unauthorized"


class BelowMinimumStake(YieldPoolError):
    code = "below_minimum_stake"


class InsufficientPrincipal(YieldPoolError):
    code = "insufficient_principal"


class ZeroAmount(YieldPoolError):
    code = "zero_amount"


class SameInstantDelivery(YieldPoolError):
    """Two EMA reward deliveries landed at the same timestamp."""

    code = "same_instant_delivery"


class PoolPaused(YieldPoolError):
    code = "pool_paused"


class PoolNotPaused(YieldPoolError):
    code = "pool_not_paused"


class ReentrantCall(YieldPoolError):
    code = "reentrant_call"


class InsufficientBalance(YieldPoolError):
    """A token ledger could not cover a transfer."""

    code = "insufficient_balance"
