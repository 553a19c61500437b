"""Module B: Stream-B rate models - Turn reward deliveries into a per-second rate.

Two interchangeable variants, selected once at pool construction:
- EMA smoother: rate tracks an exponential moving average of the
  instantaneous delivery rate amount / elapsed
- Linear depleter: rate = reward_balance / depletion_duration, and every
  distribution drains reward_balance

Rates are expressed in reward units per second scaled by PRECISION.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..errors import ParameterOutOfRange, SameInstantDelivery, ZeroAmount
from .ledger import PRECISION

logger = logging.getLogger(__name__)


class RateModel(ABC):
    """Interface the accrual engine uses for stream B."""

    kind: str = ""

    @abstractmethod
    def current_rate(self) -> int:
        """Reward per second, scaled by PRECISION."""

    @abstractmethod
    def record_delivery(self, amount: int, now: int) -> None:
        """Account for a pushed reward delivery."""

    def check_delivery(self, amount: int, now: int) -> None:
        """Reject a delivery before anything is mutated."""
        if amount == 0:
            raise ZeroAmount("reward delivery must be non-zero")

    def on_distributed(self, amount: int) -> None:
        """Called by the engine with the amount credited to the accumulator."""

    def budget(self) -> Optional[int]:
        """Upper bound the model itself places on one distribution, if any."""
        return None

    def check_alpha(self, value: int) -> None:
        raise ParameterOutOfRange(f"{self.kind} rate model has no alpha parameter")

    def set_alpha(self, value: int) -> None:
        self.check_alpha(value)

    def check_depletion_duration(self, value: int) -> None:
        raise ParameterOutOfRange(f"{self.kind} rate model has no depletion duration")

    def set_depletion_duration(self, value: int) -> None:
        self.check_depletion_duration(value)

    @abstractmethod
    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict view of the model state."""


class EmaRateModel(RateModel):
    """Exponentially smoothed rate driven by irregular push deliveries.

    A delivery at the same timestamp as the previous one is rejected with
    SameInstantDelivery rather than having its elapsed time floored.
    """

    kind = "ema"

    def __init__(self, alpha: int, start_time: int = 0):
        """
        Initialize EMA smoother.

        Args:
            alpha: Weight of the newest observation, in (0, PRECISION]
            start_time: Reference time the first delivery is measured from
        """
        self.check_alpha(alpha)
        self.alpha = alpha
        self.smoothed_rate = 0
        self.last_event_time = start_time
        self.has_event = False

    def check_alpha(self, alpha: int) -> None:
        if alpha <= 0 or alpha > PRECISION:
            raise ParameterOutOfRange(
                "alpha must be in (0, 1e18]", details=f"alpha={alpha}"
            )

    def current_rate(self) -> int:
        return self.smoothed_rate

    def instant_rate(self, amount: int, now: int) -> int:
        if amount == 0:
            raise ZeroAmount("reward delivery must be non-zero")
        elapsed = now - self.last_event_time
        if elapsed <= 0:
            raise SameInstantDelivery(
                "reward already delivered at this timestamp", details=f"now={now}"
            )
        return amount * PRECISION // elapsed

    def check_delivery(self, amount: int, now: int) -> None:
        self.instant_rate(amount, now)

    def record_delivery(self, amount: int, now: int) -> None:
        instant = self.instant_rate(amount, now)
        if not self.has_event:
            self.smoothed_rate = instant
            self.has_event = True
        else:
            self.smoothed_rate = (
                self.alpha * instant + (PRECISION - self.alpha) * self.smoothed_rate
            ) // PRECISION
        self.last_event_time = now
        logger.debug(
            "ema delivery amount=%d instant_rate=%d smoothed_rate=%d",
            amount, instant, self.smoothed_rate,
        )

    def set_alpha(self, value: int) -> None:
        self.check_alpha(value)
        self.alpha = value

    def snapshot(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'smoothed_rate': self.smoothed_rate,
            'last_event_time': self.last_event_time,
            'alpha': self.alpha,
            'has_event': self.has_event,
        }


class LinearDepletionRateModel(RateModel):
    """Standing reward balance paid out linearly over a depletion window.

    Deliveries only add to the balance, so any split of the same total at
    one instant ends in the same state.
    """

    kind = "linear"

    def __init__(self, depletion_duration: int, max_depletion_duration: Optional[int] = None):
        """
        Initialize linear depleter.

        Args:
            depletion_duration: Seconds over which the balance pays out
            max_depletion_duration: Optional upper bound for the duration
        """
        self.max_depletion_duration = max_depletion_duration
        self.check_depletion_duration(depletion_duration)
        self.depletion_duration = depletion_duration
        self.reward_balance = 0
        self.rate_per_second_b = 0

    def check_depletion_duration(self, duration: int) -> None:
        if duration <= 0:
            raise ParameterOutOfRange(
                "depletion duration must be positive", details=f"duration={duration}"
            )
        if self.max_depletion_duration is not None and duration > self.max_depletion_duration:
            raise ParameterOutOfRange(
                "depletion duration above maximum",
                details=f"duration={duration}, max={self.max_depletion_duration}",
            )

    def _recompute_rate(self) -> None:
        self.rate_per_second_b = self.reward_balance * PRECISION // self.depletion_duration

    def current_rate(self) -> int:
        return self.rate_per_second_b

    def budget(self) -> Optional[int]:
        return self.reward_balance

    def record_delivery(self, amount: int, now: int) -> None:
        self.check_delivery(amount, now)
        self.reward_balance += amount
        self._recompute_rate()

    def on_distributed(self, amount: int) -> None:
        self.reward_balance -= min(amount, self.reward_balance)
        self._recompute_rate()

    def set_depletion_duration(self, value: int) -> None:
        self.check_depletion_duration(value)
        self.depletion_duration = value
        self._recompute_rate()

    def snapshot(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'reward_balance': self.reward_balance,
            'rate_per_second_b': self.rate_per_second_b,
            'depletion_duration': self.depletion_duration,
        }


def build_rate_model(settings, start_time: int = 0) -> RateModel:
    """
    Create the configured rate model.

    Args:
        settings: RateModelSettings from the pool config
        start_time: Pool initialization time

    Returns:
        RateModel instance
    """
    if settings.kind == "ema":
        return EmaRateModel(alpha=settings.alpha, start_time=start_time)
    if settings.kind == "linear":
        return LinearDepletionRateModel(
            depletion_duration=settings.depletion_duration,
            max_depletion_duration=settings.max_depletion_duration,
        )
    raise ValueError(f"Unknown rate model kind: {settings.kind}")
