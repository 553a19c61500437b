"""Module C: Emission Model - Stream-A rate from total stake and target yield.

Formula: rate_per_second_a = total_staked * target_bps / 10000 / SECONDS_PER_YEAR
"""

from ..errors import ParameterOutOfRange
from .ledger import BPS, SECONDS_PER_YEAR


class EmissionModel:
    """Target-yield emission for stream A."""

    def __init__(
        self,
        target_annual_yield_bps: int,
        max_target_bps: int = BPS,
        seconds_per_year: int = SECONDS_PER_YEAR
    ):
        """
        Initialize emission model.

        Args:
            target_annual_yield_bps: Target annual yield in basis points
            max_target_bps: Largest target governance may commit
            seconds_per_year: Annualization period in seconds
        """
        self.max_target_bps = max_target_bps
        self.seconds_per_year = seconds_per_year
        self.check_target(target_annual_yield_bps)
        self.target_annual_yield_bps = target_annual_yield_bps

    def check_target(self, value: int) -> None:
        if value < 0 or value > self.max_target_bps:
            raise ParameterOutOfRange(
                "target annual yield out of range",
                details=f"value={value}, max={self.max_target_bps}",
            )

    def rate_per_second(self, total_staked: int) -> int:
        """Stream-A reward units per second for the given stake."""
        if total_staked <= 0:
            return 0
        return total_staked * self.target_annual_yield_bps // BPS // self.seconds_per_year
