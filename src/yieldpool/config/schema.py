"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, model_validator

PRECISION = 10**18


class PoolParameters(BaseModel):
    """Staking and stream-A emission parameters (fixed-point integers)."""
    minimum_stake: int = Field(gt=0, description="Smallest stake and smallest residual position")
    target_annual_yield_bps: int = Field(ge=0, description="Initial stream-A target yield (bps)")
    max_target_bps: int = Field(gt=0, default=10_000, description="Largest committable target (bps)")
    seconds_per_year: int = Field(gt=0, default=365 * 24 * 3600, description="Annualization period")

    @model_validator(mode='after')
    def validate_target(self):
        """Ensure the initial target is committable."""
        if self.target_annual_yield_bps > self.max_target_bps:
            raise ValueError(
                f"target_annual_yield_bps ({self.target_annual_yield_bps}) exceeds "
                f"max_target_bps ({self.max_target_bps})"
            )
        return self


class RateModelSettings(BaseModel):
    """Stream-B rate model selection."""
    kind: Literal["ema", "linear"] = Field(description="Rate model variant")
    alpha: int = Field(
        gt=0, le=PRECISION, default=PRECISION // 10,
        description="EMA weight of the newest delivery, scaled by 1e18"
    )
    depletion_duration: int = Field(
        gt=0, default=7 * 24 * 3600,
        description="Linear depletion window in seconds"
    )
    max_depletion_duration: Optional[int] = Field(
        gt=0, default=4 * 365 * 24 * 3600,
        description="Upper bound accepted by set_depletion_duration"
    )

    @model_validator(mode='after')
    def validate_duration(self):
        """Ensure duration <= max duration."""
        max_duration = self.max_depletion_duration
        if max_duration is not None and self.depletion_duration > max_duration:
            raise ValueError("depletion_duration must not exceed max_depletion_duration")
        return self


class TokenSettings(BaseModel):
    """Token wiring."""
    reward_is_principal: bool = Field(
        default=False,
        description="Reward token and staked token are the same token instance"
    )
    principal_symbol: str = Field(default="STK", min_length=1)
    reward_symbol: str = Field(default="RWD", min_length=1)


class GovernanceSettings(BaseModel):
    """Timelock parameters."""
    window: int = Field(gt=0, default=100, description="Max sequences between propose and commit")


class SimulationSettings(BaseModel):
    """Scenario generator parameters."""
    horizon_days: int = Field(gt=0, default=90, description="Simulated time span")
    step_seconds: int = Field(gt=0, default=86_400, description="Seconds between simulated steps")
    num_stakers: int = Field(gt=0, default=5, description="Number of simulated accounts")
    stake_mean: float = Field(gt=0, default=1_000.0, description="Mean stake in whole tokens")
    delivery_probability: float = Field(ge=0, le=1, default=0.5, description="Chance of a reward delivery per step")
    delivery_mean: float = Field(gt=0, default=50.0, description="Mean delivery size in whole tokens")
    action_probability: float = Field(ge=0, le=1, default=0.3, description="Chance an account acts per step")
    random_seed: int = Field(default=42, description="Random seed for reproducibility")


class Config(BaseModel):
    """Complete configuration for a yield pool."""
    pool: PoolParameters
    rate_model: RateModelSettings
    tokens: TokenSettings = Field(default_factory=TokenSettings)
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
