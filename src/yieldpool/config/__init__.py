"""Pool configuration."""

from .loader import apply_override, config_from_dict, load_config, read_defaults
from .schema import (
    Config,
    GovernanceSettings,
    PoolParameters,
    RateModelSettings,
    SimulationSettings,
    TokenSettings,
)

__all__ = [
    "Config",
    "GovernanceSettings",
    "PoolParameters",
    "RateModelSettings",
    "SimulationSettings",
    "TokenSettings",
    "apply_override",
    "config_from_dict",
    "load_config",
    "read_defaults",
]
