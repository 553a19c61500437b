"""Accrual engine, rate models and the pool facade."""

from .access import AccessGate
from .accrual import AccrualEngine, AccrualStep, Settlement
from .emission import EmissionModel
from .governance import GovernanceTimelock, PendingParameter
from .ledger import (
    BPS,
    PRECISION,
    SECONDS_PER_YEAR,
    STREAM_A,
    STREAM_B,
    PoolState,
    Position,
    PositionLedger,
)
from .pool import PoolEvent, YieldPool
from .rate_models import EmaRateModel, LinearDepletionRateModel, RateModel, build_rate_model
from .safety import PauseController
from .tokens import InMemoryTokenLedger, ManualClock, SequenceCounter, ledgers_for

__all__ = [
    "AccessGate",
    "AccrualEngine",
    "AccrualStep",
    "Settlement",
    "EmissionModel",
    "GovernanceTimelock",
    "PendingParameter",
    "BPS",
    "PRECISION",
    "SECONDS_PER_YEAR",
    "STREAM_A",
    "STREAM_B",
    "PoolState",
    "Position",
    "PositionLedger",
    "PoolEvent",
    "YieldPool",
    "EmaRateModel",
    "LinearDepletionRateModel",
    "RateModel",
    "build_rate_model",
    "PauseController",
    "InMemoryTokenLedger",
    "ManualClock",
    "SequenceCounter",
    "ledgers_for",
]
