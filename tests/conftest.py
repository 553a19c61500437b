"""Shared fixtures: a pool wired to in-memory ledgers and a manual clock."""

import os
import sys
from types import SimpleNamespace

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from yieldpool.config.loader import config_from_dict
from yieldpool.engine.pool import YieldPool
from yieldpool.engine.tokens import ManualClock, SequenceCounter, ledgers_for

TOKEN = 10**18
START = 1_000_000
MINIMUM_STAKE = 10**15
WEEK = 604_800


def make_config(
    kind="linear",
    reward_is_principal=False,
    minimum_stake=MINIMUM_STAKE,
    target_bps=500,
    alpha=5 * 10**17,
    duration=WEEK,
):
    return config_from_dict({
        'pool': {
            'minimum_stake': minimum_stake,
            'target_annual_yield_bps': target_bps,
        },
        'rate_model': {
            'kind': kind,
            'alpha': alpha,
            'depletion_duration': duration,
        },
        'tokens': {'reward_is_principal': reward_is_principal},
    })


def make_env(**kwargs):
    """Pool plus its collaborators; accounts alice/bob/carol and the rewarder are funded."""
    config = make_config(**kwargs)
    clock = ManualClock(START)
    sequence = SequenceCounter(10)
    principal, reward = ledgers_for("pool", config.tokens.reward_is_principal)
    pool = YieldPool.from_config(
        config,
        owner="owner",
        principal_ledger=principal,
        reward_ledger=reward,
        custodian="pool",
        clock=clock,
        sequence=sequence,
        pauser="guardian",
        reward_source="rewarder",
    )
    for account in ("alice", "bob", "carol"):
        principal.credit(account, 1_000_000 * TOKEN)
    reward.credit("rewarder", 1_000_000 * TOKEN)
    return SimpleNamespace(
        pool=pool, clock=clock, sequence=sequence,
        principal=principal, reward=reward, config=config,
    )


@pytest.fixture
def linear_env():
    return make_env(kind="linear")


@pytest.fixture
def ema_env():
    return make_env(kind="ema")
