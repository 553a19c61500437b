"""Scenario runner - Replay timed actions against a fresh pool.

Key Features:
- In-memory token ledgers, manual clock and block-style sequence counter
- Accounts are funded automatically from the scenario's stakes and deliveries
- Rejected actions are recorded, not fatal
- pool_info() snapshot after every action, checked for invariant violations
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import yaml

from ..config.schema import Config
from ..engine.ledger import PRECISION, STREAM_A, STREAM_B
from ..engine.pool import YieldPool
from ..engine.tokens import ManualClock, SequenceCounter, ledgers_for
from ..errors import YieldPoolError
from ..validation.invariants import ValidationWarning, validate_pool_history

logger = logging.getLogger(__name__)

OWNER = "owner"
REWARD_SOURCE = "reward-source"
PAUSER = "guardian"
CUSTODIAN = "pool"

ACTIONS = (
    "stake", "withdraw", "claim", "deliver_reward", "propose_or_commit",
    "set_alpha", "set_depletion_duration", "pause", "unpause",
    "emergency_transfer", "pause_withdraw",
)


@dataclass
class ScenarioAction:
    """One call at a time offset (seconds from scenario start)."""
    t: int
    action: str
    caller: str
    amount: int = 0
    beneficiary: Optional[str] = None
    recipient: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScenarioAction':
        if data.get('action') not in ACTIONS:
            raise ValueError(f"Unknown scenario action: {data.get('action')}")
        return cls(
            t=int(data['t']),
            action=data['action'],
            caller=str(data['caller']),
            amount=int(data.get('amount', 0)),
            beneficiary=data.get('beneficiary'),
            recipient=data.get('recipient'),
        )


@dataclass
class SimulationResult:
    """Complete simulation result."""
    config: Config
    actions: List[ScenarioAction]
    snapshots: List[Dict[str, Any]]
    final_metrics: Dict[str, Any]
    rejected: List[str] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    events: List[Any] = field(default_factory=list)


def load_scenario(yaml_path: str) -> List[ScenarioAction]:
    """
    Load a scenario from YAML.

    The file holds an `actions` list of mappings with keys
    t, action, caller and optionally amount, beneficiary, recipient.
    """
    with open(Path(yaml_path), 'r') as f:
        data = yaml.safe_load(f) or {}
    return [ScenarioAction.from_dict(item) for item in data.get('actions', [])]


def _to_fixed(tokens: float) -> int:
    """Whole-token float to 18-decimal integer, keeping 6 decimals."""
    return int(round(tokens * 1e6)) * (PRECISION // 10**6)


def generate_random_scenario(config: Config, random_seed: int = None) -> List[ScenarioAction]:
    """
    Generate a random scenario from the simulation settings.

    Args:
        config: Pool configuration
        random_seed: Random seed (defaults to config value)

    Returns:
        Time-ordered list of actions
    """
    sim = config.simulation
    if random_seed is None:
        random_seed = sim.random_seed
    rng = np.random.default_rng(random_seed)

    stakers = [f"staker-{i}" for i in range(sim.num_stakers)]
    minimum = config.pool.minimum_stake
    actions: List[ScenarioAction] = []

    # Initial deposits, lognormal around the mean stake
    for account in stakers:
        size = rng.lognormal(mean=np.log(sim.stake_mean), sigma=0.75)
        actions.append(ScenarioAction(
            t=0, action="stake", caller=account, amount=max(minimum, _to_fixed(size))
        ))

    num_steps = sim.horizon_days * 86_400 // sim.step_seconds
    for step in range(1, num_steps + 1):
        t = step * sim.step_seconds
        if rng.random() < sim.delivery_probability:
            amount = _to_fixed(rng.exponential(sim.delivery_mean))
            if amount > 0:
                actions.append(ScenarioAction(
                    t=t, action="deliver_reward", caller=REWARD_SOURCE, amount=amount
                ))
        for account in stakers:
            if rng.random() >= sim.action_probability:
                continue
            choice = rng.choice(["claim", "withdraw", "stake"], p=[0.5, 0.25, 0.25])
            if choice == "claim":
                actions.append(ScenarioAction(t=t, action="claim", caller=account))
            elif choice == "stake":
                size = rng.exponential(sim.stake_mean / 4)
                actions.append(ScenarioAction(
                    t=t, action="stake", caller=account, amount=max(minimum, _to_fixed(size))
                ))
            else:
                # Fraction of a nominal position; the pool rejects what it cannot cover
                fraction = float(rng.uniform(0.1, 1.0))
                amount = _to_fixed(sim.stake_mean * fraction / 2)
                if amount > 0:
                    actions.append(ScenarioAction(
                        t=t, action="withdraw", caller=account, amount=amount
                    ))
    return actions


class ScenarioRunner:
    """Build a pool from config and replay scenarios against it."""

    def __init__(self, config: Config, start_time: int = 0):
        """
        Initialize scenario runner.

        Args:
            config: Pool configuration
            start_time: Clock value at pool creation
        """
        self.config = config
        self.start_time = start_time
        self.clock = ManualClock(start_time)
        self.sequence = SequenceCounter()
        self.principal_ledger, self.reward_ledger = ledgers_for(
            CUSTODIAN,
            config.tokens.reward_is_principal,
            principal_symbol=config.tokens.principal_symbol,
            reward_symbol=config.tokens.reward_symbol,
        )
        self.pool = YieldPool.from_config(
            config,
            owner=OWNER,
            principal_ledger=self.principal_ledger,
            reward_ledger=self.reward_ledger,
            custodian=CUSTODIAN,
            clock=self.clock,
            sequence=self.sequence,
            pauser=PAUSER,
            reward_source=REWARD_SOURCE,
        )

    def fund(self, actions: List[ScenarioAction]) -> None:
        """Credit callers with exactly what their stakes and deliveries need."""
        stake_needs: Dict[str, int] = {}
        reward_needs: Dict[str, int] = {}
        for item in actions:
            if item.action == "stake":
                stake_needs[item.caller] = stake_needs.get(item.caller, 0) + item.amount
            elif item.action == "deliver_reward":
                reward_needs[item.caller] = reward_needs.get(item.caller, 0) + item.amount
        for account, amount in stake_needs.items():
            self.principal_ledger.credit(account, amount)
        for account, amount in reward_needs.items():
            self.reward_ledger.credit(account, amount)

    def _dispatch(self, item: ScenarioAction) -> None:
        pool = self.pool
        if item.action == "stake":
            pool.stake(item.caller, item.amount, item.beneficiary)
        elif item.action == "withdraw":
            pool.withdraw(item.caller, item.amount)
        elif item.action == "claim":
            pool.claim(item.caller)
        elif item.action == "deliver_reward":
            pool.deliver_reward(item.caller, item.amount)
        elif item.action == "propose_or_commit":
            pool.propose_or_commit(item.caller, item.amount)
        elif item.action == "set_alpha":
            pool.set_alpha(item.caller, item.amount)
        elif item.action == "set_depletion_duration":
            pool.set_depletion_duration(item.caller, item.amount)
        elif item.action == "pause":
            pool.pause(item.caller)
        elif item.action == "unpause":
            pool.unpause(item.caller)
        elif item.action == "emergency_transfer":
            pool.emergency_transfer(item.caller, item.recipient)
        elif item.action == "pause_withdraw":
            pool.pause_withdraw(item.caller, item.amount)
        else:
            raise ValueError(f"Unknown scenario action: {item.action}")

    def run(self, actions: List[ScenarioAction] = None, fund: bool = True) -> SimulationResult:
        """
        Replay actions in time order.

        Args:
            actions: Scenario (defaults to a generated random scenario)
            fund: Credit callers before replaying

        Returns:
            SimulationResult with per-action snapshots and final metrics
        """
        if actions is None:
            actions = generate_random_scenario(self.config)
        actions = sorted(actions, key=lambda item: item.t)
        if fund:
            self.fund(actions)

        snapshots = [self._snapshot()]
        rejected: List[str] = []
        last_t = None
        for item in actions:
            target = self.start_time + item.t
            if target > self.clock.now():
                self.clock.set(target)
            if item.t != last_t:
                self.sequence.advance(1)
                last_t = item.t
            try:
                self._dispatch(item)
            except YieldPoolError as exc:
                rejected.append(f"t={item.t} {item.action} {item.caller}: {exc}")
            snapshots.append(self._snapshot())

        warnings = validate_pool_history(self.pool, snapshots)
        for warning in warnings:
            logger.warning("%s: %s (%s)", warning.category, warning.message, warning.details)

        return SimulationResult(
            config=self.config,
            actions=actions,
            snapshots=snapshots,
            final_metrics=self._final_metrics(actions, rejected),
            rejected=rejected,
            warnings=warnings,
            events=list(self.pool.events),
        )

    def _snapshot(self) -> Dict[str, Any]:
        info = self.pool.pool_info()
        info['t'] = self.clock.now() - self.start_time
        info['sequence'] = self.sequence.current()
        return info

    def _final_metrics(self, actions: List[ScenarioAction], rejected: List[str]) -> Dict[str, Any]:
        paid = {STREAM_A: 0, STREAM_B: 0}
        for event in self.pool.events:
            if event.name == "RewardPaid":
                paid[event.data['stream']] += event.amount
        delivered = sum(e.amount for e in self.pool.events if e.name == "RewardDelivered")
        state = self.pool.engine.pool
        accounts = sorted({item.caller for item in actions if item.action == "stake"})
        return {
            'num_actions': len(actions),
            'num_rejected': len(rejected),
            'total_staked': state.total_staked,
            'acc_per_share_a': state.acc_per_share_a,
            'acc_per_share_b': state.acc_per_share_b,
            'reserved_b': state.reserved_b,
            'paid_a': paid[STREAM_A],
            'paid_b': paid[STREAM_B],
            'delivered_b': delivered,
            'pending_a': sum(self.pool.pending_reward_a(a) for a in accounts),
            'pending_b': sum(self.pool.pending_reward_b(a) for a in accounts),
            'target_annual_yield_bps': self.pool.engine.emission.target_annual_yield_bps,
        }
