"""Yield pool facade - Every externally callable operation on one pool.

Each mutating call is one transition:
- guarded against re-entry from inside a token movement
- internal state and token balances are snapshotted and restored if the call raises
- access and pause checks run before the engine touches any state
"""

import copy
import logging
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import ReentrantCall, YieldPoolError
from .access import AccessGate, check_address
from .accrual import AccrualEngine, Settlement
from .emission import EmissionModel
from .governance import GovernanceTimelock
from .ledger import STREAM_A, STREAM_B, PoolState, PositionLedger
from .rate_models import RateModel, build_rate_model
from .safety import PauseController
from .tokens import Clock, SequenceSource, TokenLedger

logger = logging.getLogger(__name__)


@dataclass
class PoolEvent:
    """Record of a committed transition."""
    name: str
    timestamp: int
    account: Optional[str] = None
    amount: int = 0
    data: Dict[str, Any] = field(default_factory=dict)


class YieldPool:
    """Dual-stream staking pool."""

    def __init__(
        self,
        engine: AccrualEngine,
        governance: GovernanceTimelock,
        access: AccessGate,
        clock: Clock,
        sequence: SequenceSource
    ):
        """
        Initialize pool facade.

        Args:
            engine: Accrual engine holding pool, position and rate state
            governance: Timelock for the target annual yield
            access: Owner / pauser / reward-source gate
            clock: Time source
            sequence: Sequence source used by the timelock
        """
        self.engine = engine
        self.governance = governance
        self.access = access
        self.clock = clock
        self.sequence = sequence
        self.safety = PauseController()
        self.events: List[PoolEvent] = []
        self._entered = False

        self.engine.pool.last_accrual_time = max(
            self.engine.pool.last_accrual_time, clock.now()
        )
        self.engine.recompute_emission()

    @classmethod
    def from_config(
        cls,
        config,
        owner: str,
        principal_ledger: TokenLedger,
        reward_ledger: TokenLedger,
        custodian: str,
        clock: Clock,
        sequence: SequenceSource,
        pauser: Optional[str] = None,
        reward_source: Optional[str] = None
    ) -> 'YieldPool':
        """Build a pool from a Config object and external collaborators."""
        start = clock.now()
        rate_model: RateModel = build_rate_model(config.rate_model, start_time=start)
        emission = EmissionModel(
            target_annual_yield_bps=config.pool.target_annual_yield_bps,
            max_target_bps=config.pool.max_target_bps,
            seconds_per_year=config.pool.seconds_per_year,
        )
        engine = AccrualEngine(
            pool=PoolState(last_accrual_time=start),
            positions=PositionLedger(),
            rate_model=rate_model,
            emission=emission,
            principal_ledger=principal_ledger,
            reward_ledger=reward_ledger,
            custodian=check_address(custodian, "custodian"),
            minimum_stake=config.pool.minimum_stake,
            reward_is_principal=config.tokens.reward_is_principal,
        )
        return cls(
            engine=engine,
            governance=GovernanceTimelock(window=config.governance.window),
            access=AccessGate(owner, pauser=pauser, reward_source=reward_source),
            clock=clock,
            sequence=sequence,
        )

    # ==================== Transition plumbing ====================

    def _ledgers(self) -> List[TokenLedger]:
        """Distinct token ledgers; a shared principal/reward ledger appears once."""
        engine = self.engine
        if engine.reward_ledger is engine.principal_ledger:
            return [engine.principal_ledger]
        return [engine.principal_ledger, engine.reward_ledger]

    def _snapshot(self):
        engine = self.engine
        state = copy.deepcopy((
            engine.pool, engine.positions, engine.rate_model, engine.emission,
            self.governance, self.safety, self.access,
        ))
        balances = [(ledger, ledger.snapshot()) for ledger in self._ledgers()]
        return state, balances, len(self.events)

    def _restore(self, snapshot) -> None:
        state, balances, event_count = snapshot
        (self.engine.pool, self.engine.positions, self.engine.rate_model,
         self.engine.emission, self.governance, self.safety, self.access) = state
        # Undo token movements already made in the failed transition
        for ledger, ledger_state in balances:
            ledger.restore(ledger_state)
        del self.events[event_count:]

    @contextmanager
    def _transition(self, action: str):
        if self._entered:
            raise ReentrantCall(f"{action} called while another transition is in progress")
        self._entered = True
        snapshot = self._snapshot()
        try:
            yield
        except Exception as exc:
            self._restore(snapshot)
            if isinstance(exc, YieldPoolError):
                logger.warning("%s rejected: %s", action, exc)
            else:
                logger.exception("%s failed", action)
            raise
        finally:
            self._entered = False

    def _emit(self, name: str, account: Optional[str] = None, amount: int = 0, **data) -> None:
        event = PoolEvent(name=name, timestamp=self.clock.now(), account=account,
                          amount=amount, data=data)
        self.events.append(event)
        logger.info("%s account=%s amount=%d %s", name, account, amount, data or "")

    def _emit_rewards(self, account: str, settlement: Settlement) -> None:
        if settlement.owed_a > 0:
            self._emit("RewardPaid", account, settlement.owed_a, stream=STREAM_A)
        if settlement.owed_b > 0:
            self._emit("RewardPaid", account, settlement.owed_b, stream=STREAM_B)

    # ==================== Staking ====================

    def stake(self, caller: str, amount: int, beneficiary: Optional[str] = None) -> None:
        """Stake `amount` from caller, credited to beneficiary (caller by default)."""
        with self._transition("stake"):
            self.safety.require_not_paused("stake")
            payer = check_address(caller, "caller")
            beneficiary = check_address(beneficiary, "beneficiary") if beneficiary is not None else payer
            settlement = self.engine.stake(payer, amount, beneficiary, self.clock.now())
            self._emit_rewards(beneficiary, settlement)
            self._emit("Staked", beneficiary, amount, payer=payer)

    def withdraw(self, caller: str, amount: int) -> int:
        """Withdraw principal; returns the amount actually moved."""
        with self._transition("withdraw"):
            self.safety.require_not_paused("withdraw")
            actual, settlement = self.engine.withdraw(caller, amount, self.clock.now())
            self._emit_rewards(caller, settlement)
            self._emit("Withdrawn", caller, actual, requested=amount)
            return actual

    def claim(self, caller: str) -> Settlement:
        with self._transition("claim"):
            self.safety.require_not_paused("claim")
            settlement = self.engine.claim(caller, self.clock.now())
            self._emit_rewards(caller, settlement)
            return settlement

    # ==================== Rewards & parameters ====================

    def deliver_reward(self, caller: str, amount: int) -> None:
        """Push reward tokens into the stream-B pot (reward source only)."""
        with self._transition("deliver_reward"):
            self.access.require_reward_source(caller)
            self.safety.require_not_paused("deliver_reward")
            self.engine.deliver_reward(caller, amount, self.clock.now())
            self._emit("RewardDelivered", caller, amount,
                       rate_b=self.engine.rate_model.current_rate())

    def propose_or_commit(self, caller: str, target_bps: int) -> bool:
        """
        Submit a target annual yield to the timelock.

        Returns:
            True if this submission committed the value
        """
        with self._transition("propose_or_commit"):
            self.access.require_owner(caller)
            self.engine.emission.check_target(target_bps)
            current = self.sequence.current()
            committed = self.governance.submit(target_bps, current)
            if committed is None:
                self._emit("TargetProposed", caller, target_bps, sequence=current)
                return False
            self.engine.commit_target(committed, self.clock.now())
            self._emit("TargetCommitted", caller, committed, sequence=current,
                       rate_a=self.engine.pool.rate_per_second_a)
            return True

    def set_alpha(self, caller: str, value: int) -> None:
        with self._transition("set_alpha"):
            self.access.require_owner(caller)
            self.engine.set_alpha(value, self.clock.now())
            self._emit("AlphaSet", caller, value)

    def set_depletion_duration(self, caller: str, value: int) -> None:
        with self._transition("set_depletion_duration"):
            self.access.require_owner(caller)
            self.engine.set_depletion_duration(value, self.clock.now())
            self._emit("DepletionDurationSet", caller, value)

    def set_reward_source(self, caller: str, address: str) -> None:
        with self._transition("set_reward_source"):
            self.access.require_owner(caller)
            self.access.set_reward_source(address)
            self._emit("RewardSourceSet", address)

    def set_pauser(self, caller: str, address: str) -> None:
        with self._transition("set_pauser"):
            self.access.require_owner(caller)
            self.access.set_pauser(address)
            self._emit("PauserSet", address)

    # ==================== Pause & emergency ====================

    def pause(self, caller: str) -> None:
        with self._transition("pause"):
            self.access.require_pauser(caller)
            if self.safety.pause():
                self._emit("Paused", caller)

    def unpause(self, caller: str) -> None:
        with self._transition("unpause"):
            self.access.require_owner(caller)
            if self.safety.unpause():
                self._emit("Unpaused", caller)

    def emergency_transfer(self, caller: str, recipient: str) -> Dict[str, int]:
        """
        Sweep every token the pool holds to `recipient` and pause.

        Returns:
            Amount swept per token ledger ('principal', and 'reward' when distinct)
        """
        with self._transition("emergency_transfer"):
            self.access.require_owner(caller)
            check_address(recipient, "recipient")
            if self.safety.pause():
                self._emit("Paused", caller)
            self.safety.emergency_swept = True

            engine = self.engine
            swept = {'principal': engine.principal_ledger.balance_of(engine.custodian)}
            if not engine.reward_is_principal:
                swept['reward'] = engine.reward_ledger.balance_of(engine.custodian)
            self._emit("EmergencyTransfer", recipient, swept['principal'], **swept)

            if swept['principal'] > 0:
                engine.principal_ledger.transfer_out(recipient, swept['principal'])
            if swept.get('reward', 0) > 0:
                engine.reward_ledger.transfer_out(recipient, swept['reward'])
            return swept

    def pause_withdraw(self, caller: str, amount: int) -> int:
        """Principal-only exit available while paused; returns the amount moved."""
        with self._transition("pause_withdraw"):
            self.safety.require_paused("pause_withdraw")
            actual = self.engine.pause_withdraw(caller, amount)
            self._emit("PauseWithdrawn", caller, actual, requested=amount)
            return actual

    # ==================== Views ====================

    @property
    def paused(self) -> bool:
        return self.safety.paused

    def pending_reward_a(self, account: str) -> int:
        return self.engine.pending_reward(account, STREAM_A, self.clock.now())

    def pending_reward_b(self, account: str) -> int:
        return self.engine.pending_reward(account, STREAM_B, self.clock.now())

    def pool_info(self) -> Dict[str, Any]:
        info = asdict(self.engine.pool)
        info.update({
            'target_annual_yield_bps': self.engine.emission.target_annual_yield_bps,
            'rate_per_second_b': self.engine.rate_model.current_rate(),
            'available_reward_b': self.engine.available_reward_b(),
            'minimum_stake': self.engine.minimum_stake,
            'paused': self.safety.paused,
            'emergency_swept': self.safety.emergency_swept,
            'num_positions': len(self.engine.positions),
        })
        return info

    def pending_parameter_info(self) -> Dict[str, Any]:
        return self.governance.info()

    def rate_model_info(self) -> Dict[str, Any]:
        return self.engine.rate_model.snapshot()

    def position_info(self, account: str) -> Dict[str, int]:
        position = self.engine.positions.get(account)
        if position is None:
            return {'principal': 0, 'debt_a': 0, 'debt_b': 0}
        return asdict(position)
