"""Module A: Reward Accrual Engine - Lazy accumulator updates and claim settlement.

Key Concepts:
- sync_pool(now) folds elapsed time into acc_per_share_a / acc_per_share_b
- Stream A is minted at the emission rate; stream B is paid from the reward
  pot at the rate model's rate, capped by what the pot can actually cover
- Every entry point orders: sync -> settle -> mutate principal -> recompute
  emission -> external token movement
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..errors import BelowMinimumStake, InsufficientPrincipal, ZeroAmount
from .emission import EmissionModel
from .ledger import PRECISION, STREAM_A, STREAM_B, PoolState, Position, PositionLedger
from .rate_models import RateModel
from .tokens import TokenLedger

logger = logging.getLogger(__name__)


@dataclass
class AccrualStep:
    """Outcome of folding one elapsed interval into the accumulators."""
    elapsed: int = 0
    reward_a: int = 0
    acc_delta_a: int = 0
    potential_b: int = 0
    available_b: int = 0
    distributed_b: int = 0
    acc_delta_b: int = 0


@dataclass
class Settlement:
    """Rewards owed to an account at the current accumulators."""
    owed_a: int = 0
    owed_b: int = 0

    @property
    def is_empty(self) -> bool:
        return self.owed_a == 0 and self.owed_b == 0


class AccrualEngine:
    """Accumulator ledger for two reward streams over one staked principal."""

    def __init__(
        self,
        pool: PoolState,
        positions: PositionLedger,
        rate_model: RateModel,
        emission: EmissionModel,
        principal_ledger: TokenLedger,
        reward_ledger: TokenLedger,
        custodian: str,
        minimum_stake: int,
        reward_is_principal: bool = False
    ):
        """
        Initialize accrual engine.

        Args:
            pool: Global pool state
            positions: Per-account positions
            rate_model: Stream-B rate model
            emission: Stream-A emission model
            principal_ledger: Staked token (also mints stream A)
            reward_ledger: Stream-B reward token
            custodian: Address holding the pool's token balances
            minimum_stake: Smallest stake and smallest residual position
            reward_is_principal: Reward and staked token are the same token
        """
        self.pool = pool
        self.positions = positions
        self.rate_model = rate_model
        self.emission = emission
        self.principal_ledger = principal_ledger
        self.reward_ledger = reward_ledger
        self.custodian = custodian
        self.minimum_stake = minimum_stake
        self.reward_is_principal = reward_is_principal

    # ==================== Pool accrual ====================

    def available_reward_b(self) -> int:
        """Reward-pot balance not yet allocated to stakers."""
        balance = self.reward_ledger.balance_of(self.custodian)
        if self.reward_is_principal:
            balance -= self.pool.total_staked
        balance -= self.pool.reserved_b
        return max(0, balance)

    def project(self, now: int) -> AccrualStep:
        """
        Compute the accrual for [last_accrual_time, now] without committing it.

        Args:
            now: Current timestamp

        Returns:
            AccrualStep (all zeros if no time elapsed or nothing is staked)
        """
        pool = self.pool
        step = AccrualStep()
        if now <= pool.last_accrual_time or pool.total_staked == 0:
            return step

        step.elapsed = now - pool.last_accrual_time
        step.reward_a = step.elapsed * pool.rate_per_second_a
        step.acc_delta_a = step.reward_a * PRECISION // pool.total_staked

        step.potential_b = step.elapsed * self.rate_model.current_rate() // PRECISION
        step.available_b = self.available_reward_b()
        capped = min(step.potential_b, step.available_b)
        budget = self.rate_model.budget()
        if budget is not None:
            capped = min(capped, budget)
        step.acc_delta_b = capped * PRECISION // pool.total_staked
        # Reserve what stakers can claim, rounded up; never more than capped.
        step.distributed_b = -(-step.acc_delta_b * pool.total_staked // PRECISION)
        return step

    def sync_pool(self, now: int) -> AccrualStep:
        """Bring the accumulators up to `now`."""
        pool = self.pool
        if now <= pool.last_accrual_time:
            return AccrualStep()

        step = self.project(now)
        pool.acc_per_share_a += step.acc_delta_a
        pool.acc_per_share_b += step.acc_delta_b
        if step.distributed_b > 0:
            pool.reserved_b += step.distributed_b
            self.rate_model.on_distributed(step.distributed_b)
        pool.last_accrual_time = now

        if step.elapsed:
            logger.debug(
                "sync elapsed=%d reward_a=%d distributed_b=%d (potential=%d available=%d)",
                step.elapsed, step.reward_a, step.distributed_b,
                step.potential_b, step.available_b,
            )
        return step

    def recompute_emission(self) -> None:
        self.pool.rate_per_second_a = self.emission.rate_per_second(self.pool.total_staked)

    # ==================== Settlement ====================

    def settle(self, position: Position) -> Settlement:
        """
        Compute what a position is owed; debts are left untouched.

        Args:
            position: Position to settle

        Returns:
            Settlement with owed amounts per stream
        """
        owed_a = position.accrued(self.pool.acc_per_share_a) - position.debt_a
        owed_b = position.accrued(self.pool.acc_per_share_b) - position.debt_b
        return Settlement(owed_a=max(0, owed_a), owed_b=max(0, owed_b))

    def pending_reward(self, account: str, stream: str, now: int) -> int:
        """Forward projection of an account's unclaimed reward at `now`."""
        acc = self.pool.acc_per_share(stream)
        position = self.positions.get(account)
        if position is None or position.principal == 0:
            return 0
        step = self.project(now)
        if stream == STREAM_A:
            acc += step.acc_delta_a
            debt = position.debt_a
        else:
            acc += step.acc_delta_b
            debt = position.debt_b
        return max(0, position.accrued(acc) - debt)

    def _release_reserved(self, owed_b: int) -> None:
        self.pool.reserved_b -= min(owed_b, self.pool.reserved_b)

    def pay(self, account: str, settlement: Settlement) -> None:
        """Deliver settled rewards; call only after internal state is committed."""
        if settlement.owed_a > 0:
            self.principal_ledger.mint(account, settlement.owed_a)
        if settlement.owed_b > 0:
            self.reward_ledger.transfer_out(account, settlement.owed_b)

    # ==================== Principal movements ====================

    def _apply_dust_rule(self, principal: int, amount: int) -> int:
        remaining = principal - amount
        if 0 < remaining < self.minimum_stake:
            return principal
        return amount

    def stake(self, payer: str, amount: int, beneficiary: str, now: int) -> Settlement:
        """
        Deposit `amount` from `payer` into the position of `beneficiary`.

        Returns:
            Rewards paid to the beneficiary as part of the stake
        """
        if amount < self.minimum_stake:
            raise BelowMinimumStake(
                "stake below minimum", details=f"amount={amount}, minimum={self.minimum_stake}"
            )
        self.sync_pool(now)
        position = self.positions.get_or_create(beneficiary)
        settlement = self.settle(position) if position.principal > 0 else Settlement()

        position.principal += amount
        position.rebaseline(self.pool.acc_per_share_a, self.pool.acc_per_share_b)
        self.pool.total_staked += amount
        self._release_reserved(settlement.owed_b)
        self.recompute_emission()

        self.principal_ledger.transfer_in(payer, amount)
        self.pay(beneficiary, settlement)
        return settlement

    def withdraw(self, account: str, amount: int, now: int) -> Tuple[int, Settlement]:
        """
        Withdraw principal, upgrading to a full exit when the residual is dust.

        Returns:
            (actual amount withdrawn, rewards paid)
        """
        position = self._check_withdrawable(account, amount)
        self.sync_pool(now)
        settlement = self.settle(position)
        actual = self._apply_dust_rule(position.principal, amount)

        self._reduce_principal(position, actual)
        self._release_reserved(settlement.owed_b)

        self.pay(account, settlement)
        self.principal_ledger.transfer_out(account, actual)
        return actual, settlement

    def claim(self, account: str, now: int) -> Settlement:
        """Pay out everything an account has accrued; principal is unchanged."""
        self.sync_pool(now)
        position = self.positions.get(account)
        if position is None or position.principal == 0:
            return Settlement()
        settlement = self.settle(position)
        position.rebaseline(self.pool.acc_per_share_a, self.pool.acc_per_share_b)
        self._release_reserved(settlement.owed_b)

        self.pay(account, settlement)
        return settlement

    def pause_withdraw(self, account: str, amount: int) -> int:
        """
        Principal-only exit: no sync and no reward delivery.

        Unsettled rewards of the withdrawn principal are forfeited; the stream-B
        part returns to the unallocated pot.

        Returns:
            Actual amount withdrawn
        """
        position = self._check_withdrawable(account, amount)
        forfeited = self.settle(position)
        actual = self._apply_dust_rule(position.principal, amount)

        self._reduce_principal(position, actual)
        self._release_reserved(forfeited.owed_b)

        self.principal_ledger.transfer_out(account, actual)
        return actual

    def _check_withdrawable(self, account: str, amount: int) -> Position:
        if amount <= 0:
            raise ZeroAmount("withdraw amount must be positive")
        position = self.positions.get(account)
        principal = position.principal if position is not None else 0
        if position is None or principal < amount:
            raise InsufficientPrincipal(
                "withdraw exceeds principal", details=f"amount={amount}, principal={principal}"
            )
        return position

    def _reduce_principal(self, position: Position, actual: int) -> None:
        position.principal -= actual
        if position.principal == 0:
            position.debt_a = 0
            position.debt_b = 0
        else:
            position.rebaseline(self.pool.acc_per_share_a, self.pool.acc_per_share_b)
        self.pool.total_staked -= actual
        self.recompute_emission()

    # ==================== Rewards & parameters ====================

    def deliver_reward(self, payer: str, amount: int, now: int) -> None:
        """Push `amount` of reward token into the pot and update the rate model."""
        self.rate_model.check_delivery(amount, now)
        self.sync_pool(now)
        self.rate_model.record_delivery(amount, now)
        self.reward_ledger.transfer_in(payer, amount)

    def commit_target(self, value: int, now: int) -> None:
        self.emission.check_target(value)
        self.sync_pool(now)
        self.emission.target_annual_yield_bps = value
        self.recompute_emission()

    def set_alpha(self, value: int, now: int) -> None:
        self.rate_model.check_alpha(value)
        self.sync_pool(now)
        self.rate_model.set_alpha(value)

    def set_depletion_duration(self, value: int, now: int) -> None:
        self.rate_model.check_depletion_duration(value)
        self.sync_pool(now)
        self.rate_model.set_depletion_duration(value)

    def position(self, account: str) -> Optional[Position]:
        return self.positions.get(account)
