"""Tests for transition atomicity, re-entry protection, roles and invariant checks."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import START, TOKEN, WEEK, make_env

from yieldpool.engine.access import AccessGate
from yieldpool.errors import (
    InsufficientBalance,
    InvalidAddress,
    ReentrantCall,
    SameInstantDelivery,
    Unauthorized,
    YieldPoolError,
    ZeroAmount,
)
from yieldpool.validation.invariants import InvariantChecker, validate_pool_history


class TestAtomicity:
    """A transition that raises leaves no trace."""

    def test_reentrant_call_rolls_back(self, linear_env):
        env = linear_env
        env.pool.stake("alice", 10 * TOKEN)
        env.clock.advance(3600)
        before = env.pool.pool_info()
        event_count = len(env.pool.events)
        calls = []

        def reenter(action, source, destination, amount):
            calls.append(action)
            env.pool.claim("bob")

        env.principal.hooks.append(reenter)
        with pytest.raises(ReentrantCall):
            env.pool.stake("bob", 5 * TOKEN)
        env.principal.hooks.clear()

        assert calls == ["transfer_in"]
        assert env.pool.pool_info() == before
        assert env.pool.position_info("bob")['principal'] == 0
        assert len(env.pool.events) == event_count
        assert env.principal.balance_of("bob") == 1_000_000 * TOKEN

        # The guard is released; later calls work normally.
        env.pool.stake("bob", 5 * TOKEN)
        assert env.pool.position_info("bob")['principal'] == 5 * TOKEN

    def test_failed_transfer_rolls_back(self, linear_env):
        env = linear_env
        with pytest.raises(InsufficientBalance):
            env.pool.stake("dave", 10 * TOKEN)
        info = env.pool.pool_info()
        assert info['total_staked'] == 0
        assert info['num_positions'] == 0
        assert env.pool.events == []

    def test_failure_after_mint_undoes_the_mint(self, linear_env):
        """A principal transfer failing after stream A was minted pays nothing."""
        env = linear_env
        env.pool.stake("alice", 10 * TOKEN)
        env.clock.advance(WEEK)
        owed_a = env.pool.pending_reward_a("alice")
        assert owed_a > 0

        def revert_transfer_out(action, source, destination, amount):
            if action == "transfer_out":
                raise RuntimeError("token contract reverted")

        env.principal.hooks.append(revert_transfer_out)
        before = env.pool.pool_info()
        balance_before = env.principal.balance_of("alice")
        supply_before = env.principal.total_supply
        for _ in range(3):
            with pytest.raises(RuntimeError):
                env.pool.withdraw("alice", 10 * TOKEN)
        env.principal.hooks.clear()

        assert env.principal.balance_of("alice") == balance_before
        assert env.principal.total_supply == supply_before
        assert env.pool.pending_reward_a("alice") == owed_a
        assert env.pool.pool_info() == before
        assert env.pool.position_info("alice")['principal'] == 10 * TOKEN

        env.pool.withdraw("alice", 10 * TOKEN)
        assert env.pool.pool_info()['total_staked'] == 0
        assert env.principal.balance_of("alice") == balance_before + 10 * TOKEN + owed_a

    def test_failed_reward_transfer_undoes_the_mint(self, linear_env):
        """A claim whose stream-B payout fails mints no stream A either."""
        env = linear_env
        env.pool.stake("alice", 10 * TOKEN)
        env.pool.deliver_reward("rewarder", 5 * TOKEN)
        env.clock.advance(WEEK)
        # Any claim syncs the pool and allocates the delivered stream B
        env.pool.claim("bob")
        assert env.pool.pending_reward_b("alice") > 0
        env.pool.emergency_transfer("owner", "treasury")
        env.pool.unpause("owner")
        owed_a = env.pool.pending_reward_a("alice")
        assert owed_a > 0

        balance_before = env.principal.balance_of("alice")
        supply_before = env.principal.total_supply
        for _ in range(3):
            with pytest.raises(InsufficientBalance):
                env.pool.claim("alice")

        assert env.principal.balance_of("alice") == balance_before
        assert env.principal.total_supply == supply_before
        assert env.reward.balance_of("alice") == 0
        assert env.pool.pending_reward_a("alice") == owed_a

    def test_shared_ledger_restored_once(self):
        """With one token for both streams the single ledger is rolled back intact."""
        env = make_env(kind="linear", reward_is_principal=True)
        env.pool.stake("alice", 10 * TOKEN)
        env.pool.deliver_reward("rewarder", 5 * TOKEN)
        env.clock.advance(WEEK)

        def revert_transfer_out(action, source, destination, amount):
            if action == "transfer_out" and amount == 10 * TOKEN:
                raise RuntimeError("token contract reverted")

        env.principal.hooks.append(revert_transfer_out)
        balances_before = dict(env.principal.balances)
        supply_before = env.principal.total_supply
        with pytest.raises(RuntimeError):
            env.pool.withdraw("alice", 10 * TOKEN)
        env.principal.hooks.clear()

        assert env.principal.balances == balances_before
        assert env.principal.total_supply == supply_before


class TestAddresses:

    @pytest.mark.parametrize("address", ["", "   ", None, 7])
    def test_invalid_caller(self, linear_env, address):
        with pytest.raises(InvalidAddress):
            linear_env.pool.stake(address, TOKEN)

    def test_invalid_beneficiary(self, linear_env):
        with pytest.raises(InvalidAddress):
            linear_env.pool.stake("alice", TOKEN, beneficiary="")

    def test_invalid_recipient(self, linear_env):
        with pytest.raises(InvalidAddress):
            linear_env.pool.emergency_transfer("owner", None)
        assert not linear_env.pool.paused

    def test_invalid_role_address(self, linear_env):
        with pytest.raises(InvalidAddress):
            linear_env.pool.set_reward_source("owner", "")
        with pytest.raises(InvalidAddress):
            AccessGate("")

    def test_error_string_carries_code(self):
        error = InvalidAddress("caller must be a non-empty string", details="''")
        assert str(error).startswith("invalid_address:")
        assert isinstance(error, YieldPoolError)
        assert isinstance(error, ValueError)


class TestRewardDelivery:
    """Reward source gating and delivery edge cases."""

    def test_only_reward_source_or_owner(self, linear_env):
        env = linear_env
        with pytest.raises(Unauthorized):
            env.pool.deliver_reward("alice", TOKEN)
        env.reward.credit("owner", TOKEN)
        env.pool.deliver_reward("owner", TOKEN)
        assert env.reward.balance_of("pool") == TOKEN

    def test_reward_source_rotation(self, linear_env):
        env = linear_env
        env.pool.set_reward_source("owner", "treasury")
        with pytest.raises(Unauthorized):
            env.pool.deliver_reward("rewarder", TOKEN)
        env.reward.credit("treasury", TOKEN)
        env.pool.deliver_reward("treasury", TOKEN)
        assert env.pool.events[-1].name == "RewardDelivered"

    def test_zero_delivery_rejected(self, linear_env):
        with pytest.raises(ZeroAmount):
            linear_env.pool.deliver_reward("rewarder", 0)

    def test_same_instant_delivery_rejected(self, ema_env):
        env = ema_env
        env.clock.advance(10)
        env.pool.deliver_reward("rewarder", 10 * TOKEN)
        model_before = env.pool.rate_model_info()
        with pytest.raises(SameInstantDelivery):
            env.pool.deliver_reward("rewarder", 10 * TOKEN)
        assert env.pool.rate_model_info() == model_before
        assert env.reward.balance_of("pool") == 10 * TOKEN

    def test_delivery_at_pool_creation_rejected(self, ema_env):
        with pytest.raises(SameInstantDelivery):
            ema_env.pool.deliver_reward("rewarder", TOKEN)
        assert ema_env.clock.now() == START


class TestInvariantChecker:
    """State and history checks."""

    def test_healthy_pool_has_no_warnings(self, linear_env):
        env = linear_env
        env.pool.stake("alice", 10 * TOKEN)
        env.pool.deliver_reward("rewarder", 5 * TOKEN)
        env.clock.advance(WEEK)
        env.pool.claim("alice")
        assert InvariantChecker(env.pool).check_state() == []

    def test_conservation_violation_detected(self, linear_env):
        env = linear_env
        env.pool.stake("alice", 10 * TOKEN)
        env.pool.engine.pool.total_staked += 1
        categories = [w.category for w in InvariantChecker(env.pool).check_state()]
        assert "conservation" in categories

    def test_insolvent_pot_detected(self, linear_env):
        env = linear_env
        env.pool.stake("alice", 10 * TOKEN)
        env.pool.deliver_reward("rewarder", 5 * TOKEN)
        env.clock.advance(WEEK)
        env.pool.engine.sync_pool(env.clock.now())
        env.reward.balances["pool"] = 0
        warnings = InvariantChecker(env.pool).check_state()
        assert any(w.category == "solvency" and w.severity == "error" for w in warnings)

    def test_decreasing_accumulator_detected(self, linear_env):
        before = linear_env.pool.pool_info()
        after = dict(before, acc_per_share_b=before['acc_per_share_b'] - 1)
        warnings = validate_pool_history(linear_env.pool, [before, after])
        assert [w.category for w in warnings] == ["monotonicity"]
