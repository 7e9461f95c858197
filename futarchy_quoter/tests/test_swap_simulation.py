#!/usr/bin/env python3
"""
Swap Simulation Test Suite

Single-range (closed form) and multi-tick (exact walk) deltas to a target
price, plus the exact-input swap walk used for quoting.

Test scenarios:
1. Move within one liquidity range (both simulators agree)
2. Move across tick boundaries with changing liquidity (they diverge)
3. No-op, monotonicity and rounding direction
4. Iteration budget and inconsistent tick data
5. Fee-aware exact-input swaps, including partial fills
"""

import sys
import os
from decimal import Decimal, localcontext
import pytest

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from futarchy_quoter.core.errors import LiquidityDataError, NonConvergenceError, PoolUnavailable
from futarchy_quoter.core.fixed_point import Q96, DECIMAL_CONTEXT, sqrt_x96_from_price
from futarchy_quoter.core.pool import PoolSnapshot, SwapDelta
from futarchy_quoter.core.swap_math import (
    deltas_to_price, get_amount0_delta, get_amount1_delta, compute_swap_step, gross_up_for_fee
)
from futarchy_quoter.core.multi_tick import deltas_to_price_exact, walk_to_price, swap_exact_input
from futarchy_quoter.core.tick_math import get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio, boundaries_crossed
from futarchy_quoter.data.provider import PoolState, StaticPoolDataSource


def make_snapshot(sqrt_price_x96=Q96, liquidity=10 ** 24, tick=None, tick_spacing=60, fee_pips=0):
    if tick is None:
        tick = get_tick_at_sqrt_ratio(sqrt_price_x96)
    return PoolSnapshot(
        address="0xpool",
        token0="0xasset",
        token1="0xcurrency",
        decimals0=18,
        decimals1=18,
        sqrt_price_x96=sqrt_price_x96,
        tick=tick,
        tick_spacing=tick_spacing,
        liquidity=liquidity,
        fee_pips=fee_pips
    )


class TestSingleRangeSimulator:
    """Closed-form deltas under constant liquidity"""

    def setup_method(self):
        self.liquidity = 10 ** 24
        self.snapshot = make_snapshot(liquidity=self.liquidity, tick=0)

    def test_scenario_price_up_two_percent(self):
        """Price 1.0 -> 1.02: currency enters, asset leaves"""
        target = sqrt_x96_from_price(Decimal("1.02"))
        delta = deltas_to_price(self.snapshot, target)

        assert delta.amount1 > 0, "Currency (token1) should enter the pool"
        assert delta.amount0 < 0, "Asset (token0) should leave the pool"

        with localcontext(DECIMAL_CONTEXT):
            root = Decimal("1.02").sqrt()
            liquidity = Decimal(self.liquidity)
            approximate = liquidity ** 2 * (root - 1) ** 2
            exact = approximate / root
            product = Decimal(abs(delta.amount0 * delta.amount1))

            assert abs(product - approximate) / approximate < Decimal("0.02")
            assert abs(product - exact) / exact < Decimal("1e-9")

    def test_no_op_when_target_equals_current(self):
        delta = deltas_to_price(self.snapshot, self.snapshot.sqrt_price_x96)
        assert delta == SwapDelta(0, 0)
        assert delta.is_noop

    def test_monotonic_in_target(self):
        """Larger moves never need smaller amounts"""
        previous = SwapDelta(0, 0)
        for price in ["1.001", "1.01", "1.02", "1.05", "1.2"]:
            delta = deltas_to_price(self.snapshot, sqrt_x96_from_price(Decimal(price)))
            assert abs(delta.amount0) >= abs(previous.amount0)
            assert abs(delta.amount1) >= abs(previous.amount1)
            previous = delta

        previous = SwapDelta(0, 0)
        for price in ["0.999", "0.99", "0.95", "0.8"]:
            delta = deltas_to_price(self.snapshot, sqrt_x96_from_price(Decimal(price)))
            assert delta.amount0 > 0 and delta.amount1 < 0
            assert abs(delta.amount0) >= abs(previous.amount0)
            assert abs(delta.amount1) >= abs(previous.amount1)
            previous = delta

    def test_rounding_favours_pool(self):
        lower = get_sqrt_ratio_at_tick(-37)
        upper = get_sqrt_ratio_at_tick(91)
        liquidity = 123_456_789_012_345
        assert get_amount0_delta(lower, upper, liquidity, True) >= get_amount0_delta(lower, upper, liquidity, False)
        assert get_amount1_delta(lower, upper, liquidity, True) >= get_amount1_delta(lower, upper, liquidity, False)
        assert get_amount1_delta(lower, upper, liquidity, True) - get_amount1_delta(lower, upper, liquidity, False) <= 1

    def test_unusable_snapshot(self):
        empty = make_snapshot(liquidity=0, tick=0)
        with pytest.raises(PoolUnavailable):
            deltas_to_price(empty, sqrt_x96_from_price(Decimal("1.02")))

    def test_swap_delta_sign_invariant(self):
        with pytest.raises(ValueError):
            SwapDelta(5, 7)
        with pytest.raises(ValueError):
            SwapDelta(-5, -7)

    def test_gross_up_for_fee(self):
        assert gross_up_for_fee(997_000, 3000) == 1_000_000
        assert gross_up_for_fee(1000, 0) == 1000
        with pytest.raises(ValueError):
            gross_up_for_fee(1000, 1_000_000)


class TestMultiTickSimulator:
    """Exact walk across tick boundaries"""

    def setup_method(self):
        self.liquidity = 10 ** 24
        self.snapshot = make_snapshot(liquidity=self.liquidity, tick=0)
        self.nets = {60: 5 * 10 ** 23, 120: -2 * 10 ** 23}
        self.provider = lambda tick: self.nets.get(tick, 0)

    def test_agreement_without_crossings(self):
        """Inside one range the walk reproduces the closed form"""
        target = sqrt_x96_from_price(Decimal("1.005"))
        assert boundaries_crossed(0, get_tick_at_sqrt_ratio(target), 60) == []

        single = deltas_to_price(self.snapshot, target)
        exact = deltas_to_price_exact(self.snapshot, target, self.provider)
        assert abs(single.amount0 - exact.amount0) <= 1
        assert abs(single.amount1 - exact.amount1) <= 1

    def test_agreement_moving_down_inside_range(self):
        start = make_snapshot(get_sqrt_ratio_at_tick(30) + 12345, liquidity=self.liquidity)
        target = get_sqrt_ratio_at_tick(10) + 999
        assert boundaries_crossed(start.tick, get_tick_at_sqrt_ratio(target), 60) == []

        single = deltas_to_price(start, target)
        exact = deltas_to_price_exact(start, target, self.provider)
        assert abs(single.amount0 - exact.amount0) <= 1
        assert abs(single.amount1 - exact.amount1) <= 1

    def test_divergence_when_crossing(self):
        """Crossing initialized ticks makes the closed form wrong"""
        target = sqrt_x96_from_price(Decimal("1.02"))
        crossed = boundaries_crossed(0, get_tick_at_sqrt_ratio(target), 60)
        assert crossed == [60, 120, 180]

        single = deltas_to_price(self.snapshot, target)
        result = walk_to_price(self.snapshot, target, self.provider)

        assert result.crossed_ticks == [60, 120, 180]
        assert result.sqrt_price_x96 == target
        assert result.liquidity == self.liquidity + 5 * 10 ** 23 - 2 * 10 ** 23
        assert abs(single.amount1 - result.delta.amount1) > 1
        assert abs(single.amount0 - result.delta.amount0) > 1
        # More liquidity above tick 60 means more currency is needed
        assert result.delta.amount1 > single.amount1

    def test_liquidity_net_negated_moving_down(self):
        start = make_snapshot(get_sqrt_ratio_at_tick(150), liquidity=self.liquidity)
        result = walk_to_price(start, Q96 + 1, self.provider)
        # Crossing 120 then 60 downward undoes both nets
        assert result.crossed_ticks == [120, 60]
        assert result.liquidity == self.liquidity + 2 * 10 ** 23 - 5 * 10 ** 23
        assert result.delta.amount0 > 0 and result.delta.amount1 < 0

    def test_start_on_boundary_moving_down(self):
        """A start price exactly on an initialized tick crosses it first"""
        nets = {0: 4 * 10 ** 23}
        target = sqrt_x96_from_price(Decimal("0.995"))
        result = walk_to_price(self.snapshot, target, lambda tick: nets.get(tick, 0))
        assert result.crossed_ticks[0] == 0
        assert result.liquidity == self.liquidity - 4 * 10 ** 23

        single = deltas_to_price(self.snapshot, target)
        assert result.delta.amount0 < single.amount0

    def test_no_op(self):
        result = walk_to_price(self.snapshot, self.snapshot.sqrt_price_x96, self.provider)
        assert result.delta.is_noop
        assert result.iterations == 0

    def test_iteration_budget(self):
        target = sqrt_x96_from_price(Decimal("1.02"))
        with pytest.raises(NonConvergenceError) as exc_info:
            walk_to_price(self.snapshot, target, self.provider, max_iterations=2)
        assert exc_info.value.iterations == 2

    def test_negative_liquidity_is_rejected(self):
        target = sqrt_x96_from_price(Decimal("1.02"))
        bad = {60: -2 * self.liquidity}
        with pytest.raises(LiquidityDataError):
            walk_to_price(self.snapshot, target, lambda tick: bad.get(tick, 0))

    def test_bitmap_provider_skips_empty_ticks(self):
        """An indexed provider jumps straight to initialized ticks"""
        state = PoolState(make_snapshot(liquidity=0, tick=0))
        state.add_position(-600, 600, self.liquidity)
        state.add_position(60, 1200, 5 * 10 ** 23)
        source = StaticPoolDataSource([state])

        target = sqrt_x96_from_price(Decimal("1.1"))
        result = walk_to_price(state.snapshot, target, source.liquidity_provider("0xpool"))

        assert result.crossed_ticks == [60, 600]
        assert result.liquidity == 5 * 10 ** 23
        assert result.iterations == 3

    def test_unindexed_provider_steps_every_spacing(self):
        """A plain callable walks each tick on spacing 1; 3x is past the default budget"""
        state = PoolState(make_snapshot(liquidity=0, tick=0, tick_spacing=1))
        state.add_position(-20000, 20000, self.liquidity)
        source = StaticPoolDataSource([state])
        target = sqrt_x96_from_price(3)

        with pytest.raises(NonConvergenceError):
            walk_to_price(state.snapshot, target, lambda tick: 0)

        indexed = walk_to_price(state.snapshot, target, source.liquidity_provider("0xpool"))
        assert indexed.iterations == 1

        stepped = walk_to_price(state.snapshot, target, lambda tick: 0, max_iterations=20_000)
        assert stepped.iterations == len(stepped.crossed_ticks) + 1
        assert stepped.iterations > 10_000
        assert abs(stepped.delta.amount0 - indexed.delta.amount0) <= stepped.iterations
        assert abs(stepped.delta.amount1 - indexed.delta.amount1) <= stepped.iterations


class TestExactInputSwap:
    """Fee-aware exact-input walk"""

    def setup_method(self):
        self.liquidity = 10 ** 24
        self.snapshot = make_snapshot(liquidity=self.liquidity, tick=0)

    def test_compute_swap_step_conserves_input(self):
        current = Q96
        target = get_sqrt_ratio_at_tick(-60)
        remaining = 10 ** 15
        sqrt_next, amount_in, amount_out, fee = compute_swap_step(current, target, 10 ** 18, remaining, 3000)

        assert target < sqrt_next < current, "Step should stop before the target"
        assert amount_in + fee == remaining
        assert fee > 0
        assert 0 < amount_out < amount_in

    def test_compute_swap_step_reaching_target(self):
        current = Q96
        target = get_sqrt_ratio_at_tick(60)
        sqrt_next, amount_in, amount_out, fee = compute_swap_step(current, target, 10 ** 18, 10 ** 20, 3000)
        assert sqrt_next == target
        assert amount_in == get_amount1_delta(current, target, 10 ** 18, True)
        assert amount_in + fee <= 10 ** 20

    def test_small_swap_within_range(self):
        amount = 10 ** 18
        result = swap_exact_input(self.snapshot, True, amount)
        assert result.amount_in == amount
        # Starting exactly on tick 0 and moving down crosses it first
        assert result.crossed_ticks == [0]
        assert 999 * amount // 1000 < result.amount_out < amount
        assert result.delta == SwapDelta(amount, -result.amount_out)

    def test_fee_is_charged(self):
        fee_snapshot = make_snapshot(liquidity=self.liquidity, tick=0, fee_pips=3000)
        amount = 10 ** 18
        no_fee = swap_exact_input(self.snapshot, True, amount)
        with_fee = swap_exact_input(fee_snapshot, True, amount)
        assert abs(with_fee.fee_amount - 3 * 10 ** 15) <= 1
        assert with_fee.amount_out < no_fee.amount_out

    def test_swap_crosses_initialized_tick(self):
        state = PoolState(make_snapshot(liquidity=0, tick=0))
        state.add_position(-120, 120, 10 ** 21)
        state.add_position(-60, 60, 10 ** 21)
        source = StaticPoolDataSource([state])
        assert state.snapshot.liquidity == 2 * 10 ** 21

        result = swap_exact_input(state.snapshot, False, 8 * 10 ** 18, source.liquidity_provider("0xpool"))
        assert result.crossed_ticks == [60]
        assert result.liquidity == 10 ** 21
        assert result.amount_in == 8 * 10 ** 18
        assert 60 <= result.tick < 120

    def test_partial_fill_when_liquidity_runs_out(self):
        state = PoolState(make_snapshot(liquidity=0, tick=0))
        state.add_position(-120, 120, 10 ** 21)
        source = StaticPoolDataSource([state])

        result = swap_exact_input(state.snapshot, False, 10 ** 22, source.liquidity_provider("0xpool"))
        assert result.crossed_ticks == [120]
        assert result.liquidity == 0
        assert result.amount_in < 10 ** 22

    def test_invalid_amount(self):
        with pytest.raises(ValueError):
            swap_exact_input(self.snapshot, True, 0)
