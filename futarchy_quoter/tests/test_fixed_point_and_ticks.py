#!/usr/bin/env python3
"""
Fixed-Point and Tick Math Test Suite

Covers:
1. sqrt-price X96 <-> decimal price conversion across token decimals
2. Exact tick <-> sqrt ratio conversion against on-chain constants
3. Decimal price -> tick flooring at exact powers of 1.0001
4. Enumeration of tick-spacing boundaries crossed by a move
"""

import sys
import os
from decimal import Decimal, localcontext
import pytest

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from futarchy_quoter.core.errors import PrecisionError
from futarchy_quoter.core.fixed_point import (
    Q96, MIN_TICK, MAX_TICK, MIN_SQRT_RATIO, MAX_SQRT_RATIO, DECIMAL_CONTEXT,
    price_from_sqrt_x96, sqrt_x96_from_price, invert_price, to_decimal, scale_amount, to_raw_amount
)
from futarchy_quoter.core.tick_math import (
    get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio, tick_from_price, price_at_tick,
    boundaries_crossed, nearest_usable_tick
)


class TestFixedPointPrice:
    """sqrt price <-> decimal price conversion"""

    def setup_method(self):
        self.prices = [Decimal("1"), Decimal("1.5"), Decimal("107.73"), Decimal("0.0001234"), Decimal("3456.789")]
        self.decimals = [0, 6, 8, 18]

    def test_round_trip_within_tolerance(self):
        """price -> sqrt X96 -> price stays within 1e-12 relative"""
        for price in self.prices:
            for decimals0 in self.decimals:
                for decimals1 in self.decimals:
                    sqrt_price = sqrt_x96_from_price(price, decimals0, decimals1)
                    recovered = price_from_sqrt_x96(sqrt_price, decimals0, decimals1)
                    relative = abs(recovered - price) / price
                    assert relative < Decimal("1e-12"), \
                        f"Round trip drifted for {price} ({decimals0}/{decimals1}): {recovered}"

    def test_unit_price(self):
        assert price_from_sqrt_x96(Q96, 18, 18) == 1
        assert sqrt_x96_from_price(1, 18, 18) == Q96

    def test_decimal_adjustment(self):
        """Raw ratio 1 between an 18 and a 6 decimal token is 1e12 human units"""
        assert price_from_sqrt_x96(Q96, 18, 6) == Decimal("1e12")
        assert price_from_sqrt_x96(Q96, 6, 18) == Decimal("1e-12")

    def test_invalid_inputs_raise_precision_error(self):
        with pytest.raises(PrecisionError):
            price_from_sqrt_x96(0)
        with pytest.raises(PrecisionError):
            price_from_sqrt_x96(2 ** 160)
        with pytest.raises(PrecisionError):
            sqrt_x96_from_price(0)
        with pytest.raises(PrecisionError):
            sqrt_x96_from_price(Decimal("-1"))
        with pytest.raises(PrecisionError):
            sqrt_x96_from_price(Decimal("1e80"))
        with pytest.raises(PrecisionError):
            price_from_sqrt_x96(Q96, 300, 18)

    def test_float_inputs_use_shortest_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("107.73") == Decimal("107.73")
        with pytest.raises(PrecisionError):
            to_decimal(float("nan"))
        with pytest.raises(PrecisionError):
            to_decimal("not a number")

    def test_invert_price(self):
        assert invert_price(Decimal(4)) == Decimal("0.25")
        with pytest.raises(PrecisionError):
            invert_price(0)

    def test_amount_scaling(self):
        assert scale_amount(1_500_000, 6) == Decimal("1.5")
        assert to_raw_amount("1.5", 6) == 1_500_000
        assert to_raw_amount("0.1", 18) == 10 ** 17


class TestTickMath:
    """Exact tick math and boundary enumeration"""

    def setup_method(self):
        self.ticks = [-200_000, -12_345, -60, -1, 1, 60, 12_345, 200_000]

    def test_on_chain_constants(self):
        assert get_sqrt_ratio_at_tick(0) == Q96
        assert get_sqrt_ratio_at_tick(MIN_TICK) == MIN_SQRT_RATIO
        assert get_sqrt_ratio_at_tick(MAX_TICK) == MAX_SQRT_RATIO
        assert get_tick_at_sqrt_ratio(MIN_SQRT_RATIO) == MIN_TICK

    def test_out_of_range_ticks(self):
        with pytest.raises(PrecisionError):
            get_sqrt_ratio_at_tick(MAX_TICK + 1)
        with pytest.raises(PrecisionError):
            get_tick_at_sqrt_ratio(MIN_SQRT_RATIO - 1)

    def test_tick_sqrt_ratio_inverse(self):
        for tick in self.ticks:
            sqrt_price = get_sqrt_ratio_at_tick(tick)
            assert get_tick_at_sqrt_ratio(sqrt_price) == tick
            # Just below the next tick still belongs to this tick
            assert get_tick_at_sqrt_ratio(get_sqrt_ratio_at_tick(tick + 1) - 1) == tick

    def test_matches_decimal_power(self):
        """Exact ratio agrees with sqrt(1.0001^tick) * 2^96 to 1e-9 relative"""
        for tick in self.ticks:
            with localcontext(DECIMAL_CONTEXT):
                expected = price_at_tick(tick).sqrt() * Q96
                relative = abs(Decimal(get_sqrt_ratio_at_tick(tick)) - expected) / expected
            assert relative < Decimal("1e-9"), f"Tick {tick} ratio off by {relative}"

    def test_tick_from_price_floors(self):
        assert tick_from_price(1) == 0
        assert tick_from_price(Decimal("1.0001")) == 1
        assert tick_from_price(Decimal("1.0001") ** 5) == 5
        assert tick_from_price(Decimal("0.9999")) == -2
        assert tick_from_price(Decimal("1.02")) == 198
        assert tick_from_price(Decimal("0.5")) == -6932

    def test_tick_from_price_with_decimals(self):
        """Human price 1 between 18 and 6 decimal tokens is raw ratio 1e-12"""
        assert tick_from_price(1, 18, 6) == tick_from_price(Decimal("1e-12"))

    def test_tick_from_price_rejects_non_positive(self):
        with pytest.raises(PrecisionError):
            tick_from_price(0)
        with pytest.raises(PrecisionError):
            tick_from_price(Decimal("1e-60"))

    def test_boundaries_crossed_upward(self):
        assert boundaries_crossed(0, 198, 60) == [60, 120, 180]
        assert boundaries_crossed(0, 59, 60) == []
        assert boundaries_crossed(0, 60, 60) == [60]
        assert boundaries_crossed(-61, -1, 60) == [-60]

    def test_boundaries_crossed_downward(self):
        assert boundaries_crossed(120, 0, 60) == [120, 60]
        assert boundaries_crossed(59, -1, 60) == [0]
        assert boundaries_crossed(-1, -61, 60) == [-60]
        assert boundaries_crossed(50, 1, 60) == []

    def test_start_on_boundary_moving_down_counts_as_crossing(self):
        assert boundaries_crossed(0, -1, 60) == [0]
        assert boundaries_crossed(60, 30, 60) == [60]

    def test_boundaries_crossed_no_move(self):
        assert boundaries_crossed(5, 5, 60) == []
        with pytest.raises(ValueError):
            boundaries_crossed(0, 10, 0)

    def test_nearest_usable_tick(self):
        assert nearest_usable_tick(29, 60) == 0
        assert nearest_usable_tick(31, 60) == 60
        assert nearest_usable_tick(MIN_TICK, 60) == -887220
        assert nearest_usable_tick(MAX_TICK, 60) == 887220
