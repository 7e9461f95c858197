#!/usr/bin/env python3
"""
Single-Range Swap Math

Closed-form token deltas for moving a pool's price under constant liquidity,
and the swap-step primitives shared with the multi-tick walk. All values are
integers in the Q64.96 domain; amounts entering the pool round up and
amounts leaving the pool round down, as on-chain.

The single-range result is exact only when the move stays inside one
liquidity range. Use multi_tick.deltas_to_price_exact whenever
tick_math.boundaries_crossed reports a crossing.
"""

from typing import Tuple

from .errors import LiquidityDataError, PrecisionError
from .fixed_point import Q96, MIN_SQRT_RATIO, MAX_SQRT_RATIO
from .pool import PoolSnapshot, SwapDelta

FEE_DENOMINATOR = 1_000_000  # fees are expressed in pips (1e-6)


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator)"""
    if denominator == 0:
        raise ZeroDivisionError("mul_div by zero")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator)"""
    if denominator == 0:
        raise ZeroDivisionError("mul_div_rounding_up by zero")
    return -((-(a * b)) // denominator)


def check_sqrt_price(sqrt_price_x96: int, label: str = "sqrt_price_x96"):
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 > MAX_SQRT_RATIO:
        raise PrecisionError(f"{label} {sqrt_price_x96} outside [{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO}]")


def get_amount0_delta(sqrt_price_a_x96: int, sqrt_price_b_x96: int, liquidity: int, round_up: bool) -> int:
    """L * (1/sqrtA - 1/sqrtB) for the range between two sqrt prices, unsigned"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96
    if liquidity == 0 or sqrt_price_a_x96 == sqrt_price_b_x96:
        return 0

    numerator1 = liquidity << 96
    numerator2 = sqrt_price_b_x96 - sqrt_price_a_x96

    if round_up:
        return mul_div_rounding_up(
            mul_div_rounding_up(numerator1, numerator2, sqrt_price_b_x96), 1, sqrt_price_a_x96
        )
    return mul_div(numerator1, numerator2, sqrt_price_b_x96) // sqrt_price_a_x96


def get_amount1_delta(sqrt_price_a_x96: int, sqrt_price_b_x96: int, liquidity: int, round_up: bool) -> int:
    """L * (sqrtB - sqrtA) for the range between two sqrt prices, unsigned"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96
    if liquidity == 0 or sqrt_price_a_x96 == sqrt_price_b_x96:
        return 0

    if round_up:
        return mul_div_rounding_up(liquidity, sqrt_price_b_x96 - sqrt_price_a_x96, Q96)
    return mul_div(liquidity, sqrt_price_b_x96 - sqrt_price_a_x96, Q96)


def range_delta(sqrt_price_current_x96: int, sqrt_price_target_x96: int, liquidity: int) -> Tuple[int, int]:
    """
    Signed (amount0, amount1) to move from current to target within one range.

    Target above current: token1 enters (rounded up), token0 leaves (rounded
    down). Target below current: the mirror image.
    """
    if sqrt_price_target_x96 == sqrt_price_current_x96 or liquidity == 0:
        return 0, 0
    if sqrt_price_target_x96 > sqrt_price_current_x96:
        amount1 = get_amount1_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, True)
        amount0 = -get_amount0_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, False)
    else:
        amount0 = get_amount0_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, True)
        amount1 = -get_amount1_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, False)
    return amount0, amount1


def deltas_to_price(snapshot: PoolSnapshot, target_sqrt_price_x96: int) -> SwapDelta:
    """
    Constant-liquidity deltas to move the pool to target_sqrt_price_x96.

        amount0 = L * (1/sqrtP_target - 1/sqrtP_current)
        amount1 = L * (sqrtP_target - sqrtP_current)

    O(1) estimate; fees are not included (see gross_up_for_fee).
    """
    snapshot.require_usable()
    check_sqrt_price(snapshot.sqrt_price_x96)
    check_sqrt_price(target_sqrt_price_x96, "target_sqrt_price_x96")

    amount0, amount1 = range_delta(snapshot.sqrt_price_x96, target_sqrt_price_x96, snapshot.liquidity)
    return SwapDelta(amount0, amount1)


def gross_up_for_fee(amount: int, fee_pips: int) -> int:
    """Input amount including the pool fee so that `amount` reaches the curve"""
    if not 0 <= fee_pips < FEE_DENOMINATOR:
        raise ValueError(f"fee_pips must be in [0, {FEE_DENOMINATOR}), got {fee_pips}")
    if amount <= 0:
        return amount
    return mul_div_rounding_up(amount, FEE_DENOMINATOR, FEE_DENOMINATOR - fee_pips)


def get_next_sqrt_price_from_input(sqrt_price_x96: int, liquidity: int, amount_in: int, zero_for_one: bool) -> int:
    """Sqrt price after adding amount_in of the input token, rounded against the trader"""
    if liquidity == 0:
        raise LiquidityDataError("Cannot move price through zero liquidity")
    if amount_in == 0:
        return sqrt_price_x96

    if zero_for_one:
        # Adding token0 lowers price: L * sqrtP / (L + amount * sqrtP)
        numerator1 = liquidity << 96
        return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 + amount_in * sqrt_price_x96)

    # Adding token1 raises price: sqrtP + amount / L
    return sqrt_price_x96 + mul_div(amount_in, Q96, liquidity)


def compute_swap_step(
    sqrt_price_current_x96: int,
    sqrt_price_target_x96: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int
) -> Tuple[int, int, int, int]:
    """
    One exact-input swap step within a single liquidity range.

    Returns: (sqrt_price_next_x96, amount_in, amount_out, fee_amount)
    """
    zero_for_one = sqrt_price_current_x96 >= sqrt_price_target_x96
    amount_remaining_less_fee = mul_div(amount_remaining, FEE_DENOMINATOR - fee_pips, FEE_DENOMINATOR)

    if zero_for_one:
        amount_in = get_amount0_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, True)
    else:
        amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, True)

    if amount_remaining_less_fee >= amount_in:
        sqrt_price_next_x96 = sqrt_price_target_x96
    else:
        sqrt_price_next_x96 = get_next_sqrt_price_from_input(
            sqrt_price_current_x96, liquidity, amount_remaining_less_fee, zero_for_one
        )

    reached_target = sqrt_price_next_x96 == sqrt_price_target_x96

    if zero_for_one:
        if not reached_target:
            amount_in = get_amount0_delta(sqrt_price_next_x96, sqrt_price_current_x96, liquidity, True)
        amount_out = get_amount1_delta(sqrt_price_next_x96, sqrt_price_current_x96, liquidity, False)
    else:
        if not reached_target:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_next_x96, liquidity, True)
        amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_next_x96, liquidity, False)

    if reached_target:
        fee_amount = mul_div_rounding_up(amount_in, fee_pips, FEE_DENOMINATOR - fee_pips)
    else:
        # Whatever is left over after the curve is taken as fee
        fee_amount = amount_remaining - amount_in

    return sqrt_price_next_x96, amount_in, amount_out, fee_amount
