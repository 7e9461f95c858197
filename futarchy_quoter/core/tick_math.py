#!/usr/bin/env python3
"""
Tick Math

Exact integer tick <-> sqrt price conversion matching the on-chain TickMath
library, decimal price -> tick conversion, and enumeration of the tick-spacing
boundaries a swap crosses between two prices.
"""

from decimal import Decimal, ROUND_FLOOR, localcontext
from typing import List

from .errors import PrecisionError
from .fixed_point import (
    DECIMAL_CONTEXT, MIN_TICK, MAX_TICK, MIN_SQRT_RATIO, MAX_SQRT_RATIO,
    Numeric, to_decimal,
)

TICK_BASE = Decimal("1.0001")
MAX_UINT256 = 2 ** 256 - 1

# Q128.128 multipliers for sqrt(1.0001^-(2^i)), bit i of |tick|
_TICK_RATIO_FACTORS = (
    (0x2, 0xfff97272373d413259a46990580e213a),
    (0x4, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (0x8, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (0x10, 0xffcb9843d60f6159c9db58835c926644),
    (0x20, 0xff973b41fa98c081472e6896dfb254c0),
    (0x40, 0xff2ea16466c96a3843ec78b326b52861),
    (0x80, 0xfe5dee046a99a2a811c461f1969c3053),
    (0x100, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (0x200, 0xf987a7253ac413176f2b074cf7815e54),
    (0x400, 0xf3392b0822b70005940c7a398e4b70f3),
    (0x800, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (0x1000, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (0x2000, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (0x4000, 0x70d869a156d2a1b890bb3df62baf32f7),
    (0x8000, 0x31be135f97d08fd981231505542fcfa6),
    (0x10000, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """sqrt(1.0001^tick) * 2^96, bit-exact with the on-chain implementation"""
    tick = int(tick)
    if tick < MIN_TICK or tick > MAX_TICK:
        raise PrecisionError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    abs_tick = abs(tick)
    ratio = 0xfffcb933bd6fad37aa2d162d1a594001 if abs_tick & 0x1 else 1 << 128
    for bit, factor in _TICK_RATIO_FACTORS:
        if abs_tick & bit:
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """Greatest tick whose sqrt ratio is <= sqrt_price_x96"""
    sqrt_price_x96 = int(sqrt_price_x96)
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 > MAX_SQRT_RATIO:
        raise PrecisionError(f"sqrt_price_x96 {sqrt_price_x96} out of bounds")

    # Binary search over the exact ratio function
    tick_low = MIN_TICK
    tick_high = MAX_TICK + 1
    while tick_high - tick_low > 1:
        tick_mid = (tick_low + tick_high) // 2
        if get_sqrt_ratio_at_tick(tick_mid) <= sqrt_price_x96:
            tick_low = tick_mid
        else:
            tick_high = tick_mid

    return tick_low


def tick_from_price(price: Numeric, decimals0: int = 0, decimals1: int = 0) -> int:
    """
    floor(log(price) / log(1.0001)), rounding toward negative infinity.

    With token decimals supplied, price is the human price of token0 in
    token1 and is converted to the raw on-chain ratio first. The result
    satisfies 1.0001^tick <= ratio < 1.0001^(tick + 1) exactly.
    """
    price = to_decimal(price)
    if price <= 0:
        raise PrecisionError(f"Price must be positive, got {price}")

    with localcontext(DECIMAL_CONTEXT):
        ratio = price.scaleb(int(decimals1) - int(decimals0))
        estimate = (ratio.ln() / TICK_BASE.ln()).to_integral_value(rounding=ROUND_FLOOR)
        tick = int(estimate)

        # log() can land a hair on the wrong side of an exact power
        while price_at_tick(tick + 1) <= ratio:
            tick += 1
        while price_at_tick(tick) > ratio:
            tick -= 1

    if tick < MIN_TICK or tick > MAX_TICK:
        raise PrecisionError(f"Price {price} maps to tick {tick}, outside [{MIN_TICK}, {MAX_TICK}]")
    return tick


def price_at_tick(tick: int) -> Decimal:
    """Raw token1/token0 ratio at a tick, 1.0001^tick"""
    with localcontext(DECIMAL_CONTEXT):
        return TICK_BASE ** int(tick)


def boundaries_crossed(start_tick: int, end_tick: int, tick_spacing: int) -> List[int]:
    """
    Multiples of tick_spacing whose price lies inside the traversed range.

    Ticks are floor ticks, so a boundary m is crossed moving up when
    start < m <= end and moving down when end < m <= start. Returned in the
    direction of travel; empty means liquidity is constant over the swap.
    """
    if tick_spacing <= 0:
        raise ValueError(f"tick_spacing must be positive, got {tick_spacing}")

    if end_tick > start_tick:
        first = (start_tick // tick_spacing + 1) * tick_spacing
        return list(range(first, end_tick + 1, tick_spacing))
    if end_tick < start_tick:
        first = (start_tick // tick_spacing) * tick_spacing
        return list(range(first, end_tick, -tick_spacing))
    return []


def nearest_usable_tick(tick: int, tick_spacing: int) -> int:
    """Round a tick to the nearest multiple of tick_spacing inside the tick range"""
    if tick_spacing <= 0:
        raise ValueError(f"tick_spacing must be positive, got {tick_spacing}")
    rounded = int(round(tick / tick_spacing)) * tick_spacing
    if rounded < MIN_TICK:
        return rounded + tick_spacing
    if rounded > MAX_TICK:
        return rounded - tick_spacing
    return rounded
