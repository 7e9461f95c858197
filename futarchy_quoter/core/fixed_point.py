#!/usr/bin/env python3
"""
Fixed-Point Price Conversions

Conversions between a pool's native Q64.96 sqrt price and a human decimal
price, adjusted for each token's decimals.

Integer values use Python's arbitrary precision ints. Decimal values are
computed in an 80 significant digit context; binary floats are accepted as
inputs only and are converted through their shortest repr.
"""

from decimal import Decimal, Context, ROUND_HALF_EVEN, InvalidOperation, localcontext
from typing import Union

from .errors import PrecisionError

# Uniswap V3 / Algebra constants
Q96 = 2 ** 96
Q192 = 2 ** 192
MAX_UINT160 = 2 ** 160 - 1
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739  # get_sqrt_ratio_at_tick(MIN_TICK)
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342  # get_sqrt_ratio_at_tick(MAX_TICK)

MAX_TOKEN_DECIMALS = 255

DECIMAL_CONTEXT = Context(prec=80, rounding=ROUND_HALF_EVEN)

Numeric = Union[Decimal, int, float, str]


def to_decimal(value: Numeric) -> Decimal:
    """Convert caller input to Decimal without going through binary floats"""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise PrecisionError(f"Boolean {value!r} is not a price")
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(float(value)))
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as e:
            raise PrecisionError(f"Cannot interpret {value!r} as a decimal number") from e

    if not result.is_finite():
        raise PrecisionError(f"Non-finite value {value!r}")
    return result


def _check_decimals(decimals0: int, decimals1: int):
    for decimals in (decimals0, decimals1):
        if not 0 <= int(decimals) <= MAX_TOKEN_DECIMALS:
            raise PrecisionError(f"Token decimals {decimals} outside [0, {MAX_TOKEN_DECIMALS}]")


def price_from_sqrt_x96(sqrt_price_x96: int, decimals0: int = 18, decimals1: int = 18) -> Decimal:
    """
    Decimal price of token0 in units of token1.

    price = (sqrt_price_x96 / 2^96)^2 * 10^(decimals0 - decimals1)
    """
    sqrt_price_x96 = int(sqrt_price_x96)
    if sqrt_price_x96 <= 0:
        raise PrecisionError(f"sqrt_price_x96 must be positive, got {sqrt_price_x96}")
    if sqrt_price_x96 > MAX_UINT160:
        raise PrecisionError(f"sqrt_price_x96 {sqrt_price_x96} overflows uint160")
    _check_decimals(decimals0, decimals1)

    with localcontext(DECIMAL_CONTEXT):
        ratio = Decimal(sqrt_price_x96 * sqrt_price_x96) / Decimal(Q192)
        return ratio.scaleb(int(decimals0) - int(decimals1))


def sqrt_x96_from_price(price: Numeric, decimals0: int = 18, decimals1: int = 18) -> int:
    """
    Inverse of price_from_sqrt_x96, rounded to the nearest fixed-point unit.

    Raises PrecisionError for non-positive prices and for prices whose sqrt
    falls outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO].
    """
    price = to_decimal(price)
    if price <= 0:
        raise PrecisionError(f"Price must be positive, got {price}")
    _check_decimals(decimals0, decimals1)

    with localcontext(DECIMAL_CONTEXT):
        raw_ratio = price.scaleb(int(decimals1) - int(decimals0))
        scaled = raw_ratio.sqrt() * Q96
        sqrt_price_x96 = int(scaled.to_integral_value(rounding=ROUND_HALF_EVEN))

    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 > MAX_SQRT_RATIO:
        raise PrecisionError(
            f"Price {price} (decimals {decimals0}/{decimals1}) maps to sqrt_price_x96 "
            f"{sqrt_price_x96}, outside [{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO}]"
        )
    return sqrt_price_x96


def invert_price(price: Numeric) -> Decimal:
    """1 / price, used when on-chain token order is the reverse of the display order"""
    price = to_decimal(price)
    if price <= 0:
        raise PrecisionError(f"Cannot invert non-positive price {price}")
    with localcontext(DECIMAL_CONTEXT):
        return Decimal(1) / price


def scale_amount(amount: int, decimals: int) -> Decimal:
    """Raw token units to human units"""
    with localcontext(DECIMAL_CONTEXT):
        return Decimal(int(amount)).scaleb(-int(decimals))


def to_raw_amount(amount: Numeric, decimals: int) -> int:
    """Human units to raw token units, truncated toward zero"""
    amount = to_decimal(amount)
    with localcontext(DECIMAL_CONTEXT):
        return int(amount.scaleb(int(decimals)))
