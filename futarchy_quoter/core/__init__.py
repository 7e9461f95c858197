"""Core pricing and swap math"""

from .errors import (
    ArbitrageError, PrecisionError, ParameterRangeError, PoolUnavailable,
    NonConvergenceError, LiquidityDataError, OrderingError
)
from .fixed_point import price_from_sqrt_x96, sqrt_x96_from_price, invert_price
from .tick_math import tick_from_price, boundaries_crossed, get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio
from .pool import PoolSnapshot, SwapDelta, TickInfo, TickBitmap
from .swap_math import deltas_to_price, gross_up_for_fee, compute_swap_step
from .multi_tick import LiquidityProvider, deltas_to_price_exact, walk_to_price, swap_exact_input
from .futarchy import OutcomeSide, TradeParameters, TargetPrice, yes_target_price, no_target_price, implied_parameters
from .direction import TokenOrdering, TradePlan, resolve

__all__ = [
    "ArbitrageError", "PrecisionError", "ParameterRangeError", "PoolUnavailable",
    "NonConvergenceError", "LiquidityDataError", "OrderingError",
    "price_from_sqrt_x96", "sqrt_x96_from_price", "invert_price",
    "tick_from_price", "boundaries_crossed", "get_sqrt_ratio_at_tick", "get_tick_at_sqrt_ratio",
    "PoolSnapshot", "SwapDelta", "TickInfo", "TickBitmap",
    "deltas_to_price", "gross_up_for_fee", "compute_swap_step",
    "LiquidityProvider", "deltas_to_price_exact", "walk_to_price", "swap_exact_input",
    "OutcomeSide", "TradeParameters", "TargetPrice", "yes_target_price", "no_target_price", "implied_parameters",
    "TokenOrdering", "TradePlan", "resolve"
]
