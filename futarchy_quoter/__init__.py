"""
Futarchy Quoter

Arbitrage planning and swap quoting for two-sided conditional prediction
markets on concentrated-liquidity pools: futarchy target prices, exact
fixed-point swap math and tick-by-tick liquidity walks.
"""

__version__ = "1.0.0"
__author__ = "Futarchy Quoter Team"

# Core components
from .core.errors import (
    ArbitrageError, PrecisionError, ParameterRangeError, PoolUnavailable,
    NonConvergenceError, LiquidityDataError, OrderingError
)
from .core.pool import PoolSnapshot, SwapDelta
from .core.futarchy import OutcomeSide, TradeParameters, yes_target_price, no_target_price, implied_parameters
from .core.direction import TokenOrdering, TradePlan

# Engine
from .engine.config import QuoterConfig, QuoterSettings, load_settings
from .engine.planner import ArbitragePlanner, ArbitragePlan
from .engine.quoter import SwapQuoter, SwapQuote, quote_swap

# Data
from .data.provider import PoolDataSource, StaticPoolDataSource, ConditionalPool, ProposalPools

__all__ = [
    # Core
    "ArbitrageError", "PrecisionError", "ParameterRangeError", "PoolUnavailable",
    "NonConvergenceError", "LiquidityDataError", "OrderingError",
    "PoolSnapshot", "SwapDelta",
    "OutcomeSide", "TradeParameters", "yes_target_price", "no_target_price", "implied_parameters",
    "TokenOrdering", "TradePlan",

    # Engine
    "QuoterConfig", "QuoterSettings", "load_settings",
    "ArbitragePlanner", "ArbitragePlan", "SwapQuoter", "SwapQuote", "quote_swap",

    # Data
    "PoolDataSource", "StaticPoolDataSource", "ConditionalPool", "ProposalPools"
]
