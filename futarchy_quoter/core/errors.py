#!/usr/bin/env python3
"""
Error types for the arbitrage engine.

Every failure is scoped to a single pool side wherever possible, so the
planner can keep the sibling side's plan when one side fails.
"""

from typing import Optional


class ArbitrageError(Exception):
    """Base class for all quoting and planning errors"""

    def __init__(self, message: str, side: Optional[str] = None, pool: Optional[str] = None):
        super().__init__(message)
        self.side = side
        self.pool = pool

    def __str__(self):
        message = super().__str__()
        context = []
        if self.side:
            context.append(f"side={self.side}")
        if self.pool:
            context.append(f"pool={self.pool}")
        if context:
            return f"{message} ({', '.join(context)})"
        return message


class PrecisionError(ArbitrageError):
    """Price is non-positive or outside the representable fixed-point range"""


class ParameterRangeError(ArbitrageError, ValueError):
    """Caller-supplied probability, impact or spot price is out of domain"""


class PoolUnavailable(ArbitrageError):
    """Pool has zero liquidity, zero price, or does not exist. Non-fatal."""


class NonConvergenceError(ArbitrageError):
    """
    Multi-tick walk exceeded its iteration budget.

    Do not trade automatically on this side; escalate.
    """

    def __init__(self, message: str, iterations: int = 0, side: Optional[str] = None, pool: Optional[str] = None):
        super().__init__(message, side=side, pool=pool)
        self.iterations = iterations


class LiquidityDataError(ArbitrageError):
    """Tick liquidity data is inconsistent with the pool state"""


class OrderingError(ArbitrageError, ValueError):
    """Requested asset/currency ordering does not match the pool's tokens"""
