#!/usr/bin/env python3
"""
Pool state types

Immutable snapshot of a concentrated-liquidity pool as read from chain, the
signed swap delta produced by the simulators, and the tick bookkeeping
(TickInfo, TickBitmap) used by in-memory liquidity providers.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict

from .errors import PoolUnavailable
from .fixed_point import MIN_TICK, MAX_TICK, MAX_UINT160, price_from_sqrt_x96


@dataclass(frozen=True)
class PoolSnapshot:
    """Pool state captured atomically for one quoting call"""
    address: str
    token0: str
    token1: str
    decimals0: int
    decimals1: int
    sqrt_price_x96: int
    tick: int
    tick_spacing: int
    liquidity: int
    fee_pips: int = 0  # hundredths of a bip, 3000 = 0.3%

    def __post_init__(self):
        if self.sqrt_price_x96 < 0 or self.sqrt_price_x96 > MAX_UINT160:
            raise ValueError(f"sqrt_price_x96 {self.sqrt_price_x96} outside uint160")
        if self.liquidity < 0:
            raise ValueError(f"liquidity must be non-negative, got {self.liquidity}")
        if self.tick_spacing <= 0:
            raise ValueError(f"tick_spacing must be positive, got {self.tick_spacing}")
        if not 0 <= self.fee_pips < 1_000_000:
            raise ValueError(f"fee_pips must be in [0, 1000000), got {self.fee_pips}")

    @property
    def is_usable(self) -> bool:
        return self.liquidity > 0 and self.sqrt_price_x96 > 0

    def require_usable(self, side: str = None):
        """Raise PoolUnavailable when the snapshot cannot be simulated"""
        if self.sqrt_price_x96 == 0:
            raise PoolUnavailable("Pool price is uninitialized (sqrt_price_x96 == 0)", side=side, pool=self.address)
        if self.liquidity == 0:
            raise PoolUnavailable("Pool has zero active liquidity", side=side, pool=self.address)

    def has_token(self, token: str) -> bool:
        token = token.lower()
        return token in (self.token0.lower(), self.token1.lower())

    @property
    def price(self) -> Decimal:
        """Decimal price of token0 in token1"""
        return price_from_sqrt_x96(self.sqrt_price_x96, self.decimals0, self.decimals1)


@dataclass(frozen=True)
class SwapDelta:
    """
    Token deltas from the pool's perspective.

    Positive means the token enters the pool (user sells it), negative means
    it leaves the pool (user buys it).
    """
    amount0: int = 0
    amount1: int = 0

    def __post_init__(self):
        if (self.amount0 > 0 and self.amount1 > 0) or (self.amount0 < 0 and self.amount1 < 0):
            raise ValueError(f"Deltas must have opposite signs, got ({self.amount0}, {self.amount1})")

    @property
    def is_noop(self) -> bool:
        return self.amount0 == 0 and self.amount1 == 0


@dataclass
class TickInfo:
    """Information stored for each initialized tick"""
    liquidity_gross: int = 0  # Total liquidity referencing this tick
    liquidity_net: int = 0   # Net liquidity change when crossing left to right
    initialized: bool = False


@dataclass
class TickBitmap:
    """Initialized-tick index, one bit per compressed tick in 256-bit words"""
    bitmap: Dict[int, int] = field(default_factory=dict)  # word_index -> bitmap_word

    def flip_tick(self, tick: int, tick_spacing: int):
        """Flip tick state when it becomes (un)initialized"""
        if tick % tick_spacing != 0:
            raise ValueError(f"Tick {tick} is not a multiple of spacing {tick_spacing}")
        compressed = tick // tick_spacing
        word_pos = compressed >> 8
        bit_pos = compressed & 0xFF

        self.bitmap[word_pos] = self.bitmap.get(word_pos, 0) ^ (1 << bit_pos)
        if self.bitmap[word_pos] == 0:
            del self.bitmap[word_pos]

    def next_initialized_tick(self, tick: int, tick_spacing: int, lte: bool) -> int:
        """
        Next initialized tick in the direction of travel.

        Args:
            tick: Current tick
            tick_spacing: Tick spacing for the pool
            lte: Search at or below tick (price decreasing) instead of above

        Returns:
            Next initialized tick, or MIN_TICK / MAX_TICK when none remain
        """
        compressed = tick // tick_spacing
        word_pos = compressed >> 8
        bit_pos = compressed & 0xFF

        if lte:
            # Bits at or below the current position
            masked = self.bitmap.get(word_pos, 0) & ((1 << (bit_pos + 1)) - 1)
            min_word = (MIN_TICK // tick_spacing) >> 8
            while True:
                if masked:
                    return (word_pos * 256 + masked.bit_length() - 1) * tick_spacing
                word_pos -= 1
                if word_pos < min_word:
                    return MIN_TICK
                masked = self.bitmap.get(word_pos, 0)
        else:
            # Bits strictly above the current position
            masked = self.bitmap.get(word_pos, 0) & ~((1 << (bit_pos + 1)) - 1)
            max_word = (MAX_TICK // tick_spacing) >> 8
            while True:
                if masked:
                    return (word_pos * 256 + (masked & -masked).bit_length() - 1) * tick_spacing
                word_pos += 1
                if word_pos > max_word:
                    return MAX_TICK
                masked = self.bitmap.get(word_pos, 0)
