#!/usr/bin/env python3
"""
Multi-Tick Swap Simulation

Exact tick-by-tick walks across liquidity boundaries:

- walk_to_price / deltas_to_price_exact: deltas needed to move a pool to a
  target price, applying each crossed tick's liquidity_net.
- swap_exact_input: exact-input swap with the pool fee, used for quoting.

Both fail with NonConvergenceError once the iteration budget is exhausted.
There is no fallback to the single-range estimate.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from .errors import LiquidityDataError, NonConvergenceError
from .fixed_point import MIN_TICK, MAX_TICK, MIN_SQRT_RATIO, MAX_SQRT_RATIO
from .pool import PoolSnapshot, SwapDelta
from .swap_math import check_sqrt_price, compute_swap_step, range_delta
from .tick_math import get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10_000


class LiquidityProvider(ABC):
    """Source of per-tick liquidity data for a single pool"""

    @abstractmethod
    def liquidity_net(self, tick: int) -> int:
        """Net liquidity added when crossing `tick` from left to right"""

    def next_initialized_tick(self, tick: int, tick_spacing: int, lte: bool) -> Optional[int]:
        """
        Next initialized tick in the direction of travel, if the provider
        can index ticks. None makes the walk step through every multiple of
        tick_spacing instead.
        """
        return None


class _CallableLiquidityProvider(LiquidityProvider):

    def __init__(self, fn: Callable[[int], int]):
        self._fn = fn

    def liquidity_net(self, tick: int) -> int:
        return int(self._fn(tick))


class NullLiquidityProvider(LiquidityProvider):
    """No initialized ticks anywhere: liquidity is constant"""

    def liquidity_net(self, tick: int) -> int:
        return 0


def as_liquidity_provider(provider: Union[LiquidityProvider, Callable[[int], int], None]) -> LiquidityProvider:
    """Accept a provider object, a plain tick -> liquidity_net callable, or None"""
    if provider is None:
        return NullLiquidityProvider()
    if isinstance(provider, LiquidityProvider):
        return provider
    if callable(provider):
        return _CallableLiquidityProvider(provider)
    raise TypeError(f"Unsupported liquidity provider {provider!r}")


@dataclass
class WalkResult:
    """Outcome of a walk toward a target price"""
    delta: SwapDelta
    sqrt_price_x96: int
    tick: int
    liquidity: int
    crossed_ticks: List[int] = field(default_factory=list)
    iterations: int = 0


@dataclass
class SwapResult:
    """Outcome of an exact-input swap simulation"""
    zero_for_one: bool
    amount_in: int       # input consumed, fee included
    amount_out: int
    fee_amount: int
    sqrt_price_start_x96: int
    sqrt_price_end_x96: int
    tick: int
    liquidity: int
    crossed_ticks: List[int] = field(default_factory=list)
    iterations: int = 0

    @property
    def delta(self) -> SwapDelta:
        if self.zero_for_one:
            return SwapDelta(self.amount_in, -self.amount_out)
        return SwapDelta(-self.amount_out, self.amount_in)


def _next_boundary(provider: LiquidityProvider, tick: int, tick_spacing: int, zero_for_one: bool) -> int:
    tick_next = provider.next_initialized_tick(tick, tick_spacing, zero_for_one)
    if tick_next is None:
        if zero_for_one:
            tick_next = (tick // tick_spacing) * tick_spacing
        else:
            tick_next = (tick // tick_spacing + 1) * tick_spacing
    return max(MIN_TICK, min(MAX_TICK, tick_next))


def _cross(provider: LiquidityProvider, tick: int, liquidity: int, zero_for_one: bool, pool: str) -> int:
    liquidity_net = int(provider.liquidity_net(tick))
    if zero_for_one:
        liquidity_net = -liquidity_net
    liquidity += liquidity_net
    if liquidity < 0:
        raise LiquidityDataError(
            f"Crossing tick {tick} drives active liquidity negative ({liquidity})", pool=pool
        )
    logger.debug("Crossed tick %d (net %+d), active liquidity now %d", tick, liquidity_net, liquidity)
    return liquidity


def walk_to_price(
    snapshot: PoolSnapshot,
    target_sqrt_price_x96: int,
    liquidity_provider=None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS
) -> WalkResult:
    """
    Walk the pool from its current price to target_sqrt_price_x96.

    Each step stops at the nearer of the target and the next boundary and
    prices the step with the liquidity active in it. Reaching a boundary
    applies its liquidity_net before continuing.

    Boundaries come from the provider's next_initialized_tick. A provider
    without one (such as a plain liquidity_net callable) makes every
    tick-spacing multiple a step, so max_iterations must exceed the distance
    to the target in tick spacings.
    """
    snapshot.require_usable()
    check_sqrt_price(snapshot.sqrt_price_x96)
    check_sqrt_price(target_sqrt_price_x96, "target_sqrt_price_x96")
    provider = as_liquidity_provider(liquidity_provider)

    zero_for_one = target_sqrt_price_x96 < snapshot.sqrt_price_x96
    sqrt_price = snapshot.sqrt_price_x96
    tick = snapshot.tick
    liquidity = snapshot.liquidity
    amount0 = amount1 = 0
    crossed = []
    iterations = 0

    while sqrt_price != target_sqrt_price_x96:
        iterations += 1
        if iterations > max_iterations:
            raise NonConvergenceError(
                f"Walk to sqrt price {target_sqrt_price_x96} did not converge within "
                f"{max_iterations} steps (reached {sqrt_price}, tick {tick}); use a provider that indexes "
                f"initialized ticks or raise max_iterations",
                iterations=iterations - 1, pool=snapshot.address
            )

        tick_next = _next_boundary(provider, tick, snapshot.tick_spacing, zero_for_one)
        sqrt_price_next_tick = get_sqrt_ratio_at_tick(tick_next)

        if zero_for_one:
            step_target = max(sqrt_price_next_tick, target_sqrt_price_x96)
        else:
            step_target = min(sqrt_price_next_tick, target_sqrt_price_x96)

        step0, step1 = range_delta(sqrt_price, step_target, liquidity)
        amount0 += step0
        amount1 += step1
        sqrt_price = step_target

        if sqrt_price == sqrt_price_next_tick:
            liquidity = _cross(provider, tick_next, liquidity, zero_for_one, snapshot.address)
            crossed.append(tick_next)
            tick = tick_next - 1 if zero_for_one else tick_next
        else:
            tick = get_tick_at_sqrt_ratio(sqrt_price)

    return WalkResult(
        delta=SwapDelta(amount0, amount1),
        sqrt_price_x96=sqrt_price,
        tick=tick,
        liquidity=liquidity,
        crossed_ticks=crossed,
        iterations=iterations
    )


def deltas_to_price_exact(
    snapshot: PoolSnapshot,
    target_sqrt_price_x96: int,
    liquidity_provider=None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS
) -> SwapDelta:
    """Exact deltas to reach target_sqrt_price_x96 across any number of ticks"""
    return walk_to_price(snapshot, target_sqrt_price_x96, liquidity_provider, max_iterations).delta


def swap_exact_input(
    snapshot: PoolSnapshot,
    zero_for_one: bool,
    amount_in: int,
    liquidity_provider=None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    sqrt_price_limit_x96: Optional[int] = None
) -> SwapResult:
    """
    Simulate an exact-input swap of amount_in, fee included.

    Stops when the input is used up or the price limit is reached; in the
    latter case amount_in on the result is smaller than requested.
    """
    snapshot.require_usable()
    if amount_in <= 0:
        raise ValueError(f"amount_in must be positive, got {amount_in}")

    if sqrt_price_limit_x96 is None:
        sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1
    if zero_for_one and sqrt_price_limit_x96 >= snapshot.sqrt_price_x96:
        raise ValueError("Price limit must be below the current price for token0 -> token1 swaps")
    if not zero_for_one and sqrt_price_limit_x96 <= snapshot.sqrt_price_x96:
        raise ValueError("Price limit must be above the current price for token1 -> token0 swaps")

    provider = as_liquidity_provider(liquidity_provider)
    sqrt_price = snapshot.sqrt_price_x96
    tick = snapshot.tick
    liquidity = snapshot.liquidity
    remaining = amount_in
    amount_out = 0
    fees = 0
    crossed = []
    iterations = 0

    while remaining > 0 and sqrt_price != sqrt_price_limit_x96:
        iterations += 1
        if iterations > max_iterations:
            raise NonConvergenceError(
                f"Exact-input swap of {amount_in} did not complete within {max_iterations} steps "
                f"({remaining} left at tick {tick})",
                iterations=iterations - 1, pool=snapshot.address
            )

        tick_next = _next_boundary(provider, tick, snapshot.tick_spacing, zero_for_one)
        sqrt_price_next_tick = get_sqrt_ratio_at_tick(tick_next)

        if zero_for_one:
            step_target = max(sqrt_price_next_tick, sqrt_price_limit_x96)
        else:
            step_target = min(sqrt_price_next_tick, sqrt_price_limit_x96)

        sqrt_price_after, step_in, step_out, step_fee = compute_swap_step(
            sqrt_price, step_target, liquidity, remaining, snapshot.fee_pips
        )
        remaining -= step_in + step_fee
        amount_out += step_out
        fees += step_fee

        if sqrt_price_after == sqrt_price_next_tick:
            liquidity = _cross(provider, tick_next, liquidity, zero_for_one, snapshot.address)
            crossed.append(tick_next)
            tick = tick_next - 1 if zero_for_one else tick_next
        elif sqrt_price_after != sqrt_price:
            tick = get_tick_at_sqrt_ratio(sqrt_price_after)
        sqrt_price = sqrt_price_after

    if remaining > 0:
        logger.warning(
            "Swap on %s hit its price limit with %d of %d input unused", snapshot.address, remaining, amount_in
        )

    return SwapResult(
        zero_for_one=zero_for_one,
        amount_in=amount_in - remaining,
        amount_out=amount_out,
        fee_amount=fees,
        sqrt_price_start_x96=snapshot.sqrt_price_x96,
        sqrt_price_end_x96=sqrt_price,
        tick=tick,
        liquidity=liquidity,
        crossed_ticks=crossed,
        iterations=iterations
    )
