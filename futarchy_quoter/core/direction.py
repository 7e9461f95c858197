#!/usr/bin/env python3
"""
Direction Resolution

Turns signed pool deltas into a buy/sell instruction and owns the single
token-ordering rule used everywhere else: prices shown to callers are always
currency per asset, whichever token the pool lists first.
"""

from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from typing import List, Optional, Sequence

from .errors import OrderingError
from .fixed_point import DECIMAL_CONTEXT, invert_price, price_from_sqrt_x96, scale_amount
from .futarchy import OutcomeSide
from .pool import PoolSnapshot, SwapDelta


@dataclass(frozen=True)
class TokenOrdering:
    """Caller's semantic ordering of a conditional pool's tokens"""
    asset: str
    currency: str

    def __post_init__(self):
        if self.asset.lower() == self.currency.lower():
            raise OrderingError(f"Asset and currency are the same token {self.asset}")


@dataclass
class TradePlan:
    """Trade that moves one pool to its target price"""
    pool: str
    side: Optional[OutcomeSide]
    sell_token: Optional[str]
    buy_token: Optional[str]
    sell_amount: int
    buy_amount_estimate: int
    start_price: Decimal
    end_price: Optional[Decimal]
    target_price: Optional[Decimal]
    is_inverted: bool
    is_exact: bool = False
    crossed_ticks: List[int] = field(default_factory=list)
    execution_price: Optional[Decimal] = None
    sell_amount_decimal: Decimal = Decimal(0)
    buy_amount_decimal: Decimal = Decimal(0)
    sells_asset: bool = False

    @property
    def is_noop(self) -> bool:
        return self.sell_amount == 0 and self.buy_amount_estimate == 0

    def summary(self) -> str:
        side = self.side.value.upper() if self.side else "-"
        if self.is_noop:
            return f"{side}: pool {self.pool} already at target price {self.start_price}"
        mode = "exact" if self.is_exact else "single-range"
        return (
            f"{side}: sell {self.sell_amount_decimal} {self.sell_token} for ~{self.buy_amount_decimal} "
            f"{self.buy_token} ({mode}, {len(self.crossed_ticks)} ticks crossed), "
            f"price {self.start_price} -> {self.end_price}"
        )


def check_ordering(snapshot: PoolSnapshot, ordering: TokenOrdering) -> bool:
    """
    Validate ordering against the pool and return is_inverted.

    is_inverted is True when the pool's token0 is the currency, in which
    case the pool price (token1 per token0) is asset per currency.
    """
    if not snapshot.has_token(ordering.asset) or not snapshot.has_token(ordering.currency):
        raise OrderingError(
            f"Ordering ({ordering.asset}, {ordering.currency}) does not match pool tokens "
            f"({snapshot.token0}, {snapshot.token1})",
            pool=snapshot.address
        )
    return snapshot.token0.lower() != ordering.asset.lower()


def to_pool_price(price: Decimal, is_inverted: bool) -> Decimal:
    """Currency-per-asset price -> pool price (token1 per token0)"""
    return invert_price(price) if is_inverted else price


def from_pool_price(pool_price: Decimal, is_inverted: bool) -> Decimal:
    """Pool price (token1 per token0) -> currency-per-asset price"""
    return invert_price(pool_price) if is_inverted else pool_price


def display_price(snapshot: PoolSnapshot, is_inverted: bool, sqrt_price_x96: Optional[int] = None) -> Decimal:
    """Currency-per-asset price of the pool, or of sqrt_price_x96 in that pool"""
    if sqrt_price_x96 is None:
        sqrt_price_x96 = snapshot.sqrt_price_x96
    pool_price = price_from_sqrt_x96(sqrt_price_x96, snapshot.decimals0, snapshot.decimals1)
    return from_pool_price(pool_price, is_inverted)


def zero_for_one_for_input(input_is_asset: bool, is_inverted: bool) -> bool:
    """Whether selling the asset (or the currency) means selling token0"""
    return input_is_asset != is_inverted


def execution_price(snapshot: PoolSnapshot, delta: SwapDelta, is_inverted: bool) -> Optional[Decimal]:
    """Average currency per asset paid or received across the delta"""
    human0 = abs(scale_amount(delta.amount0, snapshot.decimals0))
    human1 = abs(scale_amount(delta.amount1, snapshot.decimals1))
    asset_amount, currency_amount = (human1, human0) if is_inverted else (human0, human1)
    if asset_amount == 0:
        return None
    with localcontext(DECIMAL_CONTEXT):
        return currency_amount / asset_amount


def resolve(
    snapshot: PoolSnapshot,
    delta: SwapDelta,
    ordering: TokenOrdering,
    side: Optional[OutcomeSide] = None,
    end_sqrt_price_x96: Optional[int] = None,
    target_price: Optional[Decimal] = None,
    is_exact: bool = False,
    crossed_ticks: Sequence[int] = ()
) -> TradePlan:
    """
    Build the trade plan for a signed delta.

    A positive amount enters the pool, so the user sells that token; a
    negative amount leaves the pool, so the user buys it. A zero delta gives
    a no-op plan.
    """
    is_inverted = check_ordering(snapshot, ordering)
    start_price = display_price(snapshot, is_inverted)

    if delta.is_noop:
        return TradePlan(
            pool=snapshot.address,
            side=side,
            sell_token=None,
            buy_token=None,
            sell_amount=0,
            buy_amount_estimate=0,
            start_price=start_price,
            end_price=start_price,
            target_price=target_price,
            is_inverted=is_inverted,
            is_exact=is_exact,
            crossed_ticks=list(crossed_ticks)
        )

    if end_sqrt_price_x96 is not None:
        end_price = display_price(snapshot, is_inverted, end_sqrt_price_x96)
    else:
        end_price = target_price

    if delta.amount0 > 0 or delta.amount1 < 0:
        sell_token, buy_token = snapshot.token0, snapshot.token1
        sell_amount, buy_amount = delta.amount0, -delta.amount1
        sell_decimals, buy_decimals = snapshot.decimals0, snapshot.decimals1
    else:
        sell_token, buy_token = snapshot.token1, snapshot.token0
        sell_amount, buy_amount = delta.amount1, -delta.amount0
        sell_decimals, buy_decimals = snapshot.decimals1, snapshot.decimals0

    return TradePlan(
        pool=snapshot.address,
        side=side,
        sell_token=sell_token,
        buy_token=buy_token,
        sell_amount=max(sell_amount, 0),
        buy_amount_estimate=max(buy_amount, 0),
        start_price=start_price,
        end_price=end_price,
        target_price=target_price,
        is_inverted=is_inverted,
        is_exact=is_exact,
        crossed_ticks=list(crossed_ticks),
        execution_price=execution_price(snapshot, delta, is_inverted),
        sell_amount_decimal=scale_amount(max(sell_amount, 0), sell_decimals),
        buy_amount_decimal=scale_amount(max(buy_amount, 0), buy_decimals),
        sells_asset=sell_token.lower() == ordering.asset.lower()
    )
