#!/usr/bin/env python3
"""
Swap Quoter

Exact-input quotes for a single conditional pool: output amount, fee,
minimum output under a slippage tolerance and the resulting prices, all in
currency-per-asset terms.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from ..core.direction import check_ordering, display_price, execution_price, zero_for_one_for_input
from ..core.fixed_point import scale_amount
from ..core.multi_tick import swap_exact_input
from ..data.provider import ConditionalPool, PoolDataSource
from .config import QuoterConfig

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000


@dataclass
class SwapQuote:
    """Result of quoting one exact-input swap"""
    pool: str
    token_in: str
    token_out: str
    amount_in: int
    amount_in_used: int
    amount_out: int
    min_amount_out: int
    fee_paid: int
    start_price: Decimal
    end_price: Decimal
    execution_price: Optional[Decimal]
    is_inverted: bool
    slippage_bps: int = 0
    crossed_ticks: List[int] = field(default_factory=list)
    amount_in_decimal: Decimal = Decimal(0)
    amount_out_decimal: Decimal = Decimal(0)

    @property
    def is_partial(self) -> bool:
        return self.amount_in_used < self.amount_in

    @property
    def price_impact(self) -> Decimal:
        """Relative move of the pool's display price"""
        return (self.end_price - self.start_price) / self.start_price


def min_amount_out(amount_out: int, slippage_bps: int) -> int:
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"slippage_bps must be in [0, {BPS_DENOMINATOR}], got {slippage_bps}")
    return amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def quote_swap(
    pool: ConditionalPool,
    input_is_asset: bool,
    amount_in: int,
    slippage_bps: Optional[int] = None,
    liquidity_provider=None,
    config: Optional[QuoterConfig] = None,
    sqrt_price_limit_x96: Optional[int] = None
) -> SwapQuote:
    """
    Quote selling amount_in raw units of the asset (or the currency).

    Fees are charged as on-chain. Without a liquidity_provider the active
    liquidity is assumed constant across every tick. sqrt_price_limit_x96 is
    the pool-order price the swap may not pass; a quote stopped by it is
    partial.
    """
    config = config or QuoterConfig()
    if slippage_bps is None:
        slippage_bps = config.default_slippage_bps

    snapshot = pool.snapshot
    snapshot.require_usable()
    is_inverted = check_ordering(snapshot, pool.ordering)
    zero_for_one = zero_for_one_for_input(input_is_asset, is_inverted)

    result = swap_exact_input(
        snapshot, zero_for_one, amount_in, liquidity_provider, config.max_walk_iterations, sqrt_price_limit_x96
    )

    if zero_for_one:
        token_in, token_out = snapshot.token0, snapshot.token1
        decimals_in, decimals_out = snapshot.decimals0, snapshot.decimals1
    else:
        token_in, token_out = snapshot.token1, snapshot.token0
        decimals_in, decimals_out = snapshot.decimals1, snapshot.decimals0

    quote = SwapQuote(
        pool=snapshot.address,
        token_in=token_in,
        token_out=token_out,
        amount_in=amount_in,
        amount_in_used=result.amount_in,
        amount_out=result.amount_out,
        min_amount_out=min_amount_out(result.amount_out, slippage_bps),
        fee_paid=result.fee_amount,
        start_price=display_price(snapshot, is_inverted),
        end_price=display_price(snapshot, is_inverted, result.sqrt_price_end_x96),
        execution_price=execution_price(snapshot, result.delta, is_inverted),
        is_inverted=is_inverted,
        slippage_bps=slippage_bps,
        crossed_ticks=result.crossed_ticks,
        amount_in_decimal=scale_amount(result.amount_in, decimals_in),
        amount_out_decimal=scale_amount(result.amount_out, decimals_out)
    )
    logger.debug(
        "Quoted %d %s -> %d %s on %s (%d ticks crossed)",
        quote.amount_in_used, token_in, quote.amount_out, token_out, snapshot.address, len(quote.crossed_ticks)
    )
    return quote


class SwapQuoter:
    """quote_swap over pools served by a PoolDataSource"""

    def __init__(self, data_source: PoolDataSource, config: Optional[QuoterConfig] = None):
        self.data_source = data_source
        self.config = config or QuoterConfig()

    def quote_swap(self, pool: ConditionalPool, input_is_asset: bool, amount_in: int,
                   slippage_bps: Optional[int] = None, cache=None,
                   sqrt_price_limit_x96: Optional[int] = None) -> SwapQuote:
        # Re-read the snapshot so every quote sees current state
        fresh = ConditionalPool(self.data_source.get_snapshot(pool.address), pool.ordering)
        provider = self.data_source.liquidity_provider(pool.address, cache)
        return quote_swap(fresh, input_is_asset, amount_in, slippage_bps, provider, self.config,
                          sqrt_price_limit_x96)
