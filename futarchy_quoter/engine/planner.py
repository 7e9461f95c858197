#!/usr/bin/env python3
"""
Arbitrage Planner

Per proposal, computes the trade that moves each conditional pool (YES and
NO) to its futarchy target price:

    target price -> pool sqrt price -> crossing detection
      -> single-range estimate -> exact multi-tick walk if any boundary
         is crossed -> direction and display prices

Each side is planned independently; a failure on one side is returned in
place of that side's plan and never affects the other. The planner is
read-only and never executes trades.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Union

from ..core.direction import TradePlan, check_ordering, resolve, to_pool_price
from ..core.errors import ArbitrageError, LiquidityDataError, PoolUnavailable
from ..core.fixed_point import Numeric, sqrt_x96_from_price
from ..core.futarchy import OutcomeSide, TargetPrice, TradeParameters, target_price, validate_parameters
from ..core.multi_tick import walk_to_price
from ..core.swap_math import deltas_to_price
from ..core.tick_math import boundaries_crossed, get_tick_at_sqrt_ratio
from ..data.provider import ConditionalPool, PoolDataSource, ProposalPools
from .config import QuoterConfig

logger = logging.getLogger(__name__)

SideResult = Union[TradePlan, ArbitrageError]


@dataclass
class ArbitragePlan:
    """YES and NO results for one proposal"""
    proposal_id: Optional[str]
    params: TradeParameters
    yes: SideResult
    no: SideResult
    targets: Dict[OutcomeSide, TargetPrice] = field(default_factory=dict)

    def result(self, side: OutcomeSide) -> SideResult:
        return self.yes if side is OutcomeSide.YES else self.no

    @property
    def plans(self) -> Dict[OutcomeSide, TradePlan]:
        return {side: self.result(side) for side in OutcomeSide if isinstance(self.result(side), TradePlan)}

    @property
    def errors(self) -> Dict[OutcomeSide, ArbitrageError]:
        return {side: self.result(side) for side in OutcomeSide if isinstance(self.result(side), ArbitrageError)}

    @property
    def is_complete(self) -> bool:
        return not self.errors


def _pool_for_side(pools, side: OutcomeSide) -> Optional[ConditionalPool]:
    if isinstance(pools, ProposalPools):
        return pools.for_side(side)
    if side in pools:
        return pools[side]
    return pools.get(side.value)


def _provider_for_side(providers, side: OutcomeSide):
    if not providers:
        return None
    if side in providers:
        return providers[side]
    return providers.get(side.value)


class ArbitragePlanner:
    """Plans trades that align conditional pools with their target prices"""

    def __init__(self, data_source: Optional[PoolDataSource] = None, config: Optional[QuoterConfig] = None):
        self.data_source = data_source
        self.config = config or QuoterConfig()

    def plan(
        self,
        pools: Union[ProposalPools, Mapping],
        params: TradeParameters,
        liquidity_providers: Optional[Mapping] = None,
        proposal_id: Optional[str] = None,
        estimate_only: bool = False
    ) -> ArbitragePlan:
        """
        Plan both sides of a proposal.

        Args:
            pools: ProposalPools, or a mapping of OutcomeSide (or "yes"/"no")
                to ConditionalPool / None
            params: Spot price, probability and impact
            liquidity_providers: Per-side tick liquidity (LiquidityProvider
                or tick -> liquidity_net callable), needed for exact walks
            estimate_only: Return single-range estimates without walking;
                such plans are flagged is_exact=False when ticks are crossed

        Raises:
            ParameterRangeError: params are invalid; nothing is planned.
                A non-positive target on one side only fails that side.
        """
        validate_parameters(params, strict=self.config.strict_impact)
        if proposal_id is None and isinstance(pools, ProposalPools):
            proposal_id = pools.proposal_id

        results = {}
        targets = {}
        for side in OutcomeSide:
            try:
                plan, target = self._plan_side(
                    side,
                    _pool_for_side(pools, side),
                    params,
                    _provider_for_side(liquidity_providers, side),
                    estimate_only
                )
                results[side] = plan
                targets[side] = target
            except PoolUnavailable as e:
                e.side = e.side or side.value
                logger.warning("Skipping %s side: %s", side.value.upper(), e)
                results[side] = e
            except ArbitrageError as e:
                e.side = e.side or side.value
                logger.error("Planning %s side failed: %s", side.value.upper(), e)
                results[side] = e

        return ArbitragePlan(
            proposal_id=proposal_id,
            params=params,
            yes=results[OutcomeSide.YES],
            no=results[OutcomeSide.NO],
            targets=targets
        )

    def plan_arbitrage(
        self,
        proposal_id: str,
        spot: Numeric,
        probability: Numeric,
        impact: Numeric,
        cache=None
    ) -> ArbitragePlan:
        """Fetch the proposal's pools from the data source and plan both sides"""
        if self.data_source is None:
            raise ValueError("plan_arbitrage requires a data source")

        params = TradeParameters(spot, probability, impact)
        pools = self.data_source.get_proposal_pools(proposal_id)

        providers = {}
        for side in OutcomeSide:
            pool = pools.for_side(side)
            if pool is not None:
                providers[side] = self.data_source.liquidity_provider(pool.address, cache)

        return self.plan(pools, params, providers, proposal_id=proposal_id)

    def _plan_side(self, side: OutcomeSide, pool: Optional[ConditionalPool], params: TradeParameters,
                   liquidity_provider, estimate_only: bool):
        price = target_price(side, params, validate=False)
        if pool is None:
            raise PoolUnavailable("No pool available", side=side.value)

        snapshot = pool.snapshot
        snapshot.require_usable(side.value)
        is_inverted = check_ordering(snapshot, pool.ordering)

        pool_price = to_pool_price(price, is_inverted)
        target_sqrt_price_x96 = sqrt_x96_from_price(pool_price, snapshot.decimals0, snapshot.decimals1)
        target = TargetPrice(side=side, price=price, pool_price=pool_price, sqrt_price_x96=target_sqrt_price_x96)

        target_tick = get_tick_at_sqrt_ratio(target_sqrt_price_x96)
        crossed = boundaries_crossed(snapshot.tick, target_tick, snapshot.tick_spacing)

        estimate = deltas_to_price(snapshot, target_sqrt_price_x96)
        logger.debug(
            "%s: tick %d -> %d, %d boundaries, single-range estimate (%d, %d)",
            side.value.upper(), snapshot.tick, target_tick, len(crossed), estimate.amount0, estimate.amount1
        )

        if estimate_only or not (crossed or self.config.always_walk):
            plan = resolve(
                snapshot, estimate, pool.ordering,
                side=side,
                end_sqrt_price_x96=target_sqrt_price_x96,
                target_price=price,
                is_exact=not crossed,
                crossed_ticks=crossed
            )
            return plan, target

        if crossed and liquidity_provider is None:
            raise LiquidityDataError(
                f"Move crosses {len(crossed)} tick boundaries but no tick liquidity is available",
                side=side.value, pool=snapshot.address
            )

        logger.info(
            "%s: escalating to exact walk across %d boundaries", side.value.upper(), len(crossed)
        )
        walk = walk_to_price(snapshot, target_sqrt_price_x96, liquidity_provider, self.config.max_walk_iterations)
        plan = resolve(
            snapshot, walk.delta, pool.ordering,
            side=side,
            end_sqrt_price_x96=walk.sqrt_price_x96,
            target_price=price,
            is_exact=True,
            crossed_ticks=walk.crossed_ticks
        )
        return plan, target
