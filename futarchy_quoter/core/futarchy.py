#!/usr/bin/env python3
"""
Futarchy Target Prices

Price each conditional pool should trade at after resolution:

    YES = spot * (1 + impact * (1 - probability))
    NO  = spot * (1 - impact * probability)

so that spot = probability * YES + (1 - probability) * NO. The inverse
recovers probability and impact from a pair of observed pool prices.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from enum import Enum

from .errors import ParameterRangeError
from .fixed_point import DECIMAL_CONTEXT, Numeric, to_decimal

logger = logging.getLogger(__name__)


class OutcomeSide(Enum):
    """Conditional outcome, one pool per side"""
    YES = "yes"
    NO = "no"


@dataclass(frozen=True)
class TradeParameters:
    """Caller beliefs for one planning request"""
    spot_price: Decimal
    probability: Decimal
    impact: Decimal

    def __post_init__(self):
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "spot_price", to_decimal(self.spot_price))
        object.__setattr__(self, "probability", to_decimal(self.probability))
        object.__setattr__(self, "impact", to_decimal(self.impact))

    @classmethod
    def from_percent(cls, spot_price: Numeric, probability: Numeric, impact_percent: Numeric) -> "TradeParameters":
        """Build parameters with impact given in percent, e.g. 7.44 for 0.0744"""
        with localcontext(DECIMAL_CONTEXT):
            impact = to_decimal(impact_percent) / Decimal(100)
        return cls(spot_price, probability, impact)


@dataclass(frozen=True)
class TargetPrice:
    """Target price for one side in display and pool terms"""
    side: OutcomeSide
    price: Decimal         # currency per asset
    pool_price: Decimal    # token1 per token0, decimal adjusted
    sqrt_price_x96: int


def validate_parameters(params: TradeParameters, strict: bool = True) -> TradeParameters:
    """
    Reject parameters outside their domain.

    probability must lie in [0, 1] and spot must be positive. |impact| > 1
    is almost always a percent passed as a fraction: rejected when strict,
    logged otherwise. Values are never clamped.
    """
    if params.spot_price <= 0:
        raise ParameterRangeError(f"Spot price must be positive, got {params.spot_price}")
    if params.probability < 0 or params.probability > 1:
        raise ParameterRangeError(f"Probability must be in [0, 1], got {params.probability}")
    if abs(params.impact) > 1:
        message = f"Impact {params.impact} has magnitude above 1 (was a percentage passed as a fraction?)"
        if strict:
            raise ParameterRangeError(message)
        logger.warning(message)
    return params


def _side_price(side: OutcomeSide, params: TradeParameters) -> Decimal:
    with localcontext(DECIMAL_CONTEXT):
        if side is OutcomeSide.YES:
            return params.spot_price * (1 + params.impact * (1 - params.probability))
        return params.spot_price * (1 - params.impact * params.probability)


def yes_target_price(spot: Numeric, probability: Numeric, impact: Numeric, strict: bool = True) -> Decimal:
    """spot * (1 + impact * (1 - probability))"""
    params = validate_parameters(TradeParameters(spot, probability, impact), strict)
    return _side_price(OutcomeSide.YES, params)


def no_target_price(spot: Numeric, probability: Numeric, impact: Numeric, strict: bool = True) -> Decimal:
    """spot * (1 - impact * probability)"""
    params = validate_parameters(TradeParameters(spot, probability, impact), strict)
    return _side_price(OutcomeSide.NO, params)


def target_price(side: OutcomeSide, params: TradeParameters, strict: bool = True, validate: bool = True) -> Decimal:
    """
    Target price in currency per asset for one side.

    Pass validate=False when params already went through validate_parameters.
    """
    if validate:
        validate_parameters(params, strict)
    price = _side_price(side, params)
    if price <= 0:
        raise ParameterRangeError(
            f"{side.value.upper()} target price {price} is not positive for impact {params.impact}",
            side=side.value
        )
    return price


def implied_parameters(spot: Numeric, yes_price: Numeric, no_price: Numeric,
                       strict: bool = False) -> TradeParameters:
    """
    Probability and impact implied by observed YES/NO prices.

        impact = (yes - no) / spot
        probability = (spot - no) / (yes - no)

    Fails when the prices are equal (probability undefined) or when spot
    does not lie between them.
    """
    spot = to_decimal(spot)
    yes_price = to_decimal(yes_price)
    no_price = to_decimal(no_price)
    if spot <= 0 or yes_price <= 0 or no_price <= 0:
        raise ParameterRangeError(f"Prices must be positive, got spot={spot} yes={yes_price} no={no_price}")
    if yes_price == no_price:
        raise ParameterRangeError("YES and NO prices are equal; probability is undefined")

    with localcontext(DECIMAL_CONTEXT):
        spread = yes_price - no_price
        impact = spread / spot
        probability = (spot - no_price) / spread

    return validate_parameters(TradeParameters(spot, probability, impact), strict=strict)
