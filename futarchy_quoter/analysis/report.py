#!/usr/bin/env python3
"""
Plan Reporting

Tabulates arbitrage plans with pandas and sweeps target prices and trade
sizes over a numpy grid of probabilities. Decimal values are converted to
float here only, for display.
"""

from typing import Iterable, Optional

import numpy as np
import pandas as pd

from ..core.direction import TradePlan
from ..core.errors import ArbitrageError
from ..core.futarchy import OutcomeSide, TradeParameters, no_target_price, yes_target_price

PLAN_COLUMNS = [
    "proposal_id", "side", "status", "pool", "sell_token", "sell_amount", "buy_token",
    "buy_amount", "start_price", "target_price", "end_price", "execution_price",
    "is_inverted", "is_exact", "ticks_crossed", "error",
]


def _to_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _plan_row(proposal_id, side: OutcomeSide, result) -> dict:
    row = {column: None for column in PLAN_COLUMNS}
    row["proposal_id"] = proposal_id
    row["side"] = side.value.upper()

    if isinstance(result, ArbitrageError):
        row["status"] = type(result).__name__
        row["pool"] = result.pool
        row["error"] = str(result)
        return row

    plan: TradePlan = result
    row.update({
        "status": "noop" if plan.is_noop else "trade",
        "pool": plan.pool,
        "sell_token": plan.sell_token,
        "sell_amount": _to_float(plan.sell_amount_decimal),
        "buy_token": plan.buy_token,
        "buy_amount": _to_float(plan.buy_amount_decimal),
        "start_price": _to_float(plan.start_price),
        "target_price": _to_float(plan.target_price),
        "end_price": _to_float(plan.end_price),
        "execution_price": _to_float(plan.execution_price),
        "is_inverted": plan.is_inverted,
        "is_exact": plan.is_exact,
        "ticks_crossed": len(plan.crossed_ticks),
    })
    return row


def plans_to_frame(plans) -> pd.DataFrame:
    """One row per side for an ArbitragePlan or an iterable of them"""
    if hasattr(plans, "result"):
        plans = [plans]

    rows = []
    for plan in plans:
        for side in OutcomeSide:
            rows.append(_plan_row(plan.proposal_id, side, plan.result(side)))
    return pd.DataFrame(rows, columns=PLAN_COLUMNS)


def probability_sweep(
    spot,
    impact,
    probabilities: Optional[Iterable[float]] = None,
    steps: int = 11,
    planner=None,
    pools=None,
    liquidity_providers=None
) -> pd.DataFrame:
    """
    Target prices (and, with a planner and pools, trade sizes) across probabilities.

    Args:
        spot: Spot price, currency per asset
        impact: Expected impact as a fraction
        probabilities: Probability grid; defaults to np.linspace(0, 1, steps)
        planner: ArbitragePlanner used to size trades at each grid point
        pools: Pools passed to planner.plan
    """
    if probabilities is None:
        probabilities = np.linspace(0.0, 1.0, steps)
    grid = np.round(np.asarray(list(probabilities), dtype=float), 10)

    rows = []
    for probability in grid:
        probability = float(probability)
        row = {
            "probability": probability,
            "yes_target": float(yes_target_price(spot, probability, impact)),
            "no_target": float(no_target_price(spot, probability, impact)),
        }
        if planner is not None and pools is not None:
            plan = planner.plan(pools, TradeParameters(spot, probability, impact), liquidity_providers)
            for side in OutcomeSide:
                result = plan.result(side)
                prefix = side.value
                if isinstance(result, TradePlan):
                    row[f"{prefix}_sell_token"] = result.sell_token
                    row[f"{prefix}_sell_amount"] = float(result.sell_amount_decimal)
                    row[f"{prefix}_buy_amount"] = float(result.buy_amount_decimal)
                else:
                    row[f"{prefix}_sell_token"] = None
                    row[f"{prefix}_sell_amount"] = np.nan
                    row[f"{prefix}_buy_amount"] = np.nan
        rows.append(row)

    frame = pd.DataFrame(rows)
    frame["spread"] = frame["yes_target"] - frame["no_target"]
    return frame
