#!/usr/bin/env python3
"""
Futarchy Quoter - Command Line Entry Point

Plans YES/NO arbitrage trades and quotes single swaps against pool state
loaded from a JSON state file (settings, proposals and pools).
"""

import sys
import argparse
import logging

from .core.errors import ArbitrageError
from .core.fixed_point import to_raw_amount
from .core.futarchy import OutcomeSide, TradeParameters
from .data.provider import ConditionalPool, StaticPoolDataSource, TickLiquidityCache
from .core.direction import TokenOrdering
from .engine.config import load_settings
from .engine.planner import ArbitragePlanner
from .engine.quoter import SwapQuoter
from .analysis.report import plans_to_frame, probability_sweep
from .logging_config import setup_logging


def main(argv=None):
    """Main entry point with command-line interface"""

    parser = argparse.ArgumentParser(
        prog="futarchy-quoter",
        description="Conditional market arbitrage planner and swap quoter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  futarchy-quoter plan --state state.json --proposal prop-1 --spot 107.73 --probability 0.6154 --impact 0.0744
  futarchy-quoter plan --state state.json --proposal prop-1 --spot 107.73 --probability 0.6154 --impact 7.44 --impact-percent
  futarchy-quoter quote --state state.json --pool 0xabc... --sell-asset --amount 10
  futarchy-quoter sweep --state state.json --proposal prop-1 --spot 107.73 --impact 0.0744 --steps 5
        """
    )
    parser.add_argument('--verbose', '-v', action='count', default=0,
                        help='Verbose output (-vv shows every tick crossed)')
    parser.add_argument('--log-file', type=str,
                        help='Also write logs to this file')

    subparsers = parser.add_subparsers(dest='command')

    plan_parser = subparsers.add_parser('plan', help='Plan trades moving YES/NO pools to their targets')
    plan_parser.add_argument('--state', required=True, help='JSON state file')
    plan_parser.add_argument('--proposal', required=True, help='Proposal id from the state file')
    plan_parser.add_argument('--spot', required=True, help='Spot price, currency per asset')
    plan_parser.add_argument('--probability', required=True, help='Event probability in [0, 1]')
    plan_parser.add_argument('--impact', required=True, help='Expected impact as a fraction')
    plan_parser.add_argument('--impact-percent', action='store_true',
                             help='Interpret --impact as a percentage')
    plan_parser.add_argument('--estimate-only', action='store_true',
                             help='Single-range estimates only, no tick walk')
    plan_parser.add_argument('--csv', type=str, help='Export the plan table to CSV')

    quote_parser = subparsers.add_parser('quote', help='Quote an exact-input swap on one pool')
    quote_parser.add_argument('--state', required=True, help='JSON state file')
    quote_parser.add_argument('--pool', required=True, help='Pool address')
    direction = quote_parser.add_mutually_exclusive_group(required=True)
    direction.add_argument('--sell-asset', action='store_true', help='Sell the asset token')
    direction.add_argument('--sell-currency', action='store_true', help='Sell the currency token')
    quote_parser.add_argument('--amount', required=True, help='Input amount in token units')
    quote_parser.add_argument('--slippage-bps', type=int, help='Slippage tolerance in basis points')

    sweep_parser = subparsers.add_parser('sweep', help='Tabulate targets and trades across probabilities')
    sweep_parser.add_argument('--state', required=True, help='JSON state file')
    sweep_parser.add_argument('--proposal', required=True, help='Proposal id from the state file')
    sweep_parser.add_argument('--spot', required=True, help='Spot price, currency per asset')
    sweep_parser.add_argument('--impact', required=True, help='Expected impact as a fraction')
    sweep_parser.add_argument('--steps', type=int, default=11, help='Grid points in [0, 1] (default: 11)')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    setup_logging(level=level, log_file=args.log_file)

    try:
        if args.command == 'plan':
            return run_plan(args)
        elif args.command == 'quote':
            return run_quote(args)
        elif args.command == 'sweep':
            return run_sweep(args)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except (ArbitrageError, KeyError, ValueError, OSError) as e:
        print(f"Error: {str(e)}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def load_state(path: str):
    """Settings and data source from one state file"""
    settings = load_settings(path)
    source = StaticPoolDataSource.from_json(path, settings.proposals)
    return settings, source


def run_plan(args) -> int:
    settings, source = load_state(args.state)
    planner = ArbitragePlanner(source, settings.quoter)

    print(f"Planning proposal {args.proposal}")
    print("=" * 60)

    if args.impact_percent:
        params = TradeParameters.from_percent(args.spot, args.probability, args.impact)
    else:
        params = TradeParameters(args.spot, args.probability, args.impact)

    if args.estimate_only:
        pools = source.get_proposal_pools(args.proposal)
        plan = planner.plan(pools, params, proposal_id=args.proposal, estimate_only=True)
    else:
        plan = planner.plan_arbitrage(
            args.proposal, params.spot_price, params.probability, params.impact, cache=TickLiquidityCache()
        )

    print(f"Spot: {params.spot_price}  Probability: {params.probability}  Impact: {params.impact}")
    for side in OutcomeSide:
        result = plan.result(side)
        if isinstance(result, ArbitrageError):
            print(f"{side.value.upper()}: unavailable - {result}")
        else:
            print(result.summary())
            if result.execution_price is not None:
                print(f"    execution price {result.execution_price:.8f}, target {result.target_price:.8f}")

    if args.csv:
        plans_to_frame(plan).to_csv(args.csv, index=False)
        print(f"Plan table written to {args.csv}")

    return 0 if plan.is_complete else 2


def run_quote(args) -> int:
    settings, source = load_state(args.state)
    pool_config = source.find_pool_config(args.pool)
    if pool_config is None:
        print(f"Error: pool {args.pool} is not part of any configured proposal")
        return 1

    snapshot = source.get_snapshot(pool_config.address)
    pool = ConditionalPool(snapshot, TokenOrdering(pool_config.asset, pool_config.currency))
    sell_asset = bool(args.sell_asset)
    token_in = pool_config.asset if sell_asset else pool_config.currency
    decimals_in = snapshot.decimals0 if token_in.lower() == snapshot.token0.lower() else snapshot.decimals1

    quoter = SwapQuoter(source, settings.quoter)
    quote = quoter.quote_swap(pool, sell_asset, to_raw_amount(args.amount, decimals_in), args.slippage_bps)

    print(f"Quote on pool {quote.pool}")
    print("=" * 60)
    print(f"Sell:            {quote.amount_in_decimal} {quote.token_in}")
    print(f"Receive:         {quote.amount_out_decimal} {quote.token_out}")
    print(f"Minimum receive: {quote.min_amount_out} raw units ({quote.slippage_bps} bps slippage)")
    print(f"Fee:             {quote.fee_paid} raw units")
    print(f"Price:           {quote.start_price:.8f} -> {quote.end_price:.8f}")
    if quote.execution_price is not None:
        print(f"Execution price: {quote.execution_price:.8f}")
    print(f"Ticks crossed:   {len(quote.crossed_ticks)}")
    if quote.is_partial:
        print("WARNING: pool ran out of liquidity, only part of the input was used")
    return 0


def run_sweep(args) -> int:
    settings, source = load_state(args.state)
    planner = ArbitragePlanner(source, settings.quoter)
    pools = source.get_proposal_pools(args.proposal)
    providers = {
        side: source.liquidity_provider(pools.for_side(side).address, TickLiquidityCache())
        for side in OutcomeSide if pools.for_side(side) is not None
    }

    frame = probability_sweep(args.spot, args.impact, steps=args.steps,
                              planner=planner, pools=pools, liquidity_providers=providers)
    print(frame.to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
