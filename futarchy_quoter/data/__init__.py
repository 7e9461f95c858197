"""Pool data access"""

from .provider import (
    PoolDataSource, StaticPoolDataSource, PoolState, PoolLiquidityView,
    TickLiquidityCache, ConditionalPool, ProposalPools
)

__all__ = [
    "PoolDataSource", "StaticPoolDataSource", "PoolState", "PoolLiquidityView",
    "TickLiquidityCache", "ConditionalPool", "ProposalPools"
]
