#!/usr/bin/env python3
"""
Pool Data Access

The engine never talks to a chain directly. It reads pool snapshots and tick
liquidity through a PoolDataSource. StaticPoolDataSource serves in-memory
state (tick tables kept in a TickBitmap) loaded from JSON, which is what the
CLI and the tests use. TickLiquidityCache memoizes liquidity_net lookups for
sources backed by slow reads.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from ..core.direction import TokenOrdering
from ..core.errors import LiquidityDataError, PoolUnavailable
from ..core.futarchy import OutcomeSide
from ..core.multi_tick import LiquidityProvider
from ..core.pool import PoolSnapshot, TickBitmap, TickInfo

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _key(address: str) -> str:
    return address.lower()


@dataclass(frozen=True)
class ConditionalPool:
    """Pool snapshot paired with the caller's asset/currency roles"""
    snapshot: PoolSnapshot
    ordering: TokenOrdering

    @property
    def address(self) -> str:
        return self.snapshot.address


@dataclass
class ProposalPools:
    """Conditional pools of one proposal; a missing side is None"""
    proposal_id: str
    yes: Optional[ConditionalPool] = None
    no: Optional[ConditionalPool] = None

    def for_side(self, side: OutcomeSide) -> Optional[ConditionalPool]:
        return self.yes if side is OutcomeSide.YES else self.no


class PoolDataSource(ABC):
    """Read-only access to pool state"""

    @abstractmethod
    def get_proposal_pools(self, proposal_id: str) -> ProposalPools:
        """Snapshots and orderings for both sides of a proposal"""

    @abstractmethod
    def get_snapshot(self, pool_address: str) -> PoolSnapshot:
        """Fresh snapshot; raises PoolUnavailable for unknown pools"""

    @abstractmethod
    def liquidity_net(self, pool_address: str, tick: int) -> int:
        """liquidityNet(tick) of the pool, 0 for uninitialized ticks"""

    def next_initialized_tick(self, pool_address: str, tick: int, tick_spacing: int, lte: bool) -> Optional[int]:
        """Override when the source can index initialized ticks"""
        return None

    def liquidity_provider(self, pool_address: str, cache: "TickLiquidityCache" = None) -> "PoolLiquidityView":
        return PoolLiquidityView(self, pool_address, cache)


class TickLiquidityCache:
    """liquidity_net memo keyed by (pool, tick)"""

    def __init__(self):
        self._values: Dict[Tuple[str, int], int] = {}
        self.hits = 0
        self.misses = 0

    def get(self, pool_address: str, tick: int, fetch) -> int:
        key = (_key(pool_address), int(tick))
        if key in self._values:
            self.hits += 1
            return self._values[key]
        self.misses += 1
        value = int(fetch(pool_address, tick))
        self._values[key] = value
        return value

    def invalidate(self, pool_address: Optional[str] = None):
        """Drop every entry, or only those of one pool"""
        if pool_address is None:
            self._values.clear()
            return
        pool = _key(pool_address)
        for key in [k for k in self._values if k[0] == pool]:
            del self._values[key]

    def __len__(self):
        return len(self._values)


class PoolLiquidityView(LiquidityProvider):
    """A data source's tick liquidity bound to one pool"""

    def __init__(self, source: PoolDataSource, pool_address: str, cache: Optional[TickLiquidityCache] = None):
        self.source = source
        self.pool_address = pool_address
        self.cache = cache

    def liquidity_net(self, tick: int) -> int:
        if self.cache is not None:
            return self.cache.get(self.pool_address, tick, self.source.liquidity_net)
        return self.source.liquidity_net(self.pool_address, tick)

    def next_initialized_tick(self, tick: int, tick_spacing: int, lte: bool) -> Optional[int]:
        return self.source.next_initialized_tick(self.pool_address, tick, tick_spacing, lte)


@dataclass
class PoolState:
    """In-memory pool: snapshot plus initialized tick table"""
    snapshot: PoolSnapshot
    ticks: Dict[int, TickInfo] = field(default_factory=dict)
    tick_bitmap: TickBitmap = field(default_factory=TickBitmap)

    def set_liquidity_net(self, tick: int, liquidity_net: int):
        """Record a tick's liquidityNet as read from chain"""
        was_initialized = tick in self.ticks and self.ticks[tick].initialized
        if liquidity_net == 0:
            if was_initialized:
                del self.ticks[tick]
                self.tick_bitmap.flip_tick(tick, self.snapshot.tick_spacing)
            return
        self.ticks[tick] = TickInfo(liquidity_gross=abs(liquidity_net), liquidity_net=liquidity_net, initialized=True)
        if not was_initialized:
            self.tick_bitmap.flip_tick(tick, self.snapshot.tick_spacing)

    def add_position(self, tick_lower: int, tick_upper: int, liquidity: int):
        """Add a liquidity position, updating ticks and active liquidity"""
        if liquidity <= 0:
            return
        if tick_lower >= tick_upper:
            raise ValueError(f"tick_lower {tick_lower} must be below tick_upper {tick_upper}")

        for tick, net in ((tick_lower, liquidity), (tick_upper, -liquidity)):
            info = self.ticks.get(tick)
            if info is None:
                info = self.ticks[tick] = TickInfo()
            if not info.initialized:
                self.tick_bitmap.flip_tick(tick, self.snapshot.tick_spacing)
                info.initialized = True
            info.liquidity_net += net
            info.liquidity_gross += liquidity

        # Active liquidity changes only if the position covers the current tick
        if tick_lower <= self.snapshot.tick < tick_upper:
            self.snapshot = replace(self.snapshot, liquidity=self.snapshot.liquidity + liquidity)

    def liquidity_net(self, tick: int) -> int:
        info = self.ticks.get(tick)
        return info.liquidity_net if info is not None else 0

    @classmethod
    def from_record(cls, record: "PoolRecord") -> "PoolState":
        state = cls(snapshot=PoolSnapshot(
            address=record.address,
            token0=record.token0,
            token1=record.token1,
            decimals0=record.decimals0,
            decimals1=record.decimals1,
            sqrt_price_x96=record.sqrt_price_x96,
            tick=record.tick,
            tick_spacing=record.tick_spacing,
            liquidity=record.liquidity,
            fee_pips=record.fee_pips
        ))
        for tick, liquidity_net in sorted(record.ticks.items()):
            state.set_liquidity_net(tick, liquidity_net)
        for position in record.positions:
            state.add_position(position.tick_lower, position.tick_upper, position.liquidity)
        return state


class PositionRecord(BaseModel):
    tick_lower: int
    tick_upper: int
    liquidity: int = Field(gt=0)


class PoolRecord(BaseModel):
    """
    JSON form of a pool.

    `ticks` maps tick -> liquidityNet. `positions` are added on top of
    `liquidity`, so give one or the other for the active range.
    """
    address: str = Field(min_length=1)
    token0: str
    token1: str
    decimals0: int = Field(default=18, ge=0, le=255)
    decimals1: int = Field(default=18, ge=0, le=255)
    sqrt_price_x96: int = Field(ge=0)
    tick: int
    tick_spacing: int = Field(default=60, gt=0)
    liquidity: int = Field(default=0, ge=0)
    fee_pips: int = Field(default=0, ge=0, lt=1_000_000)
    ticks: Dict[int, int] = Field(default_factory=dict)
    positions: List[PositionRecord] = Field(default_factory=list)


class StaticPoolDataSource(PoolDataSource):
    """Pool data held in memory"""

    def __init__(self, pools: Iterable[PoolState] = (), proposals: Optional[Dict[str, Any]] = None):
        self.pools: Dict[str, PoolState] = {}
        for state in pools:
            self.add_pool(state)
        # proposal_id -> ProposalConfig-like object with .yes / .no pool configs
        self.proposals = dict(proposals or {})

    def add_pool(self, state: PoolState):
        self.pools[_key(state.snapshot.address)] = state

    def _state(self, pool_address: str) -> PoolState:
        state = self.pools.get(_key(pool_address))
        if state is None or _key(pool_address) == ZERO_ADDRESS:
            raise PoolUnavailable("Pool does not exist", pool=pool_address)
        return state

    def get_snapshot(self, pool_address: str) -> PoolSnapshot:
        return self._state(pool_address).snapshot

    def liquidity_net(self, pool_address: str, tick: int) -> int:
        state = self.pools.get(_key(pool_address))
        if state is None:
            raise LiquidityDataError(f"No tick data for tick {tick}", pool=pool_address)
        return state.liquidity_net(tick)

    def next_initialized_tick(self, pool_address: str, tick: int, tick_spacing: int, lte: bool) -> Optional[int]:
        state = self.pools.get(_key(pool_address))
        if state is None:
            return None
        return state.tick_bitmap.next_initialized_tick(tick, tick_spacing, lte)

    def get_conditional_pool(self, pool_config) -> Optional[ConditionalPool]:
        """ConditionalPool for a pool config, None when the pool does not exist"""
        if pool_config is None:
            return None
        try:
            snapshot = self.get_snapshot(pool_config.address)
        except PoolUnavailable:
            logger.warning("Pool %s is not available", pool_config.address)
            return None
        return ConditionalPool(snapshot, TokenOrdering(pool_config.asset, pool_config.currency))

    def find_pool_config(self, pool_address: str):
        """Pool config (with its token roles) for a pool address across all proposals"""
        for proposal in self.proposals.values():
            for pool_config in (proposal.yes, proposal.no):
                if pool_config is not None and _key(pool_config.address) == _key(pool_address):
                    return pool_config
        return None

    def get_proposal_pools(self, proposal_id: str) -> ProposalPools:
        if proposal_id not in self.proposals:
            raise KeyError(f"Unknown proposal {proposal_id!r}")
        proposal = self.proposals[proposal_id]
        return ProposalPools(
            proposal_id=proposal_id,
            yes=self.get_conditional_pool(proposal.yes),
            no=self.get_conditional_pool(proposal.no)
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], proposals: Optional[Dict[str, Any]] = None) -> "StaticPoolDataSource":
        records = [PoolRecord(**pool) for pool in data.get("pools", [])]
        source = cls((PoolState.from_record(record) for record in records), proposals)
        logger.info("Loaded %d pools", len(source.pools))
        return source

    @classmethod
    def from_json(cls, path: Union[str, Path], proposals: Optional[Dict[str, Any]] = None) -> "StaticPoolDataSource":
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data, proposals)
