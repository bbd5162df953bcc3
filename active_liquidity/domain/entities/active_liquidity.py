from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PoolState(Enum):
    LOADING = "loading"
    NOT_EXISTS = "not_exists"
    EXISTS = "exists"
    INVALID = "invalid"


@dataclass(frozen=True)
class Tick:
    tick_idx: int
    liquidity_net: int
    liquidity_gross: int = 0


@dataclass(frozen=True)
class ProcessedTick:
    tick_idx: int
    liquidity_active: int
    liquidity_net: int
    price0: str


@dataclass(frozen=True)
class PoolStateSnapshot:
    state: PoolState
    pool_address: str | None = None
    current_tick: int | None = None
    current_liquidity: int | None = None


@dataclass(frozen=True)
class TickDataSnapshot:
    is_loading: bool = False
    is_uninitialized: bool = True
    is_error: bool = False
    error: str | None = None
    ticks: tuple[Tick, ...] | None = None
