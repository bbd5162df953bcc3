from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from active_liquidity.domain.entities.active_liquidity import ProcessedTick, Tick
from active_liquidity.domain.entities.fee_amount import FeeAmount
from active_liquidity.domain.entities.token import Token


class ActiveLiquidityStatus(str, Enum):
    LOADING = "loading"
    UNINITIALIZED = "uninitialized"
    ERROR = "error"
    READY = "ready"


@dataclass(frozen=True)
class GetPoolActiveLiquidityInput:
    currency_a: Token | None
    currency_b: Token | None
    fee_amount: FeeAmount | None


@dataclass(frozen=True)
class ComputeActiveLiquidityInput:
    token0: Token
    token1: Token
    fee_amount: FeeAmount | None
    current_tick: int | None
    current_liquidity: int
    ticks: tuple[Tick, ...]


@dataclass(frozen=True)
class ActiveLiquidityOutput:
    is_loading: bool
    is_uninitialized: bool
    is_error: bool
    error: str | None
    active_tick: int | None
    data: list[ProcessedTick] | None

    @property
    def status(self) -> ActiveLiquidityStatus:
        if self.data is not None:
            return ActiveLiquidityStatus.READY
        if self.is_loading:
            return ActiveLiquidityStatus.LOADING
        if self.is_error:
            return ActiveLiquidityStatus.ERROR
        return ActiveLiquidityStatus.UNINITIALIZED
