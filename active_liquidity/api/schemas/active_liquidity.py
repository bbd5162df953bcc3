from __future__ import annotations

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    address: str = Field(..., description="Token contract address (0x...).")
    decimals: int = Field(..., ge=0, le=255)
    symbol: str | None = None


class ActiveLiquidityRequest(BaseModel):
    chain_id: int = Field(..., description="Chain id (1 = ethereum, 42161 = arbitrum, ...).")
    token_a: TokenRequest | None = Field(None, description="Base token; price0 is quoted as token_b per token_a.")
    token_b: TokenRequest | None = None
    fee_tier: int | None = Field(None, description="Fee tier in hundredths of a bip (100, 500, 3000, 10000).")


class TickRequest(BaseModel):
    tick_idx: int
    liquidity_net: str = Field(..., description="Signed integer as string.")
    liquidity_gross: str = Field("0", description="Unsigned integer as string.")


class ComputeActiveLiquidityRequest(BaseModel):
    chain_id: int = 1
    token0: TokenRequest
    token1: TokenRequest
    fee_tier: int | None = None
    current_tick: int | None = None
    current_liquidity: str = Field(..., description="Pool in-range liquidity as integer string.")
    ticks: list[TickRequest] = Field(default_factory=list, description="Sorted ascending by tick_idx.")


class ProcessedTickResponse(BaseModel):
    tick_idx: int
    liquidity_active: str
    liquidity_net: str
    price0: str


class ActiveLiquidityResponse(BaseModel):
    status: str
    active_tick: int | None
    is_loading: bool
    is_uninitialized: bool
    is_error: bool
    error: str | None
    data: list[ProcessedTickResponse] | None
