from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from active_liquidity.api.deps import (
    get_compute_active_liquidity_use_case,
    get_pool_active_liquidity_use_case,
)
from active_liquidity.api.schemas.active_liquidity import (
    ActiveLiquidityRequest,
    ActiveLiquidityResponse,
    ComputeActiveLiquidityRequest,
    ProcessedTickResponse,
    TokenRequest,
)
from active_liquidity.application.dto.active_liquidity import (
    ActiveLiquidityOutput,
    ComputeActiveLiquidityInput,
    GetPoolActiveLiquidityInput,
)
from active_liquidity.application.use_cases.compute_active_liquidity import (
    ComputeActiveLiquidityUseCase,
)
from active_liquidity.application.use_cases.get_pool_active_liquidity import (
    GetPoolActiveLiquidityUseCase,
)
from active_liquidity.domain.entities.active_liquidity import Tick
from active_liquidity.domain.entities.fee_amount import parse_fee_amount
from active_liquidity.domain.entities.token import Token
from active_liquidity.domain.exceptions import ActiveLiquidityInputError

router = APIRouter()


def _to_token(chain_id: int, token: TokenRequest | None) -> Token | None:
    if token is None:
        return None
    return Token(
        chain_id=chain_id,
        address=token.address,
        decimals=token.decimals,
        symbol=token.symbol,
    )


def _parse_int(value: str, *, field_name: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"{field_name} must be an integer string.") from exc


def _to_response(result: ActiveLiquidityOutput) -> ActiveLiquidityResponse:
    return ActiveLiquidityResponse(
        status=result.status.value,
        active_tick=result.active_tick,
        is_loading=result.is_loading,
        is_uninitialized=result.is_uninitialized,
        is_error=result.is_error,
        error=result.error,
        data=[
            ProcessedTickResponse(
                tick_idx=item.tick_idx,
                liquidity_active=str(item.liquidity_active),
                liquidity_net=str(item.liquidity_net),
                price0=item.price0,
            )
            for item in result.data
        ]
        if result.data is not None
        else None,
    )


@router.post("/v1/active-liquidity", response_model=ActiveLiquidityResponse)
def get_pool_active_liquidity(
    req: ActiveLiquidityRequest,
    use_case: GetPoolActiveLiquidityUseCase = Depends(get_pool_active_liquidity_use_case),
):
    try:
        fee_amount = parse_fee_amount(req.fee_tier)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    result = use_case.execute(
        GetPoolActiveLiquidityInput(
            currency_a=_to_token(req.chain_id, req.token_a),
            currency_b=_to_token(req.chain_id, req.token_b),
            fee_amount=fee_amount,
        )
    )
    return _to_response(result)


@router.post("/v1/active-liquidity/compute", response_model=ActiveLiquidityResponse)
def compute_active_liquidity(
    req: ComputeActiveLiquidityRequest,
    use_case: ComputeActiveLiquidityUseCase = Depends(get_compute_active_liquidity_use_case),
):
    try:
        fee_amount = parse_fee_amount(req.fee_tier)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    ticks = tuple(
        Tick(
            tick_idx=item.tick_idx,
            liquidity_net=_parse_int(item.liquidity_net, field_name="liquidity_net"),
            liquidity_gross=_parse_int(item.liquidity_gross, field_name="liquidity_gross"),
        )
        for item in req.ticks
    )
    try:
        result = use_case.execute(
            ComputeActiveLiquidityInput(
                token0=_to_token(req.chain_id, req.token0),
                token1=_to_token(req.chain_id, req.token1),
                fee_amount=fee_amount,
                current_tick=req.current_tick,
                current_liquidity=_parse_int(req.current_liquidity, field_name="current_liquidity"),
                ticks=ticks,
            )
        )
    except ActiveLiquidityInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return _to_response(result)
