from __future__ import annotations

from active_liquidity.application.dto.active_liquidity import (
    ActiveLiquidityOutput,
    ComputeActiveLiquidityInput,
)
from active_liquidity.domain.exceptions import ActiveLiquidityInputError
from active_liquidity.domain.services.active_liquidity import build_active_liquidity_curve
from active_liquidity.domain.services.active_tick import resolve_active_tick


PIVOT_NOT_FOUND_ERROR = "TickData pivot not found"


class ComputeActiveLiquidityUseCase:
    def __init__(self, *, validate_tick_order: bool = False):
        self._validate_tick_order = validate_tick_order

    def execute(self, command: ComputeActiveLiquidityInput) -> ActiveLiquidityOutput:
        if command.current_liquidity < 0:
            raise ActiveLiquidityInputError("current_liquidity must be >= 0.")
        try:
            command.token0.sorts_before(command.token1)
        except ValueError as exc:
            raise ActiveLiquidityInputError(str(exc)) from exc

        active_tick = resolve_active_tick(command.current_tick, command.fee_amount)
        if active_tick is None or not command.ticks:
            return ActiveLiquidityOutput(
                is_loading=False,
                is_uninitialized=True,
                is_error=False,
                error=None,
                active_tick=active_tick,
                data=None,
            )

        data = build_active_liquidity_curve(
            token0=command.token0,
            token1=command.token1,
            active_tick=active_tick,
            current_liquidity=command.current_liquidity,
            ticks=command.ticks,
            validate_order=self._validate_tick_order,
        )
        if data is None:
            return ActiveLiquidityOutput(
                is_loading=False,
                is_uninitialized=False,
                is_error=True,
                error=PIVOT_NOT_FOUND_ERROR,
                active_tick=active_tick,
                data=None,
            )

        return ActiveLiquidityOutput(
            is_loading=False,
            is_uninitialized=False,
            is_error=False,
            error=None,
            active_tick=active_tick,
            data=data,
        )
